from __future__ import annotations
from typing import Any
from flask import Flask, request, jsonify, Response
from werkzeug.exceptions import HTTPException

from invoice_roi.config.env import get_security_config, get_server_config
from invoice_roi.errors import InvoiceRoiError, PersistenceError, RenderError, ValidationError
from invoice_roi.logging_setup import configure_logging
from invoice_roi.exports.pdf_report import REPORT_FILENAME, REPORT_MIME, render_pdf
from invoice_roi.scenarios.store import ScenarioStore, get_store
from invoice_roi.simulation.engine import SimulationResult, simulate
from invoice_roi.simulation.validation import SimulationInput, parse_input

import base64
import json
import logging
import time
from collections import deque, defaultdict
from pathlib import Path

logger = logging.getLogger(__name__)

app = Flask(__name__)

OPENAPI_PATH = Path(__file__).with_name("openapi.json")
PROTECTED_PREFIXES = ("/scenarios", "/report")

# Configuration helpers (overridable via app.config in tests)

def _get_api_key() -> str | None:
    if 'API_KEY' in app.config:
        return app.config.get('API_KEY')
    return get_security_config().api_key


def _get_rate_limit() -> tuple[int, float]:
    n = app.config.get('RATE_LIMIT_N')
    w = app.config.get('RATE_LIMIT_WINDOW_SEC')
    sec = get_security_config()
    if n is None:
        n = sec.rate_limit_n
    if w is None:
        w = sec.rate_limit_window_sec
    return int(n), float(w)


def _get_allowed_origins() -> tuple[str, ...]:
    if 'ALLOWED_ORIGINS' in app.config:
        return tuple(app.config.get('ALLOWED_ORIGINS') or ())
    return get_server_config().allowed_origins


_recent: dict[str, deque[float]] = defaultdict(lambda: deque(maxlen=100))


def _client_ip() -> str:
    xff = request.headers.get('X-Forwarded-For')
    if xff:
        return xff.split(',')[0].strip()
    return request.remote_addr or 'anon'


def _check_api_key():
    api_key = _get_api_key()
    if api_key:
        provided = request.headers.get('X-API-Key')
        if provided != api_key:
            return jsonify({'error': 'unauthorized'}), 401
    return None


def _prune_recent(now: float, window: float) -> None:
    # Forget clients with nothing left inside the window
    for key in [k for k, dq in _recent.items() if not dq or now - dq[-1] > window]:
        del _recent[key]


def _check_rate_limit(ip: str):
    # Allow if rate limiting disabled or N <= 0
    n, window = _get_rate_limit()
    if n <= 0:
        return None
    now = time.time()
    _prune_recent(now, window)
    dq = _recent[ip]
    # Drop old entries outside window
    while dq and now - dq[0] > window:
        dq.popleft()
    if len(dq) >= n:
        retry = max(0.0, window - (now - dq[0]))
        resp = jsonify({'error': 'rate_limited'})
        resp.status_code = 429
        resp.headers['Retry-After'] = f"{retry:.2f}"
        logger.info("Rate limited %s on %s", ip, request.path)
        return resp
    dq.append(now)
    return None


def _origin_allowed(origin: str) -> bool:
    allowed = _get_allowed_origins()
    return not allowed or origin in allowed


@app.before_request
def _auth_and_rate_limit():
    # Preflights carry no credentials
    if request.method == 'OPTIONS':
        return None
    if request.path.startswith(PROTECTED_PREFIXES):
        unauthorized = _check_api_key()
        if unauthorized is not None:
            return unauthorized
        # Rate limit only the lead-capture report endpoint
        if request.method == 'POST' and request.path == '/report/generate':
            rl = _check_rate_limit(_client_ip())
            if rl is not None:
                return rl
    return None


@app.after_request
def _cors_headers(resp: Response):
    origin = request.headers.get('Origin')
    if origin and _origin_allowed(origin):
        resp.headers['Access-Control-Allow-Origin'] = origin
        resp.headers['Access-Control-Allow-Credentials'] = 'true'
        resp.headers['Access-Control-Allow-Methods'] = 'GET, POST, DELETE, OPTIONS'
        resp.headers['Access-Control-Allow-Headers'] = 'Content-Type, X-API-Key'
        resp.headers.add('Vary', 'Origin')
    return resp


@app.errorhandler(InvoiceRoiError)
def _handle_domain_error(e: InvoiceRoiError):
    if e.status_code >= 500:
        logger.error("%s: %s", type(e).__name__, e)
    return jsonify({'error': e.public_message}), e.status_code


@app.errorhandler(Exception)
def _handle_unexpected(e: Exception):
    if isinstance(e, HTTPException):
        if e.code is None or e.code < 400:  # routing redirects
            return e
        return jsonify({'error': e.name}), e.code
    logger.exception("Unhandled error on %s %s", request.method, request.path)
    return jsonify({'error': 'Internal error'}), 500


def _payload() -> Any:
    return request.get_json(force=True, silent=True) or {}


def _store() -> ScenarioStore:
    return get_store()


def _simulate_checked(inputs: SimulationInput) -> SimulationResult:
    # finite inputs can still overflow; NaN/Infinity are not valid JSON
    results = simulate(inputs)
    if not results.is_finite():
        raise ValidationError("inputs", "inputs are too large to produce a finite result")
    return results


def _lookup_id(sid: str):
    if not ScenarioStore.is_valid_id(sid):
        return jsonify({'error': 'Invalid id'}), 400
    return None


@app.get('/health')
def health():
    return jsonify({'status': 'ok'})


@app.post('/simulate')
def post_simulate():
    # scenario_name, if sent, is ignored here
    inputs = parse_input(_payload())
    return jsonify(_simulate_checked(inputs).to_dict())


@app.post('/scenarios')
def post_scenarios():
    payload = _payload()
    if not isinstance(payload, dict):
        payload = {}
    name = payload.get('scenario_name')
    if not name or not isinstance(name, str):
        return jsonify({'error': 'scenario_name is required'}), 400
    inputs = parse_input(payload)
    results = _simulate_checked(inputs)
    try:
        scenario = _store().create(name, inputs, results)
    except PersistenceError:
        logger.exception("Failed to create scenario %r", name)
        return jsonify({'error': 'Failed to create scenario'}), 500
    return jsonify(scenario.to_dict()), 201


@app.get('/scenarios')
def list_scenarios():
    try:
        items = _store().list()
    except PersistenceError:
        logger.exception("Failed to list scenarios")
        return jsonify({'error': 'Failed to list scenarios'}), 500
    return jsonify(items)


@app.get('/scenarios/<sid>')
def get_scenario(sid: str):
    bad = _lookup_id(sid)
    if bad is not None:
        return bad
    return jsonify(_store().get(sid).to_dict())


@app.delete('/scenarios/<sid>')
def delete_scenario(sid: str):
    bad = _lookup_id(sid)
    if bad is not None:
        return bad
    try:
        _store().delete(sid)
    except PersistenceError:
        logger.exception("Failed to delete scenario %s", sid)
        return jsonify({'error': 'Failed to delete scenario'}), 500
    return jsonify({'ok': True})


@app.post('/report/generate')
def generate_report():
    payload = _payload()
    if not isinstance(payload, dict):
        payload = {}
    email = payload.get('email')
    if not email or not isinstance(email, str):
        return jsonify({'error': 'email is required'}), 400
    raw_inputs = payload.get('inputs') or {}
    inputs = parse_input(raw_inputs)
    results = _simulate_checked(inputs)
    try:
        pdf_bytes = render_pdf(email, raw_inputs, results)
    except RenderError:
        return jsonify({'error': 'Failed to generate report'}), 500
    logger.info("Generated report for domain %s", email.rsplit('@', 1)[-1])
    return jsonify({
        'base64': base64.b64encode(pdf_bytes).decode('ascii'),
        'filename': REPORT_FILENAME,
        'mime': REPORT_MIME,
    })


@app.get('/openapi.json')
def get_openapi():
    try:
        spec = json.loads(OPENAPI_PATH.read_text())
    except (OSError, ValueError):
        return jsonify({'error': 'openapi_not_found'}), 404
    return jsonify(spec)


def main() -> None:
    configure_logging()
    cfg = get_server_config()
    logger.info("Server listening on port %d", cfg.port)
    app.run(host=cfg.host, port=cfg.port)


if __name__ == '__main__':
    main()
