from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import logging
import os
import re
import tempfile
import threading
import uuid

from invoice_roi.config.env import get_store_config
from invoice_roi.errors import NotFoundError, PersistenceError
from invoice_roi.simulation.engine import SimulationResult
from invoice_roi.simulation.validation import SimulationInput

logger = logging.getLogger(__name__)

_ID_RE = re.compile(r"^[0-9a-f]{32}$")


def _utc_now_iso() -> str:
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class Scenario:
    id: str
    scenario_name: str
    inputs: Dict[str, float] = field(default_factory=dict)
    results: Dict[str, float] = field(default_factory=dict)
    created_at: str = ""
    seq: int = 0  # creation order within the store

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "scenarioName": self.scenario_name,
            "inputs": dict(self.inputs),
            "results": dict(self.results),
            "createdAt": self.created_at,
        }

    def record(self) -> Dict[str, Any]:
        """On-disk form: the API body plus the creation sequence."""
        return {**self.to_dict(), "seq": self.seq}

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "scenarioName": self.scenario_name,
            "results": dict(self.results),
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Scenario":
        return cls(
            id=d["id"],
            scenario_name=d["scenarioName"],
            inputs=dict(d.get("inputs") or {}),
            results=dict(d.get("results") or {}),
            created_at=d.get("createdAt") or "",
            seq=int(d.get("seq") or 0),
        )


class ScenarioStore:
    """Scenarios kept as one JSON file each under ``root``, indexed in memory.

    create/delete/list hold the lock, so a listing never sees a half-written
    record. Files are written to a temp name and renamed into place.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()
        self._scenarios: Dict[str, Scenario] = {}
        self._lock = threading.Lock()
        self._next_seq = 1
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"cannot create store root {self.root}: {e}") from e
        self._load()

    @staticmethod
    def is_valid_id(sid: str) -> bool:
        return bool(_ID_RE.match(sid or ""))

    def _path(self, sid: str) -> Path:
        return self.root / f"{sid}.json"

    def _load(self) -> None:
        for p in sorted(self.root.glob("*.json")):
            if p.name.startswith("."):  # leftover temp file
                continue
            try:
                s = Scenario.from_dict(json.loads(p.read_text()))
            except (OSError, ValueError, KeyError, TypeError) as e:
                logger.warning("Skipping unreadable scenario file %s: %s", p.name, e)
                continue
            self._scenarios[s.id] = s
            self._next_seq = max(self._next_seq, s.seq + 1)
        logger.info("Loaded %d scenario(s) from %s", len(self._scenarios), self.root)

    def _write(self, s: Scenario) -> None:
        fd, tmp = tempfile.mkstemp(dir=self.root, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(s.record(), f, indent=2)
            os.replace(tmp, self._path(s.id))
        except OSError as e:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise PersistenceError(f"failed to write scenario {s.id}: {e}") from e

    def create(self, name: str, inputs: SimulationInput, results: SimulationResult) -> Scenario:
        with self._lock:
            s = Scenario(
                id=uuid.uuid4().hex,
                scenario_name=name,
                inputs=inputs.inputs_dict(),
                results=results.to_dict(),
                created_at=_utc_now_iso(),
                seq=self._next_seq,
            )
            self._write(s)
            self._scenarios[s.id] = s
            self._next_seq += 1
        logger.info("Created scenario %s (%r)", s.id, name)
        return s

    def list(self) -> List[Dict[str, Any]]:
        """Newest first. createdAt only has millisecond resolution, so order by seq."""
        with self._lock:
            items = list(self._scenarios.values())
        items.sort(key=lambda s: (s.seq, s.created_at), reverse=True)
        return [s.summary() for s in items]

    def get(self, sid: str) -> Scenario:
        with self._lock:
            s = self._scenarios.get(sid)
        if s is None:
            raise NotFoundError(sid)
        return s

    def delete(self, sid: str) -> None:
        with self._lock:
            if sid not in self._scenarios:
                raise NotFoundError(sid)
            try:
                self._path(sid).unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                raise PersistenceError(f"failed to delete scenario {sid}: {e}") from e
            del self._scenarios[sid]
        logger.info("Deleted scenario %s", sid)


_STORE: Optional[ScenarioStore] = None
_STORE_LOCK = threading.Lock()


def get_store() -> ScenarioStore:
    global _STORE
    with _STORE_LOCK:
        if _STORE is None:
            _STORE = ScenarioStore(get_store_config().root)
        return _STORE


def set_store(store: Optional[ScenarioStore]) -> None:
    """Swap the process-wide store (None resets to the configured default)."""
    global _STORE
    with _STORE_LOCK:
        _STORE = store
