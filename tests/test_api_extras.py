import unittest
from unittest import mock

import invoice_roi.api.server as server
from invoice_roi.api.server import app
from invoice_roi.errors import PersistenceError, RenderError
from invoice_roi.scenarios.store import set_store

from tests.test_api import APITestCase, VALID


class TestAPIExtras(APITestCase):
    def test_openapi_endpoint(self):
        rv = self.client.get('/openapi.json')
        self.assertEqual(rv.status_code, 200)
        spec = rv.get_json()
        self.assertIn('openapi', spec)
        for path in ('/simulate', '/scenarios', '/scenarios/{id}', '/report/generate', '/health'):
            self.assertIn(path, spec.get('paths', {}))

    def test_rate_limit_report_generate(self):
        app.config['RATE_LIMIT_N'] = 1
        app.config['RATE_LIMIT_WINDOW_SEC'] = 5.0
        rv1 = self.client.post('/report/generate', json={'email': 'a@example.com', 'inputs': VALID})
        self.assertEqual(rv1.status_code, 200)
        rv2 = self.client.post('/report/generate', json={'email': 'b@example.com', 'inputs': VALID})
        self.assertEqual(rv2.status_code, 429)
        self.assertEqual(rv2.get_json().get('error'), 'rate_limited')
        self.assertIn('Retry-After', rv2.headers)
        # other endpoints are not limited
        rv3 = self.client.post('/simulate', json=VALID)
        self.assertEqual(rv3.status_code, 200)

    def test_rate_limit_per_client(self):
        app.config['RATE_LIMIT_N'] = 1
        app.config['RATE_LIMIT_WINDOW_SEC'] = 5.0
        body = {'email': 'a@example.com', 'inputs': VALID}
        rv1 = self.client.post('/report/generate', json=body, headers={'X-Forwarded-For': '10.0.0.1'})
        rv2 = self.client.post('/report/generate', json=body, headers={'X-Forwarded-For': '10.0.0.2'})
        self.assertEqual(rv1.status_code, 200)
        self.assertEqual(rv2.status_code, 200)

    def test_auth_api_key(self):
        app.config['API_KEY'] = 'secret'
        rv = self.client.get('/scenarios')
        self.assertEqual(rv.status_code, 401)
        self.assertEqual(rv.get_json(), {'error': 'unauthorized'})
        rv = self.client.post('/report/generate', json={'email': 'a@example.com', 'inputs': VALID})
        self.assertEqual(rv.status_code, 401)
        rv2 = self.client.get('/scenarios/' + '0' * 32, headers={'X-API-Key': 'secret'})
        self.assertEqual(rv2.status_code, 404)
        # calculation and health stay open
        self.assertEqual(self.client.post('/simulate', json=VALID).status_code, 200)
        self.assertEqual(self.client.get('/health').status_code, 200)

    def test_cors_any_origin_when_unconfigured(self):
        rv = self.client.get('/health', headers={'Origin': 'http://localhost:5173'})
        self.assertEqual(rv.headers.get('Access-Control-Allow-Origin'), 'http://localhost:5173')
        self.assertEqual(rv.headers.get('Access-Control-Allow-Credentials'), 'true')

    def test_cors_allow_list(self):
        app.config['ALLOWED_ORIGINS'] = ('https://roi.example.com',)
        ok = self.client.get('/health', headers={'Origin': 'https://roi.example.com'})
        self.assertEqual(ok.headers.get('Access-Control-Allow-Origin'), 'https://roi.example.com')
        denied = self.client.get('/health', headers={'Origin': 'https://evil.example.com'})
        self.assertNotIn('Access-Control-Allow-Origin', denied.headers)
        no_origin = self.client.get('/health')
        self.assertNotIn('Access-Control-Allow-Origin', no_origin.headers)

    def test_preflight_skips_auth(self):
        app.config['API_KEY'] = 'secret'
        rv = self.client.options('/scenarios', headers={
            'Origin': 'http://localhost:5173',
            'Access-Control-Request-Method': 'POST',
        })
        self.assertLess(rv.status_code, 300)
        self.assertIn('X-API-Key', rv.headers.get('Access-Control-Allow-Headers', ''))

    def test_render_failure_is_generic_500(self):
        with mock.patch.object(server, 'render_pdf', side_effect=RenderError('font exploded')):
            rv = self.client.post('/report/generate', json={'email': 'a@example.com', 'inputs': VALID})
        self.assertEqual(rv.status_code, 500)
        self.assertEqual(rv.get_json(), {'error': 'Failed to generate report'})

    def test_persistence_failures_are_generic_500(self):
        with mock.patch.object(self.store, 'create', side_effect=PersistenceError('disk full')):
            rv = self.client.post('/scenarios', json={**VALID, 'scenario_name': 'X'})
        self.assertEqual(rv.status_code, 500)
        self.assertEqual(rv.get_json(), {'error': 'Failed to create scenario'})
        with mock.patch.object(self.store, 'list', side_effect=PersistenceError('io')):
            rv = self.client.get('/scenarios')
        self.assertEqual(rv.status_code, 500)
        self.assertEqual(rv.get_json(), {'error': 'Failed to list scenarios'})

    def test_delete_failure_is_generic_500(self):
        sid = self.client.post('/scenarios', json={**VALID, 'scenario_name': 'Keep'}).get_json()['id']
        with mock.patch.object(self.store, 'delete', side_effect=PersistenceError('read-only fs')):
            rv = self.client.delete(f'/scenarios/{sid}')
        self.assertEqual(rv.status_code, 500)
        self.assertEqual(rv.get_json(), {'error': 'Failed to delete scenario'})
        self.assertEqual(self.client.get(f'/scenarios/{sid}').status_code, 200)

    def test_rate_limit_forgets_idle_clients(self):
        app.config['RATE_LIMIT_N'] = 5
        app.config['RATE_LIMIT_WINDOW_SEC'] = 1.0
        body = {'email': 'a@example.com', 'inputs': VALID}
        with mock.patch.object(server.time, 'time', return_value=1000.0):
            for n in range(20):
                self.client.post('/report/generate', json=body, headers={'X-Forwarded-For': f'10.0.0.{n}'})
        self.assertEqual(len(server._recent), 20)
        with mock.patch.object(server.time, 'time', return_value=1010.0):
            rv = self.client.post('/report/generate', json=body, headers={'X-Forwarded-For': '10.0.1.1'})
        self.assertEqual(rv.status_code, 200)
        self.assertEqual(list(server._recent), ['10.0.1.1'])

    def test_unexpected_error_hides_detail(self):
        broken = mock.Mock()
        broken.get.side_effect = RuntimeError('secret internals')
        set_store(broken)
        rv = self.client.get('/scenarios/' + 'a' * 32)
        self.assertEqual(rv.status_code, 500)
        self.assertEqual(rv.get_json(), {'error': 'Internal error'})


if __name__ == '__main__':
    unittest.main()
