"""
Entry point tests: health, root, unmatched routes, error envelope, metrics
"""
from src.cmscrm.app import app
from src.cmscrm.utils import error_handler
from src.cmscrm.utils.exceptions import UnclassifiedError


async def test_health(client):
    resp = await client.get('/health')
    assert resp.status_code == 200
    body = resp.json()
    assert body['success'] is True
    assert body['environment'] == 'test'
    assert body['timestamp']
    assert body['data'] == {'api_calls': 0}


async def test_api_calls_are_counted(client, admin_headers):
    await client.get('/api/pages', headers=admin_headers)
    await client.get('/api/pages/stats', headers=admin_headers)
    await client.get('/health')

    resp = await client.get('/health')
    assert resp.json()['data']['api_calls'] == 2
    assert app.state.metrics.snapshot()['by_path']['GET /api/pages'] == 1


async def test_root_metadata(client):
    resp = await client.get('/')
    body = resp.json()
    assert body['success'] is True
    assert body['data']['endpoints']['pages'] == '/api/pages'


async def test_unmatched_route(client):
    resp = await client.get('/api/nope')
    assert resp.status_code == 404
    assert resp.json() == {'success': False, 'message': 'Endpoint not found', 'path': '/api/nope'}


async def test_security_headers(client):
    resp = await client.get('/health')
    assert resp.headers['X-Content-Type-Options'] == 'nosniff'
    assert resp.headers['X-Frame-Options'] == 'DENY'


async def test_bad_path_param_is_validation_error(client, admin_headers):
    resp = await client.get('/api/pages/not-a-number', headers=admin_headers)
    assert resp.status_code == 400
    body = resp.json()
    assert body['message'] == 'Validation failed'
    assert body['errors'][0]['field'] == 'page_id'


async def test_unclassified_error_hides_detail_outside_development(client, admin_headers, monkeypatch):
    async def broken(*args, **kwargs):
        raise RuntimeError('db exploded')

    monkeypatch.setattr('src.cmscrm.routes.pages_api.get_page_stats', broken)

    resp = await client.get('/api/pages/stats', headers=admin_headers)
    assert resp.status_code == 500
    assert resp.json() == {'success': False, 'message': 'Failed to retrieve page statistics'}


async def test_unclassified_error_detail_in_development(client, admin_headers, monkeypatch):
    async def broken(*args, **kwargs):
        raise RuntimeError('db exploded')

    monkeypatch.setattr('src.cmscrm.routes.pages_api.get_page_stats', broken)
    monkeypatch.setattr(error_handler.settings, 'APP_ENV', 'development')

    resp = await client.get('/api/pages/stats', headers=admin_headers)
    assert resp.status_code == 500
    assert resp.json()['error'] == 'db exploded'


def test_unclassified_error_keeps_cause():
    cause = ValueError('x')
    err = UnclassifiedError('Failed to do it', cause)
    assert err.status_code == 500
    assert err.cause is cause
    assert err.message == 'Failed to do it'
