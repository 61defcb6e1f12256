"""
Page CRUD API tests
"""
from sqlalchemy import select

from src.cmscrm.models.activity_log import ActivityLog
from src.cmscrm.models.page import Page
from src.cmscrm.utils.media import INVALID_ICON_TYPE
from src.cmscrm.utils.navigation import RoleTag


PNG = b'\x89PNG\r\n\x1a\n' + b'\x00' * 32


def stored_files(upload_dir):
    if not upload_dir.exists():
        return []
    return [p for p in upload_dir.rglob('*') if p.is_file()]


def icon_file(upload_dir, icon_url):
    return upload_dir / icon_url[len('/uploads/'):]


class TestCreatePage:
    async def test_create_get_and_duplicate(self, client, admin_headers):
        resp = await client.post('/api/pages', data={'name': 'Docs', 'url': '/docs'}, headers=admin_headers)
        assert resp.status_code == 201
        body = resp.json()
        assert body['success'] is True
        assert body['message'] == 'Page created successfully'
        page = body['data']
        assert isinstance(page['id'], int)
        assert page['status'] == 'active'
        assert page['is_external'] is False
        assert page['created_at'] and page['updated_at']

        got = await client.get(f"/api/pages/{page['id']}", headers=admin_headers)
        assert got.status_code == 200
        assert got.json()['data']['url'] == '/docs'

        dup = await client.post('/api/pages', data={'name': 'Docs 2', 'url': '/docs'}, headers=admin_headers)
        assert dup.status_code == 400
        assert dup.json() == {'success': False, 'message': 'Page URL already exists'}

    async def test_missing_fields_are_validation_errors(self, client, admin_headers):
        resp = await client.post('/api/pages', data={'url': '/x'}, headers=admin_headers)
        assert resp.status_code == 400
        body = resp.json()
        assert body['success'] is False
        assert body['message'] == 'Validation failed'
        assert [e['field'] for e in body['errors']] == ['name']

    async def test_blank_name_rejected(self, client, admin_headers):
        resp = await client.post('/api/pages', data={'name': '   ', 'url': '/x'}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()['errors'][0]['field'] == 'name'

    async def test_invalid_status_rejected(self, client, admin_headers):
        resp = await client.post(
            '/api/pages', data={'name': 'X', 'url': '/x', 'status': 'archived'}, headers=admin_headers
        )
        assert resp.status_code == 400
        assert resp.json()['errors'][0]['field'] == 'status'

    async def test_external_flag_parsed(self, client, admin_headers):
        resp = await client.post(
            '/api/pages',
            data={'name': 'Site', 'url': 'https://example.com', 'is_external': 'true', 'status': 'INACTIVE'},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        page = resp.json()['data']
        assert page['is_external'] is True
        assert page['status'] == 'inactive'

    async def test_invalid_external_flag_rejected(self, client, admin_headers):
        resp = await client.post(
            '/api/pages', data={'name': 'Site', 'url': '/site', 'is_external': 'maybe'}, headers=admin_headers
        )
        assert resp.status_code == 400
        assert resp.json()['errors'][0]['field'] == 'is_external'

        listing = await client.get('/api/pages', headers=admin_headers)
        assert listing.json()['data']['total'] == 0

    async def test_icon_is_stored(self, client, admin_headers, upload_dir):
        resp = await client.post(
            '/api/pages',
            data={'name': 'Logo', 'url': '/logo'},
            files={'icon': ('my logo.png', PNG, 'image/png')},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        icon = resp.json()['data']['icon']
        assert icon.startswith('/uploads/icons/page_')
        assert icon.endswith('_my_logo.png')
        assert icon_file(upload_dir, icon).read_bytes() == PNG

    async def test_text_icon_rejected_before_any_write(self, client, admin_headers, upload_dir):
        resp = await client.post(
            '/api/pages',
            data={'name': 'Notes', 'url': '/notes'},
            files={'icon': ('notes.txt', b'hello', 'text/plain')},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()['message'] == INVALID_ICON_TYPE
        assert stored_files(upload_dir) == []

        listing = await client.get('/api/pages', headers=admin_headers)
        assert listing.json()['data']['total'] == 0

    async def test_failed_row_write_removes_stored_icon(self, client, admin_headers, upload_dir):
        first = await client.post('/api/pages', data={'name': 'A', 'url': '/same'}, headers=admin_headers)
        assert first.status_code == 201

        resp = await client.post(
            '/api/pages',
            data={'name': 'B', 'url': '/same'},
            files={'icon': ('b.png', PNG, 'image/png')},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()['message'] == 'Page URL already exists'
        assert stored_files(upload_dir) == []

    async def test_create_logs_activity(self, client, admin_headers, admin_user, db_session):
        resp = await client.post('/api/pages', data={'name': 'Docs', 'url': '/docs'}, headers=admin_headers)
        page_id = resp.json()['data']['id']

        rows = (await db_session.execute(select(ActivityLog))).scalars().all()
        assert len(rows) == 1
        log = rows[0]
        assert (log.action, log.resource_type, log.resource_id) == ('CREATE', 'PAGE', page_id)
        assert log.user_id == admin_user.id
        assert log.username == 'admin'
        assert log.details == {'name': 'Docs', 'url': '/docs', 'is_external': False}

    async def test_requires_admin(self, client, user_headers):
        resp = await client.post('/api/pages', data={'name': 'Docs', 'url': '/docs'}, headers=user_headers)
        assert resp.status_code == 403
        assert resp.json()['success'] is False

    async def test_requires_token(self, client):
        resp = await client.post('/api/pages', data={'name': 'Docs', 'url': '/docs'})
        assert resp.status_code == 401
        assert resp.json() == {'success': False, 'message': 'Access token required'}


class TestUpdatePage:
    async def _create(self, client, headers, **extra):
        resp = await client.post(
            '/api/pages', data={'name': 'Docs', 'url': '/docs', **extra.pop('data', {})},
            headers=headers, **extra,
        )
        assert resp.status_code == 201
        return resp.json()['data']

    async def test_empty_patch_returns_unchanged_page(self, client, admin_headers, db_session):
        page = await self._create(client, admin_headers)

        resp = await client.put(f"/api/pages/{page['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()['data'] == page

        # nothing changed, nothing logged beyond the create
        logs = (await db_session.execute(select(ActivityLog))).scalars().all()
        assert [log.action for log in logs] == ['CREATE']

    async def test_sparse_patch(self, client, admin_headers):
        page = await self._create(client, admin_headers)

        resp = await client.put(f"/api/pages/{page['id']}", data={'name': 'Manual'}, headers=admin_headers)
        assert resp.status_code == 200
        data = resp.json()['data']
        assert data['name'] == 'Manual'
        assert data['url'] == '/docs'
        assert data['status'] == page['status']
        assert data['is_external'] == page['is_external']

    async def test_blank_url_does_not_clear(self, client, admin_headers):
        page = await self._create(client, admin_headers)
        resp = await client.put(f"/api/pages/{page['id']}", data={'url': '   '}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()['errors'][0]['field'] == 'url'

    async def test_duplicate_url_conflict(self, client, admin_headers):
        await self._create(client, admin_headers)
        other = (await client.post('/api/pages', data={'name': 'O', 'url': '/other'}, headers=admin_headers)).json()['data']

        resp = await client.put(f"/api/pages/{other['id']}", data={'url': '/docs'}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()['message'] == 'Page URL already exists'

    async def test_duplicate_url_with_icon_keeps_row_and_old_icon(self, client, admin_headers, upload_dir):
        page = await self._create(client, admin_headers, files={'icon': ('a.png', PNG, 'image/png')})
        await client.post('/api/pages', data={'name': 'B', 'url': '/b'}, headers=admin_headers)

        resp = await client.put(
            f"/api/pages/{page['id']}",
            data={'url': '/b'},
            files={'icon': ('n.png', PNG, 'image/png')},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()['message'] == 'Page URL already exists'
        assert stored_files(upload_dir) == [icon_file(upload_dir, page['icon'])]

        current = await client.get(f"/api/pages/{page['id']}", headers=admin_headers)
        assert current.json()['data']['url'] == '/docs'
        assert current.json()['data']['icon'] == page['icon']

    async def test_invalid_external_flag_rejected(self, client, admin_headers):
        page = await self._create(client, admin_headers, data={'is_external': 'true', 'url': 'https://docs.example.com'})

        resp = await client.put(f"/api/pages/{page['id']}", data={'is_external': 'ture'}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()['errors'][0]['field'] == 'is_external'

        current = await client.get(f"/api/pages/{page['id']}", headers=admin_headers)
        assert current.json()['data']['is_external'] is True

    async def test_new_icon_replaces_old_file(self, client, admin_headers, upload_dir):
        page = await self._create(client, admin_headers, files={'icon': ('a.png', PNG, 'image/png')})
        old_path = icon_file(upload_dir, page['icon'])
        assert old_path.exists()

        resp = await client.put(
            f"/api/pages/{page['id']}",
            files={'icon': ('b.svg', b'<svg/>', 'image/svg+xml')},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        new_icon = resp.json()['data']['icon']
        assert new_icon != page['icon']
        assert icon_file(upload_dir, new_icon).exists()
        assert not old_path.exists()

    async def test_update_logs_patch(self, client, admin_headers, db_session):
        page = await self._create(client, admin_headers)
        await client.put(f"/api/pages/{page['id']}", data={'status': 'inactive'}, headers=admin_headers)

        log = (await db_session.execute(
            select(ActivityLog).where(ActivityLog.action == 'UPDATE')
        )).scalar_one()
        assert log.resource_id == page['id']
        assert log.details == {'status': 'inactive'}

    async def test_missing_page(self, client, admin_headers):
        resp = await client.put('/api/pages/999', data={'name': 'X'}, headers=admin_headers)
        assert resp.status_code == 404
        assert resp.json() == {'success': False, 'message': 'Page not found'}


class TestDeletePage:
    async def test_delete_removes_row_icon_and_logs(self, client, admin_headers, upload_dir, db_session):
        created = await client.post(
            '/api/pages',
            data={'name': 'Docs', 'url': '/docs'},
            files={'icon': ('a.gif', b'GIF89a', 'image/gif')},
            headers=admin_headers,
        )
        page = created.json()['data']
        assert icon_file(upload_dir, page['icon']).exists()

        resp = await client.delete(f"/api/pages/{page['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json() == {'success': True, 'message': 'Page deleted successfully'}
        assert stored_files(upload_dir) == []

        gone = await client.get(f"/api/pages/{page['id']}", headers=admin_headers)
        assert gone.status_code == 404

        log = (await db_session.execute(
            select(ActivityLog).where(ActivityLog.action == 'DELETE')
        )).scalar_one()
        assert log.details == {'name': 'Docs', 'url': '/docs'}

    async def test_delete_assigned_page_refused(self, client, admin_headers, upload_dir, roles, grant):
        created = await client.post(
            '/api/pages',
            data={'name': 'Docs', 'url': '/docs'},
            files={'icon': ('a.png', PNG, 'image/png')},
            headers=admin_headers,
        )
        page = created.json()['data']
        await grant(roles[RoleTag.MANAGER], page['id'])

        resp = await client.delete(f"/api/pages/{page['id']}", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json() == {'success': False, 'message': 'Cannot delete page with assigned roles'}

        still = await client.get(f"/api/pages/{page['id']}", headers=admin_headers)
        assert still.status_code == 200
        assert icon_file(upload_dir, page['icon']).exists()

    async def test_delete_missing_page(self, client, admin_headers):
        resp = await client.delete('/api/pages/12345', headers=admin_headers)
        assert resp.status_code == 404


class TestListPages:
    async def test_pagination_and_filters(self, client, admin_headers, make_page):
        for i in range(12):
            await make_page(f'Page {i:02d}', f'/p{i:02d}', status='inactive' if i % 3 == 0 else 'active')
        await make_page('Reports', '/reports')

        resp = await client.get('/api/pages', params={'page': 2, 'limit': 5}, headers=admin_headers)
        data = resp.json()['data']
        assert data['total'] == 13
        assert data['page'] == 2
        assert data['limit'] == 5
        assert data['total_pages'] == 3
        assert len(data['items']) == 5

        resp = await client.get('/api/pages', params={'search': 'report'}, headers=admin_headers)
        assert [p['url'] for p in resp.json()['data']['items']] == ['/reports']

        resp = await client.get('/api/pages', params={'status': 'inactive'}, headers=admin_headers)
        assert resp.json()['data']['total'] == 4

    async def test_invalid_numbers_fall_back_to_defaults(self, client, admin_headers):
        resp = await client.get('/api/pages', params={'page': 'abc', 'limit': '-3'}, headers=admin_headers)
        assert resp.status_code == 200
        data = resp.json()['data']
        assert (data['page'], data['limit']) == (1, 10)

    async def test_limit_is_capped(self, client, admin_headers):
        resp = await client.get('/api/pages', params={'limit': 5000}, headers=admin_headers)
        assert resp.json()['data']['limit'] == 100

    async def test_stats(self, client, admin_headers, make_page):
        await make_page('A', '/a')
        await make_page('B', 'https://b.example', is_external=True)
        await make_page('C', '/c', status='inactive')

        resp = await client.get('/api/pages/stats', headers=admin_headers)
        assert resp.json()['data'] == {'total': 3, 'active': 2, 'inactive': 1, 'external': 1, 'internal': 2}

    async def test_simple_list(self, client, admin_headers, make_page):
        await make_page('Beta', '/b')
        await make_page('Alpha', '/a')
        await make_page('Off', '/off', status='inactive')

        resp = await client.get('/api/pages/simple', headers=admin_headers)
        assert [p['name'] for p in resp.json()['data']] == ['Alpha', 'Beta']
        assert set(resp.json()['data'][0]) == {'id', 'name', 'url', 'is_external', 'status'}

        resp = await client.get('/api/pages/simple', params={'active_only': 'false'}, headers=admin_headers)
        assert len(resp.json()['data']) == 3


class TestUserPages:
    async def test_union_across_roles_without_duplicates(self, client, make_user, make_page, roles, grant, headers_for):
        p1 = await make_page('One', '/one')
        p2 = await make_page('Two', '/two')
        p3 = await make_page('Three', '/three')
        p4 = await make_page('Hidden', '/hidden', status='inactive')
        await grant(roles[RoleTag.MANAGER], p1, p2)
        await grant(roles[RoleTag.USER], p2, p3, p4)
        bob = await make_user('bob', [RoleTag.MANAGER, RoleTag.USER])

        resp = await client.get('/api/pages/my', headers=headers_for(bob))
        assert resp.status_code == 200
        urls = [p['url'] for p in resp.json()['data']]
        assert sorted(urls) == ['/one', '/three', '/two']
        assert len(urls) == len(set(urls))

    async def test_user_without_roles_has_no_pages(self, client, make_user, make_page, headers_for):
        await make_page('One', '/one')
        nobody = await make_user('nobody')
        resp = await client.get('/api/pages/my', headers=headers_for(nobody))
        assert resp.json()['data'] == []

    async def test_access_check(self, client, plain_user, user_headers, make_page, roles, grant):
        page = await make_page('Reports', '/reports')
        await make_page('Secret', '/secret')
        await grant(roles[RoleTag.USER], page)

        resp = await client.get('/api/pages/access/reports', headers=user_headers)
        assert resp.json()['data'] == {'user_id': plain_user.id, 'page_url': 'reports', 'has_access': True}

        resp = await client.get('/api/pages/access/secret', headers=user_headers)
        assert resp.json()['data']['has_access'] is False


async def test_page_row_reflects_api(client, admin_headers, db_session):
    resp = await client.post('/api/pages', data={'name': 'Docs', 'url': '/docs'}, headers=admin_headers)
    row = (await db_session.execute(select(Page).where(Page.url == '/docs'))).scalar_one()
    assert row.id == resp.json()['data']['id']
