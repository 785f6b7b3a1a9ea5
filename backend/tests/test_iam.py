import pytest

from bazaar_auth import create_auth_store, get_db
from bazaar_auth.constants.permissions import ADMIN_MODULES
from bazaar_auth.services.profile_resolution import READY
from tests.test_utils_seed import ensure_staff, ensure_user, ensure_vendor, jwt_headers, unique_email


def _login(client, email, password='secret-pw'):
    return client.post('/iam/auth/login', json={'email': email, 'password': password})


def test_login_and_me(client):
    email = unique_email('mgr')
    user = ensure_user(email, role='manager')
    ensure_staff(user, 'manager', permissions=['finance:read', 'orders:read'])

    resp = _login(client, email)
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body['token_type'] == 'bearer'
    assert body['user']['id'] == user.id

    me = client.get('/iam/me', headers={'Authorization': f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    data = me.get_json()
    assert data['email'] == email
    assert data['role'] == 'manager'
    assert data['permissions'] == ['finance:read', 'orders:read']
    assert data['is_admin'] is True and data['is_super_admin'] is False
    assert data['modules'] == ['orders_management', 'finance']


def test_inactive_staff_record_falls_back_to_role_defaults(client):
    email = unique_email('viewer')
    user = ensure_user(email, role='viewer')
    ensure_staff(user, 'viewer', permissions=['finance:read'], is_active=False)
    token = _login(client, email).get_json()['access_token']
    data = client.get('/iam/me', headers={'Authorization': f'Bearer {token}'}).get_json()
    assert 'finance:read' not in data['permissions']
    assert 'audit:read' in data['permissions']


def test_login_failures(client):
    email = unique_email()
    user = ensure_user(email)
    bad = _login(client, email, 'nope')
    assert bad.status_code == 401
    assert bad.get_json()['error']['status'] == 401
    assert client.post('/iam/auth/login', json={'email': email}).status_code == 400
    user.is_active = False
    get_db().commit()
    assert _login(client, email).status_code == 403


def test_refresh_issues_new_access_token(client):
    email = unique_email()
    ensure_user(email, role='vendor')
    tokens = _login(client, email).get_json()
    resp = client.post('/iam/auth/refresh', headers={'Authorization': f"Bearer {tokens['refresh_token']}"})
    assert resp.status_code == 200
    fresh = resp.get_json()['access_token']
    me = client.get('/iam/me', headers={'Authorization': f'Bearer {fresh}'})
    assert me.get_json()['role'] == 'vendor'
    # an access token is not accepted where a refresh token is required
    wrong = client.post('/iam/auth/refresh', headers={'Authorization': f"Bearer {tokens['access_token']}"})
    assert wrong.status_code in (401, 422)


def test_modules_listing(client, app_instance):
    resp = client.get('/iam/modules', headers=jwt_headers(app_instance, role='staff', perms=['support:read']))
    assert resp.status_code == 200
    rows = resp.get_json()['data']
    assert [r['module'] for r in rows] == list(ADMIN_MODULES)
    accessible = [r['module'] for r in rows if r['accessible']]
    assert accessible == ['support']
    support = next(r for r in rows if r['module'] == 'support')
    assert 'support:read' in support['permissions']

    denied = client.get('/iam/modules', headers=jwt_headers(app_instance, role='vendor'))
    assert denied.status_code == 403


def test_super_admin_sees_every_module(client, app_instance):
    rows = client.get('/iam/modules', headers=jwt_headers(app_instance, role='super_admin', perms=[])).get_json()['data']
    assert all(r['accessible'] for r in rows)


def test_route_access_for_anonymous_caller(client):
    resp = client.get('/iam/route-access', query_string={'path': '/orders/42'})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['allowed'] is False
    assert body['reason'] == 'unauthenticated'
    assert body['location'] == '/auth/login?redirectTo=%2Forders%2F42'


def test_route_access_per_surface(client, app_instance):
    admin = jwt_headers(app_instance, role='admin')
    resp = client.get('/iam/route-access', query_string={'path': '/staff', 'surface': 'admin'}, headers=admin)
    assert resp.get_json() == {
        'allowed': False, 'redirect': '/auth/login', 'reason': 'unauthorized', 'location': '/auth/login',
    }
    resp = client.get('/iam/route-access', query_string={'path': '/orders', 'surface': 'admin'}, headers=admin)
    assert resp.get_json() == {'allowed': True}
    vendor = jwt_headers(app_instance, role='vendor')
    resp = client.get('/iam/route-access', query_string={'path': '/products/new', 'surface': 'vendor'}, headers=vendor)
    assert resp.get_json()['allowed'] is True


def test_route_access_validation(client):
    assert client.get('/iam/route-access').status_code == 400
    assert client.get('/iam/route-access', query_string={'path': 'relative'}).status_code == 400
    bad_surface = client.get('/iam/route-access', query_string={'path': '/', 'surface': 'kiosk'})
    assert bad_surface.status_code == 400
    assert 'kiosk' in bad_surface.get_json()['error']['detail']


@pytest.mark.asyncio
async def test_auth_store_over_database(app_instance):
    email = unique_email('seller')
    user = ensure_user(email, role='vendor')
    vendor = ensure_vendor(user, business_name='Clay & Co')

    auth = create_auth_store(app_instance)
    snap = await auth.initialize()
    assert snap.is_configured and not snap.is_loading and not snap.is_authenticated

    result = await auth.sign_in(email, 'secret-pw')
    assert result.ok
    await auth.settle()
    snap = auth.snapshot()
    assert snap.resolution_state == READY
    assert snap.is_vendor
    assert snap.vendor_profile.id == vendor.id
    assert snap.vendor_profile.business_name == 'Clay & Co'
    assert snap.staff_profile is None
    assert auth.check_route_access('/vendor/products').allowed
    assert auth.session_status().has_session

    await auth.sign_out()
    assert not auth.snapshot().is_authenticated
    auth.dispose()
