import pytest

from bazaar_auth.config.routes import (
    ADMIN_PORTAL_ROUTE_CONFIG, DEFAULT_ROUTE_CONFIG, MAIN_APP_ROUTE_CONFIG, VENDOR_PORTAL_ROUTE_CONFIG, CustomRoute,
    Redirects, RouteConfig, merge_route_config, route_config_for_surface,
)
from bazaar_auth.services.route_access import (
    REASON_ALREADY_AUTHENTICATED, REASON_UNAUTHENTICATED, REASON_UNAUTHORIZED, RouteDecision, check_route_access,
    create_redirect_url, has_required_role, match_any_path, match_path,
)


@pytest.mark.parametrize('path,pattern,expected', [
    ('/dashboard', '/dashboard', True),
    ('/dashboard/orders', '/dashboard/*', True),
    ('/auth/login', '/dashboard/*', False),
    ('/products/123', '/products/*', True),
    ('/admin', '/admin/*', True),
    ('/admin/a/b/c', '/admin/*', True),
    ('/administrator', '/admin/*', False),
    ('/dashboard/', '/dashboard', True),
    ('/dashboard', '/dashboard/', True),
    ('/dashboard/orders', '/dashboard', False),
    ('', '/', True),
    ('/anything/at/all', '/*', True),
    ('/auth/callback', '*/callback', True),
    ('/auth/oauth/callback/github', '*/callback', True),
    ('/auth/callback/', '*/callback', True),
    ('/auth/callbacks', '*/callback', False),
    ('/auth/mycallback', '*/callback', False),
])
def test_match_path(path, pattern, expected):
    assert match_path(path, pattern) is expected


def test_match_any_path():
    assert match_any_path('/auth/login', ['/auth/*'])
    assert match_any_path('/cart', ['/wishlist', '/cart'])
    assert not match_any_path('/cart', [])


def test_public_path_allowed_when_unauthenticated():
    decision = check_route_access('/auth/login', None, MAIN_APP_ROUTE_CONFIG)
    assert decision.allowed is True
    assert decision.redirect is None


def test_protected_path_redirects_to_login():
    decision = check_route_access('/dashboard', None, MAIN_APP_ROUTE_CONFIG)
    assert decision.allowed is False
    assert decision.redirect == '/auth/login'
    assert decision.reason == REASON_UNAUTHENTICATED
    # return path is carried alongside and encoded into the navigable location
    assert decision.return_to == '/dashboard'
    assert decision.location() == '/auth/login?redirectTo=%2Fdashboard'


def test_protected_path_allowed_for_customer():
    assert check_route_access('/dashboard', 'customer', MAIN_APP_ROUTE_CONFIG).allowed is True


def test_admin_surface_denies_customer_and_allows_admin():
    denied = check_route_access('/admin/users', 'customer', ADMIN_PORTAL_ROUTE_CONFIG)
    assert denied.allowed is False
    assert denied.reason == REASON_UNAUTHORIZED
    assert denied.redirect == '/auth/login'
    assert check_route_access('/admin/users', 'admin', ADMIN_PORTAL_ROUTE_CONFIG).allowed is True


def test_admin_surface_super_admin_bucket():
    assert check_route_access('/staff', 'admin', ADMIN_PORTAL_ROUTE_CONFIG).allowed is False
    assert check_route_access('/staff/42', 'super_admin', ADMIN_PORTAL_ROUTE_CONFIG).allowed is True
    assert check_route_access('/settings/security', 'manager', ADMIN_PORTAL_ROUTE_CONFIG).allowed is False
    assert check_route_access('/settings/general', 'manager', ADMIN_PORTAL_ROUTE_CONFIG).allowed is True


def test_every_staff_tier_is_admin_tier():
    for role in ('super_admin', 'admin', 'manager', 'staff', 'viewer'):
        assert check_route_access('/admin/orders', role).allowed is True


def test_vendor_bucket_admits_vendor_and_admin_tier():
    assert check_route_access('/vendor/products', 'vendor').allowed is True
    assert check_route_access('/vendor/products', 'staff').allowed is True
    denied = check_route_access('/vendor/products', 'customer')
    assert denied.allowed is False
    assert denied.redirect == '/'
    assert check_route_access('/orders', 'customer', VENDOR_PORTAL_ROUTE_CONFIG).allowed is False


def test_super_admin_checked_before_admin():
    # '/admin/staff' is in both buckets; the stricter one wins
    assert check_route_access('/admin/staff', 'admin').allowed is False
    assert check_route_access('/admin/staff', 'super_admin').allowed is True


def test_authenticated_caller_bounced_from_auth_pages():
    decision = check_route_access('/auth/login', 'customer', MAIN_APP_ROUTE_CONFIG)
    assert decision.allowed is False
    assert decision.reason == REASON_ALREADY_AUTHENTICATED
    assert decision.redirect == '/dashboard'
    assert decision.return_to is None
    # the callback has to stay reachable to finish signing in
    assert check_route_access('/auth/callback', 'customer', MAIN_APP_ROUTE_CONFIG).allowed is True
    assert check_route_access('/auth/oauth/callback', 'customer', MAIN_APP_ROUTE_CONFIG).allowed is True
    assert check_route_access('/auth/callback/google', 'admin', ADMIN_PORTAL_ROUTE_CONFIG).allowed is True
    # other public pages stay open for signed-in users
    assert check_route_access('/products/9', 'customer', MAIN_APP_ROUTE_CONFIG).allowed is True


def test_custom_routes_deny_unlisted_roles_and_fall_through_otherwise():
    cfg = RouteConfig(custom_routes=(
        CustomRoute('/reports/*', roles=('manager',)),
        CustomRoute('/beta/*'),
    ))
    assert check_route_access('/reports/q3', 'manager', cfg).allowed is True
    denied = check_route_access('/reports/q3', 'customer', cfg)
    assert denied.allowed is False and denied.reason == REASON_UNAUTHORIZED
    assert check_route_access('/beta/feature', 'customer', cfg).allowed is True
    # a matching custom rule does not override earlier buckets
    assert check_route_access('/products', 'customer', cfg).allowed is True


def test_unclassified_path_is_allowed_for_authenticated_callers():
    # default-allow: a path in no bucket is open to any signed-in role
    decision = check_route_access('/some/unlisted/page', 'customer', MAIN_APP_ROUTE_CONFIG)
    assert decision == RouteDecision(allowed=True)
    # ...but never to anonymous callers
    assert check_route_access('/some/unlisted/page', None, MAIN_APP_ROUTE_CONFIG).allowed is False


def test_check_route_access_is_pure():
    for args in [('/dashboard', None, MAIN_APP_ROUTE_CONFIG), ('/admin/users', 'customer', ADMIN_PORTAL_ROUTE_CONFIG),
                 ('/auth/login', 'vendor', None)]:
        assert check_route_access(*args) == check_route_access(*args)


def test_merge_is_field_by_field():
    merged = merge_route_config(RouteConfig(public_routes=('/only',), redirects=Redirects(login='/signin')))
    assert merged.public_routes == ('/only',)
    assert merged.protected_routes == DEFAULT_ROUTE_CONFIG.protected_routes
    assert merged.admin_routes == DEFAULT_ROUTE_CONFIG.admin_routes
    assert merged.redirects.login == '/signin'
    assert merged.redirects.after_login == '/dashboard'
    assert merged.redirects.unauthorized == '/'


def test_merge_keeps_explicitly_empty_buckets():
    merged = merge_route_config(RouteConfig(admin_routes=()))
    assert merged.admin_routes == ()
    assert check_route_access('/admin/users', 'customer', RouteConfig(admin_routes=())).allowed is True


def test_merge_without_config_is_default():
    assert merge_route_config() == merge_route_config(DEFAULT_ROUTE_CONFIG)


def test_named_surfaces():
    assert route_config_for_surface('main') is MAIN_APP_ROUTE_CONFIG
    assert route_config_for_surface('admin') is ADMIN_PORTAL_ROUTE_CONFIG
    with pytest.raises(ValueError):
        route_config_for_surface('kiosk')


def test_redirect_url_helpers():
    assert create_redirect_url('/auth/login', '/orders/7') == '/auth/login?redirectTo=%2Forders%2F7'
    assert create_redirect_url('/auth/login', '/x', 'https://shop.test') == 'https://shop.test/auth/login?redirectTo=%2Fx'
    assert create_redirect_url('/auth/login?lang=en', '/x') == '/auth/login?lang=en&redirectTo=%2Fx'
    denied = check_route_access('/admin', 'customer')
    assert denied.location('https://shop.test') == 'https://shop.test/'


def test_has_required_role():
    assert has_required_role('admin', ['admin', 'manager'])
    assert not has_required_role(None, ['admin'])
    assert not has_required_role('vendor', [])


def test_decision_serialization_omits_empty_fields():
    assert check_route_access('/', None).to_dict() == {'allowed': True}
    assert check_route_access('/cart', None).to_dict() == {
        'allowed': False, 'redirect': '/auth/login', 'reason': 'unauthenticated',
    }
