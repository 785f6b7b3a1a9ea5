import os, sys, pytest
# Ensure backend directory is on path so 'bazaar_auth' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from flask import Blueprint
from bazaar_auth import create_app, get_db
from bazaar_auth.constants.permissions import FINANCE
from bazaar_auth.decorators.auth import (
    require_auth, require_role, require_permission, require_any_permission, require_all_permissions,
    require_admin, require_super_admin, require_module, require_vendor, require_owner_or_admin,
)
from bazaar_auth.models.authz import Base

TEST_CONFIG = {
    'DATABASE_URL': 'sqlite+pysqlite:///:memory:',
    'JWT_SECRET_KEY': 'test-secret-key-long-enough-for-provider',
    'AUTH_PROVIDER_URL': 'https://auth.bazaar.test',
    'AUTH_OAUTH_PROVIDERS': 'google,github',
    'ROUTE_SURFACE': 'main',
    'ROUTE_GUARD_EXEMPT': ('/healthz', '/iam/*', '/guarded/*'),
}


def _guarded_blueprint():
    """Endpoints that exist only to exercise the guard decorators."""
    bp = Blueprint('guarded', __name__)

    @bp.get('/auth')
    @require_auth()
    def auth_only():
        return {'ok': True}

    @bp.get('/role')
    @require_role('vendor', 'admin')
    def role_only():
        return {'ok': True}

    @bp.get('/perm')
    @require_permission('orders:refund')
    def perm_only():
        return {'ok': True}

    @bp.get('/any')
    @require_any_permission('finance:read', 'orders:read')
    def any_perm():
        return {'ok': True}

    @bp.get('/all')
    @require_all_permissions('users:read', 'users:delete')
    def all_perms():
        return {'ok': True}

    @bp.get('/admin')
    @require_admin()
    def admin_only():
        return {'ok': True}

    @bp.get('/super')
    @require_super_admin()
    def super_only():
        return {'ok': True}

    @bp.get('/module')
    @require_module(FINANCE)
    def finance_module():
        return {'ok': True}

    @bp.get('/vendor')
    @require_vendor()
    def vendor_only():
        return {'ok': True}

    @bp.get('/owned/<owner_id>')
    @require_owner_or_admin(lambda owner_id: owner_id)
    def owned(owner_id):
        return {'owner_id': owner_id}

    @bp.get('/boom')
    def boom():
        raise RuntimeError('explode')

    return bp


@pytest.fixture(scope='session', autouse=True)
def app_instance():
    app = create_app(TEST_CONFIG)
    app.register_blueprint(_guarded_blueprint(), url_prefix='/guarded')
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()
