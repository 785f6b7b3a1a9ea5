from flask import Blueprint, abort, current_app, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from bazaar_auth import get_db
from bazaar_auth.config.routes import route_config_for_surface
from bazaar_auth.constants.permissions import ADMIN_MODULES, MODULE_PERMISSIONS
from bazaar_auth.decorators.auth import current_identity, require_admin, require_auth
from bazaar_auth.errors import IdentityProviderError
from bazaar_auth.models.authz import User
from bazaar_auth.services.identity_provider import authenticate, issue_session
from bazaar_auth.services.policy import accessible_modules
from bazaar_auth.services.route_access import check_route_access

iam_bp = Blueprint('iam', __name__)


def _session_payload(session):
    return {
        'access_token': session.access_token,
        'refresh_token': session.refresh_token,
        'token_type': session.token_type,
        'expires_in': session.expires_in,
        'expires_at': session.expires_at,
        'user': {'id': session.user.id, 'email': session.user.email},
    }


@iam_bp.post('/auth/login')
def login():
    data = request.json or {}
    db = get_db()
    try:
        user = authenticate(db, data.get('email'), data.get('password'))
    except IdentityProviderError as e:
        abort(e.status or 401, description=e.message)
    return _session_payload(issue_session(current_app, db, user))


@iam_bp.post('/auth/refresh')
@jwt_required(refresh=True)
def refresh():
    db = get_db()
    user = db.get(User, get_jwt_identity())
    if not user or not user.is_active:
        abort(401, description='User not found')
    return _session_payload(issue_session(current_app, db, user))


@iam_bp.get('/me')
@require_auth()
def me():
    identity = current_identity()
    return {**identity.to_dict(), 'modules': accessible_modules(identity)}


@iam_bp.get('/modules')
@require_admin()
def modules():
    identity = current_identity()
    granted = set(accessible_modules(identity))
    return {
        'data': [
            {'module': m, 'permissions': sorted(MODULE_PERMISSIONS[m]), 'accessible': m in granted}
            for m in ADMIN_MODULES
        ]
    }


@iam_bp.get('/route-access')
def route_access():
    """Evaluate a path for the caller; anonymous callers are evaluated as unauthenticated."""
    path = request.args.get('path')
    if not path or not path.startswith('/'):
        abort(400, description='path query parameter required (absolute path)')
    surface = request.args.get('surface') or current_app.config['ROUTE_SURFACE']
    try:
        config = route_config_for_surface(surface)
    except ValueError as e:
        abort(400, description=str(e))
    identity = current_identity()
    decision = check_route_access(path, identity.role if identity else None, config)
    payload = decision.to_dict()
    if not decision.allowed:
        payload['location'] = decision.location()
    return payload
