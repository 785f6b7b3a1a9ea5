from functools import wraps
from typing import Callable, Optional

from flask import current_app, g
from flask_jwt_extended import get_jwt, verify_jwt_in_request
from werkzeug.exceptions import Forbidden, Unauthorized

from bazaar_auth.models.identity import Identity
from bazaar_auth.services.policy import (
    evaluate, has_any_permission, has_permission, identity_can_access_module, identity_from_claims,
    is_vendor_role, MODE_ALL,
)


def current_identity() -> Optional[Identity]:
    """Identity for the bearer token on this request, or None when there is none."""
    if 'identity' not in g:
        verify_jwt_in_request(optional=True)
        claims = get_jwt()
        g.identity = identity_from_claims(claims) if claims.get('sub') else None
    return g.identity


def _deny(exc_cls, error_code: str, detail: str, identity: Optional[Identity] = None, **context):
    current_app.logger.warning(
        'Access denied (%s) user=%s role=%s %s',
        error_code, identity.id if identity else None, identity.role if identity else None, context,
    )
    exc = exc_cls(description=detail)
    # surfaced as error.code by the app error handler
    exc.error_code = error_code
    raise exc


def _authenticated() -> Identity:
    identity = current_identity()
    if identity is None:
        _deny(Unauthorized, 'AUTH_REQUIRED', 'Authentication required')
    return identity


def _guard(check: Callable[[Identity], None]):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            check(_authenticated())
            return fn(*args, **kwargs)
        return wrapper
    return outer


def require_auth():
    return _guard(lambda identity: None)


def require_role(*roles: str):
    def check(identity: Identity):
        if identity.role not in roles:
            _deny(Forbidden, 'AUTH_INSUFFICIENT_ROLE', f"Required role: {' or '.join(roles)}", identity, roles=roles)
    return _guard(check)


def require_permission(code: str):
    def check(identity: Identity):
        if not has_permission(identity, code):
            _deny(Forbidden, 'AUTH_MISSING_PERMISSION', f'Missing permission: {code}', identity, permission=code)
    return _guard(check)


def require_any_permission(*codes: str):
    def check(identity: Identity):
        if not has_any_permission(identity, codes):
            _deny(Forbidden, 'AUTH_MISSING_PERMISSION', f"Requires one of: {', '.join(codes)}", identity, permissions=codes)
    return _guard(check)


def require_all_permissions(*codes: str):
    def check(identity: Identity):
        if not evaluate(identity, codes, MODE_ALL):
            missing = [c for c in codes if not has_permission(identity, c)]
            _deny(Forbidden, 'AUTH_MISSING_PERMISSION', f"Missing permissions: {', '.join(missing)}", identity,
                  permissions=codes)
    return _guard(check)


def require_admin():
    def check(identity: Identity):
        if not identity.is_admin:
            _deny(Forbidden, 'AUTH_ADMIN_REQUIRED', 'Admin access required', identity)
    return _guard(check)


def require_super_admin():
    def check(identity: Identity):
        if not identity.is_super_admin:
            _deny(Forbidden, 'AUTH_SUPER_ADMIN_REQUIRED', 'Super admin access required', identity)
    return _guard(check)


def require_module(module: str):
    def check(identity: Identity):
        if not identity.is_admin:
            _deny(Forbidden, 'AUTH_ADMIN_REQUIRED', 'Admin access required', identity, module=module)
        if not identity_can_access_module(identity, module):
            _deny(Forbidden, 'AUTH_MODULE_ACCESS_DENIED', f'No access to module: {module}', identity, module=module)
    return _guard(check)


def require_vendor():
    """Vendor-only endpoints; admin-tier staff may act on a vendor's behalf."""
    def check(identity: Identity):
        if not identity.is_admin and not is_vendor_role(identity.role):
            _deny(Forbidden, 'AUTH_VENDOR_REQUIRED', 'Vendor access required', identity)
    return _guard(check)


def require_owner_or_admin(owner_id_from: Callable[..., Optional[str]]):
    """`owner_id_from(**view_kwargs)` returns the owning user id of the addressed resource."""
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            identity = _authenticated()
            if not identity.is_admin and owner_id_from(**kwargs) != identity.id:
                _deny(Forbidden, 'AUTH_NOT_OWNER', 'You can only access your own resources', identity)
            return fn(*args, **kwargs)
        return wrapper
    return outer


__all__ = [
    'current_identity', 'require_auth', 'require_role', 'require_permission', 'require_any_permission',
    'require_all_permissions', 'require_admin', 'require_super_admin', 'require_module', 'require_vendor',
    'require_owner_or_admin',
]
