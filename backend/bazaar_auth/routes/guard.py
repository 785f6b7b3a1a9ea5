"""Navigation guard: applies the route access matcher to every page request.

API endpoints listed in ROUTE_GUARD_EXEMPT protect themselves with the decorators in
`bazaar_auth.decorators.auth`; static assets and framework paths are never guarded.
"""
from flask import Flask, redirect, request

from bazaar_auth.config.routes import route_config_for_surface
from bazaar_auth.decorators.auth import current_identity
from bazaar_auth.services.route_access import check_route_access, match_any_path

STATIC_PREFIXES = ('/static/', '/_next/', '/api/')


def is_guard_exempt(path: str, exempt_patterns) -> bool:
    if path.startswith(STATIC_PREFIXES) or path == '/favicon.ico':
        return True
    # files (anything with an extension in the last segment)
    if '.' in path.rsplit('/', 1)[-1]:
        return True
    return match_any_path(path, exempt_patterns)


def register_route_guard(app: Flask):
    config = route_config_for_surface(app.config['ROUTE_SURFACE'])

    @app.before_request
    def enforce_route_access():
        path = request.path
        if is_guard_exempt(path, app.config['ROUTE_GUARD_EXEMPT']):
            return None
        identity = current_identity()
        decision = check_route_access(path, identity.role if identity else None, config)
        if decision.allowed:
            return None
        app.logger.info('Route guard redirect %s -> %s (%s)', path, decision.redirect, decision.reason)
        return redirect(decision.location())

    return enforce_route_access


__all__ = ['register_route_guard', 'is_guard_exempt', 'STATIC_PREFIXES']
