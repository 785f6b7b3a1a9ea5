"""Path-based access decisions for navigation guards.

Pure functions over (path, role, config). Rule order is significant: each bucket
assumes the earlier ones did not match.

    1. public          allow (authenticated callers on auth-entry pages are bounced)
    2. no role         deny, unauthenticated
    3. super admin     super_admin only
    4. admin           any admin-tier role
    5. vendor          vendor or admin-tier
    6. custom          deny when matched and role not listed, otherwise fall through
    7. protected       allow
    8. anything else   allow
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import urlencode, urljoin

from bazaar_auth.config.routes import RouteConfig, merge_route_config
from bazaar_auth.services.policy import is_admin_tier, is_super_admin_role, is_vendor_role

REASON_UNAUTHENTICATED = 'unauthenticated'
REASON_UNAUTHORIZED = 'unauthorized'
REASON_ALREADY_AUTHENTICATED = 'already_authenticated'

RETURN_PARAM = 'redirectTo'


@dataclass(frozen=True)
class RouteDecision:
    allowed: bool
    redirect: Optional[str] = None
    reason: Optional[str] = None
    # originally requested path, set when the caller must sign in first
    return_to: Optional[str] = None

    def location(self, base_url: Optional[str] = None) -> Optional[str]:
        """Navigable redirect target; the login target carries the return path."""
        if self.redirect is None:
            return None
        if self.return_to is not None:
            return create_redirect_url(self.redirect, self.return_to, base_url)
        return urljoin(base_url, self.redirect) if base_url else self.redirect

    def to_dict(self):
        out = {'allowed': self.allowed}
        if self.redirect is not None:
            out['redirect'] = self.redirect
        if self.reason is not None:
            out['reason'] = self.reason
        return out


ALLOW = RouteDecision(allowed=True)


def _normalize(path: str) -> str:
    if path.endswith('/'):
        path = path[:-1]
    return path or '/'


def match_path(path: str, pattern: str) -> bool:
    """`/x/*` matches `/x` and anything below it.

    `*/x` matches any path with an `/x` segment run at any depth, so
    `*/callback` covers `/auth/callback` and `/auth/oauth/callback/github`.
    Other patterns match exactly.
    """
    path = _normalize(path)
    pattern = _normalize(pattern)
    if path == pattern:
        return True
    if pattern.startswith('*/'):
        segment = pattern[1:]
        return path.endswith(segment) or (segment + '/') in path
    if pattern.endswith('/*'):
        base = pattern[:-2]
        if base == '':
            # '/*' covers the whole surface
            return True
        return path == base or path.startswith(base + '/')
    return False


def match_any_path(path: str, patterns: Iterable[str]) -> bool:
    return any(match_path(path, p) for p in patterns)


def has_required_role(role: Optional[str], required: Iterable[str]) -> bool:
    if not role:
        return False
    return role in tuple(required)


def create_redirect_url(login_path: str, original_path: str, base_url: Optional[str] = None) -> str:
    target = urljoin(base_url, login_path) if base_url else login_path
    sep = '&' if '?' in target else '?'
    return f"{target}{sep}{urlencode({RETURN_PARAM: original_path})}"


def _deny(redirect: str, reason: str, return_to: Optional[str] = None) -> RouteDecision:
    return RouteDecision(allowed=False, redirect=redirect, reason=reason, return_to=return_to)


def check_route_access(path: str, role: Optional[str], config: Optional[RouteConfig] = None) -> RouteDecision:
    cfg = merge_route_config(config)
    redirects = cfg.redirects
    authenticated = role is not None

    if match_any_path(path, cfg.public_routes):
        if (
            authenticated
            and match_any_path(path, cfg.auth_entry_routes)
            and not match_any_path(path, cfg.callback_routes)
        ):
            return _deny(redirects.after_login, REASON_ALREADY_AUTHENTICATED)
        return ALLOW

    if not authenticated:
        return _deny(redirects.login, REASON_UNAUTHENTICATED, return_to=path)

    if match_any_path(path, cfg.super_admin_routes):
        if not is_super_admin_role(role):
            return _deny(redirects.unauthorized, REASON_UNAUTHORIZED)
        return ALLOW

    if match_any_path(path, cfg.admin_routes):
        if not is_admin_tier(role):
            return _deny(redirects.unauthorized, REASON_UNAUTHORIZED)
        return ALLOW

    if match_any_path(path, cfg.vendor_routes):
        if not is_vendor_role(role) and not is_admin_tier(role):
            return _deny(redirects.unauthorized, REASON_UNAUTHORIZED)
        return ALLOW

    for custom in cfg.custom_routes:
        if match_path(path, custom.pattern) and custom.roles is not None:
            if not has_required_role(role, custom.roles):
                return _deny(redirects.unauthorized, REASON_UNAUTHORIZED)

    if match_any_path(path, cfg.protected_routes):
        return ALLOW

    # Unclassified path with an authenticated caller: allowed.
    return ALLOW


__all__ = [
    'REASON_UNAUTHENTICATED', 'REASON_UNAUTHORIZED', 'REASON_ALREADY_AUTHENTICATED', 'RETURN_PARAM',
    'RouteDecision', 'match_path', 'match_any_path', 'has_required_role', 'create_redirect_url', 'check_route_access',
]
