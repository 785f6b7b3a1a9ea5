"""Route classification for each application surface.

A RouteConfig only states what it wants to override; `merge_route_config` fills every
field left as None from DEFAULT_ROUTE_CONFIG, one field at a time. Redirect targets
merge key by key. An explicitly empty tuple is kept (it means "no routes in this bucket").
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple

DEFAULT_LOGIN = '/auth/login'
DEFAULT_AFTER_LOGIN = '/dashboard'
DEFAULT_UNAUTHORIZED = '/'


@dataclass(frozen=True)
class CustomRoute:
    pattern: str
    # None: any authenticated role may pass
    roles: Optional[Tuple[str, ...]] = None


@dataclass(frozen=True)
class Redirects:
    login: Optional[str] = None
    after_login: Optional[str] = None
    unauthorized: Optional[str] = None


@dataclass(frozen=True)
class RouteConfig:
    public_routes: Optional[Tuple[str, ...]] = None
    protected_routes: Optional[Tuple[str, ...]] = None
    admin_routes: Optional[Tuple[str, ...]] = None
    vendor_routes: Optional[Tuple[str, ...]] = None
    super_admin_routes: Optional[Tuple[str, ...]] = None
    custom_routes: Optional[Tuple[CustomRoute, ...]] = None
    # Public auth pages an authenticated caller is bounced away from
    auth_entry_routes: Optional[Tuple[str, ...]] = None
    # ...except these, which must stay reachable to finish a sign-in
    callback_routes: Optional[Tuple[str, ...]] = None
    redirects: Optional[Redirects] = None


DEFAULT_ROUTE_CONFIG = RouteConfig(
    public_routes=(
        '/', '/auth/*',
        '/products', '/products/*',
        '/categories', '/categories/*',
        '/vendors', '/vendors/*',
        '/search', '/about', '/contact', '/terms', '/privacy',
    ),
    protected_routes=(
        '/dashboard', '/dashboard/*',
        '/profile', '/profile/*',
        '/orders', '/orders/*',
        '/wishlist', '/cart',
        '/checkout', '/checkout/*',
    ),
    admin_routes=('/admin', '/admin/*'),
    vendor_routes=('/vendor', '/vendor/*'),
    super_admin_routes=('/admin/staff', '/admin/staff/*', '/admin/settings/*'),
    custom_routes=(),
    auth_entry_routes=('/auth/*',),
    callback_routes=('*/callback',),
    redirects=Redirects(login=DEFAULT_LOGIN, after_login=DEFAULT_AFTER_LOGIN, unauthorized=DEFAULT_UNAUTHORIZED),
)

# General (storefront) surface
MAIN_APP_ROUTE_CONFIG = RouteConfig(
    public_routes=(
        '/', '/auth/*',
        '/products', '/products/*',
        '/categories', '/categories/*',
        '/vendors', '/vendors/*',
        '/search', '/about', '/contact', '/terms', '/privacy', '/help',
    ),
    protected_routes=(
        '/dashboard', '/dashboard/*',
        '/profile', '/profile/*',
        '/orders', '/orders/*',
        '/wishlist', '/cart',
        '/checkout', '/checkout/*',
        '/settings', '/settings/*',
    ),
    redirects=Redirects(login='/auth/login', after_login='/dashboard', unauthorized='/'),
)

VENDOR_PORTAL_ROUTE_CONFIG = RouteConfig(
    public_routes=('/auth/*',),
    protected_routes=('/*',),
    vendor_routes=('/*',),
    redirects=Redirects(login='/auth/login', after_login='/dashboard', unauthorized='/auth/login'),
)

ADMIN_PORTAL_ROUTE_CONFIG = RouteConfig(
    public_routes=('/auth/*',),
    protected_routes=('/*',),
    admin_routes=('/*',),
    super_admin_routes=('/staff', '/staff/*', '/settings/security'),
    redirects=Redirects(login='/auth/login', after_login='/dashboard', unauthorized='/auth/login'),
)

ROUTE_SURFACES = {
    'default': DEFAULT_ROUTE_CONFIG,
    'main': MAIN_APP_ROUTE_CONFIG,
    'vendor': VENDOR_PORTAL_ROUTE_CONFIG,
    'admin': ADMIN_PORTAL_ROUTE_CONFIG,
}


def _pick(value, fallback):
    return fallback if value is None else value


def merge_route_config(config: Optional[RouteConfig] = None) -> RouteConfig:
    """Return a fully populated config: caller fields win, defaults fill the gaps."""
    config = config or RouteConfig()
    d = DEFAULT_ROUTE_CONFIG
    given = config.redirects or Redirects()
    # empty strings fall back too, a redirect target has to go somewhere
    redirects = Redirects(
        login=given.login or d.redirects.login,
        after_login=given.after_login or d.redirects.after_login,
        unauthorized=given.unauthorized or d.redirects.unauthorized,
    )
    return RouteConfig(
        public_routes=tuple(_pick(config.public_routes, d.public_routes)),
        protected_routes=tuple(_pick(config.protected_routes, d.protected_routes)),
        admin_routes=tuple(_pick(config.admin_routes, d.admin_routes)),
        vendor_routes=tuple(_pick(config.vendor_routes, d.vendor_routes)),
        super_admin_routes=tuple(_pick(config.super_admin_routes, d.super_admin_routes)),
        custom_routes=tuple(_pick(config.custom_routes, d.custom_routes)),
        auth_entry_routes=tuple(_pick(config.auth_entry_routes, d.auth_entry_routes)),
        callback_routes=tuple(_pick(config.callback_routes, d.callback_routes)),
        redirects=redirects,
    )


def route_config_for_surface(name: str) -> RouteConfig:
    try:
        return ROUTE_SURFACES[name]
    except KeyError:
        raise ValueError(f"unknown route surface '{name}' (expected one of {sorted(ROUTE_SURFACES)})")


__all__ = [
    'CustomRoute', 'Redirects', 'RouteConfig',
    'DEFAULT_ROUTE_CONFIG', 'MAIN_APP_ROUTE_CONFIG', 'VENDOR_PORTAL_ROUTE_CONFIG', 'ADMIN_PORTAL_ROUTE_CONFIG',
    'ROUTE_SURFACES', 'merge_route_config', 'route_config_for_surface',
]
