"""Central role / permission / module catalog.

Codes are `resource:action` strings. Extend cautiously; never rename codes silently,
tokens already issued carry them in their `perms` claim.
"""
from __future__ import annotations
from typing import List, Dict, FrozenSet

# --- Roles ---
SUPER_ADMIN = 'super_admin'
ADMIN = 'admin'
MANAGER = 'manager'
STAFF = 'staff'
VIEWER = 'viewer'
VENDOR = 'vendor'
CUSTOMER = 'customer'

# Highest tier first
STAFF_ROLES = (SUPER_ADMIN, ADMIN, MANAGER, STAFF, VIEWER)
PLATFORM_ROLES = (VENDOR, CUSTOMER)
ALL_ROLES = STAFF_ROLES + PLATFORM_ROLES

# --- Permissions ---
RESOURCE_ACTIONS: Dict[str, List[str]] = {
    'users': ['read', 'create', 'update', 'delete', 'suspend', 'verify'],
    'vendors': ['read', 'create', 'update', 'delete', 'approve', 'suspend', 'verify_kyc', 'payouts'],
    'products': ['read', 'create', 'update', 'delete', 'approve', 'feature'],
    'orders': ['read', 'update', 'cancel', 'refund', 'dispute'],
    'categories': ['read', 'create', 'update', 'delete'],
    # staff administration, admin portal only
    'admin': ['staff:read', 'staff:create', 'staff:update', 'staff:delete', 'roles:manage', 'permissions:manage'],
    'settings': ['read', 'update', 'security'],
    'analytics': ['read', 'export', 'dashboard'],
    'services': ['read', 'configure', 'payment', 'shipping', 'notifications'],
    'audit': ['read', 'export'],
    'security': ['alerts', 'manage'],
    'support': ['read', 'respond', 'escalate', 'close'],
    'finance': ['read', 'transactions', 'escrow', 'reports'],
}


def build_all_permission_codes() -> List[str]:
    codes: List[str] = []
    for resource, actions in RESOURCE_ACTIONS.items():
        for act in actions:
            codes.append(f"{resource}:{act}")
    return codes

ALL_PERMISSION_CODES = build_all_permission_codes()
PERMISSION_SET: FrozenSet[str] = frozenset(ALL_PERMISSION_CODES)

# Defaults per staff role. A resolved staff profile's own list replaces these.
ROLE_PERMISSIONS: Dict[str, List[str]] = {
    SUPER_ADMIN: list(ALL_PERMISSION_CODES),
    ADMIN: [
        'users:read', 'users:create', 'users:update', 'users:suspend', 'users:verify',
        'vendors:read', 'vendors:update', 'vendors:approve', 'vendors:suspend', 'vendors:verify_kyc',
        'products:read', 'products:update', 'products:approve', 'products:feature',
        'orders:read', 'orders:update', 'orders:cancel', 'orders:refund',
        'categories:read', 'categories:create', 'categories:update',
        'analytics:read', 'analytics:dashboard',
        'support:read', 'support:respond', 'support:escalate',
        'settings:read',
        'audit:read',
    ],
    MANAGER: [
        'users:read', 'users:update',
        'vendors:read', 'vendors:update',
        'products:read', 'products:update', 'products:approve',
        'orders:read', 'orders:update',
        'categories:read',
        'analytics:read',
        'support:read', 'support:respond',
    ],
    STAFF: [
        'users:read',
        'vendors:read',
        'products:read',
        'orders:read', 'orders:update',
        'support:read', 'support:respond',
    ],
    VIEWER: [
        'users:read',
        'vendors:read',
        'products:read',
        'orders:read',
        'categories:read',
        'analytics:read',
        'audit:read',
    ],
}

# --- Admin portal modules ---
USERS_MANAGEMENT = 'users_management'
VENDORS_MANAGEMENT = 'vendors_management'
PRODUCTS_MANAGEMENT = 'products_management'
ORDERS_MANAGEMENT = 'orders_management'
ADMIN_MANAGEMENT = 'admin_management'
SETTINGS = 'settings'
ANALYTICS = 'analytics'
SERVICES = 'services'
SUPPORT = 'support'
FINANCE = 'finance'
AUDIT = 'audit'

ADMIN_MODULES = (
    USERS_MANAGEMENT, VENDORS_MANAGEMENT, PRODUCTS_MANAGEMENT, ORDERS_MANAGEMENT,
    ADMIN_MANAGEMENT, SETTINGS, ANALYTICS, SERVICES, SUPPORT, FINANCE, AUDIT,
)

# Holding any one permission of the set makes the module visible.
MODULE_PERMISSIONS: Dict[str, FrozenSet[str]] = {
    USERS_MANAGEMENT: frozenset({'users:read'}),
    VENDORS_MANAGEMENT: frozenset({'vendors:read'}),
    PRODUCTS_MANAGEMENT: frozenset({'products:read'}),
    ORDERS_MANAGEMENT: frozenset({'orders:read'}),
    ADMIN_MANAGEMENT: frozenset({'admin:staff:read'}),
    SETTINGS: frozenset({'settings:read'}),
    ANALYTICS: frozenset({'analytics:read'}),
    SERVICES: frozenset({'services:read'}),
    SUPPORT: frozenset({'support:read'}),
    FINANCE: frozenset({'finance:read'}),
    AUDIT: frozenset({'audit:read'}),
}

__all__ = [
    'SUPER_ADMIN', 'ADMIN', 'MANAGER', 'STAFF', 'VIEWER', 'VENDOR', 'CUSTOMER',
    'STAFF_ROLES', 'PLATFORM_ROLES', 'ALL_ROLES',
    'RESOURCE_ACTIONS', 'build_all_permission_codes', 'ALL_PERMISSION_CODES', 'PERMISSION_SET',
    'ROLE_PERMISSIONS', 'ADMIN_MODULES', 'MODULE_PERMISSIONS',
]
