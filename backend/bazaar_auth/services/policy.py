from __future__ import annotations
from typing import Any, Iterable, List, Mapping, Optional, Union

from bazaar_auth.constants.permissions import (
    CUSTOMER, MODULE_PERMISSIONS, PLATFORM_ROLES, ROLE_PERMISSIONS, STAFF_ROLES, SUPER_ADMIN, VENDOR, ALL_ROLES,
)
from bazaar_auth.models.identity import Identity, StaffProfileRecord

MODE_ANY = 'any'
MODE_ALL = 'all'


# --- Role classification (the only place role literals are compared) ---

def is_known_role(role: Optional[str]) -> bool:
    return role in ALL_ROLES


def is_staff_role(role: Optional[str]) -> bool:
    return role in STAFF_ROLES


def is_admin_tier(role: Optional[str]) -> bool:
    """Every staff tier counts as admin-tier for route buckets, super admin included."""
    return is_staff_role(role)


def is_super_admin_role(role: Optional[str]) -> bool:
    return role == SUPER_ADMIN


def is_vendor_role(role: Optional[str]) -> bool:
    return role == VENDOR


def is_platform_role(role: Optional[str]) -> bool:
    return role in PLATFORM_ROLES


# --- Evaluator ---

def get_permissions_for_role(role: Optional[str]) -> List[str]:
    # Platform users carry no static defaults.
    if is_staff_role(role):
        return list(ROLE_PERMISSIONS.get(role, []))
    return []


def has_permission(identity: Optional[Identity], permission: str) -> bool:
    if identity is None:
        return False
    if identity.is_super_admin:
        return True
    return permission in identity.permissions


def has_any_permission(identity: Optional[Identity], permissions: Iterable[str]) -> bool:
    if identity is None:
        return False
    if identity.is_super_admin:
        return True
    held = set(identity.permissions)
    return any(p in held for p in permissions)


def has_all_permissions(identity: Optional[Identity], permissions: Iterable[str]) -> bool:
    if identity is None:
        return False
    if identity.is_super_admin:
        return True
    held = set(identity.permissions)
    return all(p in held for p in permissions)


def evaluate(identity: Optional[Identity], permissions: Union[str, Iterable[str]], mode: str = MODE_ANY) -> bool:
    """Single entry point for gates: one code, or a list checked in `any` or `all` mode."""
    if isinstance(permissions, str):
        return has_permission(identity, permissions)
    if mode == MODE_ALL:
        return has_all_permissions(identity, permissions)
    if mode == MODE_ANY:
        return has_any_permission(identity, permissions)
    raise ValueError(f"unknown evaluation mode: {mode}")


def module_accessible_with_permissions(module: str, granted: Iterable[str]) -> bool:
    required = MODULE_PERMISSIONS.get(module)
    if not required:
        return False
    granted_set = set(granted)
    return any(p in granted_set for p in required)


def identity_can_access_module(identity: Optional[Identity], module: str) -> bool:
    if identity is None or not identity.is_admin:
        return False
    if identity.is_super_admin:
        return True
    required = MODULE_PERMISSIONS.get(module)
    if not required:
        return False
    return has_any_permission(identity, required)


def accessible_modules(identity: Optional[Identity]) -> List[str]:
    return [m for m in MODULE_PERMISSIONS if identity_can_access_module(identity, m)]


# --- Identity projection ---

def build_identity(user_id: str, email: str, role: Optional[str], staff_profile: Optional[StaffProfileRecord] = None) -> Identity:
    """Project the effective identity for one resolution cycle.

    A resolved staff profile's permission list is authoritative and replaces the role
    defaults outright (no merge), even when it is empty.
    """
    role = role if is_known_role(role) else CUSTOMER
    if staff_profile is not None:
        permissions = tuple(staff_profile.permissions)
    else:
        permissions = tuple(get_permissions_for_role(role))
    return Identity(
        id=user_id,
        email=email or '',
        role=role,
        permissions=permissions,
        is_admin=is_admin_tier(role),
        is_super_admin=is_super_admin_role(role),
    )


def identity_from_claims(claims: Mapping[str, Any]) -> Identity:
    """Rebuild an identity from access-token claims (`sub`, `email`, `role`, `perms`)."""
    role = claims.get('role')
    role = role if is_known_role(role) else CUSTOMER
    perms = claims.get('perms')
    permissions = tuple(perms) if perms is not None else tuple(get_permissions_for_role(role))
    return Identity(
        id=str(claims.get('sub', '')),
        email=claims.get('email') or '',
        role=role,
        permissions=permissions,
        is_admin=is_admin_tier(role),
        is_super_admin=is_super_admin_role(role),
    )


__all__ = [
    'MODE_ANY', 'MODE_ALL',
    'is_known_role', 'is_staff_role', 'is_admin_tier', 'is_super_admin_role', 'is_vendor_role', 'is_platform_role',
    'get_permissions_for_role', 'has_permission', 'has_any_permission', 'has_all_permissions', 'evaluate',
    'module_accessible_with_permissions', 'identity_can_access_module', 'accessible_modules',
    'build_identity', 'identity_from_claims',
]
