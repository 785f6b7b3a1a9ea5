"""Read-only value types passed between the provider, the store and callers.

Everything here is frozen: the auth store replaces these wholesale and hands the same
objects to the evaluator and matcher, which must never see them change mid-check.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str
    user_metadata: Dict[str, Any] = field(default_factory=dict)
    app_metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[str] = None


@dataclass(frozen=True)
class Session:
    access_token: str
    refresh_token: str
    user: AuthUser
    expires_in: Optional[int] = None
    # absolute epoch seconds; wins over expires_in when present
    expires_at: Optional[int] = None
    token_type: str = 'bearer'


@dataclass(frozen=True)
class ProfileRecord:
    id: str
    email: str
    role: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class VendorProfileRecord:
    id: str
    profile_id: str
    business_name: str
    slug: str
    is_verified: bool = False
    kyc_status: str = 'pending'
    subscription_tier: str = 'free'


@dataclass(frozen=True)
class StaffProfileRecord:
    id: str
    profile_id: str
    role: str
    permissions: Tuple[str, ...] = ()
    department: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class Identity:
    id: str
    email: str
    role: str
    permissions: Tuple[str, ...] = ()
    is_admin: bool = False
    is_super_admin: bool = False

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'role': self.role,
            'permissions': list(self.permissions),
            'is_admin': self.is_admin,
            'is_super_admin': self.is_super_admin,
        }


__all__ = ['AuthUser', 'Session', 'ProfileRecord', 'VendorProfileRecord', 'StaffProfileRecord', 'Identity']
