from __future__ import annotations
from typing import Callable, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from bazaar_auth.errors import ProfileStoreError
from bazaar_auth.models.authz import AdminStaff, Profile, Vendor
from bazaar_auth.models.identity import ProfileRecord, StaffProfileRecord, VendorProfileRecord


class ProfileStore(Protocol):
    """Lookups return None when the record does not exist and raise ProfileStoreError
    when the lookup itself failed. Callers rely on that distinction."""

    async def get_profile(self, profile_id: str) -> Optional[ProfileRecord]: ...

    async def get_vendor_profile(self, profile_id: str) -> Optional[VendorProfileRecord]: ...

    async def get_staff_profile(self, profile_id: str) -> Optional[StaffProfileRecord]: ...


def profile_record(row: Profile) -> ProfileRecord:
    return ProfileRecord(
        id=row.id,
        email=row.email,
        role=row.role,
        full_name=row.full_name,
        avatar_url=row.avatar_url,
        phone=row.phone,
        is_active=bool(row.is_active),
    )


def vendor_record(row: Vendor) -> VendorProfileRecord:
    return VendorProfileRecord(
        id=row.id,
        profile_id=row.profile_id,
        business_name=row.business_name,
        slug=row.slug,
        is_verified=bool(row.is_verified),
        kyc_status=row.kyc_status,
        subscription_tier=row.subscription_tier,
    )


def staff_record(row: AdminStaff) -> StaffProfileRecord:
    return StaffProfileRecord(
        id=row.id,
        profile_id=row.profile_id,
        role=row.role,
        permissions=tuple(row.permissions or ()),
        department=row.department,
        is_active=bool(row.is_active),
    )


class SqlProfileStore:
    """ProfileStore over the `profiles`, `vendors` and `admin_staff` tables."""

    def __init__(self, session_factory: Callable):
        self._session_factory = session_factory

    def _first(self, stmt, what: str, key: str):
        session = self._session_factory()
        try:
            return session.execute(stmt).scalars().first()
        except SQLAlchemyError as exc:
            session.rollback()
            raise ProfileStoreError(f"{what} lookup failed for {key}") from exc

    async def get_profile(self, profile_id: str) -> Optional[ProfileRecord]:
        row = self._first(select(Profile).where(Profile.id == profile_id), 'profile', profile_id)
        return profile_record(row) if row else None

    async def get_vendor_profile(self, profile_id: str) -> Optional[VendorProfileRecord]:
        row = self._first(select(Vendor).where(Vendor.profile_id == profile_id), 'vendor profile', profile_id)
        return vendor_record(row) if row else None

    async def get_staff_profile(self, profile_id: str) -> Optional[StaffProfileRecord]:
        # inactive staff records are treated as absent
        stmt = (
            select(AdminStaff)
            .where(AdminStaff.profile_id == profile_id, AdminStaff.is_active.is_(True))
            .order_by(AdminStaff.updated_at.desc())
        )
        row = self._first(stmt, 'staff profile', profile_id)
        return staff_record(row) if row else None


__all__ = ['ProfileStore', 'SqlProfileStore', 'profile_record', 'vendor_record', 'staff_record']
