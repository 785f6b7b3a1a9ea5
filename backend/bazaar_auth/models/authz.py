from __future__ import annotations
from uuid import uuid4
from sqlalchemy.orm import declarative_base, relationship, Mapped, mapped_column
from sqlalchemy import String, Boolean, ForeignKey, JSON, DateTime, text
from typing import Optional, Dict, Any, List

from bazaar_auth.constants.permissions import CUSTOMER

Base = declarative_base()


def _new_id() -> str:
    return str(uuid4())


# --- Identity provider side ---
class User(Base):
    __tablename__ = 'auth_users'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    user_metadata: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    app_metadata: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'))
    last_sign_in_at: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True), nullable=True)
    profile = relationship('Profile', back_populates='user', uselist=False, cascade='all, delete-orphan')

    def set_password(self, raw: str):
        from werkzeug.security import generate_password_hash
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        from werkzeug.security import check_password_hash
        return check_password_hash(self.password_hash, raw)


# --- Profile store side ---
class Profile(Base):
    __tablename__ = 'profiles'
    id: Mapped[str] = mapped_column(ForeignKey('auth_users.id', ondelete='CASCADE'), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(255))
    avatar_url: Mapped[Optional[str]] = mapped_column(String(512))
    phone: Mapped[Optional[str]] = mapped_column(String(32))
    role: Mapped[str] = mapped_column(String(32), nullable=False, default=CUSTOMER, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))
    user = relationship('User', back_populates='profile')
    vendor = relationship('Vendor', back_populates='profile', uselist=False, cascade='all, delete-orphan')
    staff_records = relationship('AdminStaff', back_populates='profile', cascade='all, delete-orphan')


class Vendor(Base):
    __tablename__ = 'vendors'
    KYC_STATUSES = ('pending', 'submitted', 'under_review', 'approved', 'rejected')
    SUBSCRIPTION_TIERS = ('free', 'basic', 'professional', 'enterprise')

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    profile_id: Mapped[str] = mapped_column(ForeignKey('profiles.id', ondelete='CASCADE'), unique=True, index=True, nullable=False)
    business_name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    kyc_status: Mapped[str] = mapped_column(String(32), nullable=False, default='pending')
    subscription_tier: Mapped[str] = mapped_column(String(32), nullable=False, default='free')
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))
    profile = relationship('Profile', back_populates='vendor')


class AdminStaff(Base):
    __tablename__ = 'admin_staff'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    profile_id: Mapped[str] = mapped_column(ForeignKey('profiles.id', ondelete='CASCADE'), index=True, nullable=False)
    role: Mapped[str] = mapped_column(String(32), nullable=False)
    # Replaces the role default table for this person when the record is active
    permissions: Mapped[List[str]] = mapped_column(JSON, default=list)
    department: Mapped[Optional[str]] = mapped_column(String(128))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(36))
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))
    profile = relationship('Profile', back_populates='staff_records')


__all__ = ['Base', 'User', 'Profile', 'Vendor', 'AdminStaff']
