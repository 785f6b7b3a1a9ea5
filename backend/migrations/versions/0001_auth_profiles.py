"""auth users, profiles, vendor and staff records

Revision ID: 0001_auth_profiles
Revises: 
Create Date: 2026-10-18
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_auth_profiles'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table('auth_users',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('user_metadata', sa.JSON(), nullable=True),
        sa.Column('app_metadata', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_sign_in_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_auth_users_email', 'auth_users', ['email'], unique=True)

    op.create_table('profiles',
        sa.Column('id', sa.String(length=36), sa.ForeignKey('auth_users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('avatar_url', sa.String(length=512), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='customer'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_profiles_email', 'profiles', ['email'])
    op.create_index('ix_profiles_role', 'profiles', ['role'])

    op.create_table('vendors',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('profile_id', sa.String(length=36), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('business_name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False, unique=True),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('kyc_status', sa.String(length=32), nullable=False, server_default='pending'),
        sa.Column('subscription_tier', sa.String(length=32), nullable=False, server_default='free'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_vendors_profile_id', 'vendors', ['profile_id'], unique=True)

    op.create_table('admin_staff',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('profile_id', sa.String(length=36), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('permissions', sa.JSON(), nullable=True),
        sa.Column('department', sa.String(length=128), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', sa.String(length=36), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_admin_staff_profile_id', 'admin_staff', ['profile_id'])
    op.create_index('ix_admin_staff_is_active', 'admin_staff', ['is_active'])


def downgrade():
    op.drop_index('ix_admin_staff_is_active', table_name='admin_staff')
    op.drop_index('ix_admin_staff_profile_id', table_name='admin_staff')
    op.drop_table('admin_staff')
    op.drop_index('ix_vendors_profile_id', table_name='vendors')
    op.drop_table('vendors')
    op.drop_index('ix_profiles_role', table_name='profiles')
    op.drop_index('ix_profiles_email', table_name='profiles')
    op.drop_table('profiles')
    op.drop_index('ix_auth_users_email', table_name='auth_users')
    op.drop_table('auth_users')
