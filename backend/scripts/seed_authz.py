#!/usr/bin/env python
"""Idempotent seed script for the initial super admin and role catalog checks.

Usage:
    python backend/scripts/seed_authz.py               # create the super admin if missing
    python backend/scripts/seed_authz.py --show-roles  # print role -> permission counts
    python backend/scripts/seed_authz.py --dry-run     # report what would be created, then roll back
    python backend/scripts/seed_authz.py --validate    # check role/module tables reference known codes
"""
from __future__ import annotations
import os, sys, argparse, textwrap, json
from sqlalchemy import select, text

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from bazaar_auth import create_app, get_db  # type: ignore
from bazaar_auth.constants.permissions import (
    ALL_PERMISSION_CODES, MODULE_PERMISSIONS, PERMISSION_SET, ROLE_PERMISSIONS, STAFF_ROLES, SUPER_ADMIN,
)
from bazaar_auth.models.authz import AdminStaff, Base, Profile, User


def ensure_super_admin(session):
    """Create the first super admin (auth user + profile + staff record) unless it exists."""
    admin_email = os.getenv('SEED_ADMIN_EMAIL', 'admin@example.com').lower()
    user = session.execute(select(User).where(User.email == admin_email)).scalar_one_or_none()
    if user:
        return False
    user = User(email=admin_email, password_hash='', user_metadata={'full_name': 'Platform Owner', 'role': SUPER_ADMIN})
    user.set_password(os.getenv('SEED_ADMIN_PASSWORD', 'ChangeMe123!'))
    session.add(user)
    session.flush()
    session.add(Profile(id=user.id, email=admin_email, full_name='Platform Owner', role=SUPER_ADMIN))
    session.flush()
    session.add(AdminStaff(profile_id=user.id, role=SUPER_ADMIN, permissions=list(ALL_PERMISSION_CODES), department='platform'))
    print(f"[INFO] Created initial super admin {admin_email} with temporary password.")
    return True


def validate_catalog():
    problems = []
    for role, codes in ROLE_PERMISSIONS.items():
        if role not in STAFF_ROLES:
            problems.append(f"Role table entry for non-staff role '{role}'")
        for c in codes:
            if c not in PERMISSION_SET:
                problems.append(f"Role '{role}' references unknown permission code: {c}")
    for module, codes in MODULE_PERMISSIONS.items():
        for c in codes:
            if c not in PERMISSION_SET:
                problems.append(f"Module '{module}' references unknown permission code: {c}")
    return problems


def print_role_summary():
    name_w = max(len(r) for r in ROLE_PERMISSIONS)
    print(f"{'Role'.ljust(name_w)} | Count | Sample (up to 8)")
    print('-' * (name_w + 40))
    for name, codes in ROLE_PERMISSIONS.items():
        print(f"{name.ljust(name_w)} | {str(len(codes)).rjust(5)} | {', '.join(sorted(codes)[:8])}")


def parse_args():
    p = argparse.ArgumentParser(
        description="Seed the initial super admin and check the role catalog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Environment:\n  SEED_ADMIN_EMAIL     super admin address (default admin@example.com)\n  SEED_ADMIN_PASSWORD  temporary password\n  DATABASE_URL         target database\n""")
    )
    p.add_argument('--show-roles', action='store_true', help='Print role permission counts')
    p.add_argument('--dry-run', action='store_true', help='Roll back instead of committing')
    p.add_argument('--export-json', nargs='?', const='-', metavar='FILE', help='Write the role default table as JSON to FILE (stdout without FILE)')
    p.add_argument('--validate', action='store_true', help='Validate role and module tables; exits non-zero on problems')
    return p.parse_args()


def main():
    args = parse_args()
    if args.validate:
        problems = validate_catalog()
        if problems:
            print(f'[VALIDATION] {len(problems)} problem(s):')
            for p in problems:
                print(' -', p)
            sys.exit(2)
        print('[VALIDATION] OK: role and module tables reference known permission codes.')

    app = create_app()
    with app.app_context():
        session = get_db()
        try:
            session.execute(text('SELECT 1 FROM auth_users LIMIT 1'))
        except Exception:
            # fresh database: create tables directly (alembic upgrade is the normal path)
            session.rollback()
            Base.metadata.create_all(session.get_bind())
        created = ensure_super_admin(session)
        if args.dry_run:
            session.rollback()
            print(f"[DRY-RUN] (rolled back) Super admin would be created: {created}")
        else:
            session.commit()
            print(f"[DONE] Super admin created: {created}")

    if args.show_roles:
        print_role_summary()
    if args.export_json:
        payload = json.dumps({r: sorted(c) for r, c in ROLE_PERMISSIONS.items()}, indent=2, sort_keys=True)
        if args.export_json == '-':
            print(payload)
        else:
            with open(args.export_json, 'w', encoding='utf-8') as fh:
                fh.write(payload + '\n')
            print(f"[INFO] Wrote role map to {args.export_json}")


if __name__ == '__main__':
    main()
