"""Identity-provider contract, the per-store client handle, and a local provider.

`IdentityProviderHandle` replaces a module-level client singleton: each AuthStateStore
is constructed with one handle, the handle builds its client on first use and only
drops it on an explicit `reset()`.

`LocalIdentityProvider` implements the contract in-process on top of the `auth_users`
and `profiles` tables, issuing flask-jwt-extended access/refresh tokens.
"""
from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Mapping, Optional, Protocol, Tuple
from urllib.parse import urlencode

from flask_jwt_extended import create_access_token, create_refresh_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from sqlalchemy import select

from bazaar_auth.constants.permissions import CUSTOMER
from bazaar_auth.errors import IdentityProviderError, ProviderNotConfigured
from bazaar_auth.models.authz import AdminStaff, Profile, User
from bazaar_auth.models.identity import AuthUser, Session
from bazaar_auth.services.policy import build_identity, is_platform_role
from bazaar_auth.services.profile_store import staff_record

logger = logging.getLogger(__name__)

# Session change events, in the vocabulary hosted providers use
EVENT_INITIAL_SESSION = 'INITIAL_SESSION'
EVENT_SIGNED_IN = 'SIGNED_IN'
EVENT_SIGNED_OUT = 'SIGNED_OUT'
EVENT_TOKEN_REFRESHED = 'TOKEN_REFRESHED'
EVENT_USER_UPDATED = 'USER_UPDATED'
EVENT_PASSWORD_RECOVERY = 'PASSWORD_RECOVERY'

MIN_PASSWORD_LENGTH = 6

SessionChangeCallback = Callable[[str, Optional[Session]], Any]


class IdentityProvider(Protocol):
    """Failures raise IdentityProviderError; every other return means success."""

    async def get_current_session(self) -> Optional[Session]: ...

    def on_session_change(self, callback: SessionChangeCallback) -> Callable[[], None]: ...

    async def sign_in(self, email: str, password: str) -> Session: ...

    async def sign_up(self, email: str, password: str, full_name: str, role: str = CUSTOMER,
                      phone: Optional[str] = None) -> Optional[Session]: ...

    async def sign_in_with_oauth(self, provider: str, redirect_to: Optional[str] = None,
                                 scopes: Optional[str] = None) -> str: ...

    async def sign_out(self) -> None: ...

    async def reset_password(self, email: str, redirect_to: Optional[str] = None) -> None: ...

    async def update_password(self, new_password: str) -> None: ...

    async def refresh_session(self) -> Optional[Session]: ...


@dataclass(frozen=True)
class ProviderSettings:
    url: str = ''
    key: str = ''
    oauth_providers: Tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return (
            self.url != ''
            and self.key != ''
            and self.url.startswith('https://')
            and 'placeholder' not in self.url
            and len(self.key) > 20
        )

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> 'ProviderSettings':
        """Read AUTH_PROVIDER_URL / JWT_SECRET_KEY / AUTH_OAUTH_PROVIDERS from app.config or os.environ."""
        raw = config.get('AUTH_OAUTH_PROVIDERS') or ()
        if isinstance(raw, str):
            raw = [p.strip() for p in raw.split(',')]
        return cls(
            url=config.get('AUTH_PROVIDER_URL') or '',
            key=config.get('JWT_SECRET_KEY') or '',
            oauth_providers=tuple(p for p in raw if p),
        )


class IdentityProviderHandle:
    def __init__(self, factory: Callable[[ProviderSettings], IdentityProvider], settings: ProviderSettings):
        self._factory = factory
        self._settings = settings
        self._client: Optional[IdentityProvider] = None
        self._warned = False

    @property
    def settings(self) -> ProviderSettings:
        return self._settings

    @property
    def is_configured(self) -> bool:
        return self._settings.is_valid

    @property
    def has_client(self) -> bool:
        return self._client is not None

    def get(self) -> IdentityProvider:
        if self._client is not None:
            return self._client
        if not self.is_configured:
            if not self._warned:
                logger.warning('Identity provider credentials missing or invalid; set AUTH_PROVIDER_URL and JWT_SECRET_KEY')
                self._warned = True
            raise ProviderNotConfigured('identity provider is not configured')
        self._client = self._factory(self._settings)
        return self._client

    def reset(self):
        client, self._client = self._client, None
        self._warned = False
        close = getattr(client, 'close', None)
        if close is not None:
            close()


def _expires_seconds(value) -> int:
    if isinstance(value, timedelta):
        return int(value.total_seconds())
    return int(value)


def find_user(db, email: str) -> Optional[User]:
    return db.execute(select(User).where(User.email == email.strip().lower())).scalar_one_or_none()


def authenticate(db, email: Optional[str], password: Optional[str]) -> User:
    """Check email/password against `auth_users`; raise IdentityProviderError on any mismatch."""
    if not email or not password:
        raise IdentityProviderError('email & password required', code='validation_failed', status=400)
    user = find_user(db, email)
    if not user or not user.verify_password(password):
        raise IdentityProviderError('Invalid login credentials', code='invalid_credentials', status=401)
    if not user.is_active:
        raise IdentityProviderError('User is disabled', code='user_banned', status=403)
    user.last_sign_in_at = datetime.now(timezone.utc)
    db.commit()
    return user


def token_claims(db, user: User):
    profile = db.execute(select(Profile).where(Profile.id == user.id)).scalar_one_or_none()
    if profile is None:
        # user_metadata is self-service; privileges come from the profile row only
        return {'email': user.email, 'role': CUSTOMER, 'perms': []}
    role = profile.role
    staff_row = db.execute(
        select(AdminStaff).where(AdminStaff.profile_id == user.id, AdminStaff.is_active.is_(True))
    ).scalars().first()
    identity = build_identity(user.id, user.email, role, staff_record(staff_row) if staff_row else None)
    return {'email': identity.email, 'role': identity.role, 'perms': list(identity.permissions)}


def auth_user(user: User) -> AuthUser:
    created = user.created_at.isoformat() if isinstance(user.created_at, datetime) else user.created_at
    return AuthUser(
        id=user.id,
        email=user.email,
        user_metadata=dict(user.user_metadata or {}),
        app_metadata=dict(user.app_metadata or {'provider': 'email'}),
        created_at=created,
    )


def issue_session(app, db, user: User) -> Session:
    """Mint an access/refresh token pair for `user`; claims carry role and effective permissions."""
    with app.app_context():
        expires_in = _expires_seconds(app.config.get('JWT_ACCESS_TOKEN_EXPIRES', timedelta(hours=1)))
        # JWT identity must be a string (flask-jwt-extended v4 requirement)
        access = create_access_token(identity=str(user.id), additional_claims=token_claims(db, user))
        refresh = create_refresh_token(identity=str(user.id))
    return Session(
        access_token=access,
        refresh_token=refresh,
        user=auth_user(user),
        expires_in=expires_in,
        expires_at=int(time.time()) + expires_in,
    )


class LocalIdentityProvider:
    """In-process identity provider over the auth tables.

    Sign-up confirms immediately and signs the new user in. Password reset has no mail
    transport here; the request is only logged.
    """

    def __init__(self, app, session_factory: Callable, settings: ProviderSettings):
        self._app = app
        self._session_factory = session_factory
        self._settings = settings
        self._session: Optional[Session] = None
        self._listeners: List[SessionChangeCallback] = []

    def on_session_change(self, callback: SessionChangeCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)
        return unsubscribe

    def _emit(self, event: str, session: Optional[Session]):
        for cb in list(self._listeners):
            cb(event, session)

    def _db(self):
        return self._session_factory()

    def _start_session(self, user: User, event: str) -> Session:
        self._session = issue_session(self._app, self._db(), user)
        self._emit(event, self._session)
        return self._session

    def _check_password(self, password: str):
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise IdentityProviderError(
                f'Password should be at least {MIN_PASSWORD_LENGTH} characters', code='weak_password', status=422)

    async def get_current_session(self) -> Optional[Session]:
        return self._session

    async def sign_in(self, email: str, password: str) -> Session:
        user = authenticate(self._db(), email, password)
        return self._start_session(user, EVENT_SIGNED_IN)

    async def sign_up(self, email: str, password: str, full_name: str, role: str = CUSTOMER,
                      phone: Optional[str] = None) -> Optional[Session]:
        if not email:
            raise IdentityProviderError('email required', code='validation_failed', status=400)
        self._check_password(password)
        role = role or CUSTOMER
        # staff accounts are provisioned by administrators, never self-registered
        if not is_platform_role(role):
            raise IdentityProviderError(f'Cannot sign up with role {role}', code='invalid_role', status=400)
        db = self._db()
        if find_user(db, email):
            raise IdentityProviderError('User already registered', code='user_already_exists', status=422)
        normalized = email.strip().lower()
        user = User(email=normalized, password_hash='',
                    user_metadata={'full_name': full_name, 'role': role, 'phone': phone})
        user.set_password(password)
        user.last_sign_in_at = datetime.now(timezone.utc)
        db.add(user)
        db.flush()
        db.add(Profile(id=user.id, email=normalized, full_name=full_name, phone=phone, role=role))
        db.commit()
        return self._start_session(user, EVENT_SIGNED_IN)

    async def sign_in_with_oauth(self, provider: str, redirect_to: Optional[str] = None,
                                 scopes: Optional[str] = None) -> str:
        if provider not in self._settings.oauth_providers:
            raise IdentityProviderError(f'Unsupported provider: {provider}', code='provider_disabled', status=400)
        params = {'provider': provider}
        if redirect_to:
            params['redirect_to'] = redirect_to
        if scopes:
            params['scopes'] = scopes
        return f"{self._settings.url.rstrip('/')}/authorize?{urlencode(params)}"

    async def sign_out(self) -> None:
        self._session = None
        self._emit(EVENT_SIGNED_OUT, None)

    async def reset_password(self, email: str, redirect_to: Optional[str] = None) -> None:
        if not email:
            raise IdentityProviderError('email required', code='validation_failed', status=400)
        # same outcome whether or not the address is registered
        logger.info('Password reset requested (redirect_to=%s)', redirect_to)

    async def update_password(self, new_password: str) -> None:
        if self._session is None:
            raise IdentityProviderError('Auth session missing', code='session_missing', status=401)
        self._check_password(new_password)
        db = self._db()
        user = db.get(User, self._session.user.id)
        if not user:
            raise IdentityProviderError('User not found', code='user_not_found', status=404)
        if user.verify_password(new_password):
            raise IdentityProviderError('New password should be different from the old password',
                                        code='same_password', status=422)
        user.set_password(new_password)
        db.commit()
        self._emit(EVENT_USER_UPDATED, self._session)

    async def refresh_session(self) -> Optional[Session]:
        if self._session is None:
            raise IdentityProviderError('Auth session missing', code='session_missing', status=401)
        try:
            with self._app.app_context():
                decoded = decode_token(self._session.refresh_token)
        except (PyJWTError, JWTExtendedException) as exc:
            raise IdentityProviderError('Invalid refresh token', code='refresh_token_invalid', status=401) from exc
        if decoded.get('type') != 'refresh':
            raise IdentityProviderError('Invalid refresh token', code='refresh_token_invalid', status=401)
        user = self._db().get(User, decoded['sub'])
        if not user or not user.is_active:
            raise IdentityProviderError('User not found', code='user_not_found', status=404)
        return self._start_session(user, EVENT_TOKEN_REFRESHED)

    def close(self):
        self._listeners.clear()
        self._session = None


__all__ = [
    'EVENT_INITIAL_SESSION', 'EVENT_SIGNED_IN', 'EVENT_SIGNED_OUT', 'EVENT_TOKEN_REFRESHED',
    'EVENT_USER_UPDATED', 'EVENT_PASSWORD_RECOVERY', 'MIN_PASSWORD_LENGTH',
    'IdentityProvider', 'ProviderSettings', 'IdentityProviderHandle', 'LocalIdentityProvider',
    'find_user', 'authenticate', 'token_claims', 'auth_user', 'issue_session',
]
