"""Exception types raised inside the engine and the AuthError value handed to callers.

Providers and stores raise; the auth store converts action failures into AuthError
values and returns them, it never lets them escape an awaited action.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

# AuthError.kind values
KIND_INITIALIZATION = 'initialization'
KIND_SIGN_IN = 'sign_in'
KIND_SIGN_UP = 'sign_up'
KIND_OAUTH = 'oauth'
KIND_PASSWORD_RESET = 'password_reset'
KIND_PASSWORD_UPDATE = 'password_update'
KIND_PROFILE_FETCH = 'profile_fetch'
KIND_SESSION_REFRESH = 'session_refresh'
KIND_SIGN_OUT = 'sign_out'
KIND_UNCONFIGURED = 'unconfigured'

# Fallback codes when the provider did not supply one
DEFAULT_CODES = {
    KIND_INITIALIZATION: 'AUTH_INIT_ERROR',
    KIND_SIGN_IN: 'AUTH_SIGNIN_ERROR',
    KIND_SIGN_UP: 'AUTH_SIGNUP_ERROR',
    KIND_OAUTH: 'AUTH_OAUTH_ERROR',
    KIND_PASSWORD_RESET: 'AUTH_RESET_ERROR',
    KIND_PASSWORD_UPDATE: 'AUTH_UPDATE_ERROR',
    KIND_PROFILE_FETCH: 'PROFILE_FETCH_ERROR',
    KIND_SESSION_REFRESH: 'AUTH_REFRESH_ERROR',
    KIND_SIGN_OUT: 'AUTH_SIGNOUT_ERROR',
    KIND_UNCONFIGURED: 'AUTH_UNCONFIGURED',
}


class AuthorizationEngineError(Exception):
    """Base class for errors raised by the engine and its collaborators."""


class ProviderNotConfigured(AuthorizationEngineError):
    """Identity-provider credentials are missing or invalid."""


class IdentityProviderError(AuthorizationEngineError):
    def __init__(self, message: str, code: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status


class ProfileStoreError(AuthorizationEngineError):
    """A profile lookup failed for a reason other than the record not existing."""


class InvalidTransition(AuthorizationEngineError):
    def __init__(self, field_name: str, current: str, target: str):
        super().__init__(f"Invalid {field_name} transition {current} -> {target}")
        self.current = current
        self.target = target


@dataclass(frozen=True)
class AuthError:
    message: str
    kind: str
    code: Optional[str] = None
    status: Optional[int] = None

    @classmethod
    def from_exception(cls, exc: BaseException, kind: str, fallback_message: str) -> 'AuthError':
        if isinstance(exc, IdentityProviderError):
            return cls(
                message=exc.message or fallback_message,
                kind=kind,
                code=exc.code or DEFAULT_CODES.get(kind),
                status=exc.status,
            )
        return cls(message=str(exc) or fallback_message, kind=kind, code=DEFAULT_CODES.get(kind))

    def to_dict(self):
        return {'message': self.message, 'kind': self.kind, 'code': self.code, 'status': self.status}


__all__ = [
    'AuthorizationEngineError', 'ProviderNotConfigured', 'IdentityProviderError', 'ProfileStoreError',
    'InvalidTransition', 'AuthError', 'DEFAULT_CODES',
    'KIND_INITIALIZATION', 'KIND_SIGN_IN', 'KIND_SIGN_UP', 'KIND_OAUTH', 'KIND_PASSWORD_RESET',
    'KIND_PASSWORD_UPDATE', 'KIND_PROFILE_FETCH', 'KIND_SESSION_REFRESH', 'KIND_SIGN_OUT', 'KIND_UNCONFIGURED',
]
