"""Client-side authority for "who is signed in and what may they do".

The store owns one immutable AuthSnapshot and swaps it whole on every change, so a
reader never sees half of an update. Identity-provider events re-run the profile
resolution chain; each run is stamped with a generation number and only the newest
generation may write its result back.
"""
from __future__ import annotations
import asyncio
import logging
import time
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Iterable, Optional, Set, Union

from bazaar_auth.config.routes import RouteConfig
from bazaar_auth.constants.permissions import CUSTOMER
from bazaar_auth.errors import (
    AuthError, KIND_INITIALIZATION, KIND_OAUTH, KIND_PASSWORD_RESET, KIND_PASSWORD_UPDATE, KIND_PROFILE_FETCH,
    KIND_SESSION_REFRESH, KIND_SIGN_IN, KIND_SIGN_OUT, KIND_SIGN_UP, KIND_UNCONFIGURED, DEFAULT_CODES,
)
from bazaar_auth.models.identity import (
    AuthUser, Identity, ProfileRecord, Session, StaffProfileRecord, VendorProfileRecord,
)
from bazaar_auth.services import policy
from bazaar_auth.services.identity_provider import EVENT_INITIAL_SESSION, EVENT_SIGNED_OUT, IdentityProviderHandle
from bazaar_auth.services.profile_resolution import IDLE, ProfileResolution, ResolutionResult
from bazaar_auth.services.profile_store import ProfileStore
from bazaar_auth.services.route_access import RouteDecision, check_route_access
from bazaar_auth.services.session_monitor import SessionStatus, describe_session

logger = logging.getLogger(__name__)

UNCONFIGURED_ERROR = AuthError(
    message='Authentication is not configured',
    kind=KIND_UNCONFIGURED,
    code=DEFAULT_CODES[KIND_UNCONFIGURED],
)


@dataclass(frozen=True)
class AuthSnapshot:
    user: Optional[AuthUser] = None
    identity: Optional[Identity] = None
    session: Optional[Session] = None
    profile: Optional[ProfileRecord] = None
    vendor_profile: Optional[VendorProfileRecord] = None
    staff_profile: Optional[StaffProfileRecord] = None
    is_loading: bool = True
    error: Optional[AuthError] = None
    resolution_state: str = IDLE
    is_configured: bool = True

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and self.session is not None

    @property
    def role(self) -> Optional[str]:
        return self.identity.role if self.identity is not None and self.is_authenticated else None

    @property
    def is_admin(self) -> bool:
        return bool(self.identity and self.identity.is_admin)

    @property
    def is_super_admin(self) -> bool:
        return bool(self.identity and self.identity.is_super_admin)

    @property
    def is_vendor(self) -> bool:
        return policy.is_vendor_role(self.role)


SIGNED_OUT_SNAPSHOT = AuthSnapshot(is_loading=False)


@dataclass(frozen=True)
class ActionResult:
    error: Optional[AuthError] = None
    session: Optional[Session] = None
    # authorize URL for OAuth sign-in
    redirect_url: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AuthStateStore:
    def __init__(self, handle: IdentityProviderHandle, profile_store: ProfileStore,
                 clock: Callable[[], float] = time.time,
                 on_auth_state_change: Optional[Callable[[str, Optional[Session]], None]] = None):
        self._handle = handle
        self._profiles = profile_store
        self._clock = clock
        self._on_auth_state_change = on_auth_state_change
        self._state = AuthSnapshot(is_configured=handle.is_configured)
        self._generation = 0
        self._pending: Set[asyncio.Task] = set()
        self._refresh_task: Optional[asyncio.Task] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    # --- state ---
    def snapshot(self) -> AuthSnapshot:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    def _commit(self, **changes):
        self._state = replace(self._state, **changes)

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_resolving(self) -> bool:
        return any(not t.done() for t in self._pending)

    def _reset(self):
        self._state = replace(SIGNED_OUT_SNAPSHOT, is_configured=self._state.is_configured)

    def _notify(self, event: str, session: Optional[Session]):
        if self._on_auth_state_change is not None:
            self._on_auth_state_change(event, session)

    # --- lifecycle ---
    async def initialize(self) -> AuthSnapshot:
        if not self._handle.is_configured:
            logger.warning('Auth store running without an identity provider')
            self._commit(is_configured=False, is_loading=False)
            return self._state

        provider = self._handle.get()
        if self._unsubscribe is None:
            self._unsubscribe = provider.on_session_change(self.dispatch)
        generation = self._next_generation()
        try:
            session = await provider.get_current_session()
        except Exception:
            logger.error('Error initializing auth', exc_info=True)
            if generation == self._generation:
                self._commit(
                    error=AuthError('Failed to initialize authentication', KIND_INITIALIZATION,
                                    DEFAULT_CODES[KIND_INITIALIZATION]),
                    is_loading=False,
                )
            return self._state

        if generation != self._generation:
            # an event arrived while the current session was loading; it owns the state now
            return self._state
        if session is None:
            self._commit(is_loading=False)
            return self._state
        self._commit(user=session.user, session=session, is_loading=True)
        await self._resolve(generation, EVENT_INITIAL_SESSION, session)
        return self._state

    def dispatch(self, event: str, session: Optional[Session]) -> Optional[asyncio.Task]:
        """Identity-provider change callback. Must be called from the running event loop."""
        generation = self._next_generation()
        if event == EVENT_SIGNED_OUT or session is None:
            self._reset()
            self._notify(event, None)
            return None

        if self._state.user is not None and self._state.user.id != session.user.id:
            # different account: nothing from the previous user may remain visible
            self._state = replace(SIGNED_OUT_SNAPSHOT, is_configured=self._state.is_configured, error=self._state.error)
        # the role may be changing; grants from the last run do not carry into this one
        self._commit(
            user=session.user, session=session, identity=None,
            vendor_profile=None, staff_profile=None, is_loading=True,
        )
        task = asyncio.get_running_loop().create_task(self._resolve(generation, event, session))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def settle(self):
        """Wait until no resolution is in flight, including runs started while waiting."""
        while True:
            pending = [t for t in self._pending if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending)

    def dispose(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        # in-flight runs finish but can no longer write
        self._next_generation()
        self._handle.reset()

    # --- resolution ---
    def _on_transition(self, generation: int, state: str):
        if generation == self._generation:
            self._commit(resolution_state=state)

    async def _resolve(self, generation: int, event: str, session: Session) -> ResolutionResult:
        run = ProfileResolution(
            self._profiles, session.user.id,
            on_transition=lambda state: self._on_transition(generation, state),
        )
        result = await run.run()
        if generation != self._generation:
            logger.debug('Discarding profile resolution for generation %s (current %s)', generation, self._generation)
            return result
        self._apply(session, result)
        self._notify(event, session)
        return result

    def _apply(self, session: Session, result: ResolutionResult):
        user = session.user
        # without a profile row there is no trusted role; session metadata is caller-editable
        role = result.profile.role if result.profile is not None else CUSTOMER
        identity = policy.build_identity(user.id, user.email, role, result.staff_profile)

        error = self._state.error
        if result.error is not None:
            error = result.error
        elif error is not None and error.kind == KIND_PROFILE_FETCH:
            error = None
        self._commit(
            identity=identity,
            profile=result.profile,
            vendor_profile=result.vendor_profile,
            staff_profile=result.staff_profile,
            error=error,
            is_loading=False,
            resolution_state=result.state,
        )

    # --- actions ---
    async def _run_action(self, kind: str, fallback: str,
                          call: Callable[[object], Awaitable[ActionResult]]) -> ActionResult:
        if not self._handle.is_configured:
            self._commit(error=UNCONFIGURED_ERROR, is_loading=False)
            return ActionResult(error=UNCONFIGURED_ERROR)
        provider = self._handle.get()
        self._commit(is_loading=True, error=None)
        try:
            value = await call(provider)
        except Exception as exc:
            err = AuthError.from_exception(exc, kind, fallback)
            logger.warning('%s failed: %s (%s)', kind, err.message, err.code)
            self._commit(error=err, is_loading=self._is_resolving())
            return ActionResult(error=err)
        self._commit(is_loading=self._is_resolving())
        return value

    async def sign_in(self, email: str, password: str) -> ActionResult:
        async def call(provider):
            return ActionResult(session=await provider.sign_in(email, password))
        return await self._run_action(KIND_SIGN_IN, 'Sign in failed', call)

    async def sign_up(self, email: str, password: str, full_name: str, role: str = CUSTOMER,
                      phone: Optional[str] = None) -> ActionResult:
        async def call(provider):
            return ActionResult(session=await provider.sign_up(email, password, full_name, role=role, phone=phone))
        return await self._run_action(KIND_SIGN_UP, 'Sign up failed', call)

    async def sign_in_with_oauth(self, provider_name: str, redirect_to: Optional[str] = None,
                                 scopes: Optional[str] = None) -> ActionResult:
        async def call(provider):
            url = await provider.sign_in_with_oauth(provider_name, redirect_to=redirect_to, scopes=scopes)
            return ActionResult(redirect_url=url)
        return await self._run_action(KIND_OAUTH, 'OAuth sign in failed', call)

    async def reset_password(self, email: str, redirect_to: Optional[str] = None) -> ActionResult:
        async def call(provider):
            await provider.reset_password(email, redirect_to=redirect_to)
            return ActionResult()
        return await self._run_action(KIND_PASSWORD_RESET, 'Password reset failed', call)

    async def update_password(self, new_password: str) -> ActionResult:
        async def call(provider):
            await provider.update_password(new_password)
            return ActionResult()
        return await self._run_action(KIND_PASSWORD_UPDATE, 'Password update failed', call)

    async def sign_out(self) -> ActionResult:
        if not self._handle.is_configured:
            return ActionResult(error=UNCONFIGURED_ERROR)
        provider = self._handle.get()
        try:
            await provider.sign_out()
        except Exception as exc:
            err = AuthError.from_exception(exc, KIND_SIGN_OUT, 'Sign out failed')
            logger.error('Error signing out: %s', err.message)
            return ActionResult(error=err)
        # providers that do not emit SIGNED_OUT still end signed out
        if self._state.is_authenticated or self._is_resolving():
            self._next_generation()
            self._reset()
        return ActionResult()

    async def refresh_session(self) -> ActionResult:
        """Refresh the session; overlapping callers share one provider call."""
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.get_running_loop().create_task(self._do_refresh())
        return await asyncio.shield(self._refresh_task)

    async def _do_refresh(self) -> ActionResult:
        if not self._handle.is_configured:
            return ActionResult(error=UNCONFIGURED_ERROR)
        provider = self._handle.get()
        try:
            session = await provider.refresh_session()
        except Exception as exc:
            err = AuthError.from_exception(exc, KIND_SESSION_REFRESH, 'Session refresh failed')
            logger.error('Error refreshing session: %s', err.message)
            return ActionResult(error=err)
        current = self._state.session
        if session is not None and current is not None and current.user.id == session.user.id:
            self._commit(session=session, user=session.user)
        return ActionResult(session=session)

    def clear_error(self):
        self._commit(error=None)

    # --- pass-throughs over the current snapshot ---
    def evaluate(self, permissions: Union[str, Iterable[str]], mode: str = policy.MODE_ANY) -> bool:
        return policy.evaluate(self._state.identity, permissions, mode)

    def can_access_module(self, module: str) -> bool:
        return policy.identity_can_access_module(self._state.identity, module)

    def accessible_modules(self):
        return policy.accessible_modules(self._state.identity)

    def check_route_access(self, path: str, config: Optional[RouteConfig] = None) -> RouteDecision:
        return check_route_access(path, self._state.role, config)

    def session_status(self) -> SessionStatus:
        return describe_session(self._state.session, now=self._clock())


__all__ = ['AuthSnapshot', 'ActionResult', 'AuthStateStore', 'UNCONFIGURED_ERROR', 'SIGNED_OUT_SNAPSHOT']
