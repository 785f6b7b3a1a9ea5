"""Profile resolution chain run after every identity change.

    IDLE -> AUTHENTICATING -> PRIMARY_LOADED -> VENDOR_BRANCH | STAFF_BRANCH | NO_BRANCH -> READY
    AUTHENTICATING | PRIMARY_LOADED -> FAILED

Only the primary profile can fail the chain. Vendor and staff lookups are best-effort:
errors are logged and the branch completes with no sub-profile.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from bazaar_auth.errors import AuthError, KIND_PROFILE_FETCH
from bazaar_auth.models.identity import ProfileRecord, StaffProfileRecord, VendorProfileRecord
from bazaar_auth.services.policy import is_staff_role, is_vendor_role
from bazaar_auth.services.profile_store import ProfileStore
from bazaar_auth.utils.fsm import TransitionValidator

logger = logging.getLogger(__name__)

IDLE = 'IDLE'
AUTHENTICATING = 'AUTHENTICATING'
PRIMARY_LOADED = 'PRIMARY_LOADED'
VENDOR_BRANCH = 'VENDOR_BRANCH'
STAFF_BRANCH = 'STAFF_BRANCH'
NO_BRANCH = 'NO_BRANCH'
READY = 'READY'
FAILED = 'FAILED'

TERMINAL_STATES = {READY, FAILED}

# sign-out returns any state to IDLE
RESOLUTION_FSM = TransitionValidator({
    IDLE: {AUTHENTICATING},
    AUTHENTICATING: {PRIMARY_LOADED, FAILED},
    PRIMARY_LOADED: {VENDOR_BRANCH, STAFF_BRANCH, NO_BRANCH, FAILED},
    VENDOR_BRANCH: {READY},
    STAFF_BRANCH: {READY},
    NO_BRANCH: {READY},
    READY: set(),
    FAILED: set(),
}, field_name='resolution state').with_reset_to(IDLE)


@dataclass(frozen=True)
class ResolutionResult:
    state: str
    profile: Optional[ProfileRecord] = None
    vendor_profile: Optional[VendorProfileRecord] = None
    staff_profile: Optional[StaffProfileRecord] = None
    error: Optional[AuthError] = None

    @property
    def is_ready(self) -> bool:
        return self.state == READY


class ProfileResolution:
    """One run of the chain for one user. Not reusable; build a new one per identity event."""

    def __init__(self, store: ProfileStore, user_id: str, on_transition: Optional[Callable[[str], None]] = None):
        self._store = store
        self.user_id = user_id
        self._on_transition = on_transition
        self.state = IDLE
        self.history: List[str] = [IDLE]

    def _advance(self, target: str):
        RESOLUTION_FSM.assert_can_transition(self.state, target)
        logger.debug('Profile resolution for %s: %s -> %s', self.user_id, self.state, target)
        self.state = target
        self.history.append(target)
        if self._on_transition is not None:
            self._on_transition(target)

    def _fail(self, message: str, code: str) -> ResolutionResult:
        self._advance(FAILED)
        return ResolutionResult(state=FAILED, error=AuthError(message=message, kind=KIND_PROFILE_FETCH, code=code))

    async def _fetch_optional(self, what: str, fetch: Callable[[str], Awaitable]):
        try:
            return await fetch(self.user_id)
        except Exception:
            logger.error('Error fetching %s profile for %s', what, self.user_id, exc_info=True)
            return None

    async def run(self) -> ResolutionResult:
        self._advance(AUTHENTICATING)
        try:
            profile = await self._store.get_profile(self.user_id)
        except Exception:
            logger.error('Error fetching profile for %s', self.user_id, exc_info=True)
            return self._fail('Failed to load profile', 'PROFILE_FETCH_ERROR')
        if profile is None:
            logger.warning('No profile row for %s', self.user_id)
            return self._fail('Profile not found', 'PROFILE_NOT_FOUND')
        self._advance(PRIMARY_LOADED)

        vendor_profile = staff_profile = None
        if is_vendor_role(profile.role):
            self._advance(VENDOR_BRANCH)
            vendor_profile = await self._fetch_optional('vendor', self._store.get_vendor_profile)
        elif is_staff_role(profile.role):
            self._advance(STAFF_BRANCH)
            staff_profile = await self._fetch_optional('staff', self._store.get_staff_profile)
        else:
            self._advance(NO_BRANCH)

        self._advance(READY)
        return ResolutionResult(
            state=READY,
            profile=profile,
            vendor_profile=vendor_profile,
            staff_profile=staff_profile,
        )


async def resolve_profiles(store: ProfileStore, user_id: str,
                           on_transition: Optional[Callable[[str], None]] = None) -> ResolutionResult:
    return await ProfileResolution(store, user_id, on_transition).run()


__all__ = [
    'IDLE', 'AUTHENTICATING', 'PRIMARY_LOADED', 'VENDOR_BRANCH', 'STAFF_BRANCH', 'NO_BRANCH', 'READY', 'FAILED',
    'TERMINAL_STATES', 'RESOLUTION_FSM', 'ResolutionResult', 'ProfileResolution', 'resolve_profiles',
]
