from __future__ import annotations
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from bazaar_auth.models.identity import Session

EXPIRING_SOON_SECONDS = 300


@dataclass(frozen=True)
class SessionStatus:
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    expires_in: Optional[int] = None
    is_expired: bool = False
    is_expiring_soon: bool = False
    has_session: bool = False


NO_SESSION = SessionStatus()


def describe_session(session: Optional[Session], now: Optional[float] = None) -> SessionStatus:
    """Derive expiry state for `session` at wall-clock `now` (epoch seconds).

    Nothing is cached: the expiry fields only mean something for the instant they were
    computed, so callers ask again on every read.
    """
    if session is None:
        return NO_SESSION
    now = time.time() if now is None else now

    if session.expires_at is not None:
        expires_at_epoch = float(session.expires_at)
    elif session.expires_in is not None:
        expires_at_epoch = now + float(session.expires_in)
    else:
        return SessionStatus(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            has_session=True,
        )

    remaining = expires_at_epoch - now
    return SessionStatus(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_at=datetime.fromtimestamp(expires_at_epoch, tz=timezone.utc),
        expires_in=max(0, math.floor(remaining)),
        is_expired=remaining <= 0,
        is_expiring_soon=0 < remaining <= EXPIRING_SOON_SECONDS,
        has_session=True,
    )


def has_valid_session(status: SessionStatus) -> bool:
    return status.has_session and not status.is_expired


__all__ = ['EXPIRING_SOON_SECONDS', 'SessionStatus', 'NO_SESSION', 'describe_session', 'has_valid_session']
