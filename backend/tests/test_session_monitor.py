from datetime import datetime, timezone

from bazaar_auth.models.identity import AuthUser, Session
from bazaar_auth.services.session_monitor import (
    EXPIRING_SOON_SECONDS, NO_SESSION, describe_session, has_valid_session,
)

NOW = 1_700_000_000.0
USER = AuthUser(id='u1', email='u1@example.com')


def _session(expires_in=None, expires_at=None):
    return Session(access_token='at', refresh_token='rt', user=USER, expires_in=expires_in, expires_at=expires_at)


def test_no_session():
    status = describe_session(None, now=NOW)
    assert status is NO_SESSION
    assert not status.has_session
    assert not has_valid_session(status)


def test_expiring_soon_window():
    status = describe_session(_session(expires_in=200), now=NOW)
    assert status.is_expiring_soon is True
    assert status.is_expired is False
    assert status.expires_in == 200
    assert status.access_token == 'at' and status.refresh_token == 'rt'


def test_negative_relative_expiry_is_expired():
    status = describe_session(_session(expires_in=-1), now=NOW)
    assert status.is_expired is True
    assert status.is_expiring_soon is False
    assert status.expires_in == 0
    assert not has_valid_session(status)


def test_threshold_boundaries():
    assert describe_session(_session(expires_in=EXPIRING_SOON_SECONDS), now=NOW).is_expiring_soon
    assert not describe_session(_session(expires_in=EXPIRING_SOON_SECONDS + 1), now=NOW).is_expiring_soon
    at_zero = describe_session(_session(expires_in=0), now=NOW)
    assert at_zero.is_expired and not at_zero.is_expiring_soon


def test_absolute_expiry_wins_over_relative():
    status = describe_session(_session(expires_in=3600, expires_at=int(NOW) + 60), now=NOW)
    assert status.expires_in == 60
    assert status.is_expiring_soon
    assert status.expires_at == datetime.fromtimestamp(NOW + 60, tz=timezone.utc)


def test_recomputed_on_every_read():
    session = _session(expires_at=int(NOW) + 900)
    early = describe_session(session, now=NOW)
    later = describe_session(session, now=NOW + 700)
    after = describe_session(session, now=NOW + 901)
    assert not early.is_expiring_soon and early.expires_in == 900
    assert later.is_expiring_soon and later.expires_in == 200
    assert after.is_expired


def test_fractional_remaining_is_floored():
    status = describe_session(_session(expires_at=int(NOW) + 10), now=NOW + 0.4)
    assert status.expires_in == 9


def test_session_without_expiry_fields():
    status = describe_session(_session(), now=NOW)
    assert status.has_session
    assert status.expires_at is None and status.expires_in is None
    assert not status.is_expired
    assert has_valid_session(status)
