"""Invitation Rules — pure invitation state-machine checks."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from app.core.errors import AuthorizationError, StateConflictError, ValidationError
from app.core.invitation_rules import (
    Eligibility, as_utc, check_response_eligibility, compute_expiry,
    ensure_can_invite, is_expired, normalize_email,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_normalize_email_strips_and_lowercases():
    """Emails are trimmed and lowercased."""
    assert normalize_email("  Bob@Example.COM ") == "bob@example.com"


@pytest.mark.parametrize("bad", ["", "bob", "bob@", "bob@example", "a b@example.com"])
def test_normalize_email_rejects_malformed(bad):
    """Malformed addresses raise ValidationError."""
    with pytest.raises(ValidationError):
        normalize_email(bad)


def test_as_utc_treats_naive_as_utc():
    """Naive datetimes from SQLite are read as UTC."""
    naive = datetime(2026, 1, 1, 12, 0)
    assert as_utc(naive) == NOW


def test_expiry_boundary_is_inclusive():
    """An invitation is expired at exactly its expiry time."""
    assert is_expired(NOW, NOW)
    assert not is_expired(NOW + timedelta(seconds=1), NOW)
    assert not is_expired(None, NOW)


def test_compute_expiry_requires_positive_ttl():
    """Expiry is now plus TTL, and the TTL must be positive."""
    assert compute_expiry(NOW, timedelta(hours=168)) == NOW + timedelta(days=7)
    with pytest.raises(ValidationError):
        compute_expiry(NOW, timedelta(0))


def test_only_creator_or_admin_may_invite():
    """The creator or an admin may invite; members may not."""
    creator = uuid4()
    ensure_can_invite(creator, creator, "member")
    ensure_can_invite(uuid4(), creator, "admin")
    with pytest.raises(AuthorizationError):
        ensure_can_invite(uuid4(), creator, "member")
    with pytest.raises(AuthorizationError):
        ensure_can_invite(uuid4(), creator, None)


def test_pending_unexpired_matching_email_is_ok():
    """Email match ignores case for a live pending invitation."""
    result = check_response_eligibility(
        "pending", NOW + timedelta(hours=1), "bob@example.com", "BOB@example.com", NOW,
    )
    assert result is Eligibility.OK


def test_expired_pending_reports_expired_before_email_check():
    """Expiry is reported even when the email would not match."""
    result = check_response_eligibility(
        "pending", NOW - timedelta(seconds=1), "bob@example.com", "eve@example.com", NOW,
    )
    assert result is Eligibility.EXPIRED


@pytest.mark.parametrize("status", ["accepted", "declined", "expired"])
def test_terminal_states_conflict(status):
    """Accepted, declined and expired invitations cannot be answered."""
    with pytest.raises(StateConflictError) as exc:
        check_response_eligibility(
            status, NOW + timedelta(hours=1), "bob@example.com", "bob@example.com", NOW,
        )
    assert exc.value.code == "INVITATION_NOT_PENDING"


def test_email_mismatch_forbidden():
    """Only the invited address may respond."""
    with pytest.raises(AuthorizationError):
        check_response_eligibility(
            "pending", NOW + timedelta(hours=1), "bob@example.com", "eve@example.com", NOW,
        )
