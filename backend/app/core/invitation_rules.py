"""Invitation State Machine — pure transition checks for invitation lifecycle.

Invariants:
    - pending -> {accepted, declined, expired}; all three are terminal
    - A pending invitation past expires_at is inert: it can never be accepted
    - Email comparison is case-insensitive; stored emails are lower-case
    - Only the group creator or an admin may invite

Design Decisions:
    - check_response_eligibility returns EXPIRED instead of raising so the shell
      can persist the pending -> expired transition before reporting it
    - as_utc normalises naive datetimes: SQLite drops tzinfo on round-trip
"""

import re
from datetime import datetime, timedelta, timezone
from enum import Enum
from uuid import UUID

from app.core.domain_types import InvitationStatus
from app.core.errors import AuthorizationError, StateConflictError, ValidationError
from app.core.group_rules import is_group_manager

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class Eligibility(str, Enum):
    OK = "ok"
    EXPIRED = "expired"


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_email(email: str) -> str:
    """Strip + lower-case; raises ValidationError when not address-shaped."""
    cleaned = email.strip().lower()
    if not _EMAIL_RE.match(cleaned):
        raise ValidationError(f"Invalid email address '{email}'", "invitee_email")
    return cleaned


def is_expired(expires_at: datetime | None, now: datetime) -> bool:
    return expires_at is not None and as_utc(expires_at) <= as_utc(now)


def compute_expiry(now: datetime, ttl: timedelta) -> datetime:
    if ttl <= timedelta(0):
        raise ValidationError("Invitation lifetime must be positive", "expires_in")
    return as_utc(now) + ttl


def ensure_can_invite(
    inviter_id: UUID, creator_id: UUID, inviter_role: str | None,
) -> None:
    if is_group_manager(inviter_id, creator_id, inviter_role):
        return
    raise AuthorizationError("Only group owners/admins can invite members")


def check_response_eligibility(
    status: str,
    expires_at: datetime | None,
    invitee_email: str,
    caller_email: str,
    now: datetime,
) -> Eligibility:
    """Validate that the caller may accept/decline this invitation now.

    Raises StateConflictError for terminal invitations and AuthorizationError
    for an email mismatch. Returns EXPIRED for a pending-but-stale invitation.
    """
    if status != InvitationStatus.PENDING.value:
        raise StateConflictError(
            f"Invitation already {status}", "INVITATION_NOT_PENDING",
        )
    if is_expired(expires_at, now):
        return Eligibility.EXPIRED
    if invitee_email.lower() != caller_email.strip().lower():
        raise AuthorizationError(f"This invitation is for {invitee_email}")
    return Eligibility.OK
