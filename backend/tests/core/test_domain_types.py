"""Domain Types — money quantisation and enum values.

Tests cover:
    - to_money rounds half-up to cents
    - Enums carry their persisted string values
"""

from decimal import Decimal
from uuid import uuid4

from app.core.domain_types import (
    GroupId, UserId, MemberRole, InvitationStatus, NotificationType, to_money,
)


def test_identity_types_wrap_uuid():
    """Id aliases compare equal to the wrapped UUID."""
    uid = uuid4()
    assert GroupId(uid) == uid
    assert UserId(uid) == uid


def test_to_money_rounds_half_up():
    """Half a cent rounds up; anything less rounds down."""
    assert to_money(Decimal("10.005")) == Decimal("10.01")
    assert to_money(Decimal("10.004")) == Decimal("10.00")
    assert to_money(5) == Decimal("5.00")
    assert to_money("33.3") == Decimal("33.30")


def test_invitation_status_has_one_non_terminal_state():
    """Only pending is non-terminal; the value order is fixed."""
    assert [s.value for s in InvitationStatus] == [
        "pending", "accepted", "declined", "expired",
    ]


def test_persisted_enum_values():
    """Enum values match what the database stores."""
    assert MemberRole.ADMIN.value == "admin"
    assert NotificationType.EXPENSE_ADDED.value == "expense_added"
    assert NotificationType.SETTLEMENT_RECORDED.value == "settlement_recorded"
