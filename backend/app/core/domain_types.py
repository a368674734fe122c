"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - GroupId, UserId, ExpenseId, SplitId wrap UUIDs — never use bare UUID in domain logic
    - Money is always Decimal quantized to cents — never float
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

GroupId = NewType("GroupId", UUID)
UserId = NewType("UserId", UUID)
ExpenseId = NewType("ExpenseId", UUID)
SplitId = NewType("SplitId", UUID)
SettlementId = NewType("SettlementId", UUID)
InvitationId = NewType("InvitationId", UUID)


# ─── Value Types ─────────────────────────────────────────────────

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
DEFAULT_SPLIT_TOLERANCE = Decimal("0.01")


def to_money(value: Decimal | int | str) -> Decimal:
    """Quantize to cents. Float inputs are rejected by the callers' schemas."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


# ─── Enums ───────────────────────────────────────────────────────

class MemberRole(str, Enum):
    """Member roles — admins (and the creator) may invite."""
    ADMIN = "admin"
    MEMBER = "member"


class InvitationStatus(str, Enum):
    """Invitation lifecycle — everything except PENDING is terminal."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class NotificationType(str, Enum):
    """Notification kinds emitted after ledger mutations."""
    EXPENSE_ADDED = "expense_added"
    INVITATION_ACCEPTED = "invitation_accepted"
    GROUP_INVITATION = "group_invitation"
    SETTLEMENT_RECORDED = "settlement_recorded"
    INVITATION_REMINDER = "invitation_reminder"
