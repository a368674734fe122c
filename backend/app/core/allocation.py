"""Settlement Allocation — oldest-debt-first, full-splits-only bookkeeping.

Invariants:
    - A split is applied only when remaining >= split.amount (never partially)
    - The walk stops at the first split that does not fit, or once remaining <= 0;
      a 0.00 split queued after the last fitting split therefore stays unsettled
      (it carries no debt, so balances are unaffected)
    - remaining = requested - settled_amount at every step
    - settlement_lock_key is stable across processes for the same ordered pair

Design Decisions:
    - AllocationLedger is a plain accumulator: the shell decides whether the
      compare-and-swap on a split succeeded and only then calls apply()
    - Lock key from blake2b, not hash(): hash() is salted per process
      (ADR: every worker must derive the same advisory key)
"""

import hashlib
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from app.core.domain_types import ZERO, to_money
from app.core.errors import AuthorizationError, ValidationError


@dataclass
class AllocationLedger:
    """Running totals for one settle() call."""
    requested: Decimal
    remaining: Decimal = field(init=False)
    settled_amount: Decimal = field(init=False, default=ZERO)
    settled_split_ids: list[UUID] = field(init=False, default_factory=list)

    def __post_init__(self):
        self.remaining = self.requested

    @property
    def exhausted(self) -> bool:
        return self.remaining <= ZERO

    def covers(self, split_amount: Decimal) -> bool:
        """True when the split can be paid in full from what remains."""
        return self.remaining >= split_amount

    def apply(self, split_id: UUID, split_amount: Decimal) -> None:
        self.settled_split_ids.append(split_id)
        self.remaining -= split_amount
        self.settled_amount += split_amount

    @property
    def needs_audit_row(self) -> bool:
        return self.settled_amount > ZERO

    def totals(self) -> tuple[Decimal, Decimal]:
        return to_money(self.settled_amount), to_money(self.remaining)


def validate_settle_request(
    amount: Decimal, debtor_id: UUID, creditor_id: UUID, caller_id: UUID,
) -> None:
    """Reject non-positive amounts, self-settlement and third-party callers."""
    if amount <= ZERO:
        raise ValidationError("Settlement amount must be positive", "amount")
    if debtor_id == creditor_id:
        raise ValidationError(
            "Debtor and creditor must be different members", "creditor_id",
        )
    if caller_id not in (debtor_id, creditor_id):
        raise AuthorizationError("User not authorized to settle this debt")


def settlement_lock_key(
    group_id: UUID, debtor_id: UUID, creditor_id: UUID,
) -> int:
    """Signed 64-bit advisory lock key for the ordered (group, debtor, creditor) pair."""
    digest = hashlib.blake2b(
        group_id.bytes + debtor_id.bytes + creditor_id.bytes, digest_size=8,
    ).digest()
    return int.from_bytes(digest, "big", signed=True)
