"""Settlement Allocator — applies a payment to the oldest unsettled splits, atomically.

Invariants:
    - Candidates: unsettled splits owed by debtor on expenses paid by creditor
      in this group, oldest first (created_at, id)
    - Full splits only: the walk stops at the first split larger than what remains
    - attempt_settle is a compare-and-swap: it flips is_settled only if still
      false; zero rows affected means another transaction won and the split is skipped
    - Exactly one Settlement row per call that applied a positive amount
    - Split flags + Settlement row commit together or not at all
    - A split is consumed by at most one successful settle(), ever

Design Decisions:
    - Three layers of protection: advisory pair lock (infrastructure/concurrency.py),
      FOR UPDATE OF expense_splits SKIP LOCKED on candidates, CAS update per split.
      Any one of the last two alone keeps settlement at-most-once
    - Pure bookkeeping delegated to core/allocation.AllocationLedger
    - Whole transaction retried on lock contention (bounded, then 409)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.allocation import AllocationLedger, validate_settle_request
from app.core.errors import ErrorContext
from app.core.expense_rules import ensure_members
from app.core.repository_protocols import Clock
from app.infrastructure.concurrency import acquire_pair_lock, retry_on_lock_contention
from app.models.expense import Expense
from app.models.settlement import Settlement
from app.models.split import Split
from app.services.membership import get_group_or_404, load_roster
from app.services.notification_emitter import NotificationEmitter

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Settle up"


@dataclass(frozen=True)
class SettlementResult:
    settled_split_ids: list[UUID]
    settled_amount: Decimal
    remaining_amount: Decimal
    settlement_id: UUID | None
    warnings: list[str] = field(default_factory=list)


class SettlementAllocator:
    """Greedy, transactional, full-split settlement between two members."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock,
        emitter: NotificationEmitter,
        *,
        max_retries: int = 3,
        base_delay_ms: int = 50,
        max_delay_ms: int = 1000,
        lock_timeout_ms: int = 5000,
    ):
        self.db = db
        self.clock = clock
        self.emitter = emitter
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self.lock_timeout_ms = lock_timeout_ms

    async def settle(
        self,
        group_id: UUID,
        debtor_id: UUID,
        creditor_id: UUID,
        amount: Decimal,
        caller_id: UUID,
        description: str | None = None,
    ) -> SettlementResult:
        """Settle up to `amount` of debtor's debt to creditor."""
        validate_settle_request(amount, debtor_id, creditor_id, caller_id)
        context = ErrorContext(group_id=str(group_id), user_id=str(caller_id))

        result = await retry_on_lock_contention(
            self.db,
            lambda: self._settle_once(
                group_id, debtor_id, creditor_id, amount,
                description or DEFAULT_DESCRIPTION,
            ),
            max_retries=self.max_retries,
            base_delay_ms=self.base_delay_ms,
            max_delay_ms=self.max_delay_ms,
            context=context,
        )

        logger.info(
            f"Settled {len(result.settled_split_ids)} split(s)",
            extra={
                "group_id": group_id, "user_id": caller_id,
                "settled_amount": result.settled_amount,
            },
        )
        if result.settlement_id is None:
            return result

        recipient = creditor_id if caller_id == debtor_id else debtor_id
        warnings = await self.emitter.settlement_recorded(
            recipient_id=recipient,
            settlement_id=result.settlement_id,
            group_id=group_id,
            debtor_id=debtor_id,
            creditor_id=creditor_id,
            amount=result.settled_amount,
        )
        return SettlementResult(
            settled_split_ids=result.settled_split_ids,
            settled_amount=result.settled_amount,
            remaining_amount=result.remaining_amount,
            settlement_id=result.settlement_id,
            warnings=warnings,
        )

    async def attempt_settle(self, split_id: UUID, settled_at: datetime) -> bool:
        """Compare-and-swap unsettled -> settled. False if already settled."""
        result = await self.db.execute(
            update(Split)
            .where(Split.id == split_id)
            .where(Split.is_settled.is_(False))
            .values(is_settled=True, settled_at=settled_at)
            .execution_options(synchronize_session=False),
        )
        return result.rowcount == 1

    async def _settle_once(
        self,
        group_id: UUID,
        debtor_id: UUID,
        creditor_id: UUID,
        amount: Decimal,
        description: str,
    ) -> SettlementResult:
        try:
            await get_group_or_404(self.db, group_id)
            ensure_members(
                [debtor_id, creditor_id],
                set(await load_roster(self.db, group_id)),
                group_id,
            )
            await acquire_pair_lock(
                self.db, group_id, debtor_id, creditor_id, self.lock_timeout_ms,
            )

            candidates = await self._select_candidates(group_id, debtor_id, creditor_id)
            ledger = AllocationLedger(requested=amount)
            now = self.clock.now()
            for split_id, split_amount in candidates:
                if ledger.exhausted or not ledger.covers(split_amount):
                    break
                if await self.attempt_settle(split_id, now):
                    ledger.apply(split_id, split_amount)

            settled_amount, remaining_amount = ledger.totals()
            settlement_id = None
            if ledger.needs_audit_row:
                settlement = Settlement(
                    group_id=group_id,
                    payer_id=debtor_id,
                    receiver_id=creditor_id,
                    amount=settled_amount,
                    description=description,
                    settled_at=now,
                )
                self.db.add(settlement)
                await self.db.flush()
                settlement_id = settlement.id
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return SettlementResult(
            settled_split_ids=list(ledger.settled_split_ids),
            settled_amount=settled_amount,
            remaining_amount=remaining_amount,
            settlement_id=settlement_id,
        )

    async def _select_candidates(
        self, group_id: UUID, debtor_id: UUID, creditor_id: UUID,
    ) -> list[tuple[UUID, Decimal]]:
        result = await self.db.execute(
            select(Split.id, Split.amount)
            .join(Expense, Expense.id == Split.expense_id)
            .where(Split.user_id == debtor_id)
            .where(Split.is_settled.is_(False))
            .where(Expense.payer_id == creditor_id)
            .where(Expense.group_id == group_id)
            .order_by(Split.created_at.asc(), Split.id.asc())
            .with_for_update(of=Split, skip_locked=True),
        )
        return [(split_id, split_amount) for split_id, split_amount in result.all()]
