"""Ledger Store — groups, atomic expense creation and the group ledger read view.

Invariants:
    - create_expense_with_splits commits the expense row and ALL split rows as
      one transaction; any failure rolls back everything (no orphan expense)
    - All validation (pure, core/expense_rules.py) runs before the first INSERT
    - create_group writes the group and the creator's admin membership together
    - update_group never touches created_by or currency; leave_group refuses the creator
    - Notifications are emitted only after commit; their failures are warnings

Design Decisions:
    - Follows impureim sandwich: read roster -> pure validate -> write -> commit
    - Timestamps from the injected Clock: split creation order drives settlement
      order, so it must be deterministic under test
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.domain_types import DEFAULT_SPLIT_TOLERANCE, InvitationStatus, MemberRole
from app.core.errors import AuthorizationError
from app.core.expense_rules import SplitLine, ensure_members, validate_expense_amounts
from app.core.group_rules import clean_group_name, ensure_can_leave, ensure_can_manage_group
from app.core.invitation_rules import as_utc
from app.core.repository_protocols import Clock
from app.models.expense import Expense
from app.models.group import Group
from app.models.invitation import Invitation
from app.models.member import Member
from app.models.settlement import Settlement
from app.models.split import Split
from app.models.user import User
from app.services.membership import (
    get_group_or_404, insert_member_if_absent, load_roster, require_member,
)
from app.services.notification_emitter import NotificationEmitter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExpenseCreated:
    expense_id: UUID
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RosterEntry:
    user_id: UUID
    email: str
    display_name: str | None
    role: str
    joined_at: datetime


@dataclass(frozen=True)
class GroupLedger:
    """Everything the group page renders, read in one pass."""
    group: Group
    members: list[RosterEntry]
    expenses: list[Expense]
    settlements: list[Settlement]
    pending_invitations: list[Invitation]


class LedgerStore:
    """Write path for groups and expenses, plus the composed ledger view."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock,
        emitter: NotificationEmitter,
        split_tolerance: Decimal = DEFAULT_SPLIT_TOLERANCE,
    ):
        self.db = db
        self.clock = clock
        self.emitter = emitter
        self.split_tolerance = split_tolerance

    async def create_group(
        self,
        creator_id: UUID,
        name: str,
        description: str | None = None,
        category: str = "general",
        currency: str = "USD",
    ) -> Group:
        """Create a group; the creator joins as admin in the same transaction."""
        now = self.clock.now()
        try:
            group = Group(
                name=name, description=description, category=category,
                currency=currency.upper(), created_by=creator_id, created_at=now,
            )
            self.db.add(group)
            await self.db.flush()
            await insert_member_if_absent(
                self.db, group.id, creator_id, MemberRole.ADMIN.value, now,
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info(
            f"Group '{name}' created", extra={"group_id": group.id, "user_id": creator_id},
        )
        return group

    async def delete_group(self, group_id: UUID, caller_id: UUID) -> None:
        """Delete a group and (via ON DELETE CASCADE) everything it owns."""
        group = await get_group_or_404(self.db, group_id)
        if group.created_by != caller_id:
            await self.db.rollback()
            raise AuthorizationError("Only the group creator can delete the group")
        await self.db.delete(group)
        await self.db.commit()
        logger.info("Group deleted", extra={"group_id": group_id, "user_id": caller_id})

    async def update_group(
        self,
        group_id: UUID,
        caller_id: UUID,
        *,
        name: str | None = None,
        description: str | None = None,
        category: str | None = None,
    ) -> Group:
        """Edit name/description/category. The creator and currency stay fixed."""
        try:
            group = await get_group_or_404(self.db, group_id, for_update=True)
            role = await require_member(self.db, group_id, caller_id)
            ensure_can_manage_group(caller_id, group.created_by, role)
            if name is not None:
                group.name = clean_group_name(name)
            if description is not None:
                group.description = description
            if category is not None:
                group.category = category
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info("Group updated", extra={"group_id": group_id, "user_id": caller_id})
        return group

    async def leave_group(self, group_id: UUID, caller_id: UUID) -> None:
        """Remove the caller's membership. Their expense history stays in the ledger."""
        try:
            group = await get_group_or_404(self.db, group_id)
            await require_member(self.db, group_id, caller_id)
            ensure_can_leave(caller_id, group.created_by)
            await self.db.execute(
                delete(Member)
                .where(Member.group_id == group_id)
                .where(Member.user_id == caller_id),
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info("Member left group", extra={"group_id": group_id, "user_id": caller_id})

    async def create_expense_with_splits(
        self,
        group_id: UUID,
        caller_id: UUID,
        payer_id: UUID,
        description: str,
        amount: Decimal,
        category: str,
        notes: str | None,
        splits: list[SplitLine],
    ) -> ExpenseCreated:
        """Create an expense and all of its splits atomically."""
        try:
            group = await get_group_or_404(self.db, group_id)
            group_name = group.name
            await require_member(self.db, group_id, caller_id)

            # ── PURE: validate amounts and membership ──
            amount, splits = validate_expense_amounts(
                amount, splits, self.split_tolerance,
            )
            roster = set(await load_roster(self.db, group_id))
            ensure_members(
                [payer_id, *(line.user_id for line in splits)], roster, group_id,
            )

            # ── IMPURE: one transaction for expense + splits ──
            now = self.clock.now()
            expense = Expense(
                group_id=group_id,
                payer_id=payer_id,
                description=description,
                amount=amount,
                category=category,
                notes=notes,
                created_at=now,
            )
            self.db.add(expense)
            await self.db.flush()
            expense_id = expense.id
            for line in splits:
                self.db.add(Split(
                    expense_id=expense_id,
                    user_id=line.user_id,
                    amount=line.amount,
                    is_settled=False,
                    created_at=now,
                ))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            f"Expense {expense_id} created with {len(splits)} split(s)",
            extra={"group_id": group_id, "user_id": payer_id},
        )
        warnings = await self.emitter.expense_added(
            expense_id=expense_id,
            group_id=group_id,
            group_name=group_name,
            payer_id=payer_id,
            description=description,
            splits=splits,
        )
        return ExpenseCreated(expense_id=expense_id, warnings=warnings)

    async def get_group_ledger(self, group_id: UUID, caller_id: UUID) -> GroupLedger:
        """Compose group, roster, expenses+splits, settlements and live invitations."""
        group = await get_group_or_404(self.db, group_id)
        await require_member(self.db, group_id, caller_id)

        roster_rows = await self.db.execute(
            select(Member, User)
            .join(User, User.id == Member.user_id)
            .where(Member.group_id == group_id)
            .order_by(Member.joined_at),
        )
        members = [
            RosterEntry(
                user_id=member.user_id,
                email=user.email,
                display_name=user.display_name,
                role=member.role,
                joined_at=member.joined_at,
            )
            for member, user in roster_rows.all()
        ]

        expenses = await self.db.execute(
            select(Expense)
            .where(Expense.group_id == group_id)
            .order_by(Expense.created_at.desc())
            .execution_options(populate_existing=True),
        )
        settlements = await self._settlements(group_id)
        now = self.clock.now()
        invitations = await self.db.execute(
            select(Invitation)
            .where(Invitation.group_id == group_id)
            .where(Invitation.status == InvitationStatus.PENDING.value)
            .order_by(Invitation.created_at)
            .execution_options(populate_existing=True),
        )
        live_invitations = [
            inv for inv in invitations.scalars().all()
            if as_utc(inv.expires_at) > as_utc(now)
        ]
        return GroupLedger(
            group=group,
            members=members,
            expenses=list(expenses.scalars().all()),
            settlements=settlements,
            pending_invitations=live_invitations,
        )

    async def list_settlements(self, group_id: UUID, caller_id: UUID) -> list[Settlement]:
        """Settlement history, newest first."""
        await get_group_or_404(self.db, group_id)
        await require_member(self.db, group_id, caller_id)
        return await self._settlements(group_id)

    async def _settlements(self, group_id: UUID) -> list[Settlement]:
        result = await self.db.execute(
            select(Settlement)
            .where(Settlement.group_id == group_id)
            .order_by(Settlement.settled_at.desc()),
        )
        return list(result.scalars().all())
