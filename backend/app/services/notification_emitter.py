"""Notification Emitter — derives notifications from committed ledger mutations.

Invariants:
    - Called only AFTER the originating mutation committed
    - Persists in its own transaction, then hands all rows to the dispatcher
      concurrently: one slow relay call bounds the wait, not one per recipient
    - Never raises: every failure becomes a warning string for the response
    - Never touches ledger rows

Design Decisions:
    - Persistence and delivery failures reported separately: a stored
      notification with a failed e-mail is still visible in-app
    - Wrapped in try/except like tool-call logging: side effects never crash
      the request that triggered them
"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.domain_types import NotificationType, to_money
from app.core.expense_rules import SplitLine
from app.core.invitation_rules import as_utc
from app.core.repository_protocols import NotificationDispatcher
from app.models.notification import Notification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationDraft:
    user_id: UUID
    type: NotificationType
    title: str
    message: str
    payload: dict = field(default_factory=dict)


class NotificationEmitter:
    """Best-effort notification side effects for ledger mutations."""

    def __init__(self, db: AsyncSession, dispatcher: NotificationDispatcher):
        self.db = db
        self.dispatcher = dispatcher

    async def expense_added(
        self,
        *,
        expense_id: UUID,
        group_id: UUID,
        group_name: str,
        payer_id: UUID,
        description: str,
        splits: Iterable[SplitLine],
    ) -> list[str]:
        """One notification per split owner, excluding the payer."""
        drafts = [
            NotificationDraft(
                user_id=line.user_id,
                type=NotificationType.EXPENSE_ADDED,
                title="New expense",
                message=(
                    f"You owe {to_money(line.amount)} for '{description}' "
                    f"in {group_name}"
                ),
                payload={
                    "group_id": str(group_id),
                    "expense_id": str(expense_id),
                    "payer_id": str(payer_id),
                    "amount": str(to_money(line.amount)),
                },
            )
            for line in splits
            if line.user_id != payer_id
        ]
        return await self._emit(drafts)

    async def invitation_accepted(
        self,
        *,
        inviter_id: UUID,
        group_id: UUID,
        group_name: str,
        accepter_email: str,
    ) -> list[str]:
        return await self._emit([
            NotificationDraft(
                user_id=inviter_id,
                type=NotificationType.INVITATION_ACCEPTED,
                title="Invitation Accepted",
                message=f"{accepter_email} joined {group_name}",
                payload={
                    "group_id": str(group_id),
                    "accepter_email": accepter_email,
                },
            ),
        ])

    async def group_invitation(
        self,
        *,
        invitee_id: UUID,
        invitation_id: UUID,
        group_id: UUID,
        group_name: str,
    ) -> list[str]:
        return await self._emit([
            NotificationDraft(
                user_id=invitee_id,
                type=NotificationType.GROUP_INVITATION,
                title="Group invitation",
                message=f"You have been invited to join {group_name}",
                payload={
                    "group_id": str(group_id),
                    "invitation_id": str(invitation_id),
                },
            ),
        ])

    async def invitation_reminder(
        self,
        *,
        invitee_id: UUID,
        invitation_id: UUID,
        group_id: UUID,
        group_name: str,
        expires_at: datetime,
    ) -> list[str]:
        return await self._emit([
            NotificationDraft(
                user_id=invitee_id,
                type=NotificationType.INVITATION_REMINDER,
                title="Invitation reminder",
                message=f"Reminder: you are invited to join {group_name}",
                payload={
                    "group_id": str(group_id),
                    "invitation_id": str(invitation_id),
                    "expires_at": as_utc(expires_at).isoformat(),
                },
            ),
        ])

    async def settlement_recorded(
        self,
        *,
        recipient_id: UUID,
        settlement_id: UUID,
        group_id: UUID,
        debtor_id: UUID,
        creditor_id: UUID,
        amount: Decimal,
    ) -> list[str]:
        return await self._emit([
            NotificationDraft(
                user_id=recipient_id,
                type=NotificationType.SETTLEMENT_RECORDED,
                title="Settlement recorded",
                message=f"A settlement of {to_money(amount)} was recorded",
                payload={
                    "group_id": str(group_id),
                    "settlement_id": str(settlement_id),
                    "debtor_id": str(debtor_id),
                    "creditor_id": str(creditor_id),
                    "amount": str(to_money(amount)),
                },
            ),
        ])

    async def _emit(self, drafts: list[NotificationDraft]) -> list[str]:
        if not drafts:
            return []
        try:
            for draft in drafts:
                self.db.add(Notification(
                    user_id=draft.user_id,
                    type=draft.type.value,
                    title=draft.title,
                    message=draft.message,
                    payload=draft.payload,
                ))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning(f"Failed to record notifications: {e}")
            return [f"Notifications could not be recorded ({type(e).__name__})"]

        outcomes = await asyncio.gather(
            *(
                self.dispatcher.dispatch(
                    draft.user_id, draft.type.value, draft.title,
                    draft.message, draft.payload,
                )
                for draft in drafts
            ),
            return_exceptions=True,
        )
        warnings = []
        for draft, outcome in zip(drafts, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(
                    f"Notification delivery failed: {outcome}",
                    extra={"user_id": draft.user_id},
                )
                warnings.append(
                    f"Delivery of '{draft.type.value}' to user {draft.user_id} failed",
                )
        return warnings
