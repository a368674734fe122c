"""Invitation Service — create, accept, decline and sweep group invitations.

Invariants:
    - Every transition starts from pending; accepted/declined/expired are terminal
    - An expired invitation never produces a Member row
    - Accept inserts the Member and flips the invitation in ONE transaction
    - Stale pending rows are expired before any read or create that could see them
    - Notifications only after commit; their failures become warnings

Design Decisions:
    - Group row locked FOR UPDATE on create: serialises the duplicate-invitation
      check per group; the partial unique index is the backstop
    - Invitation row locked FOR UPDATE on accept/decline: two accepts of one
      token serialise, the loser sees a terminal status
    - Already-member acceptance is a benign no-op (already_member=True)
    - Resend never extends expires_at or mints a new token; it only re-notifies
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.domain_types import InvitationStatus, MemberRole
from app.core.errors import ErrorContext, NotFoundError, StateConflictError, ValidationError
from app.core.invitation_rules import (
    Eligibility, check_response_eligibility, compute_expiry,
    ensure_can_invite, normalize_email,
)
from app.core.repository_protocols import Clock
from app.models.invitation import Invitation
from app.models.user import User
from app.services.membership import (
    email_is_member, get_group_or_404, insert_member_if_absent,
    load_roster, require_member,
)
from app.services.notification_emitter import NotificationEmitter

logger = logging.getLogger(__name__)

DEFAULT_INVITATION_TTL = timedelta(days=7)


@dataclass(frozen=True)
class InvitationCreated:
    invitation_id: UUID
    token: str
    expires_at: datetime
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class InvitationAccepted:
    group_id: UUID
    role: str
    already_member: bool
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class InvitationResent:
    invitation_id: UUID
    expires_at: datetime
    delivered: bool
    warnings: list[str] = field(default_factory=list)


async def expire_stale_invitations(
    db: AsyncSession, now: datetime, group_id: UUID | None = None,
) -> int:
    """Transition pending invitations past expiry to expired. Does not commit."""
    stmt = (
        update(Invitation)
        .where(Invitation.status == InvitationStatus.PENDING.value)
        .where(Invitation.expires_at <= now)
        .values(status=InvitationStatus.EXPIRED.value, responded_at=now)
        .execution_options(synchronize_session=False)
    )
    if group_id is not None:
        stmt = stmt.where(Invitation.group_id == group_id)
    result = await db.execute(stmt)
    return result.rowcount or 0


class InvitationService:
    """Invitation lifecycle over the invitations and group_members tables."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock,
        emitter: NotificationEmitter,
        ttl: timedelta = DEFAULT_INVITATION_TTL,
    ):
        self.db = db
        self.clock = clock
        self.emitter = emitter
        self.ttl = ttl

    async def create_invitation(
        self,
        group_id: UUID,
        inviter_id: UUID,
        invitee_email: str,
        role: str = MemberRole.MEMBER.value,
        expires_in: timedelta | None = None,
    ) -> InvitationCreated:
        email = normalize_email(invitee_email)
        if role not in {r.value for r in MemberRole}:
            raise ValidationError(f"Unknown role '{role}'", "role")
        now = self.clock.now()
        expires_at = compute_expiry(now, expires_in or self.ttl)

        try:
            group = await get_group_or_404(self.db, group_id, for_update=True)
            group_name = group.name
            roster = await load_roster(self.db, group_id)
            ensure_can_invite(inviter_id, group.created_by, roster.get(inviter_id))

            if await email_is_member(self.db, group_id, email):
                raise StateConflictError(
                    f"{email} is already a member of this group", "ALREADY_MEMBER",
                )
            await self._expire_pair(group_id, email, now)
            if await self._has_pending(group_id, email):
                raise StateConflictError(
                    f"An active invitation for {email} already exists",
                    "INVITATION_EXISTS",
                )

            invitation = Invitation(
                group_id=group_id,
                inviter_id=inviter_id,
                invitee_email=email,
                invited_role=role,
                status=InvitationStatus.PENDING.value,
                token=secrets.token_urlsafe(32),
                created_at=now,
                expires_at=expires_at,
            )
            self.db.add(invitation)
            await self.db.flush()
            invitation_id = invitation.id
            token = invitation.token
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise StateConflictError(
                f"An active invitation for {email} already exists",
                "INVITATION_EXISTS",
            ) from e
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Invitation created",
            extra={"group_id": group_id, "user_id": inviter_id,
                   "invitation_id": invitation_id},
        )

        warnings: list[str] = []
        invitee = await self.db.execute(select(User.id).where(User.email == email))
        invitee_id = invitee.scalar_one_or_none()
        if invitee_id is not None:
            warnings = await self.emitter.group_invitation(
                invitee_id=invitee_id,
                invitation_id=invitation_id,
                group_id=group_id,
                group_name=group_name,
            )
        return InvitationCreated(
            invitation_id=invitation_id,
            token=token,
            expires_at=expires_at,
            warnings=warnings,
        )

    async def accept_invitation(
        self, token: str, caller_id: UUID, caller_email: str,
    ) -> InvitationAccepted:
        now = self.clock.now()
        try:
            invitation = await self._load_for_response(token, caller_email, now)
            group_id = invitation.group_id
            inviter_id = invitation.inviter_id
            role = invitation.invited_role

            inserted = await insert_member_if_absent(
                self.db, group_id, caller_id, role, now,
            )
            invitation.status = InvitationStatus.ACCEPTED.value
            invitation.accepted_at = now
            invitation.responded_at = now
            group = await get_group_or_404(self.db, group_id)
            group_name = group.name
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Invitation accepted" if inserted else "Invitation accepted by existing member",
            extra={"group_id": group_id, "user_id": caller_id},
        )
        warnings = await self.emitter.invitation_accepted(
            inviter_id=inviter_id,
            group_id=group_id,
            group_name=group_name,
            accepter_email=caller_email.strip().lower(),
        )
        return InvitationAccepted(
            group_id=group_id,
            role=role,
            already_member=not inserted,
            warnings=warnings,
        )

    async def decline_invitation(
        self, token: str, caller_id: UUID, caller_email: str,
    ) -> Invitation:
        now = self.clock.now()
        try:
            invitation = await self._load_for_response(token, caller_email, now)
            invitation.status = InvitationStatus.DECLINED.value
            invitation.responded_at = now
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info(
            "Invitation declined",
            extra={"group_id": invitation.group_id, "user_id": caller_id},
        )
        return invitation

    async def resend_invitation(
        self, group_id: UUID, caller_id: UUID, invitee_email: str,
    ) -> InvitationResent:
        """Remind the invitee of their latest invitation; it must still be pending."""
        email = normalize_email(invitee_email)
        now = self.clock.now()
        try:
            group = await get_group_or_404(self.db, group_id)
            group_name = group.name
            roster = await load_roster(self.db, group_id)
            ensure_can_invite(caller_id, group.created_by, roster.get(caller_id))

            await self._expire_pair(group_id, email, now)
            result = await self.db.execute(
                select(Invitation)
                .where(Invitation.group_id == group_id)
                .where(Invitation.invitee_email == email)
                .order_by(Invitation.created_at.desc())
                .limit(1)
                .execution_options(populate_existing=True),
            )
            invitation = result.scalar_one_or_none()
            # keep the stale-pending sweep even when the resend is refused
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        if invitation is None:
            raise NotFoundError("Invitation", email)
        if invitation.status != InvitationStatus.PENDING.value:
            raise StateConflictError(
                f"No pending invitation for {email} (status: {invitation.status})",
                "INVITATION_NOT_PENDING",
                ErrorContext(group_id=str(group_id)),
            )
        invitation_id = invitation.id
        expires_at = invitation.expires_at

        invitee = await self.db.execute(select(User.id).where(User.email == email))
        invitee_id = invitee.scalar_one_or_none()
        if invitee_id is None:
            logger.info(
                "Reminder skipped: invitee has no account yet",
                extra={"group_id": group_id, "invitation_id": invitation_id},
            )
            return InvitationResent(
                invitation_id=invitation_id,
                expires_at=expires_at,
                delivered=False,
                warnings=[f"{email} has no account yet; share the invitation link directly"],
            )

        warnings = await self.emitter.invitation_reminder(
            invitee_id=invitee_id,
            invitation_id=invitation_id,
            group_id=group_id,
            group_name=group_name,
            expires_at=expires_at,
        )
        logger.info(
            "Invitation reminder sent",
            extra={"group_id": group_id, "user_id": caller_id,
                   "invitation_id": invitation_id},
        )
        return InvitationResent(
            invitation_id=invitation_id,
            expires_at=expires_at,
            delivered=not warnings,
            warnings=warnings,
        )

    async def list_pending_invitations(
        self, group_id: UUID, caller_id: UUID,
    ) -> list[Invitation]:
        await get_group_or_404(self.db, group_id)
        await require_member(self.db, group_id, caller_id)
        expired = await expire_stale_invitations(self.db, self.clock.now(), group_id)
        if expired:
            await self.db.commit()
        result = await self.db.execute(
            select(Invitation)
            .where(Invitation.group_id == group_id)
            .where(Invitation.status == InvitationStatus.PENDING.value)
            .order_by(Invitation.created_at)
            .execution_options(populate_existing=True),
        )
        return list(result.scalars().all())

    async def _load_for_response(
        self, token: str, caller_email: str, now: datetime,
    ) -> Invitation:
        """Lock the invitation and check it may be answered. Commits an expiry."""
        result = await self.db.execute(
            select(Invitation)
            .where(Invitation.token == token)
            .with_for_update()
            .execution_options(populate_existing=True),
        )
        invitation = result.scalar_one_or_none()
        if not invitation:
            raise NotFoundError("Invitation", token[:8])

        eligibility = check_response_eligibility(
            invitation.status, invitation.expires_at,
            invitation.invitee_email, caller_email, now,
        )
        if eligibility is Eligibility.EXPIRED:
            invitation.status = InvitationStatus.EXPIRED.value
            invitation.responded_at = now
            group_id = invitation.group_id
            await self.db.commit()
            raise StateConflictError(
                "Invitation has expired", "INVITATION_EXPIRED",
                ErrorContext(group_id=str(group_id)),
            )
        return invitation

    async def _expire_pair(self, group_id: UUID, email: str, now: datetime) -> None:
        await self.db.execute(
            update(Invitation)
            .where(Invitation.group_id == group_id)
            .where(Invitation.invitee_email == email)
            .where(Invitation.status == InvitationStatus.PENDING.value)
            .where(Invitation.expires_at <= now)
            .values(status=InvitationStatus.EXPIRED.value, responded_at=now)
            .execution_options(synchronize_session=False),
        )

    async def _has_pending(self, group_id: UUID, email: str) -> bool:
        result = await self.db.execute(
            select(Invitation.id)
            .where(Invitation.group_id == group_id)
            .where(Invitation.invitee_email == email)
            .where(Invitation.status == InvitationStatus.PENDING.value),
        )
        return result.first() is not None
