"""API Dependencies — verified identity, clock, dispatcher and service factories.

Invariants:
    - Every ledger route runs as a CurrentUser built from gateway headers
    - Missing or malformed identity headers -> AuthenticationError (401)
    - The caller's users row is upserted (and committed) before the route body runs
    - Services share the request's AsyncSession; no state outlives the request

Design Decisions:
    - get_clock / get_dispatcher are separate dependencies so tests override them
      via app.dependency_overrides without touching services
    - Identity arrives from an upstream gateway: this service never sees credentials
"""

from dataclasses import dataclass
from datetime import timedelta
from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.errors import AuthenticationError, ValidationError
from app.core.invitation_rules import normalize_email
from app.core.repository_protocols import Clock, NotificationDispatcher
from app.infrastructure.clock import SystemClock
from app.infrastructure.database import get_db
from app.infrastructure.notification_delivery import build_dispatcher
from app.services.balance_calculator import BalanceCalculator
from app.services.invitation_service import InvitationService
from app.services.ledger_store import LedgerStore
from app.services.membership import upsert_user
from app.services.notification_emitter import NotificationEmitter
from app.services.notification_inbox import NotificationInbox
from app.services.settlement_allocator import SettlementAllocator

_system_clock = SystemClock()


@dataclass(frozen=True)
class CurrentUser:
    id: UUID
    email: str
    display_name: str | None = None


def get_clock() -> Clock:
    return _system_clock


def get_dispatcher() -> NotificationDispatcher:
    settings = get_settings()
    return build_dispatcher(
        settings.notification_webhook_url, settings.notification_timeout_seconds,
    )


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    x_user_id: str | None = Header(None, alias="X-User-Id"),
    x_user_email: str | None = Header(None, alias="X-User-Email"),
    x_user_name: str | None = Header(None, alias="X-User-Name"),
) -> CurrentUser:
    """Resolve the gateway-verified caller and mirror it into users."""
    if not x_user_id or not x_user_email:
        raise AuthenticationError()
    try:
        user_id = UUID(x_user_id)
        email = normalize_email(x_user_email)
    except (ValueError, ValidationError) as e:
        raise AuthenticationError("Invalid identity headers") from e

    await upsert_user(db, user_id, email, x_user_name)
    await db.commit()
    return CurrentUser(id=user_id, email=email, display_name=x_user_name)


def get_emitter(
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> NotificationEmitter:
    return NotificationEmitter(db, dispatcher)


def get_ledger_store(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    emitter: NotificationEmitter = Depends(get_emitter),
) -> LedgerStore:
    return LedgerStore(db, clock, emitter, get_settings().split_tolerance)


def get_balance_calculator(db: AsyncSession = Depends(get_db)) -> BalanceCalculator:
    return BalanceCalculator(db)


def get_settlement_allocator(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    emitter: NotificationEmitter = Depends(get_emitter),
) -> SettlementAllocator:
    settings = get_settings()
    return SettlementAllocator(
        db, clock, emitter,
        max_retries=settings.settle_max_retries,
        base_delay_ms=settings.settle_base_delay_ms,
        max_delay_ms=settings.settle_max_delay_ms,
        lock_timeout_ms=settings.settle_lock_timeout_ms,
    )


def get_invitation_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    emitter: NotificationEmitter = Depends(get_emitter),
) -> InvitationService:
    return InvitationService(
        db, clock, emitter, timedelta(hours=get_settings().invitation_ttl_hours),
    )


def get_notification_inbox(db: AsyncSession = Depends(get_db)) -> NotificationInbox:
    return NotificationInbox(db)
