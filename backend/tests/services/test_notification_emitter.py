"""Notification Emitter — persistence, concurrent delivery and warnings.

Tests cover:
    - Deliveries to several recipients are in flight at the same time
    - A failed delivery becomes a warning for that recipient only
    - Stored notifications survive delivery failures
"""

import asyncio
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import func, select

from app.core.expense_rules import SplitLine
from app.infrastructure.notification_delivery import DeliveryError
from app.models.notification import Notification
from app.services.notification_emitter import NotificationEmitter


class GateDispatcher:
    """Each delivery waits until `expected` deliveries have started."""

    def __init__(self, expected: int, failing: set | None = None):
        self.expected = expected
        self.failing = failing or set()
        self.started = 0
        self.all_started = asyncio.Event()

    async def dispatch(self, user_id, notification_type, title, message, payload):
        self.started += 1
        if self.started >= self.expected:
            self.all_started.set()
        await self.all_started.wait()
        if user_id in self.failing:
            raise DeliveryError("relay unavailable")


async def _expense_added(emitter, seeded):
    return await emitter.expense_added(
        expense_id=uuid4(),
        group_id=seeded.group_id,
        group_name="Trip",
        payer_id=seeded.alice,
        description="Dinner",
        splits=[
            SplitLine(seeded.alice, Decimal("30")),
            SplitLine(seeded.bob, Decimal("30")),
            SplitLine(seeded.carol, Decimal("30")),
        ],
    )


async def test_deliveries_run_concurrently(test_db, seeded):
    """Both recipients are dispatched before either delivery finishes."""
    dispatcher = GateDispatcher(expected=2)
    emitter = NotificationEmitter(test_db, dispatcher)

    warnings = await asyncio.wait_for(_expense_added(emitter, seeded), timeout=2)

    assert warnings == []
    assert dispatcher.started == 2


async def test_one_failed_delivery_warns_for_that_recipient_only(test_db, seeded):
    """The failing recipient gets a warning; the other delivery still succeeds."""
    dispatcher = GateDispatcher(expected=2, failing={seeded.bob})
    emitter = NotificationEmitter(test_db, dispatcher)

    warnings = await asyncio.wait_for(_expense_added(emitter, seeded), timeout=2)

    assert len(warnings) == 1
    assert str(seeded.bob) in warnings[0]
    stored = (await test_db.execute(
        select(func.count()).select_from(Notification),
    )).scalar_one()
    assert stored == 2
