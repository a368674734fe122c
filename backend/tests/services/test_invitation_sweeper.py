"""Invitation Sweeper — background pending -> expired transition."""

import asyncio
import logging
from datetime import timedelta

from sqlalchemy import select

from app.infrastructure.invitation_sweeper import InvitationSweeper
from app.models.invitation import Invitation
from app.services.invitation_service import InvitationService


async def test_sweep_once_expires_stale_rows(
    test_db, test_session_factory, clock, emitter, seeded,
):
    """One sweep flips a pending invitation past its expiry to expired."""
    service = InvitationService(test_db, clock, emitter)
    await service.create_invitation(
        seeded.group_id, seeded.alice, "dave@example.com",
        expires_in=timedelta(seconds=1),
    )
    clock.advance(2)

    sweeper = InvitationSweeper(test_session_factory, clock, interval_seconds=60)
    assert await sweeper.sweep_once() == 1

    status = (await test_db.execute(select(Invitation.status))).scalar_one()
    assert status == "expired"


async def test_disabled_sweeper_never_starts(test_session_factory, clock):
    """An interval of zero disables the background task."""
    sweeper = InvitationSweeper(test_session_factory, clock, interval_seconds=0)
    sweeper.start()
    assert not sweeper.running
    await sweeper.stop()


async def test_start_and_stop(test_session_factory, clock):
    """start() schedules the loop and stop() cancels it."""
    sweeper = InvitationSweeper(test_session_factory, clock, interval_seconds=3600)
    sweeper.start()
    await asyncio.sleep(0)
    assert sweeper.running
    await sweeper.stop()
    assert not sweeper.running


def _refusing_factory():
    raise OSError("connection refused")


async def test_unexpected_error_is_logged_and_loop_survives(clock, caplog):
    """A non-ledger failure (store unreachable) is logged; the task keeps running."""
    sweeper = InvitationSweeper(_refusing_factory, clock, interval_seconds=0.01)
    with caplog.at_level(logging.ERROR, logger="app.infrastructure.invitation_sweeper"):
        sweeper.start()
        await asyncio.sleep(0.05)
        assert sweeper.running
        await sweeper.stop()
    assert not sweeper.running
    assert any("Invitation sweep crashed" in r.getMessage() for r in caplog.records)


async def test_stop_absorbs_an_already_failed_task(clock):
    """Shutdown never re-raises whatever killed the background task."""
    async def boom():
        raise OSError("connection refused")

    sweeper = InvitationSweeper(_refusing_factory, clock, interval_seconds=60)
    sweeper._task = asyncio.create_task(boom())
    await asyncio.sleep(0)
    await sweeper.stop()
    assert not sweeper.running
