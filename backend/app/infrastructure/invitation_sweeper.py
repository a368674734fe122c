"""Invitation Sweeper — periodic pending -> expired transition in the background.

Invariants:
    - Each pass runs in its own session and transaction
    - A failed pass is logged and the loop continues; only cancellation stops it
    - interval <= 0 means the sweeper is never started

Design Decisions:
    - Reads also sweep on demand (services/invitation_service.py); this task only
      keeps the table tidy between reads
    - asyncio.Task owned by the FastAPI lifespan, cancelled on shutdown
"""

import asyncio
import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import LedgerError
from app.core.repository_protocols import Clock
from app.services.invitation_service import expire_stale_invitations

logger = logging.getLogger(__name__)


class InvitationSweeper:
    """Owns the background task that expires stale invitations."""

    def __init__(
        self,
        session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]],
        clock: Clock,
        interval_seconds: float,
    ):
        self.session_factory = session_factory
        self.clock = clock
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_once(self) -> int:
        async with self.session_factory() as db:
            expired = await expire_stale_invitations(db, self.clock.now())
            await db.commit()
        if expired:
            logger.info(f"Expired {expired} stale invitation(s)")
        return expired

    def start(self) -> None:
        if self.interval_seconds <= 0 or self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("Invitation sweeper had already failed")

    async def _run(self) -> None:
        while True:
            try:
                await self.sweep_once()
            except asyncio.CancelledError:
                raise
            except LedgerError as e:
                logger.warning(
                    f"Invitation sweep failed: {e.message}",
                    extra={"error_code": e.code},
                )
            except Exception:
                logger.exception("Invitation sweep crashed; retrying next interval")
            await asyncio.sleep(self.interval_seconds)
