"""Settlement Concurrency Guard — advisory pair lock plus bounded lock-contention retry.

Invariants:
    - acquire_pair_lock serializes settle() per ordered (group, debtor, creditor);
      unrelated pairs never block each other
    - The advisory lock is transaction-scoped: released by COMMIT/ROLLBACK only
    - retry_on_lock_contention rolls back the whole attempt before retrying
    - Only lock contention is retried; every other error propagates unchanged
    - Exhausted retry budget -> ConcurrencyConflictError (never silent)

Design Decisions:
    - Dialects without advisory locks (SQLite tests) skip the pair lock; the
      compare-and-swap update in the allocator keeps settlement at-most-once
    - Exponential backoff with ±25% jitter: prevents thundering herd on a hot pair
    - lock_timeout set per transaction so a stuck holder surfaces as a
      retryable error instead of hanging the request
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar
from uuid import UUID

from sqlalchemy import func, select, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.allocation import settlement_lock_key
from app.core.errors import ConcurrencyConflictError, ErrorContext
from app.infrastructure.database import dialect_name

logger = logging.getLogger(__name__)

T = TypeVar("T")

# lock_not_available, deadlock_detected, serialization_failure
_CONTENTION_SQLSTATES = frozenset({"55P03", "40P01", "40001"})


def is_lock_contention(exc: DBAPIError) -> bool:
    """True for errors caused by competing transactions rather than bad input."""
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _CONTENTION_SQLSTATES:
        return True
    return "database is locked" in str(orig).lower()


def backoff_delay_seconds(
    attempt: int, base_delay_ms: int, max_delay_ms: int,
) -> float:
    delay_ms = min(base_delay_ms * (2 ** attempt), max_delay_ms)
    jitter = delay_ms * 0.25 * (2 * random.random() - 1)
    return max(delay_ms + jitter, 0) / 1000


async def acquire_pair_lock(
    db: AsyncSession,
    group_id: UUID,
    debtor_id: UUID,
    creditor_id: UUID,
    lock_timeout_ms: int,
) -> bool:
    """Take the transaction-scoped advisory lock for the pair. Returns False if unsupported."""
    if dialect_name(db) != "postgresql":
        return False
    await db.execute(text(f"SET LOCAL lock_timeout = {int(lock_timeout_ms)}"))
    key = settlement_lock_key(group_id, debtor_id, creditor_id)
    await db.execute(select(func.pg_advisory_xact_lock(key)))
    return True


async def retry_on_lock_contention(
    db: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int,
    base_delay_ms: int,
    max_delay_ms: int,
    context: ErrorContext | None = None,
) -> T:
    """Run operation, retrying the whole transaction on lock contention."""
    for attempt in range(max_retries + 1):
        try:
            return await operation()
        except DBAPIError as e:
            await db.rollback()
            if not is_lock_contention(e):
                raise
            if attempt >= max_retries:
                logger.error(
                    f"Lock contention persisted after {attempt + 1} attempts",
                    extra={"attempt": attempt + 1},
                )
                context = context or ErrorContext()
                context.retry_after_ms = max_delay_ms
                raise ConcurrencyConflictError(
                    "Settlement is busy for this member pair; try again",
                    context=context,
                ) from e
            delay = backoff_delay_seconds(attempt, base_delay_ms, max_delay_ms)
            logger.warning(
                f"Lock contention, retrying in {delay:.3f}s",
                extra={"attempt": attempt + 1},
            )
            await asyncio.sleep(delay)
    raise AssertionError("unreachable")
