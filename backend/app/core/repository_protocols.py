"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Time and outbound delivery accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Clock injected rather than calling datetime.now() in services: expiry
      scenarios are testable without sleeping
"""

from datetime import datetime
from typing import Protocol
from uuid import UUID


class Clock(Protocol):
    """Source of timezone-aware UTC timestamps."""
    def now(self) -> datetime: ...


class NotificationDispatcher(Protocol):
    """Best-effort outbound delivery (email relay, webhook) — implemented by shell."""
    async def dispatch(
        self, user_id: UUID, notification_type: str, title: str,
        message: str, payload: dict,
    ) -> None: ...
