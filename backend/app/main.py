"""Ledger API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map LedgerError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup and disposed on shutdown via lifespan
    - The invitation sweeper runs only when invitation_sweep_interval_seconds > 0

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api/error_handlers.py, registered once here
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.dependencies import get_clock
from app.api.error_handlers import register_error_handlers
from app.api.routes import (
    balances, expenses, groups, health, invitations, notifications, settlements,
)
from app.config import get_settings
from app.infrastructure import database
from app.infrastructure.invitation_sweeper import InvitationSweeper
from app.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    database.init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    sweeper = InvitationSweeper(
        database.db_manager.session, get_clock(),
        settings.invitation_sweep_interval_seconds,
    )
    sweeper.start()
    app.state.invitation_sweeper = sweeper
    logger.info("Ledger API started")
    yield
    logger.info("Ledger API shutting down")
    await sweeper.stop()
    await database.db_manager.dispose()


app = FastAPI(title="Ledger API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes: explicit registration
app.include_router(health.router)
app.include_router(groups.router)
app.include_router(expenses.router)
app.include_router(balances.router)
app.include_router(settlements.router)
app.include_router(invitations.router)
app.include_router(notifications.router)

register_error_handlers(app)
