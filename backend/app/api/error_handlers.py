"""Error Handlers — global exception handlers for the ledger API.

Invariants:
    - LedgerError → its own http_status + to_response() envelope
    - RequestValidationError → 400 with field-level details (same envelope shape)
    - Exception (catch-all) → 500, never leaks internal details
    - Client errors log at WARNING, server-side failures at ERROR

Design Decisions:
    - Handlers checked most specific first: LedgerError, then RequestValidationError, then Exception
    - Retry-After header derived from ErrorContext.retry_after_ms on conflicts
"""

import logging
import math
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from app.core.errors import ErrorCategory, ErrorSeverity, LedgerError, ValidationError

logger = logging.getLogger(__name__)

_TRANSPORT_PREFIXES = ("body", "query", "path")


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_ledger_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _register_ledger_error_handler(app: FastAPI) -> None:

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        level = logging.ERROR if exc.http_status >= 500 else logging.WARNING
        logger.log(
            level,
            f"{type(exc).__name__}: {exc.message}",
            extra={
                "error_code": exc.code,
                "path": request.url.path,
                "group_id": exc.context.group_id,
                "user_id": exc.context.user_id,
            },
        )
        content = exc.to_response()
        if isinstance(exc, ValidationError):
            content["error"]["details"] = [{"field": exc.field, "message": exc.message}]

        headers = None
        if exc.context.retry_after_ms:
            headers = {"Retry-After": str(math.ceil(exc.context.retry_after_ms / 1000))}
        return JSONResponse(
            status_code=exc.http_status, content=content, headers=headers,
        )


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        details = [
            {"field": _field_path(e["loc"]), "message": e["msg"], "type": e["type"]}
            for e in exc.errors()
        ]
        logger.warning(
            f"Rejected request with {len(details)} invalid field(s)",
            extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
        )
        body = _envelope(
            "VALIDATION_ERROR", "Invalid request data",
            ErrorCategory.VALIDATION.value, ErrorSeverity.ERROR,
        )
        body["error"]["details"] = details
        return JSONResponse(status_code=400, content=body)


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        # Traceback goes to the log only
        logger.error(
            f"Unhandled {type(exc).__name__}",
            exc_info=True,
            extra={"error_code": "INTERNAL_ERROR", "path": request.url.path},
        )
        return JSONResponse(
            status_code=500,
            content=_envelope(
                "INTERNAL_ERROR", "An unexpected error occurred",
                "internal", ErrorSeverity.CRITICAL,
            ),
        )


def _envelope(code: str, message: str, category: str, severity: ErrorSeverity) -> dict:
    """Same shape as LedgerError.to_response(), for errors raised outside the domain."""
    return {"error": {
        "code": code,
        "message": message,
        "category": category,
        "severity": severity.value,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }}


def _field_path(loc: tuple) -> str:
    """('body', 'splits', 0, 'amount') -> 'splits.0.amount'."""
    return ".".join(str(part) for part in loc if part not in _TRANSPORT_PREFIXES)
