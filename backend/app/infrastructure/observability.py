"""Structured Logging — JSON formatter and one-shot setup for the ledger service.

Invariants:
    - Every line has timestamp (from the record, UTC), level, logger and message
    - Ledger extras (group_id, user_id, error_code, attempt, settled_amount,
      invitation_id, path) are surfaced as strings when present
    - setup_logging is idempotent: repeated lifespans never duplicate handlers

Design Decisions:
    - stdlib logging + JSONFormatter: services log with `extra=`, never format JSON themselves
    - Chatty client libraries (httpx, sqlalchemy.engine) pinned to WARNING
"""

import json
import logging
from datetime import datetime, timezone

LEDGER_EXTRA_FIELDS = (
    "group_id", "user_id", "error_code", "attempt",
    "settled_amount", "invitation_id", "path",
)

_HANDLER_NAME = "ledger"
_QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in LEDGER_EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = str(value)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s - %(message)s",
        ))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
