"""Structured Logging — JSON lines carrying ledger context (account, item, stage).

Invariants:
    - Every line has timestamp, level, logger and message
    - Ledger context keys passed via `extra=` appear as top-level JSON keys, and only
      when set
    - setup_logging replaces earlier handlers, so repeated startups do not duplicate lines

Design Decisions:
    - Formatter on stdlib logging: callers keep using logging.getLogger(__name__)
    - SQLAlchemy engine logging pinned to WARNING; SQL echo is never on in production
"""

import json
import logging
from datetime import datetime, timezone

# Context keys services pass through `extra=`
LEDGER_CONTEXT_KEYS = (
    "account_id", "item_id", "transaction_id", "amount",
    "stage", "tier", "error_code", "path",
)

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s — %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, getattr(record, key))
            for key in LEDGER_CONTEXT_KEYS
            if getattr(record, key, None) is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Install a single stream handler on the root logger."""
    handler = logging.StreamHandler()
    handler.setFormatter(
        JSONFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT),
    )
    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
