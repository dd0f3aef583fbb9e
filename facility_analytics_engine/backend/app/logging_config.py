# backend/app/logging_config.py
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from .middleware.request_context import get_request_id

# Structured fields our code passes via `extra=`; anything else stays in the message.
EXTRA_FIELDS = (
    "project_id",
    "criteria_id",
    "row_index",
    "processed",
    "failed",
    "method",
    "path",
    "status_code",
    "latency_ms",
)


class JsonFormatter(logging.Formatter):
    """One JSON object per line, tagged with the current request id when there is one."""

    def format(self, record: logging.LogRecord) -> str:
        out: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        rid = get_request_id()
        if rid:
            out["request_id"] = rid

        for k in EXTRA_FIELDS:
            v = getattr(record, k, None)
            if v is not None:
                out[k] = v

        if record.exc_info:
            out["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(out, ensure_ascii=False, default=str)


def configure_logging(level: Optional[str] = None) -> None:
    """
    Route everything through a single stdout JSON handler.

    Safe to call more than once (app factory, celery worker, uvicorn --reload):
    our own handler is swapped, nothing else on the root logger is touched.
    """
    lvl = (level or os.getenv("LOG_LEVEL") or "INFO").upper()

    root = logging.getLogger()
    root.setLevel(lvl)
    for h in list(root.handlers):
        if getattr(h, "_facility_analytics", False):
            root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    handler._facility_analytics = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    logging.getLogger("sqlalchemy.engine").setLevel((os.getenv("SQL_LOG_LEVEL") or "WARNING").upper())
    logging.getLogger("celery").setLevel(lvl)
