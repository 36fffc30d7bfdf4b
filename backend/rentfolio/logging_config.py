# backend/rentfolio/logging_config.py
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from .config import Settings, settings as default_settings
from .middleware.request_id import get_request_id

# attributes every LogRecord has; anything else came in through `extra=`
_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime", "request_id"}


class RequestIdFilter(logging.Filter):
    """Stamps the current request id (or None outside a request) onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line: ts, level, logger, message, request_id when in a
    request, exc_info on errors, plus every `extra=` field (sync_status,
    record_id, property_id, tab, rows, ...).
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        rid = getattr(record, "request_id", None)
        if rid:
            payload["request_id"] = rid
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        for k, v in record.__dict__.items():
            if k not in _RESERVED and not k.startswith("_"):
                payload[k] = v

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(cfg: Optional[Settings] = None) -> None:
    cfg = cfg or default_settings
    level = cfg.log_level.upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIdFilter())
    if cfg.log_format.lower() == "text":
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s"))
    else:
        handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    # uvicorn --reload calls this again; never stack handlers
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    root.setLevel(level)

    logging.getLogger("uvicorn.access").setLevel(level)
    logging.getLogger("httpx").setLevel(cfg.httpx_log_level.upper())
    logging.getLogger("sqlalchemy.engine").setLevel(cfg.sql_log_level.upper())
