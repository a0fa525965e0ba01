from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any

from storefront.core.config import Settings

_STANDARD_ATTRS = set(logging.makeLogRecord({}).__dict__.keys()) | {"message", "asctime"}

# Keys services pass in ``extra`` that identify the shopper and the records
# touched; they are lifted to the top level so log queries can filter on them.
DOMAIN_FIELDS = ("user_id", "identity", "cart_id", "order_id", "item_id", "quantity")

# Keys the request middleware emits, grouped under "http".
HTTP_FIELDS = ("method", "path", "status_code", "duration_ms", "client_ip", "request_id")


class JsonFormatter(logging.Formatter):
    """One JSON object per record.

    Layout: ``timestamp``, ``level``, ``logger``, ``service``, ``message``, the
    domain fields that were set, an ``http`` block for request logs, an
    ``alert`` flag for security alerts and whatever else remains under
    ``extra``.
    """

    def __init__(self, service: str | None = None) -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }
        if self.service:
            payload["service"] = self.service
        payload["message"] = record.getMessage()

        extra = {key: value for key, value in record.__dict__.items() if key not in _STANDARD_ATTRS}

        for key in DOMAIN_FIELDS:
            if key in extra:
                payload[key] = extra.pop(key)

        http = {key: extra.pop(key) for key in HTTP_FIELDS if key in extra}
        if http:
            payload["http"] = http

        if extra.pop("alert", False):
            payload["alert"] = True
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = record.stack_info

        return json.dumps(payload, default=str)


def setup_logging(settings: Settings) -> None:
    """Apply centralized logging configuration."""
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging_config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": JsonFormatter,
                "service": settings.PROJECT_NAME,
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "json",
            }
        },
        "root": {
            "handlers": ["default"],
            "level": level,
        },
        "loggers": {
            "storefront": {"level": level},
            # failed logins and rejected tokens are always kept
            "storefront.security": {"level": min(level, logging.WARNING)},
            "uvicorn.error": {"level": level},
            "uvicorn.access": {"handlers": ["default"], "level": level, "propagate": False},
            "sqlalchemy.engine": {"level": logging.INFO if settings.DB_ECHO else logging.WARNING},
        },
    }

    logging.config.dictConfig(logging_config)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def security_alert(message: str, **context: Any) -> None:
    """Warn on ``storefront.security`` with ``alert`` set, for alerting rules."""
    get_logger("storefront.security").warning(message, extra={"alert": True, **context})
