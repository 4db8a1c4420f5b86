"""Logging helpers for xapilink."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from logging import Handler
from logging.config import dictConfig
from logging.handlers import SysLogHandler
from pathlib import Path
from typing import Any, Final

import msgspec

from .settings import EngineConfig

SYSLOG_SOCKET = Path("/dev/log")
SYSLOG_SOCKET_FALLBACK = Path("/var/run/log")

TRACE: Final[int] = 5
SILENT: Final[int] = logging.CRITICAL + 10

LEVELS: Final[dict[str, int]] = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "silent": SILENT,
}

logging.addLevelName(TRACE, "TRACE")

_RESERVED_LOG_KEYS = {
    "args",
    "asctime",
    "created",
    "exc_info",
    "exc_text",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "msg",
    "name",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "taskName",
    "thread",
    "threadName",
}


def resolve_level(name: str) -> int:
    try:
        return LEVELS[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown log level: {name}") from None


def _serialise_value(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, bytes):
        # Wire chunks are logged as text when they decode cleanly.
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return f"[{value.hex(' ').upper()}]"
    return str(value)


class StructuredLogFormatter(logging.Formatter):
    """One JSON object per record.

    Request correlation fields passed through ``extra`` (``request_id``,
    ``fsm_state``) and the asyncio task name are lifted to the top level.
    Other extras are nested under ``extra``.
    """

    PREFIX = "xapilink."
    CORRELATION_FIELDS: Final[tuple[str, ...]] = ("request_id", "fsm_state")

    def format(self, record: logging.LogRecord) -> str:
        logger_name = record.name
        if logger_name.startswith(self.PREFIX):
            logger_name = logger_name[len(self.PREFIX) :]

        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": logger_name,
            "message": record.getMessage(),
        }
        task_name = getattr(record, "taskName", None)
        if task_name:
            payload["task"] = task_name
        for field in self.CORRELATION_FIELDS:
            value = record.__dict__.get(field)
            if value is not None:
                payload[field] = _serialise_value(value)

        extras = {
            key: _serialise_value(value)
            for key, value in record.__dict__.items()
            if key not in _RESERVED_LOG_KEYS and key not in self.CORRELATION_FIELDS and not key.startswith("_")
        }
        if extras:
            payload["extra"] = extras

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return msgspec.json.encode(payload).decode("utf-8")


def _build_handler(use_syslog: bool = False) -> Handler:
    if not use_syslog or os.environ.get("XAPILINK_LOG_STREAM"):
        return logging.StreamHandler()

    for candidate in (SYSLOG_SOCKET, SYSLOG_SOCKET_FALLBACK):
        if candidate.exists():
            syslog_handler = SysLogHandler(
                address=str(candidate),
                facility=SysLogHandler.LOG_USER,
            )
            syslog_handler.ident = "xapilink "
            return syslog_handler
    return logging.StreamHandler()


def configure_logging(config: EngineConfig) -> None:
    """Install the xapilink handler on the configured logger."""

    level = resolve_level(config.log_level)
    formatter: dict[str, Any]
    if config.structured_logs:
        formatter = {"()": "xapilink.config.logging.StructuredLogFormatter"}
    else:
        formatter = {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"}

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"xapilink": formatter},
            "handlers": {
                "xapilink": {
                    "()": _build_handler,
                    "use_syslog": config.syslog,
                    "level": level,
                    "formatter": "xapilink",
                }
            },
            "loggers": {
                config.logger_name: {
                    "level": level,
                    "handlers": ["xapilink"],
                    "propagate": False,
                }
            },
        }
    )

    logging.getLogger(config.logger_name).info("Logging configured at level %s", config.log_level)


__all__ = ["LEVELS", "SILENT", "TRACE", "StructuredLogFormatter", "configure_logging", "resolve_level"]
