"""Engine settings.

Settings come from a plain mapping (for example parsed from a file by the
embedding application) and are validated with ``msgspec``. The only
environment override is ``XAPILINK_LOG_LEVEL``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any, Final, Literal

import msgspec

logger = logging.getLogger("xapilink.config.settings")

LogLevelName = Literal["trace", "debug", "info", "warn", "error", "silent"]

ENV_LOG_LEVEL: Final[str] = "XAPILINK_LOG_LEVEL"
DEFAULT_LOG_LEVEL: Final[str] = "warn"
DEFAULT_LOGGER_NAME: Final[str] = "xapilink"


class EngineConfig(msgspec.Struct, frozen=True, forbid_unknown_fields=True):
    """Strongly typed settings for one engine instance."""

    log_level: LogLevelName = "warn"
    structured_logs: bool = True
    syslog: bool = False
    logger_name: str = DEFAULT_LOGGER_NAME


def load_config(raw: Mapping[str, Any] | None = None) -> EngineConfig:
    """Validate *raw* into an :class:`EngineConfig`.

    Raises ``ValueError`` with the validation message when a field has the
    wrong type, an unknown log level or an unknown key.
    """
    data = dict(raw or {})
    level = data.get("log_level")
    if isinstance(level, str):
        data["log_level"] = level.strip().lower()
    try:
        return msgspec.convert(data, EngineConfig, strict=False)
    except msgspec.ValidationError as exc:
        raise ValueError(f"Invalid xapilink configuration: {exc}") from exc


def load_config_from_env(
    raw: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> EngineConfig:
    env = os.environ if environ is None else environ
    data = dict(raw or {})
    override = env.get(ENV_LOG_LEVEL)
    if override:
        logger.debug("Log level overridden from %s=%s", ENV_LOG_LEVEL, override)
        data["log_level"] = override
    return load_config(data)


__all__ = [
    "DEFAULT_LOGGER_NAME",
    "DEFAULT_LOG_LEVEL",
    "ENV_LOG_LEVEL",
    "EngineConfig",
    "LogLevelName",
    "load_config",
    "load_config_from_env",
]
