"""Configuration helpers for xapilink."""

from .logging import configure_logging, resolve_level
from .settings import EngineConfig, load_config, load_config_from_env

__all__ = ["EngineConfig", "configure_logging", "load_config", "load_config_from_env", "resolve_level"]
