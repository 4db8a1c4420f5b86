"""Tests for engine settings loading."""

import pytest

from xapilink.config.settings import EngineConfig, load_config, load_config_from_env


def test_defaults() -> None:
    config = load_config()
    assert config == EngineConfig()
    assert config.log_level == "warn"
    assert config.structured_logs is True
    assert config.logger_name == "xapilink"


def test_level_is_case_insensitive() -> None:
    assert load_config({"log_level": " DEBUG "}).log_level == "debug"


@pytest.mark.parametrize(
    "raw",
    [
        {"log_level": "verbose"},
        {"syslog": "maybe"},
        {"unknown_key": 1},
    ],
)
def test_invalid_settings_raise_value_error(raw) -> None:
    """Bad values and unknown keys are reported as ValueError."""
    with pytest.raises(ValueError, match="Invalid xapilink configuration"):
        load_config(raw)


def test_environment_overrides_level() -> None:
    """XAPILINK_LOG_LEVEL wins over the mapping."""
    config = load_config_from_env({"log_level": "info"}, {"XAPILINK_LOG_LEVEL": "Trace"})
    assert config.log_level == "trace"
    assert load_config_from_env({"log_level": "info"}, {}).log_level == "info"


def test_config_is_frozen() -> None:
    config = EngineConfig()
    with pytest.raises(AttributeError):
        config.log_level = "debug"  # type: ignore[misc]
