"""xapilink package initialisation."""

__version__ = "1.0.0"

from .backend import Backend, EnvelopeBackend, ShellBackend
from .client import XAPI, connect
from .config import EngineConfig, configure_logging, load_config
from .feedback import Feedback, FeedbackGroup, Registration
from .protocol.errors import (
    CommandError,
    ConnectionClosedError,
    ErrorCode,
    IllegalValueError,
    InvalidPathError,
    InvalidResponseError,
    InvalidStatusError,
    MethodNotFoundError,
    ParameterError,
    XAPIError,
)
from .protocol.path import normalize_path

__all__ = [
    "Backend",
    "CommandError",
    "ConnectionClosedError",
    "EngineConfig",
    "EnvelopeBackend",
    "ErrorCode",
    "Feedback",
    "FeedbackGroup",
    "IllegalValueError",
    "InvalidPathError",
    "InvalidResponseError",
    "InvalidStatusError",
    "MethodNotFoundError",
    "ParameterError",
    "Registration",
    "ShellBackend",
    "XAPI",
    "XAPIError",
    "__version__",
    "connect",
    "configure_logging",
    "load_config",
    "normalize_path",
]
