"""Wire-level constants shared by the codec, backends and facade."""

from __future__ import annotations

from typing import Final

JSONRPC_VERSION: Final[str] = "2.0"

# Request methods understood by every backend.
COMMAND_PREFIX: Final[str] = "xCommand"
METHOD_GET: Final[str] = "xGet"
METHOD_SET: Final[str] = "xSet"
METHOD_DOC: Final[str] = "xDoc"
METHOD_FEEDBACK_SUBSCRIBE: Final[str] = "xFeedback/Subscribe"
METHOD_FEEDBACK_UNSUBSCRIBE: Final[str] = "xFeedback/Unsubscribe"
METHOD_FEEDBACK_EVENT: Final[str] = "xFeedback/Event"

# Reserved parameter carrying a multi-line command body.
BODY_PARAM: Final[str] = "body"

# Device reply fields.
RESULT_ID_FIELD: Final[str] = "ResultId"
COMMAND_RESPONSE_FIELD: Final[str] = "CommandResponse"
VALUE_FIELD: Final[str] = "Value"
STATUS_FIELD: Final[str] = "status"
STATUS_OK: Final[str] = "OK"
STATUS_ERROR: Final[str] = "Error"
STATUS_PARAMETER_ERROR: Final[str] = "ParameterError"
ERROR_MARKER: Final[str] = "True"

# Shell (TSH) session handshake.
SHELL_OK_LINE: Final[str] = "OK"
SHELL_ECHO_OFF: Final[str] = "echo off\n"
SHELL_OUTPUT_MODE_JSON: Final[str] = "xpreferences outputmode json\n"
SHELL_FEEDBACK_REGISTER: Final[str] = "xfeedback register"
SHELL_FEEDBACK_DEREGISTER: Final[str] = "xfeedback deregister"
SHELL_DOCUMENT: Final[str] = "xDocument"
SHELL_ENCODING: Final[str] = "utf-8"

# Sub-tree prefixes of the device API.
CONFIGURATION_ROOT: Final[str] = "Configuration"
STATUS_ROOT: Final[str] = "Status"
EVENT_ROOT: Final[str] = "Event"
STATUS_SCHEMA_ROOT: Final[str] = "StatusSchema"

__all__ = [
    "BODY_PARAM",
    "COMMAND_PREFIX",
    "COMMAND_RESPONSE_FIELD",
    "CONFIGURATION_ROOT",
    "ERROR_MARKER",
    "EVENT_ROOT",
    "JSONRPC_VERSION",
    "METHOD_DOC",
    "METHOD_FEEDBACK_EVENT",
    "METHOD_FEEDBACK_SUBSCRIBE",
    "METHOD_FEEDBACK_UNSUBSCRIBE",
    "METHOD_GET",
    "METHOD_SET",
    "RESULT_ID_FIELD",
    "SHELL_DOCUMENT",
    "SHELL_ECHO_OFF",
    "SHELL_ENCODING",
    "SHELL_FEEDBACK_DEREGISTER",
    "SHELL_FEEDBACK_REGISTER",
    "SHELL_OK_LINE",
    "SHELL_OUTPUT_MODE_JSON",
    "STATUS_ERROR",
    "STATUS_FIELD",
    "STATUS_OK",
    "STATUS_PARAMETER_ERROR",
    "STATUS_ROOT",
    "STATUS_SCHEMA_ROOT",
    "VALUE_FIELD",
]
