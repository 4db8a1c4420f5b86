"""Error taxonomy for XAPI calls and backend-level failures."""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    UNKNOWN_ERROR = 0
    COMMAND_ERROR = 1
    ILLEGAL_VALUE = 2
    INVALID_PATH = 3
    PARAMETER_ERROR = 4
    INVALID_RESPONSE = 5
    INVALID_STATUS = 6
    METHOD_NOT_FOUND = -32601


class XAPIError(Exception):
    """Error raised for a single XAPI call, carrying a numeric code."""

    code: int

    def __init__(self, code: int, reason: str, data: Any = None) -> None:
        if not isinstance(reason, str):
            raise TypeError("Reason for XAPIError must be a string")
        if isinstance(code, bool) or not isinstance(code, int):
            raise TypeError("Error code for XAPIError must be a number")
        super().__init__(reason)
        self.code = code
        self.reason = reason
        self.data = data

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code}, reason={self.reason!r})"

    @classmethod
    def from_payload(cls, payload: Any) -> XAPIError:
        """Rebuild a typed error from an error envelope payload."""
        if not isinstance(payload, dict):
            return XAPIError(ErrorCode.UNKNOWN_ERROR, str(payload))

        code = payload.get("code", ErrorCode.UNKNOWN_ERROR)
        message = str(payload.get("message", ""))
        data = payload.get("data")
        if isinstance(code, bool) or not isinstance(code, int):
            code = ErrorCode.UNKNOWN_ERROR

        if code == ErrorCode.INVALID_PATH:
            xpath = data.get("xpath", "") if isinstance(data, dict) else ""
            return InvalidPathError(message, str(xpath))
        if code == ErrorCode.ILLEGAL_VALUE:
            return IllegalValueError(message)
        if code == ErrorCode.PARAMETER_ERROR:
            error: XAPIError = ParameterError()
            error.data = data
            return error

        error_type = _ERROR_TYPES.get(code)
        if error_type is None:
            return XAPIError(code, message, data)
        return error_type(message, data)


class CommandError(XAPIError):
    def __init__(self, reason: str, data: Any = None) -> None:
        super().__init__(ErrorCode.COMMAND_ERROR, reason, data)


class IllegalValueError(XAPIError):
    def __init__(self, reason: str) -> None:
        super().__init__(ErrorCode.ILLEGAL_VALUE, reason)


class InvalidPathError(XAPIError):
    def __init__(self, reason: str, xpath: str) -> None:
        super().__init__(ErrorCode.INVALID_PATH, reason, {"xpath": xpath})

    @property
    def xpath(self) -> str:
        return self.data["xpath"]


class ParameterError(XAPIError):
    def __init__(self) -> None:
        super().__init__(ErrorCode.PARAMETER_ERROR, "Invalid or missing parameters")


class InvalidResponseError(XAPIError):
    def __init__(self, reason: str, data: Any = None) -> None:
        super().__init__(ErrorCode.INVALID_RESPONSE, reason, data)


class InvalidStatusError(XAPIError):
    def __init__(self, reason: str, data: Any = None) -> None:
        super().__init__(ErrorCode.INVALID_STATUS, reason, data)


class MethodNotFoundError(XAPIError):
    def __init__(self, reason: str, data: Any = None) -> None:
        super().__init__(ErrorCode.METHOD_NOT_FOUND, reason, data)


class ConnectionClosedError(XAPIError):
    """Raised into calls still outstanding when the connection goes away."""

    def __init__(self, reason: str = "Connection closed", data: Any = None) -> None:
        super().__init__(ErrorCode.UNKNOWN_ERROR, reason, data)


class JsonStreamError(ValueError):
    """Malformed or truncated document in the inbound JSON stream."""

    def __init__(self, message: str, position: int | None = None) -> None:
        super().__init__(message)
        self.position = position


class ProtocolStateError(RuntimeError):
    """Inbound data arrived while the backend could not accept it."""


_ERROR_TYPES: dict[int, type[Any]] = {
    ErrorCode.COMMAND_ERROR: CommandError,
    ErrorCode.INVALID_RESPONSE: InvalidResponseError,
    ErrorCode.INVALID_STATUS: InvalidStatusError,
    ErrorCode.METHOD_NOT_FOUND: MethodNotFoundError,
}


__all__ = [
    "CommandError",
    "ConnectionClosedError",
    "ErrorCode",
    "IllegalValueError",
    "InvalidPathError",
    "InvalidResponseError",
    "InvalidStatusError",
    "JsonStreamError",
    "MethodNotFoundError",
    "ParameterError",
    "ProtocolStateError",
    "XAPIError",
]
