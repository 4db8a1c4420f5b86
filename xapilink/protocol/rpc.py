"""Stateless codec between device replies and request/response envelopes.

The device wraps every leaf as ``{"Value": x, ...attributes}`` and every
command outcome in a ``CommandResponse`` envelope carrying a ``status``.
These helpers build outbound envelopes, classify raw replies and raise the
matching :mod:`xapilink.protocol.errors` type when a reply is a failure.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from .constants import (
    BODY_PARAM,
    COMMAND_RESPONSE_FIELD,
    CONFIGURATION_ROOT,
    ERROR_MARKER,
    RESULT_ID_FIELD,
    STATUS_ERROR,
    STATUS_FIELD,
    STATUS_OK,
    STATUS_PARAMETER_ERROR,
    STATUS_SCHEMA_ROOT,
    VALUE_FIELD,
)
from .errors import (
    CommandError,
    ErrorCode,
    IllegalValueError,
    InvalidPathError,
    InvalidResponseError,
    InvalidStatusError,
    ParameterError,
    XAPIError,
)
from .path import PathSegment
from .structures import ErrorPayload, ErrorResponse, Request, Response


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def collapse(data: Any) -> Any:
    """Replace every ``{"Value": scalar, ...}`` node with the scalar itself."""
    if isinstance(data, list):
        return [collapse(item) for item in data]
    if not isinstance(data, dict):
        return data
    if VALUE_FIELD in data and _is_scalar(data[VALUE_FIELD]):
        return data[VALUE_FIELD]
    return {key: collapse(value) for key, value in data.items()}


def parse_feedback_payload(response: Any) -> Any:
    return collapse(response)


def build_request(request_id: str | None, method: str, params: dict[str, Any] | None = None) -> Request:
    """Assemble an outbound request envelope.

    Raises ``ValueError`` when a parameter other than the body contains a
    newline, which neither wire encoding can carry.
    """
    checked: dict[str, Any] | None = None
    if params:
        checked = {}
        for key, value in params.items():
            if key != BODY_PARAM and isinstance(value, str) and "\n" in value:
                raise ValueError("Parameters may not contain newline characters")
            checked[key] = value
    return Request(method=method, id=request_id or None, params=checked)


def build_response(request_id: str | None, result: Any) -> Response:
    return Response(id=request_id, result=result)


def build_error_response(request_id: str | None, error: BaseException) -> ErrorResponse:
    """Turn an exception into an error envelope.

    :class:`XAPIError` keeps its code and data; any other exception is
    reported as an unknown error with its message.
    """
    if isinstance(error, XAPIError):
        payload = ErrorPayload(code=int(error.code), message=error.reason, data=error.data)
    else:
        payload = ErrorPayload(code=int(ErrorCode.UNKNOWN_ERROR), message=str(error) or type(error).__name__)
    return ErrorResponse(id=request_id, error=payload)


def _assert_success(response: Any, *, require_single: bool = False) -> Any:
    if not isinstance(response, dict):
        raise InvalidResponseError(f"Invalid command response: Unexpected type {type(response).__name__}")

    keys = [key for key in response if key != RESULT_ID_FIELD]
    if len(keys) > 1 or (require_single and not keys):
        raise InvalidResponseError(f"Invalid command response: Wrong number of keys ({len(keys)})")

    if COMMAND_RESPONSE_FIELD in response:
        return _assert_success(response[COMMAND_RESPONSE_FIELD], require_single=True)

    if not keys:
        return None

    root = response[keys[0]]
    if not isinstance(root, dict) or STATUS_FIELD not in root:
        return root

    status = root[STATUS_FIELD]
    if status == STATUS_ERROR:
        body = collapse(root)
        reason = body.get("Error") or body.get("Reason") or keys[0]
        xpath = body.get("XPath")
        if xpath:
            raise InvalidPathError(str(reason), str(xpath))
        raise CommandError(str(reason), body)
    if status == STATUS_PARAMETER_ERROR:
        raise ParameterError()
    if status == STATUS_OK:
        return root
    raise InvalidStatusError(f"Invalid command status: {status}")


def classify_command_result(response: Any) -> Any:
    """Return the single child of ``CommandResponse`` when its status is OK.

    Raises the typed error matching a failed status, or
    :class:`InvalidResponseError` when the envelope is malformed.
    """
    if not isinstance(response, dict) or COMMAND_RESPONSE_FIELD not in response:
        raise InvalidResponseError('Invalid command response: Missing "CommandResponse" attribute')
    return _assert_success(response)


def create_command_response(response: Any) -> Any:
    """Collapsed command result, or ``None`` when the result is empty."""
    collapsed = collapse(classify_command_result(response))
    return collapsed or None


def dig(path: Sequence[PathSegment], obj: Any) -> Any:
    """Walk *obj* along *path*; arrays are searched by element ``id``."""
    value = obj
    for part in path:
        if isinstance(value, list):
            value = next((item for item in value if _element_id(item) == part), None)
        elif isinstance(value, dict) and part in value:
            value = value[part]
        else:
            return None
    return value


def _element_id(item: Any) -> int | None:
    if not isinstance(item, dict):
        return None
    try:
        return int(item.get("id"))
    except (TypeError, ValueError):
        return None


def _request_path(request: Request) -> list[PathSegment]:
    params = request.params or {}
    return list(params.get("Path") or [])


def extract_get_value(request: Request, response: Any) -> Any:
    if isinstance(response, dict) and COMMAND_RESPONSE_FIELD in response:
        _assert_success(response[COMMAND_RESPONSE_FIELD])
    else:
        _assert_success(response)
    return dig(_request_path(request), collapse(response))


def extract_set_outcome(request: Request, response: Any) -> None:
    if isinstance(response, dict) and COMMAND_RESPONSE_FIELD in response:
        _assert_success(response[COMMAND_RESPONSE_FIELD])
    else:
        _assert_success(response)

    if isinstance(response, dict) and len(response) > 1:
        leaf = dig(_request_path(request), response)
        if isinstance(leaf, dict) and leaf.get("error") == ERROR_MARKER:
            raise IllegalValueError(str(leaf.get(VALUE_FIELD, "")))
    return None


def extract_document(request: Request, response: Any) -> Any:
    """Locate the requested sub-tree in an ``xDocument`` reply.

    The device answers status schema queries under ``StatusSchema`` and
    accepts abbreviated document roots, so the first path segment is
    rewritten before walking.
    """
    params = request.params or {}
    path = _request_path(request)
    if not path:
        return response

    document = str(path[0]).lower()
    if params.get("Type") == "Schema" and "status".startswith(document):
        path[0] = STATUS_SCHEMA_ROOT
    elif "configuration".startswith(document):
        path[0] = CONFIGURATION_ROOT
    return dig(path, response)


__all__ = [
    "build_error_response",
    "build_request",
    "build_response",
    "classify_command_result",
    "collapse",
    "create_command_response",
    "dig",
    "extract_document",
    "extract_get_value",
    "extract_set_outcome",
    "parse_feedback_payload",
]
