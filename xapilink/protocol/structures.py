"""Envelope structures exchanged between the facade and the backends."""

from __future__ import annotations

from typing import Any, Union

import msgspec

from .constants import JSONRPC_VERSION


class Request(msgspec.Struct, omit_defaults=True):
    """Outbound call, or an inbound feedback event when ``id`` is unset."""

    method: str
    id: str | None = None
    params: dict[str, Any] | None = None
    jsonrpc: str = JSONRPC_VERSION


class ErrorPayload(msgspec.Struct, omit_defaults=True):
    code: int
    message: str
    data: Any = None


class Response(msgspec.Struct):
    id: str | None
    result: Any
    jsonrpc: str = JSONRPC_VERSION


class ErrorResponse(msgspec.Struct):
    id: str | None
    error: ErrorPayload
    jsonrpc: str = JSONRPC_VERSION


Envelope = Union[Request, Response, ErrorResponse]


def parse_envelope(raw: Any) -> Envelope:
    """Convert a decoded JSON object into the matching envelope type.

    Raises ``msgspec.ValidationError`` when the object does not fit any of
    the envelope shapes.
    """
    if not isinstance(raw, dict):
        raise msgspec.ValidationError(f"Expected an envelope object, got {type(raw).__name__}")
    if "method" in raw:
        return msgspec.convert(raw, Request)
    if "error" in raw:
        return msgspec.convert(raw, ErrorResponse)
    if "result" in raw:
        return msgspec.convert(raw, Response)
    raise msgspec.ValidationError("Envelope carries neither method, result nor error")


def encode_envelope(envelope: Envelope) -> bytes:
    payload = msgspec.to_builtins(envelope)
    # The version member is always on the wire, default or not.
    payload["jsonrpc"] = envelope.jsonrpc
    return msgspec.json.encode(payload)


__all__ = [
    "Envelope",
    "ErrorPayload",
    "ErrorResponse",
    "Request",
    "Response",
    "encode_envelope",
    "parse_envelope",
]
