"""Protocol helpers: paths, JSON stream parsing, envelopes and errors."""

from . import constants, errors, rpc, structures
from .errors import ErrorCode, JsonStreamError, ProtocolStateError, XAPIError
from .parser import JsonStreamParser, parse_json
from .path import NormalizedPath, Path, PathSegment, event_key, normalize_path
from .structures import ErrorPayload, ErrorResponse, Request, Response, parse_envelope

__all__ = [
    "ErrorCode",
    "ErrorPayload",
    "ErrorResponse",
    "JsonStreamError",
    "JsonStreamParser",
    "NormalizedPath",
    "Path",
    "PathSegment",
    "ProtocolStateError",
    "Request",
    "Response",
    "XAPIError",
    "constants",
    "errors",
    "event_key",
    "normalize_path",
    "parse_envelope",
    "parse_json",
    "rpc",
    "structures",
]
