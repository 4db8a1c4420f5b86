"""Backend speaking the line-oriented device shell (TSH).

The session starts with a banner terminated by an ``OK`` line. The client
turns input echo off, waits for the second ``OK`` and switches the output
mode to JSON; from then on every reply is a JSON document. Replies to
calls carry the ``ResultId`` the client appended to the command line,
anything else is feedback.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

import msgspec
from transitions import Machine

from ..protocol import rpc
from ..protocol.constants import (
    BODY_PARAM,
    COMMAND_PREFIX,
    METHOD_DOC,
    METHOD_FEEDBACK_SUBSCRIBE,
    METHOD_FEEDBACK_UNSUBSCRIBE,
    METHOD_GET,
    METHOD_SET,
    RESULT_ID_FIELD,
    SHELL_DOCUMENT,
    SHELL_ECHO_OFF,
    SHELL_ENCODING,
    SHELL_FEEDBACK_DEREGISTER,
    SHELL_FEEDBACK_REGISTER,
    SHELL_OK_LINE,
    SHELL_OUTPUT_MODE_JSON,
)
from ..protocol.errors import ConnectionClosedError, JsonStreamError, ProtocolStateError
from ..protocol.parser import JsonStreamParser
from ..protocol.path import PathSegment
from ..protocol.structures import Request
from .base import BACKEND_SIGNALS, Backend, Sender

logger = logging.getLogger("xapilink.backend.shell")


def format_value(value: Any) -> str:
    """Render a parameter value the way the shell expects it."""
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, (int, float, str)):
        return msgspec.json.encode(value).decode(SHELL_ENCODING)
    raise TypeError(f"Invalid value {value!r}")


def format_param(key: str, value: Any) -> str:
    values = value if isinstance(value, (list, tuple)) else [value]
    return " ".join(f"{key}: {format_value(item)}" for item in values)


def format_params(params: dict[str, Any]) -> list[str]:
    return [format_param(key, params[key]) for key in sorted(params)]


def format_query(path: Sequence[PathSegment]) -> str:
    """``["Status", "Call", 3]`` becomes ``/Status/Call[3]``."""
    return "".join(f"[{part}]" if isinstance(part, int) else f"/{part}" for part in path)


class ShellBackend(Backend, asyncio.Protocol):
    """:class:`Backend` over a duplex byte stream talking to the device shell.

    The instance is an :class:`asyncio.Protocol`, so it can be handed to
    ``loop.create_connection`` or attached to an existing transport by
    passing it to the constructor.
    """

    if TYPE_CHECKING:
        # FSM generated methods and attributes for static analysis
        fsm_state: str
        start_connecting: Callable[[], None]
        banner_received: Callable[[], None]
        echo_disabled: Callable[[], None]
        transport_closed: Callable[[], None]

    STATE_IDLE = "idle"
    STATE_CONNECTING = "connecting"
    STATE_INITIALIZING = "initializing"
    STATE_READY = "ready"
    STATE_CLOSED = "closed"

    signal_names = BACKEND_SIGNALS + ("initializing",)

    def __init__(
        self,
        transport: asyncio.BaseTransport | None = None,
        *,
        logger_: logging.Logger | None = None,
    ) -> None:
        super().__init__(logger_=logger_ or logger)
        self.transport: asyncio.BaseTransport | None = None
        self._buffer = ""
        self._line_decoder = codecs.getincrementaldecoder(SHELL_ENCODING)(errors="replace")
        self._parser = JsonStreamParser(self._on_parse_error, logger_=self._logger)
        self._feedback_queries: dict[int, str] = {}
        self._next_feedback_id = 0

        self.state_machine = Machine(
            model=self,
            states=[
                self.STATE_IDLE,
                self.STATE_CONNECTING,
                {"name": self.STATE_INITIALIZING, "on_enter": "_on_fsm_initializing"},
                {"name": self.STATE_READY, "on_enter": "_on_fsm_ready"},
                self.STATE_CLOSED,
            ],
            initial=self.STATE_IDLE,
            ignore_invalid_triggers=True,
            model_attribute="fsm_state",
        )
        self.state_machine.add_transition(
            trigger="start_connecting", source=self.STATE_IDLE, dest=self.STATE_CONNECTING
        )
        self.state_machine.add_transition(
            trigger="banner_received", source=self.STATE_CONNECTING, dest=self.STATE_INITIALIZING
        )
        self.state_machine.add_transition(
            trigger="echo_disabled", source=self.STATE_INITIALIZING, dest=self.STATE_READY
        )
        self.state_machine.add_transition(trigger="transport_closed", source="*", dest=self.STATE_CLOSED)

        self.register_handler(COMMAND_PREFIX, self._handle_command)
        self.register_handler(METHOD_DOC, self._handle_document)
        self.register_handler(METHOD_FEEDBACK_SUBSCRIBE, self._handle_subscribe)
        self.register_handler(METHOD_FEEDBACK_UNSUBSCRIBE, self._handle_unsubscribe)
        self.register_handler(METHOD_GET, self._handle_get)
        self.register_handler(METHOD_SET, self._handle_set)

        if self.fsm_state != self.STATE_IDLE:
            self._ready.set_exception(ProtocolStateError("ShellBackend is not in an idle state"))
        else:
            self.start_connecting()

        if transport is not None:
            self.connection_made(transport)

    # --- FSM callbacks ---

    def _on_fsm_initializing(self) -> None:
        self._write(SHELL_ECHO_OFF)
        self.signals.initializing.emit()

    def _on_fsm_ready(self) -> None:
        self._buffer = ""
        self._write(SHELL_OUTPUT_MODE_JSON)
        self._mark_ready()

    # --- asyncio.Protocol ---

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        if self.transport is not None:
            self._logger.warning("Ignoring second transport for the same shell session")
            return
        self.transport = transport

    def data_received(self, data: bytes) -> None:
        state = self.fsm_state
        if state == self.STATE_CONNECTING:
            if self._buffer_has_ok(data):
                self._logger.debug("[transport] (connecting) %r", data, extra={"fsm_state": state})
                self.banner_received()
        elif state == self.STATE_INITIALIZING:
            if self._buffer_has_ok(data):
                self._logger.debug("[transport] (initializing) %r", data, extra={"fsm_state": state})
                self.echo_disabled()
        elif state == self.STATE_READY:
            self._logger.debug("to parser: %r", data, extra={"fsm_state": state})
            for document in self._parser.feed(data):
                self._on_document(document)
        else:
            self.signals.error.emit(ProtocolStateError(f"ShellBackend is in an invalid state for input: {state}"))

    def eof_received(self) -> bool | None:
        return None

    def connection_lost(self, exc: Exception | None) -> None:
        if self.fsm_state == self.STATE_READY:
            for document in self._parser.end():
                self._on_document(document)
        if exc is not None:
            self._logger.warning("Shell transport lost: %s", exc)
            self.signals.error.emit(exc)
        self.transport_closed()
        self._finish_close()

    # --- Backend ---

    def _close_transport(self) -> None:
        if self.transport is None or self.transport.is_closing():
            self.transport_closed()
            self._finish_close()
            return
        self.transport.close()

    def send(self, request_id: str | None, command: Any, body: str | None = None) -> None:
        line = f'{command} | resultId="{request_id}"\n'
        if body is not None:
            line += f"{body}\n"
            length = len(line.encode(SHELL_ENCODING))
            line = f"{{{length}}} \n{line}"
        self._write(line)

    def _write(self, text: str) -> None:
        transport = self.transport
        if transport is None or self._closed or transport.is_closing():
            raise ConnectionClosedError("Shell transport is not writable")
        self._logger.debug("write: %r", text)
        transport.write(text.encode(SHELL_ENCODING))  # type: ignore[attr-defined]

    def _buffer_has_ok(self, data: bytes | str) -> bool:
        text = self._line_decoder.decode(data) if isinstance(data, (bytes, bytearray)) else data
        lines = (self._buffer + text).split("\n")
        self._buffer = lines[-1]
        return any(line.rstrip("\r") == SHELL_OK_LINE for line in lines)

    def _on_document(self, document: Any) -> None:
        if isinstance(document, dict) and RESULT_ID_FIELD in document:
            self._logger.debug("[tsh] (result): %s", document, extra={"request_id": document[RESULT_ID_FIELD]})
            self.on_result(str(document[RESULT_ID_FIELD]), document)
        else:
            self._logger.debug("[tsh] (feedback): %s", document)
            self.on_feedback(rpc.parse_feedback_payload(document))

    def _on_parse_error(self, error: JsonStreamError) -> None:
        self._logger.warning("Discarding malformed shell output: %s", error)
        self.signals.error.emit(error)

    # --- request handlers ---

    async def _handle_command(self, request: Request, send: Sender) -> Any:
        params = dict(request.params or {})
        body = params.pop(BODY_PARAM, None)
        command = " ".join(request.method.split("/") + format_params(params))
        response = await send(command, None if body is None else str(body))
        return rpc.create_command_response(response)

    async def _handle_document(self, request: Request, send: Sender) -> Any:
        params = request.params or {}
        document_params = {
            "Format": "JSON",
            "Path": "/".join(str(part) for part in params.get("Path") or []),
            "Schema": "True" if params.get("Type") == "Schema" else "False",
        }
        response = await send(" ".join([SHELL_DOCUMENT] + format_params(document_params)))
        return rpc.extract_document(request, response)

    async def _handle_subscribe(self, request: Request, send: Sender) -> dict[str, int]:
        params = request.params or {}
        query = format_query(params.get("Query") or [])
        await send(f"{SHELL_FEEDBACK_REGISTER} {query}")
        feedback_id = self._next_feedback_id
        self._next_feedback_id += 1
        self._feedback_queries[feedback_id] = query
        return {"Id": feedback_id}

    async def _handle_unsubscribe(self, request: Request, send: Sender) -> bool:
        params = request.params or {}
        feedback_id = params.get("Id")
        if feedback_id not in self._feedback_queries:
            raise ValueError(f"Invalid feedback id: {feedback_id}")
        query = self._feedback_queries[feedback_id]
        await send(f"{SHELL_FEEDBACK_DEREGISTER} {query}")
        self._feedback_queries.pop(feedback_id, None)
        return True

    async def _handle_get(self, request: Request, send: Sender) -> Any:
        params = request.params or {}
        path = " ".join(str(part) for part in params.get("Path") or [])
        response = await send(f"x{path}")
        return rpc.extract_get_value(request, response)

    async def _handle_set(self, request: Request, send: Sender) -> None:
        params = request.params or {}
        path = " ".join(str(part) for part in params.get("Path") or [])
        value = format_value(params.get("Value"))
        response = await send(f"x{path}: {value}")
        return rpc.extract_set_outcome(request, response)


__all__ = ["ShellBackend", "format_param", "format_params", "format_query", "format_value"]
