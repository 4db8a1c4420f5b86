"""Backend forwarding JSON-RPC envelopes over a WebSocket connection.

The device side of the WebSocket already speaks the envelope format, so
requests are sent verbatim and inbound messages are decoded and emitted
as they are. Opening and authenticating the connection is the caller's
job; the backend is ready as soon as it is constructed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

import msgspec
from websockets.exceptions import ConnectionClosed, ConnectionClosedError

from ..protocol.rpc import build_error_response
from ..protocol.structures import Request, encode_envelope, parse_envelope
from .base import Backend

logger = logging.getLogger("xapilink.backend.envelope")


class MessageConnection(Protocol):
    """Surface of ``websockets`` client connections used by the backend."""

    async def send(self, message: str) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> Any: ...


class EnvelopeBackend(Backend):
    def __init__(self, connection: MessageConnection, *, logger_: logging.Logger | None = None) -> None:
        super().__init__(logger_=logger_ or logger)
        self._connection = connection
        self._close_task: asyncio.Task[None] | None = None
        self._ready.set_result(True)
        self._loop.call_soon(self.signals.ready.emit)
        self._reader = self._loop.create_task(self._read_loop(), name="xapilink-envelope-reader")

    def execute(self, request: Request) -> asyncio.Task[None]:
        return self._loop.create_task(self._forward(request), name=f"xapilink-request-{request.id}")

    async def _forward(self, request: Request) -> None:
        await self._ready
        try:
            text = encode_envelope(request).decode("utf-8")
            self._logger.debug("send: %s", text, extra={"request_id": request.id})
            await self._connection.send(text)
        except ConnectionClosed as exc:
            self._logger.debug("Request %s not sent: %s", request.id, exc)
            self._emit(build_error_response(request.id, exc))
        except Exception as exc:
            self._logger.warning("Request %s could not be sent: %s", request.id, exc)
            self._emit(build_error_response(request.id, exc))

    async def _read_loop(self) -> None:
        try:
            async for message in self._connection:
                self._handle_message(message)
        except ConnectionClosedError as exc:
            self._logger.warning("WebSocket closed unexpectedly: %s", exc)
            self.signals.error.emit(exc)
        finally:
            self._finish_close()

    def _handle_message(self, message: str | bytes) -> None:
        self._logger.debug("recv: %s", message)
        try:
            envelope = parse_envelope(msgspec.json.decode(message))
        except (msgspec.DecodeError, msgspec.ValidationError) as exc:
            self._logger.warning("Ignoring malformed envelope: %s", exc)
            self.signals.error.emit(exc)
            return
        self._emit(envelope)

    def _close_transport(self) -> None:
        if self._close_task is None:
            self._close_task = self._loop.create_task(self._connection.close(), name="xapilink-envelope-close")


__all__ = ["EnvelopeBackend", "MessageConnection"]
