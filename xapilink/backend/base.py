"""Transport-independent request dispatch shared by every backend."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

from ..protocol.constants import COMMAND_PREFIX, METHOD_FEEDBACK_EVENT
from ..protocol.errors import ConnectionClosedError, MethodNotFoundError
from ..protocol.rpc import build_error_response, build_response
from ..protocol.structures import Envelope, Request
from ..util.signals import SignalGroup

logger = logging.getLogger("xapilink.backend")

Sender = Callable[..., "asyncio.Future[Any]"]
Handler = Callable[[Request, Sender], Any]

BACKEND_SIGNALS: tuple[str, ...] = ("ready", "error", "close", "data")


class Backend:
    """Base class for transport adapters.

    A subclass implements :meth:`send` to put a handler's command on the
    wire, calls :meth:`on_result` when the matching reply arrives and
    :meth:`on_feedback` for unsolicited event payloads. Request handlers
    are registered per request type with :meth:`register_handler`.

    Instances must be created while an event loop is running.
    """

    signal_names: tuple[str, ...] = BACKEND_SIGNALS

    def __init__(self, *, logger_: logging.Logger | None = None) -> None:
        self._logger = logger_ or logger
        self.signals = SignalGroup(*self.signal_names, logger_=self._logger)
        self._loop = asyncio.get_running_loop()
        self._ready: asyncio.Future[bool] = self._loop.create_future()
        self._requests: dict[str | None, asyncio.Future[Any]] = {}
        self._handlers: dict[str, Handler] = {}
        self._closing = False
        self._closed = False

    @property
    def readiness(self) -> asyncio.Future[bool]:
        """Future resolved once requests may be sent."""
        return self._ready

    @property
    def closed(self) -> bool:
        return self._closed

    def register_handler(self, request_type: str, handler: Handler) -> None:
        self._handlers[request_type] = handler

    def get_request_type(self, request: Request) -> str:
        if request.method.startswith(COMMAND_PREFIX):
            return COMMAND_PREFIX
        return request.method

    async def default_handler(self, request: Request, send: Sender) -> Any:
        raise MethodNotFoundError(f"Invalid request method: {request.method}")

    def execute(self, request: Request) -> asyncio.Task[None]:
        """Dispatch *request* to its handler.

        Exactly one response or error envelope is emitted on
        ``signals.data`` for the request, once the handler completes.
        """
        handler = self._handlers.get(self.get_request_type(request), self.default_handler)
        return self._loop.create_task(
            self._run_handler(request, handler),
            name=f"xapilink-request-{request.id}",
        )

    async def _run_handler(self, request: Request, handler: Handler) -> None:
        request_id = request.id
        log_extra = {"request_id": request_id}
        try:
            await self._ready
        except asyncio.CancelledError:
            if not self._ready.cancelled():
                raise
            self._logger.debug("Dropping request %s; backend closed before ready", request_id, extra=log_extra)
            return

        reply: asyncio.Future[Any] = self._loop.create_future()
        self._requests[request_id] = reply

        def send(command: Any, body: str | None = None) -> asyncio.Future[Any]:
            self.send(request_id, command, body)
            return reply

        self._logger.debug("Request: %s", request, extra=log_extra)
        try:
            result = handler(request, send)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            self._logger.debug("Request %s failed: %r", request_id, exc, extra=log_extra)
            self._emit(build_error_response(request_id, exc))
        else:
            self._logger.debug("Request %s succeeded: %r", request_id, result, extra=log_extra)
            self._emit(build_response(request_id, result))
        finally:
            if self._requests.get(request_id) is reply:
                del self._requests[request_id]

    def send(self, request_id: str | None, command: Any, body: str | None = None) -> None:
        raise NotImplementedError("Backend subclasses must implement send()")

    def on_result(self, request_id: str | None, result: Any) -> None:
        """Resolve the reply future of the request identified by *request_id*."""
        reply = self._requests.pop(request_id, None)
        if reply is None:
            self._logger.warning("Discarding result for unknown request id %r", request_id)
            return
        if not reply.done():
            reply.set_result(result)

    def on_feedback(self, payload: Any) -> None:
        self._emit(Request(method=METHOD_FEEDBACK_EVENT, params=payload))

    def _emit(self, envelope: Envelope) -> None:
        if self._closed:
            self._logger.debug("Backend closed; dropping %s", type(envelope).__name__)
            return
        self.signals.data.emit(envelope)

    def _mark_ready(self) -> None:
        if self._ready.done():
            return
        self._ready.set_result(True)
        self.signals.ready.emit()

    def close(self) -> None:
        """Close the underlying transport; safe to call more than once."""
        if self._closing:
            return
        self._closing = True
        self._close_transport()

    def _close_transport(self) -> None:
        self._finish_close()

    def _finish_close(self) -> None:
        if self._closed:
            return
        self._closing = True
        self._closed = True
        if not self._ready.done():
            self._ready.cancel()
        pending = list(self._requests.values())
        self._requests.clear()
        for reply in pending:
            if not reply.done():
                reply.set_exception(ConnectionClosedError())
        self.signals.close.emit()


__all__ = ["BACKEND_SIGNALS", "Backend", "Handler", "Sender"]
