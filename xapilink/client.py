"""User-facing XAPI facade.

:class:`XAPI` turns calls into request envelopes, hands them to a backend
and correlates the backend's response envelopes with the futures it gave
out. Feedback envelopes are routed to :class:`~xapilink.feedback.Feedback`.

Example::

    backend = ShellBackend()
    await loop.create_connection(lambda: backend, host, port)
    xapi = connect(backend)
    await xapi.ready
    volume = await xapi.status.get("Audio Volume")
    await xapi.command("Dial", {"Number": "user@example.com"})
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any

import msgspec

from .backend.base import Backend
from .components import Component, ComponentKind, PathBuilder
from .config.logging import resolve_level
from .config.settings import EngineConfig
from .feedback import Feedback, FeedbackInterceptor
from .protocol.constants import BODY_PARAM, COMMAND_PREFIX, METHOD_DOC, METHOD_FEEDBACK_EVENT
from .protocol.errors import ConnectionClosedError, XAPIError
from .protocol.path import Path, normalize_path
from .protocol.rpc import build_request
from .protocol.structures import Envelope, Request, Response
from .util.signals import SignalGroup

logger = logging.getLogger("xapilink.client")

_instance_ids = itertools.count(1)


class XAPI:
    """Request correlation and sub-tree access over one backend."""

    def __init__(
        self,
        backend: Backend,
        *,
        feedback_interceptor: FeedbackInterceptor | None = None,
        logger_: logging.Logger | None = None,
    ) -> None:
        self._logger = logger_ or logger
        self.backend = backend
        self.signals = SignalGroup("ready", "error", "close", logger_=self._logger)
        self._request_id = 1
        self._requests: dict[str, asyncio.Future[Any]] = {}

        self.feedback = Feedback(self, feedback_interceptor, logger_=self._logger)
        self.config = Component(self, ComponentKind.CONFIG)
        self.status = Component(self, ComponentKind.STATUS)
        self.event = Component(self, ComponentKind.EVENT)

        self.Command = PathBuilder(self.command)
        self.Config = PathBuilder(self.config)
        self.Status = PathBuilder(self.status)
        self.Event = PathBuilder(self.event)

        backend.signals.close.connect(self._on_close)
        backend.signals.error.connect(self._on_error)
        backend.signals.ready.connect(self._on_ready)
        backend.signals.data.connect(self.handle_response)

    @property
    def ready(self) -> asyncio.Future[bool]:
        return self.backend.readiness

    @property
    def pending(self) -> int:
        """Number of calls still waiting for a reply."""
        return len(self._requests)

    def close(self) -> XAPI:
        self.backend.close()
        return self

    def command(
        self,
        path: Path,
        params: dict[str, Any] | str | None = None,
        body: str | None = None,
    ) -> asyncio.Future[Any]:
        """Invoke the command at *path*.

        A string passed as *params* without a *body* is the multi-line
        body, e.g. ``xapi.command("UserInterface Message Prompt Display", text)``.
        """
        api_path = "/".join(str(segment) for segment in normalize_path(path))
        method = f"{COMMAND_PREFIX}/{api_path}"

        execute_params: dict[str, Any] | None
        if isinstance(params, str) and body is None:
            execute_params = {BODY_PARAM: params}
        elif isinstance(params, str):
            raise TypeError("Command parameters must be a mapping when a body is given")
        elif body is not None:
            execute_params = {BODY_PARAM: body, **(params or {})}
        else:
            execute_params = params
        return self.execute(method, execute_params)

    def doc(self, path: Path) -> asyncio.Future[Any]:
        return self.execute(METHOD_DOC, {"Path": normalize_path(path), "Type": "Schema"})

    def execute(self, method: str, params: dict[str, Any] | None = None) -> asyncio.Future[Any]:
        """Send *method* to the backend and return the future of its result.

        Raises ``ValueError`` right away when a parameter cannot be encoded.
        """
        request_id = self._next_request_id()
        request = build_request(request_id, method, params)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._requests[request_id] = future
        self.backend.execute(request)
        return future

    def handle_response(self, envelope: Envelope) -> None:
        if isinstance(envelope, Request):
            if envelope.method == METHOD_FEEDBACK_EVENT:
                self._logger.debug("feedback: %s", envelope.params)
                self.feedback.dispatch(envelope.params)
            else:
                self._logger.warning("Ignoring unexpected request from backend: %s", envelope.method)
            return

        future = self._requests.pop(envelope.id, None) if envelope.id is not None else None
        if future is None:
            self._logger.warning("Received response for unknown request id %r", envelope.id)
            return
        if future.done():
            return

        if isinstance(envelope, Response):
            self._logger.debug("result: %s", envelope)
            future.set_result(envelope.result)
        else:
            self._logger.debug("error: %s", envelope)
            future.set_exception(XAPIError.from_payload(msgspec.structs.asdict(envelope.error)))

    def _next_request_id(self) -> str:
        request_id = self._request_id
        self._request_id += 1
        return str(request_id)

    def _on_ready(self) -> None:
        self.signals.ready.emit(self)

    def _on_error(self, error: Any) -> None:
        self.signals.error.emit(error)

    def _on_close(self) -> None:
        pending = list(self._requests.values())
        self._requests.clear()
        if pending:
            self._logger.info("Connection closed with %d outstanding call(s)", len(pending))
        for future in pending:
            if not future.done():
                future.set_exception(ConnectionClosedError())
        self.signals.close.emit()


def connect(
    backend: Backend,
    config: EngineConfig | None = None,
    *,
    feedback_interceptor: FeedbackInterceptor | None = None,
) -> XAPI:
    """Build an :class:`XAPI` over an already constructed *backend*.

    Each instance logs through its own child of ``config.logger_name``
    (``xapilink.xapi1``, ...) at ``config.log_level``.
    """
    config = config or EngineConfig()
    instance_logger = logging.getLogger(f"{config.logger_name}.xapi{next(_instance_ids)}")
    instance_logger.setLevel(resolve_level(config.log_level))
    return XAPI(backend, feedback_interceptor=feedback_interceptor, logger_=instance_logger)


__all__ = ["XAPI", "connect"]
