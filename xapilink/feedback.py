"""Feedback (event) subscriptions and dispatch.

Listeners are keyed by the lower-case, slash-joined normalized path. A
feedback payload is walked recursively and every node is offered to the
listeners registered at the node's path. Array elements are offered
twice, once at the array's own path and once at the path extended with
the element ``id``, so both ``Status/Call/Status`` and
``Status/Call[42]/Status`` match a change on call 42.

Example::

    off = xapi.feedback.on("Status/Audio/Volume", on_volume)
    ...
    off()  # listener stops firing immediately
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from .protocol.constants import METHOD_FEEDBACK_SUBSCRIBE, METHOD_FEEDBACK_UNSUBSCRIBE
from .protocol.path import Path, PathSegment, event_key, normalize_path
from .util.signals import Signal

if TYPE_CHECKING:
    from .client import XAPI

logger = logging.getLogger("xapilink.feedback")

Listener = Callable[[Any, Any], Any]
Emit = Callable[..., None]
FeedbackInterceptor = Callable[[Any, Emit], None]
Deregister = Callable[[], None]


def default_interceptor(payload: Any, emit: Emit) -> None:
    emit(payload)


class Registration:
    """Deregister handle returned by :meth:`Feedback.on`.

    Calling the handle removes the listener at once and unsubscribes on
    the device as soon as the subscribe call has produced an id.
    """

    def __init__(self, feedback: Feedback, key: str, listener: Listener, registration: asyncio.Future[Any]) -> None:
        self.key = key
        self.listener = listener
        self.registration = registration
        self._feedback = feedback
        self._active = True
        self._disconnect = feedback.channel(key).connect(self._deliver)
        registration.add_done_callback(self._on_registered)

    def __repr__(self) -> str:
        return f"Registration({self.key!r}, id={self.id}, active={self._active})"

    @property
    def active(self) -> bool:
        return self._active

    @property
    def id(self) -> int | None:
        """Subscription id assigned by the backend, once known."""
        future = self.registration
        if not future.done() or future.cancelled() or future.exception() is not None:
            return None
        result = future.result()
        if isinstance(result, dict):
            return result.get("Id")
        return None

    def _deliver(self, data: Any, root: Any) -> None:
        subscription_id = self.id
        if subscription_id is not None and isinstance(root, dict) and "Id" in root:
            if root["Id"] != subscription_id:
                return
        self.listener(data, root)

    def _on_registered(self, future: asyncio.Future[Any]) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            self._feedback.logger.warning("Feedback subscription for %s failed: %s", self.key, exc)

    def __call__(self) -> None:
        if not self._active:
            return
        self._active = False
        self._disconnect()
        self._feedback.release(self.key)
        self.registration.add_done_callback(self._unsubscribe)

    def _unsubscribe(self, future: asyncio.Future[Any]) -> None:
        subscription_id = self.id
        if subscription_id is None:
            return
        self._feedback.unsubscribe(subscription_id)


class FeedbackGroup:
    """Bookkeeping container for deregister handles."""

    def __init__(self, handlers: Iterable[Deregister] = ()) -> None:
        self.handlers: list[Deregister] = list(handlers)

    def __len__(self) -> int:
        return len(self.handlers)

    def add(self, handler: Deregister) -> FeedbackGroup:
        self.handlers.append(handler)
        return self

    def remove(self, handler: Deregister) -> FeedbackGroup:
        self.handlers = [item for item in self.handlers if item is not handler]
        return self

    def off(self) -> FeedbackGroup:
        for handler in self.handlers:
            handler()
        self.handlers = []
        return self


class Feedback:
    """Subscription table and dispatcher bound to one :class:`XAPI`."""

    def __init__(
        self,
        xapi: XAPI,
        interceptor: FeedbackInterceptor | None = None,
        *,
        logger_: logging.Logger | None = None,
    ) -> None:
        self.xapi = xapi
        self.interceptor = interceptor or default_interceptor
        self.logger = logger_ or logger
        self._channels: dict[str, Signal] = {}

    def channel(self, key: str) -> Signal:
        channel = self._channels.get(key)
        if channel is None:
            channel = self._channels[key] = Signal(key, logger_=self.logger)
        return channel

    def release(self, key: str) -> None:
        channel = self._channels.get(key)
        if channel is not None and not len(channel):
            del self._channels[key]

    def listener_count(self, path: Path) -> int:
        channel = self._channels.get(event_key(normalize_path(path)))
        return len(channel) if channel is not None else 0

    def on(self, path: Path, listener: Listener) -> Registration:
        query = normalize_path(path)
        key = event_key(query)
        self.logger.info("new feedback listener on: %s", key)
        registration = self.xapi.execute(METHOD_FEEDBACK_SUBSCRIBE, {"Query": query})
        return Registration(self, key, listener, registration)

    def once(self, path: Path, listener: Listener) -> Registration:
        handle: Registration | None = None

        def wrapped(data: Any, root: Any) -> None:
            if handle is not None:
                handle()
            listener(data, root)

        handle = self.on(path, wrapped)
        return handle

    def off(self) -> None:
        raise RuntimeError(".off() is deprecated. Use the deregister handle returned by .on() instead.")

    def unsubscribe(self, subscription_id: int) -> None:
        future = self.xapi.execute(METHOD_FEEDBACK_UNSUBSCRIBE, {"Id": subscription_id})
        future.add_done_callback(self._on_unsubscribed)

    def _on_unsubscribed(self, future: asyncio.Future[Any]) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            self.logger.warning("Feedback unsubscribe failed: %s", exc)

    def dispatch(self, payload: Any) -> Feedback:
        """Hand *payload* to the interceptor, which decides when to walk it."""

        def emit(data: Any = payload) -> None:
            self._walk(data, data, [])

        self.interceptor(payload, emit)
        return self

    def _walk(self, data: Any, root: Any, path: list[PathSegment]) -> None:
        if isinstance(data, list):
            for child in data:
                self._walk(child, root, path)
                child_id = child.get("id", "") if isinstance(child, dict) else ""
                self._walk(child, root, path + [child_id])
            return

        channel = self._channels.get(event_key(path))
        if channel is not None:
            channel.emit(data, root)

        if isinstance(data, dict):
            for key, value in data.items():
                self._walk(value, root, path + [key])

    def group(self, handlers: Iterable[Deregister] = ()) -> FeedbackGroup:
        return FeedbackGroup(handlers)


__all__ = [
    "Feedback",
    "FeedbackGroup",
    "FeedbackInterceptor",
    "Listener",
    "Registration",
    "default_interceptor",
]
