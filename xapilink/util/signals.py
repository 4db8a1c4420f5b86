"""Lightweight notification channels used by backends and the facade."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger("xapilink.util.signals")

Callback = Callable[..., Any]
Disconnect = Callable[[], None]


class Signal:
    """A named channel delivering positional arguments to its subscribers.

    ``connect`` returns a handle that removes exactly that subscription,
    even when the same callback was connected more than once.
    """

    def __init__(self, name: str, *, logger_: logging.Logger | None = None) -> None:
        self.name = name
        self._logger = logger_ or logger
        self._slots: dict[int, Callback] = {}
        self._next_slot = 0

    def __len__(self) -> int:
        return len(self._slots)

    def __repr__(self) -> str:
        return f"Signal({self.name!r}, subscribers={len(self._slots)})"

    def connect(self, callback: Callback) -> Disconnect:
        slot = self._next_slot
        self._next_slot += 1
        self._slots[slot] = callback

        def disconnect() -> None:
            self._slots.pop(slot, None)

        return disconnect

    def emit(self, *args: Any) -> None:
        # Snapshot so callbacks may (dis)connect while being notified.
        for slot, callback in list(self._slots.items()):
            if slot not in self._slots:
                continue
            try:
                callback(*args)
            except Exception:
                self._logger.exception("Subscriber of %s signal failed", self.name)

    def clear(self) -> None:
        self._slots.clear()


class SignalGroup:
    """Attribute bag of signals, e.g. ``backend.signals.ready``."""

    def __init__(self, *names: str, logger_: logging.Logger | None = None) -> None:
        self._signals = {name: Signal(name, logger_=logger_) for name in names}

    def __getattr__(self, name: str) -> Signal:
        try:
            return self.__dict__["_signals"][name]
        except KeyError:
            raise AttributeError(f"No signal named {name!r}") from None

    def __iter__(self):
        return iter(self._signals.values())

    def clear(self) -> None:
        for signal in self._signals.values():
            signal.clear()


__all__ = ["Callback", "Disconnect", "Signal", "SignalGroup"]
