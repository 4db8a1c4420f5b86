"""Tests for xapilink.util.signals."""

import logging

import pytest

from xapilink.util.signals import Signal, SignalGroup


def test_connect_emit_disconnect() -> None:
    """Callbacks receive emitted arguments until disconnected."""
    signal = Signal("data")
    received: list = []
    disconnect = signal.connect(lambda *args: received.append(args))

    signal.emit(1, "two")
    disconnect()
    signal.emit(3)

    assert received == [(1, "two")]
    assert len(signal) == 0


def test_duplicate_callbacks_are_independent() -> None:
    """Disconnecting one registration leaves the other in place."""
    signal = Signal("data")
    received: list = []
    first = signal.connect(received.append)
    signal.connect(received.append)

    first()
    first()
    signal.emit("x")

    assert received == ["x"]


def test_failing_callback_does_not_stop_others(caplog) -> None:
    """A raising callback is logged and the rest still run."""
    signal = Signal("error")
    received: list = []

    def broken(value):
        raise RuntimeError("listener bug")

    signal.connect(broken)
    signal.connect(received.append)

    with caplog.at_level(logging.ERROR, logger="xapilink.util.signals"):
        signal.emit("payload")

    assert received == ["payload"]
    assert "Subscriber of error signal failed" in caplog.text


def test_callback_removed_during_emit_is_skipped() -> None:
    """A callback disconnected by an earlier one is not called."""
    signal = Signal("data")
    received: list = []
    handles: list = []

    handles.append(signal.connect(lambda: handles[1]()))
    handles.append(signal.connect(lambda: received.append("late")))

    signal.emit()

    assert received == []


def test_signal_group_attributes() -> None:
    """Signals are reachable as attributes; unknown names raise."""
    group = SignalGroup("ready", "close")
    assert group.ready.name == "ready"
    assert [signal.name for signal in group] == ["ready", "close"]
    with pytest.raises(AttributeError):
        group.data
