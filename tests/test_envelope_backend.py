"""Tests for the WebSocket envelope backend."""

import asyncio
import json

import msgspec
import pytest
from websockets.exceptions import ConnectionClosedError as WebSocketClosedError

from mocks import FakeWebSocket, pump
from xapilink.backend.envelope import EnvelopeBackend
from xapilink.client import XAPI
from xapilink.protocol.errors import ConnectionClosedError, ErrorCode, InvalidPathError, XAPIError
from xapilink.protocol.structures import Request


class _UnwritableSocket(FakeWebSocket):
    async def send(self, message: str) -> None:
        raise WebSocketClosedError(None, None)


@pytest.mark.asyncio
async def test_requests_are_sent_as_json_envelopes() -> None:
    """Each call is one JSON-RPC text message."""
    socket = FakeWebSocket()
    xapi = XAPI(EnvelopeBackend(socket))
    xapi.command("Dial", {"Number": "user@example.com"})
    xapi.status.get("Audio Volume")
    await pump()
    assert [json.loads(message) for message in socket.sent] == [
        {"jsonrpc": "2.0", "id": "1", "method": "xCommand/Dial", "params": {"Number": "user@example.com"}},
        {"jsonrpc": "2.0", "id": "2", "method": "xGet", "params": {"Path": ["Status", "Audio", "Volume"]}},
    ]
    xapi.close()
    await pump()


@pytest.mark.asyncio
async def test_results_and_errors_are_routed_by_id() -> None:
    """Replies resolve or reject the call with the matching id."""
    socket = FakeWebSocket()
    xapi = XAPI(EnvelopeBackend(socket))
    volume = xapi.status.get("Audio Volume")
    missing = xapi.config.get("Foo")
    await pump()

    socket.push('{"jsonrpc":"2.0","id":"2","error":{"code":3,"message":"No match","data":{"xpath":"/Foo"}}}')
    socket.push('{"jsonrpc":"2.0","id":"1","result":"75"}')

    assert await asyncio.wait_for(volume, 1) == "75"
    with pytest.raises(InvalidPathError) as excinfo:
        await asyncio.wait_for(missing, 1)
    assert excinfo.value.xpath == "/Foo"
    xapi.close()
    await pump()


@pytest.mark.asyncio
async def test_feedback_envelopes_are_emitted() -> None:
    """Id-less requests from the device are emitted as feedback."""
    socket = FakeWebSocket()
    backend = EnvelopeBackend(socket)
    events: list = []
    backend.signals.data.connect(events.append)

    socket.push('{"jsonrpc":"2.0","method":"xFeedback/Event","params":{"Status":{"Audio":{"Volume":"60"}}}}')
    await pump()

    assert events == [Request(method="xFeedback/Event", params={"Status": {"Audio": {"Volume": "60"}}})]
    backend.close()
    await pump()


@pytest.mark.asyncio
async def test_malformed_messages_are_reported() -> None:
    """Undecodable or shapeless messages go to the error channel."""
    socket = FakeWebSocket()
    backend = EnvelopeBackend(socket)
    errors: list = []
    events: list = []
    backend.signals.error.connect(errors.append)
    backend.signals.data.connect(events.append)

    socket.push("not json")
    socket.push('{"jsonrpc":"2.0"}')
    await pump()

    assert events == []
    assert isinstance(errors[0], msgspec.DecodeError)
    assert isinstance(errors[1], msgspec.ValidationError)
    backend.close()
    await pump()


@pytest.mark.asyncio
async def test_ready_immediately() -> None:
    """The backend is ready once constructed and signals it asynchronously."""
    socket = FakeWebSocket()
    xapi = XAPI(EnvelopeBackend(socket))
    ready: list = []
    xapi.signals.ready.connect(ready.append)
    assert xapi.ready.done()
    await pump()
    assert ready == [xapi]
    xapi.close()
    await pump()


@pytest.mark.asyncio
async def test_close_rejects_outstanding_calls() -> None:
    """Closing the connection ends the session and rejects pending calls."""
    socket = FakeWebSocket()
    xapi = XAPI(EnvelopeBackend(socket))
    closes: list = []
    xapi.signals.close.connect(lambda: closes.append(True))
    future = xapi.status.get("Audio Volume")
    await pump()

    xapi.close()
    await pump()

    assert socket.closed
    assert closes == [True]
    with pytest.raises(ConnectionClosedError):
        await asyncio.wait_for(future, 1)


@pytest.mark.asyncio
async def test_abnormal_close_reports_error_then_closes() -> None:
    """An abnormal closure is an error followed by close."""
    socket = FakeWebSocket()
    xapi = XAPI(EnvelopeBackend(socket))
    order: list = []
    xapi.signals.error.connect(lambda exc: order.append(type(exc)))
    xapi.signals.close.connect(lambda: order.append("close"))
    future = xapi.command("Standby Activate")
    await pump()

    socket.fail(WebSocketClosedError(None, None))
    await pump()

    assert order == [WebSocketClosedError, "close"]
    with pytest.raises(ConnectionClosedError):
        await asyncio.wait_for(future, 1)


@pytest.mark.asyncio
async def test_unencodable_params_reject_call() -> None:
    """A request msgspec cannot encode fails instead of hanging."""
    socket = FakeWebSocket()
    xapi = XAPI(EnvelopeBackend(socket))
    future = xapi.execute("xCommand/Foo", {"Bar": object()})
    with pytest.raises(XAPIError, match="unsupported") as excinfo:
        await asyncio.wait_for(future, 1)
    assert excinfo.value.code == ErrorCode.UNKNOWN_ERROR
    assert socket.sent == []
    assert xapi.pending == 0
    xapi.close()
    await pump()


@pytest.mark.asyncio
async def test_send_on_closed_socket_rejects_call() -> None:
    """A request that cannot be written fails with an error envelope."""
    socket = _UnwritableSocket()
    xapi = XAPI(EnvelopeBackend(socket))
    future = xapi.command("Standby Activate")
    with pytest.raises(XAPIError) as excinfo:
        await asyncio.wait_for(future, 1)
    assert excinfo.value.code == ErrorCode.UNKNOWN_ERROR
    xapi.close()
    await pump()
