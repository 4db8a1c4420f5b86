"""Tests for sub-tree components and the fluent path builder."""

import pytest

from mocks import LoopbackBackend, pump
from xapilink.client import XAPI
from xapilink.components import Capability, ComponentKind, PathBuilder


def _requests(backend):
    return [(request.method, request.params) for request in backend.requests]


@pytest.mark.asyncio
async def test_component_prefixes_paths() -> None:
    """Each component adds its root to the normalized path."""
    backend = LoopbackBackend()
    xapi = XAPI(backend)
    xapi.config.get("audio defaultVolume")
    xapi.config.set("Audio/DefaultVolume", 50)
    xapi.status.get(["Call", 42, "Status"])
    assert _requests(backend) == [
        ("xGet", {"Path": ["Configuration", "Audio", "DefaultVolume"]}),
        ("xSet", {"Path": ["Configuration", "Audio", "DefaultVolume"], "Value": 50}),
        ("xGet", {"Path": ["Status", "Call", 42, "Status"]}),
    ]
    assert xapi.event.normalize_path("UserInterface Extensions") == ["Event", "UserInterface", "Extensions"]
    xapi.close()
    await pump()


@pytest.mark.asyncio
async def test_component_capabilities() -> None:
    """Statuses cannot be set and events can only be listened to."""
    xapi = XAPI(LoopbackBackend())
    assert ComponentKind.CONFIG.capabilities == Capability.GET | Capability.SET | Capability.LISTEN
    assert not xapi.status.supports(Capability.SET)
    with pytest.raises(AttributeError, match="Status does not support set"):
        xapi.status.set("Audio Volume", 10)
    with pytest.raises(AttributeError, match="Event does not support get"):
        xapi.event.get("UserInterface")
    assert xapi.pending == 0


@pytest.mark.asyncio
async def test_component_listeners_subscribe_under_root() -> None:
    """on() and once() register feedback at the prefixed path."""
    backend = LoopbackBackend()
    xapi = XAPI(backend)
    xapi.event.on("UserInterface Extensions Widget Action", lambda data, root: None)
    xapi.status.once("Standby State", lambda data, root: None)
    assert _requests(backend) == [
        ("xFeedback/Subscribe", {"Query": ["Event", "UserInterface", "Extensions", "Widget", "Action"]}),
        ("xFeedback/Subscribe", {"Query": ["Status", "Standby", "State"]}),
    ]
    assert xapi.feedback.listener_count("Status/Standby/State") == 1
    with pytest.raises(RuntimeError, match="deprecated"):
        xapi.config.off()
    xapi.close()
    await pump()


@pytest.mark.asyncio
async def test_path_builder_accumulates_segments() -> None:
    """Attribute and item access extend the path."""
    xapi = XAPI(LoopbackBackend())
    builder = xapi.Status.Call[42].Status
    assert isinstance(builder, PathBuilder)
    assert builder.path == "Call/42/Status"
    assert xapi.Config.Audio.DefaultVolume.path == "Audio/DefaultVolume"


@pytest.mark.asyncio
async def test_path_builder_delegates_to_component() -> None:
    """Terminal operations call the component with the built path."""
    backend = LoopbackBackend()
    xapi = XAPI(backend)
    xapi.Status.Audio.Volume.get()
    xapi.Config.Audio.DefaultVolume.set(30)
    handle = xapi.Event.UserInterface.Message.Prompt.Response.on(lambda data, root: None)
    assert _requests(backend) == [
        ("xGet", {"Path": ["Status", "Audio", "Volume"]}),
        ("xSet", {"Path": ["Configuration", "Audio", "DefaultVolume"], "Value": 30}),
        ("xFeedback/Subscribe", {"Query": ["Event", "UserInterface", "Message", "Prompt", "Response"]}),
    ]
    assert handle.key == "event/userinterface/message/prompt/response"
    xapi.close()
    await pump()


@pytest.mark.asyncio
async def test_path_builder_commands() -> None:
    """Calling a command path invokes command() with params and body."""
    backend = LoopbackBackend()
    xapi = XAPI(backend)
    xapi.Command.Dial(Number="user@example.com")
    xapi.Command.Audio.Volume.Set({"Level": 40})
    xapi.Command.UserInterface.Message.Prompt.Display("line", Title="Hi")
    xapi.Command.Standby.Activate()
    assert _requests(backend) == [
        ("xCommand/Dial", {"Number": "user@example.com"}),
        ("xCommand/Audio/Volume/Set", {"Level": 40}),
        ("xCommand/UserInterface/Message/Prompt/Display", {"body": "line", "Title": "Hi"}),
        ("xCommand/Standby/Activate", None),
    ]
    xapi.close()
    await pump()


@pytest.mark.asyncio
async def test_path_builder_rejects_wrong_operations() -> None:
    """Commands have no get/set and components are not callable."""
    xapi = XAPI(LoopbackBackend())
    with pytest.raises(TypeError, match="Property is not callable"):
        xapi.Command.Dial.get()
    with pytest.raises(TypeError, match="Object is not callable"):
        xapi.Status.Audio.Volume()
    with pytest.raises(AttributeError):
        xapi.Status.Audio.set(1)
