"""Path-scoped views of the device API and the fluent path builder.

``xapi.config``, ``xapi.status`` and ``xapi.event`` are :class:`Component`
instances. Each one prefixes paths with its sub-tree root and supports only
the operations its :class:`ComponentKind` lists: configurations can be
read, written and watched; statuses read and watched; events only watched.
"""

from __future__ import annotations

import asyncio
from enum import Enum, Flag, auto
from typing import TYPE_CHECKING, Any

from .feedback import Listener, Registration
from .protocol.constants import CONFIGURATION_ROOT, EVENT_ROOT, METHOD_GET, METHOD_SET, STATUS_ROOT
from .protocol.path import NormalizedPath, Path, PathSegment, normalize_path

if TYPE_CHECKING:
    from .client import XAPI


class Capability(Flag):
    GET = auto()
    SET = auto()
    LISTEN = auto()


class ComponentKind(Enum):
    CONFIG = (CONFIGURATION_ROOT, Capability.GET | Capability.SET | Capability.LISTEN)
    STATUS = (STATUS_ROOT, Capability.GET | Capability.LISTEN)
    EVENT = (EVENT_ROOT, Capability.LISTEN)

    def __init__(self, prefix: str, capabilities: Capability) -> None:
        self.prefix = prefix
        self.capabilities = capabilities


class Component:
    def __init__(self, xapi: XAPI, kind: ComponentKind) -> None:
        self.xapi = xapi
        self.kind = kind

    def __repr__(self) -> str:
        return f"Component({self.kind.name})"

    @property
    def prefix(self) -> str:
        return self.kind.prefix

    def supports(self, capability: Capability) -> bool:
        return capability in self.kind.capabilities

    def _require(self, capability: Capability) -> None:
        if not self.supports(capability):
            raise AttributeError(f"{self.prefix} does not support {capability.name.lower()}")

    def normalize_path(self, path: Path) -> NormalizedPath:
        return [self.prefix, *normalize_path(path)]

    def get(self, path: Path) -> asyncio.Future[Any]:
        self._require(Capability.GET)
        return self.xapi.execute(METHOD_GET, {"Path": self.normalize_path(path)})

    def set(self, path: Path, value: Any) -> asyncio.Future[Any]:
        self._require(Capability.SET)
        return self.xapi.execute(METHOD_SET, {"Path": self.normalize_path(path), "Value": value})

    def on(self, path: Path, listener: Listener) -> Registration:
        self._require(Capability.LISTEN)
        return self.xapi.feedback.on(self.normalize_path(path), listener)

    def once(self, path: Path, listener: Listener) -> Registration:
        self._require(Capability.LISTEN)
        return self.xapi.feedback.once(self.normalize_path(path), listener)

    def off(self) -> None:
        self.xapi.feedback.off()


class PathBuilder:
    """Accumulates path segments through attribute and item access.

    ``xapi.Status.Audio.Volume.get()`` is ``xapi.status.get("Audio/Volume")``
    and ``xapi.Command.Dial(Number="1234")`` is
    ``xapi.command("Dial", {"Number": "1234"})``.
    """

    __slots__ = ("_target", "_segments")

    def __init__(self, target: Any, segments: tuple[PathSegment, ...] = ()) -> None:
        self._target = target
        self._segments = segments

    def __getattr__(self, name: str) -> PathBuilder:
        if name.startswith("_"):
            raise AttributeError(name)
        return PathBuilder(self._target, self._segments + (name,))

    def __getitem__(self, segment: PathSegment) -> PathBuilder:
        return PathBuilder(self._target, self._segments + (segment,))

    def __repr__(self) -> str:
        return f"PathBuilder({self.path!r})"

    @property
    def path(self) -> str:
        return "/".join(str(segment) for segment in self._segments)

    def _action(self, name: str) -> Any:
        method = getattr(self._target, name, None)
        if not isinstance(self._target, Component) or method is None:
            raise TypeError(f"Property is not callable: {self._target!r}[{name}]")
        return method

    def get(self) -> asyncio.Future[Any]:
        return self._action("get")(self.path)

    def set(self, value: Any) -> asyncio.Future[Any]:
        return self._action("set")(self.path, value)

    def on(self, listener: Listener) -> Registration:
        return self._action("on")(self.path, listener)

    def once(self, listener: Listener) -> Registration:
        return self._action("once")(self.path, listener)

    def __call__(self, params: dict[str, Any] | str | None = None, body: str | None = None, **kwargs: Any) -> Any:
        if isinstance(self._target, Component) or not callable(self._target):
            raise TypeError(f"Object is not callable: {self._target!r}")
        if kwargs:
            if isinstance(params, str):
                params, body = None, params
            params = {**(params or {}), **kwargs}
        return self._target(self.path, params, body)


__all__ = ["Capability", "Component", "ComponentKind", "PathBuilder"]
