"""Transport adapters implementing the request dispatch contract."""

from .base import Backend, Handler, Sender
from .envelope import EnvelopeBackend
from .shell import ShellBackend

__all__ = ["Backend", "EnvelopeBackend", "Handler", "Sender", "ShellBackend"]
