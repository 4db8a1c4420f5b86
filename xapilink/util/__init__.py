"""General-purpose utilities for xapilink."""

from .signals import Signal, SignalGroup

__all__ = ["Signal", "SignalGroup"]
