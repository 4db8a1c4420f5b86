"""Canonical form of XAPI paths."""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Final, Union

PathSegment = Union[str, int]
NormalizedPath = list[PathSegment]
Path = Union[str, Sequence[PathSegment], None]

_WORD_RE: Final = re.compile(r"\w+")
_INDEX_RE: Final = re.compile(r"^\d+$")


def _normalize_segment(segment: PathSegment) -> PathSegment:
    if isinstance(segment, bool):
        raise TypeError(f"Invalid path segment: {segment!r}")
    if isinstance(segment, int):
        return segment
    text = str(segment)
    if _INDEX_RE.match(text):
        return int(text)
    return text[:1].upper() + text[1:]


def normalize_path(path: Path) -> NormalizedPath:
    """Split *path* into capitalized text segments and integer indices.

    A string is split on anything that is not a word character, so
    ``"status/audio  volume"`` and ``"Status Audio Volume"`` both become
    ``["Status", "Audio", "Volume"]``. Purely numeric segments become
    ints: ``"Status/Call[42]/Status"`` is ``["Status", "Call", 42, "Status"]``.
    """
    if not path:
        return []
    if isinstance(path, str):
        segments: Sequence[PathSegment] = _WORD_RE.findall(path)
    else:
        segments = path
    return [_normalize_segment(segment) for segment in segments]


def event_key(path: Sequence[PathSegment]) -> str:
    """Lower-case slash-joined key used to match feedback listeners."""
    return "/".join(str(segment) for segment in path).lower()


__all__ = ["NormalizedPath", "Path", "PathSegment", "event_key", "normalize_path"]
