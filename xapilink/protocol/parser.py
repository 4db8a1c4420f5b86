"""Incremental parser for back-to-back JSON documents.

The shell session prints its replies as JSON documents with no delimiter
between them, and the transport hands them over in chunks that have no
relation to document boundaries. :class:`JsonStreamParser` tracks string
state and the stack of open brackets character by character, cuts the
stream into complete top-level values and decodes each of them with
``msgspec``.

Recovery rules:

- a character that cannot start a value at depth zero reports an error
  and the rest of that line is discarded (the shell prints plain-text
  diagnostics such as ``Command not recognized`` between documents);
- a bare word is only decoded once a delimiter follows it, and one that
  is not a number or literal discards its line the same way;
- a closing bracket that does not match the innermost open one reports
  an error, drops the partial document and discards the rest of the line;
- a structure that fails to decode reports an error and parsing resumes
  right after it;
- :meth:`JsonStreamParser.end` reports an error when input stops inside
  a document.
"""

from __future__ import annotations

import codecs
import logging
from collections.abc import Callable, Iterator
from typing import Any, Final

import msgspec

from .errors import JsonStreamError

logger = logging.getLogger("xapilink.protocol.parser")

ErrorCallback = Callable[[JsonStreamError], None]

_BRACKETS: Final[dict[str, str]] = {"{": "}", "[": "]"}
_CLOSERS: Final[frozenset[str]] = frozenset(_BRACKETS.values())
_WHITESPACE: Final[frozenset[str]] = frozenset(" \t\r\n")
_TOKEN_DELIMITERS: Final[frozenset[str]] = frozenset(' \t\r\n{}[],:"')
_TOKEN_START: Final[frozenset[str]] = frozenset("-0123456789tfn")


class JsonStreamParser:
    """Split a chunked character stream into decoded JSON documents."""

    def __init__(
        self,
        on_error: ErrorCallback | None = None,
        *,
        encoding: str = "utf-8",
        logger_: logging.Logger | None = None,
    ) -> None:
        self._on_error = on_error
        self._logger = logger_ or logger
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._position = 0
        self._reset()

    def _reset(self) -> None:
        self._buffer: list[str] = []
        self._open: list[str] = []
        self._in_string = False
        self._escaped = False
        self._in_token = False
        self._skip_line = False

    @property
    def pending(self) -> bool:
        """True while a document has started but not completed."""
        return bool(self._buffer)

    def feed(self, chunk: bytes | str) -> list[Any]:
        """Consume *chunk* and return the documents it completed."""
        return list(self.iter_feed(chunk))

    def iter_feed(self, chunk: bytes | str) -> Iterator[Any]:
        text = self._decoder.decode(chunk) if isinstance(chunk, (bytes, bytearray)) else chunk
        for char in text:
            self._position += 1
            yield from self._consume(char)

    def end(self) -> list[Any]:
        """Signal end of input; flush a trailing bare token if complete."""
        documents: list[Any] = []
        tail = self._decoder.decode(b"", final=True)
        if tail:
            documents.extend(self.iter_feed(tail))
        if self._in_token:
            documents.extend(self._complete())
        elif self._buffer:
            self._fail("Unexpected end of input")
        self._reset()
        return documents

    def _consume(self, char: str) -> Iterator[Any]:
        if self._skip_line:
            if char == "\n":
                self._skip_line = False
            return

        if self._in_string:
            self._buffer.append(char)
            if self._escaped:
                self._escaped = False
            elif char == "\\":
                self._escaped = True
            elif char == '"':
                self._in_string = False
                if not self._open:
                    yield from self._complete()
            return

        if self._in_token:
            if char not in _TOKEN_DELIMITERS:
                self._buffer.append(char)
                return
            yield from self._complete()
            # The delimiter belongs to whatever follows the token.
            yield from self._consume(char)
            return

        if not self._open:
            if char in _WHITESPACE:
                return
            if char in _BRACKETS:
                self._buffer.append(char)
                self._open.append(_BRACKETS[char])
            elif char == '"':
                self._buffer.append(char)
                self._in_string = True
            elif char in _TOKEN_START:
                self._buffer.append(char)
                self._in_token = True
            else:
                self._fail(f"Unexpected character {char!r} at position {self._position}")
                self._skip_line = char != "\n"
            return

        if char in _CLOSERS and char != self._open[-1]:
            self._fail(f"Mismatched {char!r} at position {self._position}")
            self._skip_line = True
            return

        self._buffer.append(char)
        if char == '"':
            self._in_string = True
        elif char in _BRACKETS:
            self._open.append(_BRACKETS[char])
        elif char in _CLOSERS:
            self._open.pop()
            if not self._open:
                yield from self._complete()

    def _complete(self) -> Iterator[Any]:
        text = "".join(self._buffer)
        bare_token = self._in_token
        self._reset()
        try:
            document = msgspec.json.decode(text)
        except msgspec.DecodeError as exc:
            self._fail(f"Invalid JSON document ending at position {self._position}: {exc}")
            # A bare word that is not a literal is plain text; drop its line.
            self._skip_line = bare_token
            return
        yield document

    def _fail(self, message: str) -> None:
        self._reset()
        error = JsonStreamError(message, self._position)
        self._logger.debug("JSON stream error: %s", message)
        if self._on_error is not None:
            self._on_error(error)


def parse_json(text: str) -> Any:
    """Parse a single document with the streaming parser."""
    errors: list[JsonStreamError] = []
    parser = JsonStreamParser(errors.append)
    documents = parser.feed(text)
    documents.extend(parser.end())
    if errors:
        raise errors[0]
    return documents[-1] if documents else None


__all__ = ["JsonStreamParser", "parse_json"]
