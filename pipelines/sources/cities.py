"""Streaming reader for the input city list.

The input is one JSON array of objects. Elements are decoded one at a time
from a chunked read so large files never sit in memory as a whole.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Iterator, TextIO

from pydantic import ValidationError

from pipelines.errors import SourceReadError
from pipelines.model import CityRecord

DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_MAX_ELEMENT_CHARS = 1024 * 1024

_WHITESPACE = " \t\n\r"


class CityRecordSource:
    """Open / iterate / close access to a JSON array of cities.

    Iteration raises ``SourceReadError`` at the first unreadable element;
    records yielded before that point remain valid. At most one element plus
    one chunk is buffered; an element longer than ``max_element_chars`` is
    rejected.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_element_chars: int = DEFAULT_MAX_ELEMENT_CHARS,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        if max_element_chars < 1:
            raise ValueError("max_element_chars must be >= 1")
        self.path = Path(path)
        self.chunk_size = chunk_size
        self.max_element_chars = max_element_chars
        self._handle: TextIO | None = None
        self._decoder = json.JSONDecoder()
        self._buffer = ""
        self._pos = 0
        self._eof = False

    def open(self) -> "CityRecordSource":
        if self._handle is not None:
            return self
        try:
            self._handle = self.path.open("r", encoding="utf-8")
        except OSError as exc:
            raise SourceReadError(f"failed to open file {self.path}: {exc}") from exc
        self._buffer = ""
        self._pos = 0
        self._eof = False
        return self

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "CityRecordSource":
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __iter__(self) -> Iterator[CityRecord]:
        if self._handle is None:
            raise SourceReadError("source is not open")
        for index, element in enumerate(self._iter_elements()):
            if not isinstance(element, dict):
                raise SourceReadError(
                    f"failed to decode city #{index}: expected an object, got {type(element).__name__}"
                )
            try:
                yield CityRecord.model_validate(element)
            except ValidationError as exc:
                raise SourceReadError(f"failed to decode city #{index}: {exc}") from exc

    def _fill(self) -> bool:
        if self._handle is None:
            raise SourceReadError("source is not open")
        try:
            chunk = self._handle.read(self.chunk_size)
        except (OSError, UnicodeDecodeError) as exc:
            raise SourceReadError(f"failed to read {self.path}: {exc}") from exc
        if not chunk:
            self._eof = True
            return False
        # drop consumed text so the buffer only holds the element being decoded
        self._buffer = self._buffer[self._pos :] + chunk
        self._pos = 0
        return True

    def _peek(self) -> str | None:
        """Skip whitespace and return the next character without consuming it."""
        while True:
            while self._pos < len(self._buffer) and self._buffer[self._pos] in _WHITESPACE:
                self._pos += 1
            if self._pos < len(self._buffer):
                return self._buffer[self._pos]
            if not self._fill():
                return None

    def _element_end(self) -> int | None:
        """Index just past the element starting at ``self._pos``.

        Returns None while the element has not fully arrived in the buffer.
        """
        buffer = self._buffer
        depth = 0
        in_string = False
        escaped = False
        for index in range(self._pos, len(buffer)):
            char = buffer[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                    if depth == 0:
                        return index + 1
            elif char == '"':
                in_string = True
            elif char in "{[":
                depth += 1
            elif char in "}]":
                if depth == 0:
                    return index
                depth -= 1
                if depth == 0:
                    return index + 1
            elif depth == 0 and (char == "," or char in _WHITESPACE):
                return index
        return None

    def _decode_next(self) -> Any:
        while True:
            end = self._element_end()
            if end is not None:
                break
            if len(self._buffer) - self._pos > self.max_element_chars:
                raise SourceReadError(
                    f"city element exceeds {self.max_element_chars} characters"
                )
            if not self._fill():
                end = len(self._buffer)
                break
        # the element is complete, so any decode error is a real syntax error
        try:
            value, stop = self._decoder.raw_decode(self._buffer[:end], self._pos)
        except json.JSONDecodeError as exc:
            raise SourceReadError(f"failed to decode city: {exc}") from exc
        self._pos = stop
        return value

    def _iter_elements(self) -> Iterator[Any]:
        if self._peek() != "[":
            raise SourceReadError(f"failed to read JSON token: {self.path} is not a JSON array")
        self._pos += 1

        if self._peek() == "]":
            self._pos += 1
            return
        while True:
            if self._peek() is None:
                raise SourceReadError("unexpected end of file inside the city array")
            yield self._decode_next()
            separator = self._peek()
            if separator == ",":
                self._pos += 1
                continue
            if separator == "]":
                self._pos += 1
                return
            raise SourceReadError(
                f"expected ',' or ']' after city element, found {separator!r}"
            )


def iter_city_records(
    path: str | os.PathLike[str], *, chunk_size: int = DEFAULT_CHUNK_SIZE
) -> Iterator[CityRecord]:
    with CityRecordSource(path, chunk_size=chunk_size) as source:
        yield from source


__all__ = [
    "CityRecordSource",
    "iter_city_records",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_MAX_ELEMENT_CHARS",
]
