"""Incremental decoding of concatenated JSON objects.

The server writes one JSON object per progress update and is free to separate
them with newlines, other whitespace, or nothing at all. ``iter_json_objects``
scans the raw body chunk by chunk, tracking brace depth and string state, and
hands each complete object to :func:`json.loads` the moment its closing brace
arrives. Only the object currently being assembled is held in memory.
"""

from __future__ import annotations

import codecs
from collections.abc import Iterable, Iterator
import json
from typing import Any

from pydantic import TypeAdapter, ValidationError

from ollamaclient.errors import DecodeError
from ollamaclient.schema.pull import PullRecord
from ollamaclient.utils import logging

logger = logging.get_logger(__name__)

_WHITESPACE = " \t\r\n"

_pull_record_adapter = TypeAdapter(PullRecord)


class ObjectScanner:
    """Split a character stream into top-level JSON object texts."""

    def __init__(self) -> None:
        self._buffer: list[str] = []
        self._depth = 0
        self._in_string = False
        self._escaped = False
        self.offset = 0

    @property
    def pending(self) -> bool:
        return self._depth > 0

    def feed(self, text: str) -> Iterator[str]:
        start = 0
        for i, char in enumerate(text):
            if self._depth == 0:
                if char in _WHITESPACE:
                    start = i + 1
                    continue
                if char != "{":
                    raise DecodeError(f"unexpected {char!r} between records at offset {self.offset + i}")
                start = i
                self._depth = 1
                continue

            if self._in_string:
                if self._escaped:
                    self._escaped = False
                elif char == "\\":
                    self._escaped = True
                elif char == '"':
                    self._in_string = False
            elif char == '"':
                self._in_string = True
            elif char in "{[":
                self._depth += 1
            elif char in "}]":
                self._depth -= 1
                if self._depth == 0:
                    self._buffer.append(text[start : i + 1])
                    obj = "".join(self._buffer)
                    self._buffer.clear()
                    start = i + 1
                    yield obj

        if self._depth > 0:
            self._buffer.append(text[start:])
        self.offset += len(text)


def iter_json_objects(chunks: Iterable[bytes]) -> Iterator[dict[str, Any]]:
    """Yield every JSON object found in ``chunks`` as soon as it is complete.

    Raises :class:`DecodeError` on malformed data, invalid UTF-8, a truncated
    trailing object, or when reading from ``chunks`` itself fails.
    """
    decoder = codecs.getincrementaldecoder("utf-8")()
    scanner = ObjectScanner()
    iterator = iter(chunks)
    while True:
        try:
            chunk = next(iterator)
        except StopIteration:
            break
        except Exception as exc:
            raise DecodeError(f"reading response stream failed: {exc}") from exc

        try:
            text = decoder.decode(chunk)
        except UnicodeDecodeError as exc:
            raise DecodeError(f"response stream is not valid UTF-8: {exc}") from exc
        for raw in scanner.feed(text):
            yield _load_object(raw)

    try:
        tail = decoder.decode(b"", final=True)
    except UnicodeDecodeError as exc:
        raise DecodeError(f"response stream is not valid UTF-8: {exc}") from exc
    for raw in scanner.feed(tail):
        yield _load_object(raw)
    if scanner.pending:
        raise DecodeError("response stream ended in the middle of a record")


def iter_pull_records(chunks: Iterable[bytes]) -> Iterator[PullRecord]:
    for obj in iter_json_objects(chunks):
        try:
            record = _pull_record_adapter.validate_python(obj)
        except ValidationError as exc:
            raise DecodeError(f"invalid pull record {obj!r}: {exc.error_count()} validation error(s)") from exc
        logger.debug("Decoded pull record %s", record)
        yield record


def _load_object(raw: str) -> dict[str, Any]:
    try:
        obj = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"invalid JSON record: {exc}") from exc
    return obj
