"""The data item section of a package resource index."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import BinaryIO, ClassVar, NamedTuple


class PriFormatError(ValueError):
    """The resource index data is malformed."""


_HEADER = struct.Struct("<IHHI")
_STRING_SPAN = struct.Struct("<HH")
_BLOB_SPAN = struct.Struct("<II")


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise PriFormatError("unexpected end of data")
    return data


class _Span(NamedTuple):
    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length


@dataclass
class DataItem:
    """A pool of NUL-terminated strings and binary blobs."""

    IDENTIFIER: ClassVar[bytes] = b"[mrm_dataitem] \0"

    _string_spans: list[_Span] = field(default_factory=list)
    _string_data: bytearray = field(default_factory=bytearray)
    _blob_spans: list[_Span] = field(default_factory=list)
    _blob_data: bytearray = field(default_factory=bytearray)

    @classmethod
    def read(cls, stream: BinaryIO) -> DataItem:
        """Read a data item section body."""
        reserved, num_strings, num_blobs, total_length = _HEADER.unpack(
            _read_exact(stream, _HEADER.size)
        )
        if reserved != 0:
            raise PriFormatError("data item: reserved field is not zero")
        string_spans = [
            _Span(*pair)
            for pair in _STRING_SPAN.iter_unpack(
                _read_exact(stream, _STRING_SPAN.size * num_strings)
            )
        ]
        string_length = string_spans[-1].end if string_spans else 0
        blob_spans = []
        for offset, length in _BLOB_SPAN.iter_unpack(
            _read_exact(stream, _BLOB_SPAN.size * num_blobs)
        ):
            if offset < string_length:
                raise PriFormatError("data item: blob overlaps the string data")
            blob_spans.append(_Span(offset - string_length, length))
        if total_length < string_length:
            raise PriFormatError("data item: total length is smaller than string data")
        string_data = bytearray(stream.read(string_length))
        blob_data = bytearray(stream.read(total_length - string_length))
        return cls(string_spans, string_data, blob_spans, blob_data)

    def write(self, stream: BinaryIO) -> None:
        """Write the section body."""
        stream.write(
            _HEADER.pack(
                0,
                len(self._string_spans),
                len(self._blob_spans),
                len(self._string_data) + len(self._blob_data),
            )
        )
        for span in self._string_spans:
            stream.write(_STRING_SPAN.pack(span.offset, span.length))
        base = len(self._string_data)
        for span in self._blob_spans:
            stream.write(_BLOB_SPAN.pack(span.offset + base, span.length))
        stream.write(self._string_data)
        stream.write(self._blob_data)

    @property
    def num_strings(self) -> int:
        return len(self._string_spans)

    @property
    def num_blobs(self) -> int:
        return len(self._blob_spans)

    def string(self, index: int) -> str | None:
        """The string at ``index``, or None if absent or not valid UTF-8."""
        if not 0 <= index < len(self._string_spans):
            return None
        span = self._string_spans[index]
        try:
            return bytes(self._string_data[span.offset : span.end - 1]).decode("utf-8")
        except UnicodeDecodeError:
            return None

    def blob(self, index: int) -> bytes | None:
        """The blob at ``index``, or None if absent."""
        if not 0 <= index < len(self._blob_spans):
            return None
        span = self._blob_spans[index]
        return bytes(self._blob_data[span.offset : span.end])

    def add_string(self, s: str) -> int:
        """Append a string and return its index."""
        encoded = s.encode("utf-8")
        self._string_spans.append(_Span(len(self._string_data), len(encoded) + 1))
        self._string_data += encoded + b"\0"
        return len(self._string_spans) - 1

    def add_blob(self, blob: bytes) -> int:
        """Append a blob and return its index."""
        self._blob_spans.append(_Span(len(self._blob_data), len(blob)))
        self._blob_data += blob
        return len(self._blob_spans) - 1

    def __repr__(self) -> str:
        strings = (self.string(i) for i in range(self.num_strings))
        blobs = (self.blob(i) for i in range(self.num_blobs))
        entries = [item for item in (*strings, *blobs) if item is not None]
        return f"DataItem({entries!r})"