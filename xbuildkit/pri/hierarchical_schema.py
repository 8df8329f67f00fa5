"""The hierarchical schema section: the tree of resource scopes and items."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import BinaryIO, ClassVar

from xbuildkit.pri.data_item import PriFormatError

_HNAMES = b"[def_hnamesx]  \0"
_PREFIX = struct.Struct("<4H16s2H4I")
_MIDDLE = struct.Struct("<3H6I")
_ENTRY_INFO = struct.Struct("<3HBBHH")
_SCOPE_EX = struct.Struct("<4H")
_U16 = struct.Struct("<H")
_NO_PARENT = 0xFFFF
_MAX_FULL_PATH_LENGTH = 256
_FLAG_SCOPE = 0x10
_FLAG_ASCII = 0x20


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise PriFormatError("unexpected end of data")
    return data


def _to_char(code: int) -> str:
    if 0xD800 <= code < 0xE000:
        raise PriFormatError(f"hierarchical schema: invalid character {code:#x}")
    return chr(code)


def _read_utf16z(stream: BinaryIO) -> str:
    chars = []
    while True:
        (code,) = _U16.unpack(_read_exact(stream, 2))
        if code == 0:
            return "".join(chars)
        chars.append(_to_char(code))


def _read_asciiz(stream: BinaryIO) -> str:
    chars = []
    while True:
        code = _read_exact(stream, 1)[0]
        if code == 0:
            return "".join(chars)
        chars.append(chr(code))


def _encode_utf16z(text: str) -> bytes:
    return b"".join(_U16.pack(ord(c) & 0xFFFF) for c in text) + b"\0\0"


def _byte_length(text: str) -> int:
    return len(text.encode("utf-8"))


@dataclass
class ResourceMapEntry:
    """A named scope or item and the index of its parent scope."""

    parent: int | None = None
    name: str = ""


@dataclass
class _EntryInfo:
    parent: int
    full_path_length: int
    is_scope: bool
    name_in_ascii: bool
    name_offset: int
    index: int

    @classmethod
    def read(cls, stream: BinaryIO) -> _EntryInfo:
        parent, full_path_length, _upper_first, _name_length, flags, offset, index = (
            _ENTRY_INFO.unpack(_read_exact(stream, _ENTRY_INFO.size))
        )
        return cls(
            parent=parent,
            full_path_length=full_path_length,
            is_scope=bool(flags & _FLAG_SCOPE),
            name_in_ascii=bool(flags & _FLAG_ASCII),
            name_offset=offset,
            index=index,
        )

    def pack(self) -> bytes:
        flags = (self.name_offset >> 16) & 0xF
        if self.is_scope:
            flags |= _FLAG_SCOPE
        if self.name_in_ascii:
            flags |= _FLAG_ASCII
        return _ENTRY_INFO.pack(
            self.parent & 0xFFFF,
            self.full_path_length & 0xFFFF,
            0,
            0,
            flags,
            self.name_offset & 0xFFFF,
            self.index & 0xFFFF,
        )


@dataclass
class HierarchicalSchema:
    """Names of a package's resource scopes and items, arranged as a tree."""

    IDENTIFIER: ClassVar[bytes] = b"[mrm_hschemaex] "

    unique_name: str = ""
    name: str = ""
    scopes: list[ResourceMapEntry] = field(default_factory=list)
    items: list[ResourceMapEntry] = field(default_factory=list)

    @classmethod
    def read(cls, stream: BinaryIO) -> HierarchicalSchema:
        """Read a schema section body; the stream must be seekable."""
        (
            version,
            unique_name_length,
            name_length,
            reserved,
            hnames,
            _major,
            _minor,
            reserved2,
            _checksum,
            num_scopes,
            num_items,
        ) = _PREFIX.unpack(_read_exact(stream, _PREFIX.size))
        if version != 1:
            raise PriFormatError("hierarchical schema: unsupported version")
        if reserved != 0 or reserved2 != 0:
            raise PriFormatError("hierarchical schema: reserved field is not zero")
        if hnames != _HNAMES:
            raise PriFormatError("hierarchical schema: missing names header")
        unique_name = _read_utf16z(stream)
        if _byte_length(unique_name) + 1 != unique_name_length:
            raise PriFormatError("hierarchical schema: unique name length mismatch")
        name = _read_utf16z(stream)
        if _byte_length(name) + 1 != name_length:
            raise PriFormatError("hierarchical schema: name length mismatch")
        (
            reserved3,
            _max_full_path_length,
            reserved4,
            total,
            scopes_again,
            items_again,
            unicode_data_length,
            _unknown1,
            _unknown2,
        ) = _MIDDLE.unpack(_read_exact(stream, _MIDDLE.size))
        if reserved3 != 0 or reserved4 != 0:
            raise PriFormatError("hierarchical schema: reserved field is not zero")
        if (total, scopes_again, items_again) != (
            num_scopes + num_items,
            num_scopes,
            num_items,
        ):
            raise PriFormatError("hierarchical schema: inconsistent entry counts")
        infos = [_EntryInfo.read(stream) for _ in range(num_scopes + num_items)]
        for _scope_index, _child_count, _first_child, zero in _SCOPE_EX.iter_unpack(
            _read_exact(stream, _SCOPE_EX.size * num_scopes)
        ):
            if zero != 0:
                raise PriFormatError("hierarchical schema: reserved field is not zero")
        _read_exact(stream, 2 * num_items)

        unicode_offset = stream.tell()
        ascii_offset = unicode_offset + unicode_data_length * 2
        scopes = [ResourceMapEntry() for _ in range(num_scopes)]
        items = [ResourceMapEntry() for _ in range(num_items)]
        for info in infos:
            if info.name_in_ascii:
                stream.seek(ascii_offset + info.name_offset)
            else:
                stream.seek(unicode_offset + info.name_offset * 2)
            entry_name = ""
            if info.full_path_length != 0:
                entry_name = (
                    _read_asciiz(stream) if info.name_in_ascii else _read_utf16z(stream)
                )
            parent = None if info.parent == _NO_PARENT else info.parent
            target = scopes if info.is_scope else items
            if info.index >= len(target):
                raise PriFormatError("hierarchical schema: entry index out of range")
            target[info.index] = ResourceMapEntry(parent, entry_name)
        return cls(unique_name, name, scopes, items)

    def write(self, stream: BinaryIO) -> None:
        """Write the section body."""
        num_scopes = len(self.scopes)
        num_items = len(self.items)
        stream.write(
            _PREFIX.pack(
                1,
                (_byte_length(self.unique_name) + 1) & 0xFFFF,
                (_byte_length(self.name) + 1) & 0xFFFF,
                0,
                _HNAMES,
                1,
                0,
                0,
                0,
                num_scopes,
                num_items,
            )
        )
        stream.write(_encode_utf16z(self.unique_name))
        stream.write(_encode_utf16z(self.name))
        stream.write(
            _MIDDLE.pack(
                0,
                _MAX_FULL_PATH_LENGTH,
                0,
                num_scopes + num_items,
                num_scopes,
                num_items,
                0,
                0,
                0,
            )
        )

        infos: list[_EntryInfo] = []
        scope_ex = bytearray()
        strings = bytearray()
        for is_scope, entries in ((True, self.scopes), (False, self.items)):
            for index, entry in enumerate(entries):
                infos.append(
                    _EntryInfo(
                        parent=_NO_PARENT if entry.parent is None else entry.parent,
                        full_path_length=_byte_length(entry.name),
                        is_scope=is_scope,
                        name_in_ascii=False,
                        name_offset=len(strings) // 2,
                        index=index,
                    )
                )
                if is_scope:
                    scope_ex += _SCOPE_EX.pack(index & 0xFFFF, 0, 0, 0)
                strings += _encode_utf16z(entry.name)
        for info in infos:
            stream.write(info.pack())
        stream.write(scope_ex)
        stream.write(bytes(2 * num_items))
        stream.write(strings)