"""Package resource index files: a header, a table of contents and sections."""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass, field
from typing import BinaryIO, ClassVar, Union

from xbuildkit.pri.data_item import DataItem, PriFormatError
from xbuildkit.pri.decision_info import DecisionInfo
from xbuildkit.pri.hierarchical_schema import HierarchicalSchema
from xbuildkit.pri.pri_descriptor import PriDescriptor
from xbuildkit.pri.resource_map import ResourceMap

_FILE_HEADER = struct.Struct("<HHIIIHHI")
_FILE_TRAILER = struct.Struct("<II8s")
_TOC_ENTRY = struct.Struct("<16sHHIII")
_SECTION_HEADER = struct.Struct("<16sIHHII")
_SECTION_TRAILER = struct.Struct("<II")
_U32 = struct.Struct("<I")
_FILE_MAGIC = 0xDEFFFADE
_SECTION_MAGIC = 0xDEF5FADE
_TOC_OFFSET = 30
_SECTION_OVERHEAD = _SECTION_HEADER.size + _SECTION_TRAILER.size


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise PriFormatError("unexpected end of data")
    return data


def _identifier_text(identifier: bytes) -> str:
    try:
        return identifier.decode("utf-8")
    except UnicodeDecodeError:
        return repr(identifier)


@dataclass(frozen=True)
class TocEntry:
    """One entry of the table of contents, locating a section."""

    section_identifier: bytes
    flags: int
    section_flags: int
    section_qualifier: int
    section_offset: int
    section_length: int

    @classmethod
    def read(cls, stream: BinaryIO) -> TocEntry:
        return cls(*_TOC_ENTRY.unpack(_read_exact(stream, _TOC_ENTRY.size)))

    def write(self, stream: BinaryIO) -> None:
        stream.write(
            _TOC_ENTRY.pack(
                self.section_identifier,
                self.flags,
                self.section_flags,
                self.section_qualifier,
                self.section_offset,
                self.section_length,
            )
        )

    def __repr__(self) -> str:
        return (
            f"TocEntry(section_identifier={_identifier_text(self.section_identifier)!r}, "
            f"flags={self.flags}, section_flags={self.section_flags}, "
            f"section_qualifier={self.section_qualifier}, "
            f"section_offset={self.section_offset}, section_length={self.section_length})"
        )


@dataclass(repr=False)
class UnknownSection:
    """A section whose contents are kept as raw bytes."""

    identifier: bytes
    data: bytes

    @classmethod
    def read(cls, identifier: bytes, length: int, stream: BinaryIO) -> UnknownSection:
        return cls(identifier, stream.read(length))

    def write(self, stream: BinaryIO) -> None:
        stream.write(self.data)

    def __repr__(self) -> str:
        return (
            f"UnknownSection(identifier={_identifier_text(self.identifier)!r}, "
            f"length={len(self.data)}, ...)"
        )


SectionData = Union[
    DataItem, PriDescriptor, ResourceMap, DecisionInfo, HierarchicalSchema, UnknownSection
]

_KNOWN_SECTIONS: dict[bytes, type] = {
    DataItem.IDENTIFIER: DataItem,
    PriDescriptor.IDENTIFIER: PriDescriptor,
    ResourceMap.IDENTIFIER: ResourceMap,
    DecisionInfo.IDENTIFIER: DecisionInfo,
    HierarchicalSchema.IDENTIFIER: HierarchicalSchema,
}


def section_identifier(data: SectionData) -> bytes:
    """The 16-byte identifier under which a section's data is stored."""
    if isinstance(data, UnknownSection):
        return data.identifier
    return type(data).IDENTIFIER


def read_section_data(identifier: bytes, length: int, stream: BinaryIO) -> SectionData:
    """Read a section body of the kind named by ``identifier``."""
    section_type = _KNOWN_SECTIONS.get(identifier)
    if section_type is None:
        return UnknownSection.read(identifier, length, stream)
    return section_type.read(stream)


def write_section_data(data: SectionData, stream: BinaryIO) -> None:
    """Write a section body."""
    data.write(stream)


@dataclass
class Section:
    """A section with its header fields and decoded contents."""

    section_qualifier: int
    flags: int
    section_flags: int
    data: SectionData

    @classmethod
    def read(cls, stream: BinaryIO) -> Section:
        """Read a section, header and trailer included; the stream must be seekable."""
        start = stream.tell()
        identifier, qualifier, flags, section_flags, length, reserved = (
            _SECTION_HEADER.unpack(_read_exact(stream, _SECTION_HEADER.size))
        )
        if reserved != 0:
            raise PriFormatError("section: reserved field is not zero")
        if length < _SECTION_OVERHEAD:
            raise PriFormatError("section: length is too small")
        data = read_section_data(identifier, length - _SECTION_OVERHEAD, stream)
        stream.seek(start + length - _SECTION_TRAILER.size)
        magic, trailing_length = _SECTION_TRAILER.unpack(
            _read_exact(stream, _SECTION_TRAILER.size)
        )
        if magic != _SECTION_MAGIC:
            raise PriFormatError("section: bad trailer magic")
        if trailing_length != length:
            raise PriFormatError("section: trailer length mismatch")
        return cls(qualifier, flags, section_flags, data)

    def write(self, stream: BinaryIO) -> None:
        """Write the section; the stream must be seekable."""
        stream.write(
            _SECTION_HEADER.pack(
                section_identifier(self.data),
                self.section_qualifier,
                self.flags,
                self.section_flags,
                0,
                0,
            )
        )
        start = stream.tell()
        write_section_data(self.data, stream)
        end = stream.tell()
        length = (end - start + _SECTION_OVERHEAD) & 0xFFFFFFFF
        stream.write(_SECTION_TRAILER.pack(_SECTION_MAGIC, length))
        stream.seek(start - 8)
        stream.write(_U32.pack(length))
        stream.seek(end + _SECTION_TRAILER.size)


@dataclass
class PriFile:
    """A package resource index."""

    MRM_PRI0: ClassVar[str] = "mrm_pri0"
    MRM_PRI1: ClassVar[str] = "mrm_pri1"
    MRM_PRI2: ClassVar[str] = "mrm_pri2"
    MRM_PRIF: ClassVar[str] = "mrm_prif"

    sections: list[Section] = field(default_factory=list)

    @classmethod
    def open(cls, path: str | os.PathLike[str]) -> PriFile:
        """Read a resource index from a file."""
        with open(path, "rb") as stream:
            return cls.read(stream)

    @classmethod
    def read(cls, stream: BinaryIO) -> PriFile:
        """Read a resource index from a seekable binary stream."""
        magic = _read_exact(stream, 8)
        versions = {
            v.encode("ascii") for v in (cls.MRM_PRI0, cls.MRM_PRI1, cls.MRM_PRI2, cls.MRM_PRIF)
        }
        if magic not in versions:
            raise PriFormatError("Data does not start with a PRI file header.")
        (
            reserved,
            one,
            total_file_size,
            toc_offset,
            section_start,
            num_sections,
            marker,
            reserved2,
        ) = _FILE_HEADER.unpack(_read_exact(stream, _FILE_HEADER.size))
        if reserved != 0 or one != 1 or marker != 0xFFFF:
            raise PriFormatError("pri file: unexpected header values")
        if reserved2 != 0:
            raise PriFormatError("expected 0")
        if total_file_size < _FILE_TRAILER.size:
            raise PriFormatError("pri file: total size is too small")
        stream.seek(total_file_size - _FILE_TRAILER.size)
        trailer_magic, trailer_size, trailer_version = _FILE_TRAILER.unpack(
            _read_exact(stream, _FILE_TRAILER.size)
        )
        if trailer_magic != _FILE_MAGIC:
            raise PriFormatError("pri file: bad trailer magic")
        if trailer_size != total_file_size:
            raise PriFormatError("pri file: trailer size mismatch")
        if trailer_version != magic:
            raise PriFormatError("pri file: trailer version mismatch")
        stream.seek(toc_offset)
        toc = [TocEntry.read(stream) for _ in range(num_sections)]
        sections = []
        for entry in toc:
            stream.seek(section_start + entry.section_offset)
            sections.append(Section.read(stream))
        return cls(sections)

    def create(self, path: str | os.PathLike[str]) -> None:
        """Write the resource index to a file."""
        with open(path, "wb") as stream:
            self.write(stream)

    def write(self, stream: BinaryIO) -> None:
        """Write the resource index to a seekable binary stream."""
        version = self.MRM_PRI2.encode("ascii")
        section_start = len(self.sections) * _TOC_ENTRY.size + _TOC_OFFSET
        stream.write(version)
        stream.write(
            _FILE_HEADER.pack(
                0, 1, 0, _TOC_OFFSET, section_start, len(self.sections) & 0xFFFF, 0xFFFF, 0
            )
        )
        for section in self.sections:
            TocEntry(
                section_identifier(section.data),
                section.flags,
                section.section_flags,
                section.section_qualifier,
                0,
                0,
            ).write(stream)
        for i, section in enumerate(self.sections):
            start = stream.tell()
            section.write(stream)
            end = stream.tell()
            stream.seek(_TOC_OFFSET + _TOC_ENTRY.size * i + 24)
            stream.write(
                struct.pack(
                    "<II", (start - section_start) & 0xFFFFFFFF, (end - start) & 0xFFFFFFFF
                )
            )
            stream.seek(end)
        total_file_size = stream.tell() + _FILE_TRAILER.size
        stream.write(_FILE_TRAILER.pack(_FILE_MAGIC, total_file_size & 0xFFFFFFFF, version))
        stream.seek(12)
        stream.write(_U32.pack(total_file_size & 0xFFFFFFFF))

    def add_section(self, section: Section) -> None:
        self.sections.append(section)

    @property
    def num_sections(self) -> int:
        return len(self.sections)

    def section(self, index: int) -> Section | None:
        """The section at ``index``, or None if absent."""
        return self.sections[index] if 0 <= index < len(self.sections) else None