"""The resource map section: items and their candidate values."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field
from typing import BinaryIO, ClassVar

from xbuildkit.pri.data_item import PriFormatError

_HEADER = struct.Struct("<8H4I")
_TYPE_ENTRY = struct.Struct("<II")
_PAIR = struct.Struct("<HH")
_CANDIDATE = struct.Struct("<BBHHH")
_TYPE_ENTRY_SIZE = 4
_CANDIDATE_FLAG = 0x01


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise PriFormatError("unexpected end of data")
    return data


def _read_pairs(stream: BinaryIO, count: int) -> list[tuple[int, int]]:
    return list(_PAIR.iter_unpack(_read_exact(stream, _PAIR.size * count)))


@dataclass(frozen=True)
class ItemToItemInfoGroup:
    first_item: int = 0
    item_info_group: int = 0


@dataclass(frozen=True)
class ItemInfoGroup:
    group_size: int = 0
    first_item_info: int = 0


@dataclass(frozen=True)
class ItemInfo:
    decision: int = 0
    first_candidate: int = 0


@dataclass(frozen=True)
class CandidateInfo:
    resource_value_type: int
    source_file_index: int
    data_item_index: int
    data_item_section: int


class ResourceValueType(enum.IntEnum):
    STRING = 0
    PATH = 1
    EMBEDDED_DATA = 2
    ASCII_STRING = 3
    UTF8_STRING = 4
    ASCII_PATH = 5
    UTF8_PATH = 6


@dataclass(frozen=True)
class Candidate:
    qualifier_set: int
    ty: ResourceValueType
    data_item_section: int
    data_item_index: int


@dataclass(frozen=True)
class CandidateSet:
    resource_map_item: int
    decision_index: int
    candidates: tuple[Candidate, ...] = ()


@dataclass
class ResourceMap:
    """Maps resource items to candidate values stored in data item sections."""

    IDENTIFIER: ClassVar[bytes] = b"[mrm_res_map2_]\0"

    hierarchical_schema_section: int = 0
    decision_info_section: int = 0
    item_to_item_info_groups: list[ItemToItemInfoGroup] = field(default_factory=list)
    item_info_groups: list[ItemInfoGroup] = field(default_factory=list)
    item_infos: list[ItemInfo] = field(default_factory=list)
    candidate_infos: list[CandidateInfo] = field(default_factory=list)

    @classmethod
    def read(cls, stream: BinaryIO) -> ResourceMap:
        """Read a resource map section body."""
        (
            environment_references_length,
            num_environment_references,
            hierarchical_schema_section,
            _schema_reference_length,
            decision_info_section,
            type_table_size,
            num_item_to_groups,
            num_item_info_groups,
            num_item_infos,
            num_candidates,
            _data_length,
            large_table_length,
        ) = _HEADER.unpack(_read_exact(stream, _HEADER.size))
        if environment_references_length != 0 or num_environment_references != 0:
            raise PriFormatError("resource map: environment references are not supported")
        if large_table_length != 0:
            raise PriFormatError("resource map: large tables are not supported")
        type_table = []
        for size, value_type in _TYPE_ENTRY.iter_unpack(
            _read_exact(stream, _TYPE_ENTRY.size * type_table_size)
        ):
            if size != _TYPE_ENTRY_SIZE:
                raise PriFormatError("resource map: unexpected value type entry size")
            type_table.append(value_type)
        item_to_groups = [
            ItemToItemInfoGroup(*pair) for pair in _read_pairs(stream, num_item_to_groups)
        ]
        item_info_groups = [
            ItemInfoGroup(*pair) for pair in _read_pairs(stream, num_item_info_groups)
        ]
        item_infos = [ItemInfo(*pair) for pair in _read_pairs(stream, num_item_infos)]
        candidates = []
        for flag, type_index, source_file, data_index, data_section in _CANDIDATE.iter_unpack(
            _read_exact(stream, _CANDIDATE.size * num_candidates)
        ):
            if flag != _CANDIDATE_FLAG:
                raise PriFormatError("resource map: unexpected candidate flag")
            if type_index >= len(type_table):
                raise PriFormatError("resource map: value type index out of range")
            candidates.append(
                CandidateInfo(type_table[type_index], source_file, data_index, data_section)
            )
        return cls(
            hierarchical_schema_section,
            decision_info_section,
            item_to_groups,
            item_info_groups,
            item_infos,
            candidates,
        )

    def write(self, stream: BinaryIO) -> None:
        """Write the section body."""
        type_table = sorted({c.resource_value_type for c in self.candidate_infos})
        type_index = {value_type: i for i, value_type in enumerate(type_table)}
        stream.write(
            _HEADER.pack(
                0,
                0,
                self.hierarchical_schema_section,
                0,
                self.decision_info_section,
                len(type_table) & 0xFFFF,
                len(self.item_to_item_info_groups) & 0xFFFF,
                len(self.item_info_groups) & 0xFFFF,
                len(self.item_infos),
                len(self.candidate_infos),
                0,
                0,
            )
        )
        for value_type in type_table:
            stream.write(_TYPE_ENTRY.pack(_TYPE_ENTRY_SIZE, value_type))
        for group in self.item_to_item_info_groups:
            stream.write(_PAIR.pack(group.first_item & 0xFFFF, group.item_info_group & 0xFFFF))
        for info_group in self.item_info_groups:
            stream.write(
                _PAIR.pack(info_group.group_size & 0xFFFF, info_group.first_item_info & 0xFFFF)
            )
        for item in self.item_infos:
            stream.write(_PAIR.pack(item.decision & 0xFFFF, item.first_candidate & 0xFFFF))
        for candidate in self.candidate_infos:
            stream.write(
                _CANDIDATE.pack(
                    _CANDIDATE_FLAG,
                    type_index[candidate.resource_value_type] & 0xFF,
                    candidate.source_file_index,
                    candidate.data_item_index,
                    candidate.data_item_section,
                )
            )