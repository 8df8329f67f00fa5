"""The descriptor section that indexes the other sections of a resource index."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field
from typing import BinaryIO, ClassVar

from xbuildkit.pri.data_item import PriFormatError

_HEADER = struct.Struct("<10H")
_NO_PRIMARY_ON_READ = 0x0FFF
_NO_PRIMARY_ON_WRITE = 0xFFFF


def _read_u16s(stream: BinaryIO, count: int) -> list[int]:
    size = 2 * count
    data = stream.read(size)
    if len(data) != size:
        raise PriFormatError("unexpected end of data")
    return list(struct.unpack(f"<{count}H", data))


class PriDescriptorFlags(enum.IntFlag):
    AUTO_MERGE = 1
    IS_DEPLOYMENT_MERGEABLE = 2
    IS_DEPLOYMENT_MERGE_RESULT = 4
    IS_AUTOMERGE_MERGE_RESULT = 8


@dataclass
class PriDescriptor:
    """Lists which sections hold schemas, decisions, maps and data."""

    IDENTIFIER: ClassVar[bytes] = b"[mrm_pridescex]\0"

    pri_flags: int = 0
    included_file_list_section: bool = False
    hierarchical_schema_sections: list[int] = field(default_factory=list)
    decision_info_sections: list[int] = field(default_factory=list)
    resource_map_sections: list[int] = field(default_factory=list)
    primary_resource_map_section: int | None = None
    referenced_file_sections: list[int] = field(default_factory=list)
    data_item_sections: list[int] = field(default_factory=list)

    @classmethod
    def read(cls, stream: BinaryIO) -> PriDescriptor:
        """Read a descriptor section body."""
        (
            pri_flags,
            included,
            reserved,
            num_schemas,
            num_decisions,
            num_maps,
            primary,
            num_referenced,
            num_data_items,
            trailing,
        ) = _read_u16s(stream, 10)
        if reserved != 0 or trailing != 0:
            raise PriFormatError("descriptor: reserved field is not zero")
        return cls(
            pri_flags=pri_flags,
            included_file_list_section=included == 0xFFFF,
            hierarchical_schema_sections=_read_u16s(stream, num_schemas),
            decision_info_sections=_read_u16s(stream, num_decisions),
            resource_map_sections=_read_u16s(stream, num_maps),
            primary_resource_map_section=None if primary == _NO_PRIMARY_ON_READ else primary,
            referenced_file_sections=_read_u16s(stream, num_referenced),
            data_item_sections=_read_u16s(stream, num_data_items),
        )

    def write(self, stream: BinaryIO) -> None:
        """Write the section body."""
        primary = self.primary_resource_map_section
        stream.write(
            _HEADER.pack(
                self.pri_flags,
                0xFFFF if self.included_file_list_section else 0,
                0,
                len(self.hierarchical_schema_sections),
                len(self.decision_info_sections),
                len(self.resource_map_sections),
                _NO_PRIMARY_ON_WRITE if primary is None else primary,
                len(self.referenced_file_sections),
                len(self.data_item_sections),
                0,
            )
        )
        ids = [
            *self.hierarchical_schema_sections,
            *self.decision_info_sections,
            *self.resource_map_sections,
            *self.referenced_file_sections,
            *self.data_item_sections,
        ]
        stream.write(struct.pack(f"<{len(ids)}H", *ids))