import io
import struct

import pytest

from xbuildkit.pri.data_item import PriFormatError
from xbuildkit.pri.pri_descriptor import PriDescriptor, PriDescriptorFlags


def roundtrip(descriptor):
    buffer = io.BytesIO()
    descriptor.write(buffer)
    buffer.seek(0)
    return PriDescriptor.read(buffer)


def test_default_wire_bytes():
    buffer = io.BytesIO()
    PriDescriptor().write(buffer)
    assert buffer.getvalue() == b"\0" * 12 + b"\xff\xff" + b"\0" * 6
    assert PriDescriptor.IDENTIFIER == b"[mrm_pridescex]\0"


def test_roundtrip_all_fields():
    descriptor = PriDescriptor(
        pri_flags=PriDescriptorFlags.AUTO_MERGE | PriDescriptorFlags.IS_DEPLOYMENT_MERGEABLE,
        included_file_list_section=True,
        hierarchical_schema_sections=[0],
        decision_info_sections=[1],
        resource_map_sections=[2, 3],
        primary_resource_map_section=2,
        referenced_file_sections=[],
        data_item_sections=[4, 5, 6],
    )
    parsed = roundtrip(descriptor)
    assert parsed == descriptor
    assert parsed.pri_flags & PriDescriptorFlags.IS_DEPLOYMENT_MERGEABLE


def test_written_length_matches_section_count():
    descriptor = PriDescriptor(
        hierarchical_schema_sections=[0],
        decision_info_sections=[1],
        resource_map_sections=[2],
        data_item_sections=[3, 4],
    )
    buffer = io.BytesIO()
    descriptor.write(buffer)
    assert len(buffer.getvalue()) == 20 + 2 * 5


def test_section_lists_keep_their_order():
    data = struct.pack("<10H", 0, 0, 0, 1, 1, 1, 7, 1, 1, 0) + struct.pack(
        "<5H", 10, 20, 30, 40, 50
    )
    parsed = PriDescriptor.read(io.BytesIO(data))
    assert parsed.hierarchical_schema_sections == [10]
    assert parsed.decision_info_sections == [20]
    assert parsed.resource_map_sections == [30]
    assert parsed.referenced_file_sections == [40]
    assert parsed.data_item_sections == [50]
    assert parsed.primary_resource_map_section == 7
    assert parsed.included_file_list_section is False


def test_absent_primary_marker_on_read():
    data = struct.pack("<10H", 0, 0, 0, 0, 0, 0, 0x0FFF, 0, 0, 0)
    parsed = PriDescriptor.read(io.BytesIO(data))
    assert parsed.primary_resource_map_section is None


def test_reserved_field_must_be_zero():
    data = struct.pack("<10H", 0, 0, 1, 0, 0, 0, 0, 0, 0, 0)
    with pytest.raises(PriFormatError):
        PriDescriptor.read(io.BytesIO(data))


def test_trailing_reserved_field_must_be_zero():
    data = struct.pack("<10H", 0, 0, 0, 0, 0, 0, 0, 0, 0, 1)
    with pytest.raises(PriFormatError):
        PriDescriptor.read(io.BytesIO(data))


def test_truncated_section_list_raises():
    data = struct.pack("<10H", 0, 0, 0, 2, 0, 0, 0, 0, 0, 0) + struct.pack("<H", 1)
    with pytest.raises(PriFormatError):
        PriDescriptor.read(io.BytesIO(data))