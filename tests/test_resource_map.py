import io
import struct

import pytest

from xbuildkit.pri.data_item import PriFormatError
from xbuildkit.pri.resource_map import (
    CandidateInfo,
    ItemInfo,
    ItemInfoGroup,
    ItemToItemInfoGroup,
    ResourceMap,
    ResourceValueType,
)


def _sample() -> ResourceMap:
    return ResourceMap(
        hierarchical_schema_section=1,
        decision_info_section=2,
        item_to_item_info_groups=[ItemToItemInfoGroup(0, 0)],
        item_info_groups=[ItemInfoGroup(2, 0)],
        item_infos=[ItemInfo(0, 0), ItemInfo(1, 1)],
        candidate_infos=[
            CandidateInfo(ResourceValueType.ASCII_PATH, 0, 0, 3),
            CandidateInfo(ResourceValueType.PATH, 0, 1, 3),
            CandidateInfo(ResourceValueType.ASCII_PATH, 0, 2, 3),
        ],
    )


def _encode(resource_map: ResourceMap) -> bytes:
    buffer = io.BytesIO()
    resource_map.write(buffer)
    return buffer.getvalue()


def _read(data: bytes) -> ResourceMap:
    return ResourceMap.read(io.BytesIO(data))


def test_round_trip():
    resource_map = _sample()
    assert _read(_encode(resource_map)) == resource_map


def test_empty_map_is_zero_header():
    data = _encode(ResourceMap())
    assert data == bytes(32)
    assert _read(data) == ResourceMap()


def test_value_type_table_is_sorted_and_unique():
    data = _encode(_sample())
    header = struct.unpack("<8H4I", data[:32])
    assert header[5] == 2
    assert struct.unpack("<4I", data[32:48]) == (
        4,
        ResourceValueType.PATH,
        4,
        ResourceValueType.ASCII_PATH,
    )


def test_candidates_reference_type_table():
    resource_map = _sample()
    data = _encode(resource_map)
    candidates = data[-8 * len(resource_map.candidate_infos) :]
    flags = candidates[0::8]
    indices = candidates[1::8]
    assert set(flags) == {1}
    assert list(indices) == [1, 0, 1]


def test_header_fields():
    resource_map = _sample()
    header = struct.unpack("<8H4I", _encode(resource_map)[:32])
    assert header[2] == resource_map.hierarchical_schema_section
    assert header[4] == resource_map.decision_info_section
    assert header[8] == len(resource_map.item_infos)
    assert header[9] == len(resource_map.candidate_infos)


def _patched(offset: int, value: bytes) -> bytes:
    data = bytearray(_encode(_sample()))
    data[offset : offset + len(value)] = value
    return bytes(data)


def test_environment_references_rejected():
    with pytest.raises(PriFormatError):
        _read(_patched(0, b"\x01\x00"))


def test_large_table_rejected():
    with pytest.raises(PriFormatError):
        _read(_patched(28, struct.pack("<I", 1)))


def test_bad_type_entry_size_rejected():
    with pytest.raises(PriFormatError):
        _read(_patched(32, struct.pack("<I", 8)))


def test_bad_candidate_flag_rejected():
    data = _encode(_sample())
    with pytest.raises(PriFormatError):
        _read(_patched(len(data) - 24, b"\x02"))


def test_candidate_type_index_out_of_range():
    data = _encode(_sample())
    with pytest.raises(PriFormatError):
        _read(_patched(len(data) - 23, b"\x09"))


def test_truncated_data():
    data = _encode(_sample())
    with pytest.raises(PriFormatError):
        _read(data[:-1])