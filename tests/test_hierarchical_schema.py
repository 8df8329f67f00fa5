import io
import struct

import pytest

from xbuildkit.pri.data_item import PriFormatError
from xbuildkit.pri.hierarchical_schema import HierarchicalSchema, ResourceMapEntry


def _schema():
    return HierarchicalSchema(
        unique_name="ms-appx://app/",
        name="app",
        scopes=[
            ResourceMapEntry(None, "Files"),
            ResourceMapEntry(0, "Assets"),
        ],
        items=[ResourceMapEntry(1, "logo.png")],
    )


def _encode(schema):
    buf = io.BytesIO()
    schema.write(buf)
    return buf.getvalue()


def _decode(data):
    return HierarchicalSchema.read(io.BytesIO(data))


def test_round_trip():
    schema = _schema()
    assert _decode(_encode(schema)) == schema


def test_round_trip_empty_schema():
    schema = HierarchicalSchema()
    assert _decode(_encode(schema)) == schema


def test_round_trip_empty_entry_name():
    schema = HierarchicalSchema(
        unique_name="u",
        name="n",
        scopes=[ResourceMapEntry(None, "")],
        items=[ResourceMapEntry(0, "")],
    )
    assert _decode(_encode(schema)) == schema


def test_round_trip_non_ascii_names():
    schema = HierarchicalSchema(
        unique_name="für",
        name="größe",
        scopes=[ResourceMapEntry(None, "Ünïcode")],
        items=[ResourceMapEntry(0, "ß.png")],
    )
    decoded = _decode(_encode(schema))
    assert decoded.unique_name == "für"
    assert decoded.items[0].name == "ß.png"
    assert decoded == schema


def test_header_layout():
    data = _encode(_schema())
    assert data[:8] == struct.pack("<4H", 1, len("ms-appx://app/") + 1, len("app") + 1, 0)
    assert data[8:24] == b"[def_hnamesx]  \0"
    assert struct.unpack_from("<II", data, 36) == (2, 1)
    assert HierarchicalSchema.IDENTIFIER == b"[mrm_hschemaex] "


def test_wrong_version_rejected():
    data = bytearray(_encode(_schema()))
    data[0:2] = b"\x02\x00"
    with pytest.raises(PriFormatError):
        _decode(bytes(data))


def test_wrong_names_header_rejected():
    data = bytearray(_encode(_schema()))
    data[8:24] = b"[def_xxxxxx]  \0\0"
    with pytest.raises(PriFormatError):
        _decode(bytes(data))


def test_name_length_mismatch_rejected():
    data = bytearray(_encode(_schema()))
    data[2:4] = struct.pack("<H", 3)
    with pytest.raises(PriFormatError):
        _decode(bytes(data))


def test_truncated_data_rejected():
    data = _encode(_schema())
    with pytest.raises(PriFormatError):
        _decode(data[:20])