"""The decision info section: qualifiers, qualifier sets and decisions."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field
from typing import BinaryIO, ClassVar

from xbuildkit.pri.data_item import PriFormatError

_HEADER = struct.Struct("<6H")
_PAIR = struct.Struct("<HH")
_QUALIFIER = struct.Struct("<4H")
_DISTINCT = struct.Struct("<4HI")
_U16 = struct.Struct("<H")


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise PriFormatError("unexpected end of data")
    return data


def _read_utf16z(stream: BinaryIO) -> str:
    chars = []
    while True:
        (code,) = _U16.unpack(_read_exact(stream, 2))
        if code == 0:
            return "".join(chars)
        chars.append(chr(code))


def _encode_utf16z(text: str) -> bytes:
    return b"".join(_U16.pack(ord(c) & 0xFFFF) for c in text) + b"\0\0"


def _take(table: list[int], first: int, count: int) -> list[int]:
    if first + count > len(table):
        raise PriFormatError("decision info: index table reference out of range")
    return table[first : first + count]


def _score_to_u16(score: float) -> int:
    # Truncates like an integer cast; the epsilon absorbs float error on round trips.
    return max(0, min(0xFFFF, int(score * 1000.0 + 1e-6)))


class QualifierType(enum.IntEnum):
    LANGUAGE = 0
    CONTRAST = 1
    SCALE = 2
    HOME_REGION = 3
    TARGET_SIZE = 4
    LAYOUT_DIRECTION = 5
    THEME = 6
    ALTERNATE_FORM = 7
    DX_FEATURE_LEVEL = 8
    CONFIGURATION = 9
    DEVICE_FAMILY = 10
    CUSTOM = 11


@dataclass
class Qualifier:
    """A condition on the environment, such as a language or a scale."""

    qualifier_type: QualifierType
    priority: int
    fallback_score: float
    value: str


@dataclass
class QualifierSet:
    """Indices of qualifiers that must all hold."""

    qualifiers: list[int] = field(default_factory=list)


@dataclass
class Decision:
    """Indices of the qualifier sets a decision chooses between."""

    qualifier_sets: list[int] = field(default_factory=list)


@dataclass
class DecisionInfo:
    """All qualifiers, qualifier sets and decisions of a resource index."""

    IDENTIFIER: ClassVar[bytes] = b"[mrm_decn_info]\0"

    qualifiers: list[Qualifier] = field(default_factory=list)
    qualifier_sets: list[QualifierSet] = field(default_factory=list)
    decisions: list[Decision] = field(default_factory=list)

    @classmethod
    def read(cls, stream: BinaryIO) -> DecisionInfo:
        """Read a decision info section body; the stream must be seekable."""
        (
            num_distinct,
            num_qualifiers,
            num_sets,
            num_decisions,
            num_index_entries,
            _total_data_length,
        ) = _HEADER.unpack(_read_exact(stream, _HEADER.size))
        decision_infos = list(
            _PAIR.iter_unpack(_read_exact(stream, _PAIR.size * num_decisions))
        )
        set_infos = list(_PAIR.iter_unpack(_read_exact(stream, _PAIR.size * num_sets)))
        qualifier_infos = []
        for index, priority, fallback, reserved in _QUALIFIER.iter_unpack(
            _read_exact(stream, _QUALIFIER.size * num_qualifiers)
        ):
            if reserved != 0:
                raise PriFormatError("decision info: reserved field is not zero")
            qualifier_infos.append((index, priority, fallback))
        distinct_infos = [
            (qualifier_type, offset)
            for _, qualifier_type, _, _, offset in _DISTINCT.iter_unpack(
                _read_exact(stream, _DISTINCT.size * num_distinct)
            )
        ]
        index_table = list(
            struct.unpack(
                f"<{num_index_entries}H", _read_exact(stream, 2 * num_index_entries)
            )
        )
        data_start = stream.tell()

        qualifiers = []
        for index, priority, fallback in qualifier_infos:
            if index >= len(distinct_infos):
                raise PriFormatError("decision info: distinct qualifier out of range")
            raw_type, offset = distinct_infos[index]
            try:
                qualifier_type = QualifierType(raw_type)
            except ValueError:
                continue
            stream.seek(data_start + offset * 2)
            qualifiers.append(
                Qualifier(qualifier_type, priority, fallback / 1000.0, _read_utf16z(stream))
            )
        qualifier_sets = [
            QualifierSet(_take(index_table, first, count)) for first, count in set_infos
        ]
        decisions = [
            Decision(_take(index_table, first, count)) for first, count in decision_infos
        ]
        return cls(qualifiers, qualifier_sets, decisions)

    def write(self, stream: BinaryIO) -> None:
        """Write the section body; the stream must be seekable."""
        values = bytearray()
        distinct: dict[tuple[QualifierType, str], int] = {}
        distinct_infos: list[tuple[int, int]] = []
        qualifier_infos: list[tuple[int, int, int]] = []
        for qualifier in self.qualifiers:
            key = (qualifier.qualifier_type, qualifier.value)
            index = distinct.get(key)
            if index is None:
                index = len(distinct_infos)
                distinct[key] = index
                distinct_infos.append((int(qualifier.qualifier_type), len(values) // 2))
                values += _encode_utf16z(qualifier.value)
            qualifier_infos.append(
                (index, qualifier.priority, _score_to_u16(qualifier.fallback_score))
            )

        index_table: list[int] = []
        set_infos = []
        for qualifier_set in self.qualifier_sets:
            set_infos.append((len(index_table), len(qualifier_set.qualifiers)))
            index_table.extend(qualifier_set.qualifiers)
        decision_infos = []
        for decision in self.decisions:
            decision_infos.append((len(index_table), len(decision.qualifier_sets)))
            index_table.extend(decision.qualifier_sets)

        stream.write(
            _HEADER.pack(
                len(distinct_infos),
                len(qualifier_infos),
                len(set_infos),
                len(decision_infos),
                len(index_table) & 0xFFFF,
                0,
            )
        )
        start = stream.tell()
        for first, count in (*decision_infos, *set_infos):
            stream.write(_PAIR.pack(first & 0xFFFF, count & 0xFFFF))
        for index, priority, fallback in qualifier_infos:
            stream.write(_QUALIFIER.pack(index & 0xFFFF, priority & 0xFFFF, fallback, 0))
        for qualifier_type, offset in distinct_infos:
            stream.write(_DISTINCT.pack(0, qualifier_type, 0, 0, offset))
        for index in index_table:
            stream.write(_U16.pack(index & 0xFFFF))
        stream.write(values)
        end = stream.tell()
        stream.seek(start - 2)
        stream.write(_U16.pack((end - start) & 0xFFFF))
        stream.seek(end)

    @property
    def num_qualifiers(self) -> int:
        return len(self.qualifiers)

    @property
    def num_qualifier_sets(self) -> int:
        return len(self.qualifier_sets)

    @property
    def num_decisions(self) -> int:
        return len(self.decisions)

    def qualifier(self, index: int) -> Qualifier | None:
        """The qualifier at ``index``, or None if absent."""
        return self.qualifiers[index] if 0 <= index < len(self.qualifiers) else None

    def add_qualifier(self, qualifier: Qualifier) -> int:
        """Append a qualifier and return its index."""
        self.qualifiers.append(qualifier)
        return len(self.qualifiers) - 1

    def qualifier_set(self, index: int) -> QualifierSet | None:
        """The qualifier set at ``index``, or None if absent."""
        if 0 <= index < len(self.qualifier_sets):
            return self.qualifier_sets[index]
        return None

    def add_qualifier_set(self, qualifier_set: QualifierSet) -> int:
        """Append a qualifier set and return its index."""
        self.qualifier_sets.append(qualifier_set)
        return len(self.qualifier_sets) - 1

    def decision(self, index: int) -> Decision | None:
        """The decision at ``index``, or None if absent."""
        return self.decisions[index] if 0 <= index < len(self.decisions) else None

    def add_decision(self, decision: Decision) -> int:
        """Append a decision and return its index."""
        self.decisions.append(decision)
        return len(self.decisions) - 1