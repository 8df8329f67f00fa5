"""Maven version range specifications and version sets."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from xbuildkit.mvn.package import Version


class RangeError(ValueError):
    """A version range specification is malformed."""


class TokenKind(enum.Enum):
    OPEN = "open"
    COMMA = "comma"
    CLOSE = "close"
    VERSION = "version"


@dataclass(frozen=True)
class Token:
    """A lexical token of a range specification.

    ``inclusive`` applies to brackets, ``text`` to versions.
    """

    kind: TokenKind
    inclusive: bool = False
    text: str = ""


@dataclass(frozen=True)
class Bound:
    version: str
    inclusive: bool


class RangeKind(enum.Enum):
    EXACT = "exact"
    GREATER = "greater"
    LOWER = "lower"
    BETWEEN = "between"


@dataclass(frozen=True)
class PartialRange:
    """One comma-separated part of a range specification.

    EXACT keeps its version in ``lower``; GREATER uses ``lower``;
    LOWER uses ``upper``; BETWEEN uses both.
    """

    kind: RangeKind
    lower: Bound | None = None
    upper: Bound | None = None


_Segment = tuple[Version, "Version | None"]


@dataclass(frozen=True)
class VersionRange:
    """A set of versions as sorted, disjoint half-open segments."""

    segments: tuple[_Segment, ...] = ()

    @classmethod
    def none(cls) -> VersionRange:
        return cls(())

    @classmethod
    def any(cls) -> VersionRange:
        return cls(((Version.lowest(), None),))

    @classmethod
    def exact(cls, version: Version) -> VersionRange:
        return cls(((version, version.bump()),))

    @classmethod
    def higher_than(cls, version: Version) -> VersionRange:
        return cls(((version, None),))

    @classmethod
    def strictly_lower_than(cls, version: Version) -> VersionRange:
        if version == Version.lowest():
            return cls.none()
        return cls(((Version.lowest(), version),))

    @classmethod
    def between(cls, low: Version, high: Version) -> VersionRange:
        if low < high:
            return cls(((low, high),))
        return cls.none()

    def complement(self) -> VersionRange:
        if not self.segments:
            return VersionRange.any()
        result: list[_Segment] = []
        cursor = Version.lowest()
        for start, end in self.segments:
            if cursor < start:
                result.append((cursor, start))
            if end is None:
                return VersionRange(tuple(result))
            cursor = end
        result.append((cursor, None))
        return VersionRange(tuple(result))

    def intersection(self, other: VersionRange) -> VersionRange:
        result: list[_Segment] = []
        left = iter(self.segments)
        right = iter(other.segments)
        current_left = next(left, None)
        current_right = next(right, None)
        while current_left is not None and current_right is not None:
            l_start, l_end = current_left
            r_start, r_end = current_right
            start = max(l_start, r_start)
            if l_end is None and r_end is None:
                result.append((start, None))
                break
            if r_end is None or (l_end is not None and l_end < r_end):
                if start < l_end:
                    result.append((start, l_end))
                current_left = next(left, None)
            else:
                if start < r_end:
                    result.append((start, r_end))
                current_right = next(right, None)
        return VersionRange(tuple(result))

    def union(self, other: VersionRange) -> VersionRange:
        return self.complement().intersection(other.complement()).complement()

    def contains(self, version: Version) -> bool:
        return any(
            start <= version and (end is None or version < end)
            for start, end in self.segments
        )

    def __contains__(self, version: Version) -> bool:
        return self.contains(version)

    def lowest_version(self) -> Version | None:
        """The smallest version in the set, or None when it is empty."""
        if not self.segments:
            return None
        return self.segments[0][0]

    def __str__(self) -> str:
        if not self.segments:
            return "∅"
        parts = []
        for start, end in self.segments:
            if end is None:
                parts.append(f">={start}")
            elif end == start.bump():
                parts.append(str(start))
            else:
                parts.append(f">={start}, <{end}")
        return " | ".join(parts)


_BRACKETS = {
    "[": Token(TokenKind.OPEN, inclusive=True),
    "(": Token(TokenKind.OPEN, inclusive=False),
    "]": Token(TokenKind.CLOSE, inclusive=True),
    ")": Token(TokenKind.CLOSE, inclusive=False),
    ",": Token(TokenKind.COMMA),
}


def tokenize(text: str) -> Iterator[Token]:
    """Split a range specification into tokens."""
    buffer: list[str] = []
    for char in text:
        token = _BRACKETS.get(char)
        if token is None:
            buffer.append(char)
            continue
        if buffer:
            yield Token(TokenKind.VERSION, text="".join(buffer))
            buffer.clear()
        yield token
    if buffer:
        yield Token(TokenKind.VERSION, text="".join(buffer))


def _parse_partial(tokens: Iterator[Token]) -> PartialRange | None:
    token = next(tokens, None)
    if token is None:
        return None
    if token.kind is TokenKind.VERSION:
        return PartialRange(RangeKind.GREATER, lower=Bound(token.text, True))
    if token.kind is not TokenKind.OPEN:
        return None
    open_inclusive = token.inclusive

    token = next(tokens, None)
    if token is None:
        return None
    lower: Bound | None
    if token.kind is TokenKind.VERSION:
        after = next(tokens, None)
        if after is None:
            return None
        if after.kind is TokenKind.COMMA:
            lower = Bound(token.text, open_inclusive)
        elif after.kind is TokenKind.CLOSE and after.inclusive and open_inclusive:
            return PartialRange(RangeKind.EXACT, lower=Bound(token.text, True))
        else:
            return None
    elif token.kind is TokenKind.COMMA:
        lower = None
    else:
        return None

    token = next(tokens, None)
    if token is None:
        return None
    upper: Bound | None
    if token.kind is TokenKind.CLOSE:
        upper = None
    elif token.kind is TokenKind.VERSION:
        after = next(tokens, None)
        if after is None or after.kind is not TokenKind.CLOSE:
            return None
        upper = Bound(token.text, after.inclusive)
    else:
        return None

    if lower is None and upper is not None:
        return PartialRange(RangeKind.LOWER, upper=upper)
    if lower is not None and upper is None:
        return PartialRange(RangeKind.GREATER, lower=lower)
    if lower is not None and upper is not None:
        return PartialRange(RangeKind.BETWEEN, lower=lower, upper=upper)
    return None


def parse_ranges(tokens: Iterable[Token]) -> Iterator[PartialRange]:
    """Yield the comma-separated partial ranges; stops at a malformed part."""
    stream = iter(tokens)
    first = True
    while True:
        if not first:
            separator = next(stream, None)
            if separator is None:
                return
            if separator.kind is not TokenKind.COMMA:
                raise RangeError(f"expected ',' between ranges, found {separator}")
        first = False
        partial = _parse_partial(stream)
        if partial is None:
            return
        yield partial


def _to_version_range(partial: PartialRange) -> VersionRange:
    if partial.kind is RangeKind.EXACT:
        return VersionRange.exact(Version.parse(partial.lower.version))
    if partial.kind is RangeKind.LOWER:
        version = Version.parse(partial.upper.version)
        if partial.upper.inclusive:
            version = version.bump()
        return VersionRange.strictly_lower_than(version)
    if partial.kind is RangeKind.GREATER:
        return VersionRange.higher_than(Version.parse(partial.lower.version))
    low = Version.parse(partial.lower.version)
    high = Version.parse(partial.upper.version)
    if partial.upper.inclusive:
        high = high.bump()
    return VersionRange.between(low, high)


def parse_range(text: str) -> VersionRange:
    """Turn a Maven range specification into the set of versions it allows."""
    result = VersionRange.none()
    for partial in parse_ranges(tokenize(text)):
        result = result.union(_to_version_range(partial))
    return result