"""Maven coordinates: packages, versions and artifacts."""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass

_NUMBER = re.compile(r"\+?[0-9]+")
_U32_MAX = 0xFFFFFFFF


@dataclass(frozen=True)
class Package:
    """A Maven package identified by group and artifact id."""

    group: str
    name: str

    def file_name(self) -> str:
        """Name of the cached metadata file for this package."""
        return f"{self.group}-{self.name}.metadata.xml"

    def url(self, repo: str) -> str:
        """URL of the package metadata in the given repository."""
        group = self.group.replace(".", "/")
        return f"{repo}/{group}/{self.name}/maven-metadata.xml"

    def __str__(self) -> str:
        return f"{self.group}:{self.name}"


def _parse_component(text: str) -> int:
    if not _NUMBER.fullmatch(text):
        raise ValueError(f"invalid version component: {text!r}")
    value = int(text)
    if value > _U32_MAX:
        raise ValueError(f"version component out of range: {text!r}")
    return value


@functools.total_ordering
@dataclass(frozen=True)
class Version:
    """A major.minor.patch version with an optional suffix.

    A version with a suffix sorts before the same version without one.
    """

    major: int = 0
    minor: int = 0
    patch: int = 0
    suffix: str | None = None

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse ``major[.minor[.patch]][-suffix]``; missing parts are zero."""
        numbers, sep, suffix = text.partition("-")
        components = numbers.split(".")
        values = [_parse_component(part) for part in components[:3]]
        values.extend([0] * (3 - len(values)))
        major, minor, patch = values
        return cls(major, minor, patch, suffix if sep else None)

    @classmethod
    def lowest(cls) -> Version:
        """The smallest version without a suffix."""
        return cls(0, 0, 0, None)

    def bump(self) -> Version:
        """The next version: drops a suffix, otherwise increments the patch."""
        patch = self.patch if self.suffix is not None else self.patch + 1
        return Version(self.major, self.minor, patch, None)

    def _key(self) -> tuple[int, int, int, int, str]:
        has_no_suffix = 1 if self.suffix is None else 0
        return (self.major, self.minor, self.patch, has_no_suffix, self.suffix or "")

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.suffix is not None:
            text += f"-{self.suffix}"
        return text


@dataclass(frozen=True)
class Artifact:
    """A specific version of a package."""

    package: Package
    version: Version

    def file_name(self, ext: str) -> str:
        """Name of the cached file holding this artifact with extension ``ext``."""
        return f"{self.package.group}-{self.package.name}-{self.version}.{ext}"

    def url(self, repo: str, ext: str) -> str:
        """URL of this artifact with extension ``ext`` in the given repository."""
        group = self.package.group.replace(".", "/")
        name = self.package.name
        version = self.version
        return f"{repo}/{group}/{name}/{version}/{name}-{version}.{ext}"

    def __str__(self) -> str:
        return f"{self.package.group}:{self.package.name}:{self.version}"