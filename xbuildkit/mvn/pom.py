"""Project object model files and their dependencies."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

from xbuildkit.mvn.package import Package
from xbuildkit.mvn.range import VersionRange, parse_range


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child_text(element: ET.Element, name: str) -> str | None:
    for child in element:
        if _local_name(child.tag) == name:
            return (child.text or "").strip()
    return None


def _parse_xml(text: str) -> ET.Element:
    try:
        return ET.fromstring(text.strip())
    except ET.ParseError as exc:
        raise ValueError(f"invalid pom xml: {exc}") from exc


@dataclass(frozen=True)
class Dependency:
    """A dependency on a package within a version range specification."""

    group: str
    name: str
    version: str
    scope: str | None = None

    @classmethod
    def parse(cls, text: str) -> Dependency:
        """Parse ``group:name:version``."""
        group, sep, rest = text.partition(":")
        if not sep:
            raise ValueError(f"invalid dep: {text!r}")
        name, sep, version = rest.partition(":")
        if not sep:
            raise ValueError(f"invalid dep: {text!r}")
        return cls(group, name, version)

    @classmethod
    def _from_element(cls, element: ET.Element) -> Dependency:
        values = {}
        for key, tag in (("group", "groupId"), ("name", "artifactId"), ("version", "version")):
            value = _child_text(element, tag)
            if value is None:
                raise ValueError(f"dependency is missing <{tag}>")
            values[key] = value
        return cls(scope=_child_text(element, "scope"), **values)

    @classmethod
    def from_xml(cls, text: str) -> Dependency:
        """Parse a ``<dependency>`` element."""
        return cls._from_element(_parse_xml(text))

    def package(self) -> Package:
        return Package(self.group, self.name)

    def range(self) -> VersionRange:
        """The set of versions allowed by this dependency."""
        return parse_range(self.version)


@dataclass
class Pom:
    """The parts of a pom file used for resolution."""

    declared_packaging: str | None = None
    dependencies: list[Dependency] = field(default_factory=list)

    @property
    def packaging(self) -> str:
        """The declared packaging, ``jar`` when none is given."""
        return self.declared_packaging if self.declared_packaging is not None else "jar"

    @classmethod
    def from_xml(cls, text: str) -> Pom:
        """Parse a ``<project>`` document."""
        root = _parse_xml(text)
        pom = cls(declared_packaging=_child_text(root, "packaging"))
        for child in root:
            if _local_name(child.tag) == "dependencies":
                pom.dependencies = [Dependency._from_element(dep) for dep in child]
        return pom