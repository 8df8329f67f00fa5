# xbuildkit

Building blocks for packaging applications:

- `xbuildkit.mvn` — Maven coordinates, versions and version ranges, and
  reading of POM files and their dependencies.
- `xbuildkit.pri` — reading and writing of PRI resource index files,
  section by section.

The package has no command-line interface; it is used as a library.

## Installation

```
pip install xbuildkit
```

For running the test suite:

```
pip install "xbuildkit[test]"
pytest
```

## Maven coordinates and versions

`xbuildkit.mvn.package` holds `Package` (group and artifact id), `Version`
and `Artifact` (a package at a version):

```python
from xbuildkit.mvn.package import Artifact, Package, Version

pkg = Package("androidx.core", "core")
pkg.url("https://repo.example.com/maven2")
# 'https://repo.example.com/maven2/androidx/core/core/maven-metadata.xml'
pkg.file_name()
# 'androidx.core-core.metadata.xml'

v = Version.parse("1.2")            # Version(1, 2, 0, None); missing parts are zero
Version.parse("1.0.0-alpha") < Version.parse("1.0.0")   # True: a suffix sorts first
v.bump()                            # Version(1, 2, 1, None)

art = Artifact(pkg, Version.parse("1.9.0"))
art.url("https://repo.example.com/maven2", "aar")
# 'https://repo.example.com/maven2/androidx/core/core/1.9.0/core-1.9.0.aar'
```

`Version.parse` raises `ValueError` for a component that is not a number.

## Version ranges

`xbuildkit.mvn.range.parse_range` turns Maven range notation into a
`VersionRange`, a set of versions kept as sorted, disjoint segments:

```python
from xbuildkit.mvn.package import Version
from xbuildkit.mvn.range import parse_range

r = parse_range("(,1.0],[1.2,)")
r.contains(Version.parse("1.0"))       # True
r.contains(Version.parse("1.1.99"))    # False
Version.parse("2.0") in r              # True
r.lowest_version()                     # Version(0, 0, 0, None)
```

A bare version such as `"1.0"` means "1.0 or higher"; `"[1.0]"` means
exactly 1.0. `VersionRange` also offers `none`, `any`, `exact`,
`higher_than`, `strictly_lower_than` and `between` constructors and
`union`, `intersection` and `complement`. The lower-level `tokenize` and
`parse_ranges` functions expose the tokens and the comma-separated parts
(`PartialRange`); a misplaced separator raises `RangeError`.

## POM files

```python
from xbuildkit.mvn.pom import Dependency, Pom

pom = Pom.from_xml(open("library-1.0.0.pom").read())
pom.packaging                 # declared packaging, or "jar"
for dep in pom.dependencies:
    print(dep.package(), dep.version, dep.scope, dep.range())

Dependency.parse("com.example:library:[1.0,2.0)")
```

Malformed XML, or a dependency without `groupId`, `artifactId` or
`version`, raises `ValueError`.

## PRI files

`xbuildkit.pri.pri_file.PriFile` reads and writes a resource index. Each
`Section` carries its decoded data: `DataItem`, `PriDescriptor`,
`ResourceMap`, `DecisionInfo` or `HierarchicalSchema`, and
`UnknownSection` (raw bytes) for any other identifier.

```python
from xbuildkit.pri.data_item import DataItem
from xbuildkit.pri.pri_file import PriFile, Section

pri = PriFile.open("resources.pri")
for index in range(pri.num_sections):
    print(pri.section(index))

item = DataItem()
item.add_string("hello")
item.add_blob(b"\x01\x02")
out = PriFile()
out.add_section(Section(section_qualifier=0, flags=0, section_flags=0, data=item))
out.create("out.pri")
```

`PriFile.read` and `PriFile.write` work on any seekable binary stream, such
as `io.BytesIO`. Malformed input raises `PriFormatError`.

## What the package does not do

- It does not fetch anything: there is no download of repository metadata,
  POMs or artifacts, no local artifact cache and no dependency resolution.
  `VersionRange` provides the set operations a resolver would use, but no
  resolver is included.
- PRI files are always written with the `mrm_pri2` header. Some fields are
  written as zero rather than computed, among them the schema checksum, the
  scope child counts and the resource map data length, so written files
  read back here but are not byte-for-byte copies of their input.