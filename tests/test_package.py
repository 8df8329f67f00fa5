import pytest

from xbuildkit.mvn.package import Artifact, Package, Version


def test_parse_full_version():
    version = Version.parse("1.2.3-beta")
    assert (version.major, version.minor, version.patch) == (1, 2, 3)
    assert version.suffix == "beta"


def test_parse_fills_missing_components_with_zero():
    assert Version.parse("1.2") == Version(1, 2, 0)
    assert Version.parse("7") == Version(7, 0, 0)


def test_parse_ignores_components_after_patch():
    assert Version.parse("1.2.3.4") == Version(1, 2, 3)


def test_str_round_trip():
    for text in ["1.2.3", "1.2.3-beta", "0.0.1-rc-2"]:
        assert str(Version.parse(text)) == text


def test_str_of_short_version_is_full():
    assert str(Version.parse("1.0")) == str(Version(1, 0, 0))


@pytest.mark.parametrize("text", ["", "a.b", "1.x", "1..2", "-1"])
def test_parse_rejects_invalid(text):
    with pytest.raises(ValueError):
        Version.parse(text)


def test_parse_rejects_overflow():
    with pytest.raises(ValueError):
        Version.parse("4294967296")


def test_suffix_sorts_before_release():
    assert Version.parse("1.0.0-alpha") < Version.parse("1.0.0")
    assert Version.parse("1.0.0-alpha") < Version.parse("1.0.0-beta")
    assert Version.parse("0.9.9") < Version.parse("1.0.0-alpha")


def test_ordering_is_numeric():
    versions = [Version.parse(t) for t in ["1.10", "1.2", "1.9.1", "1.9"]]
    assert sorted(versions) == [Version(1, 2, 0), Version(1, 9, 0), Version(1, 9, 1), Version(1, 10, 0)]


def test_lowest_is_minimum():
    assert Version.lowest() == Version(0, 0, 0)
    assert Version.lowest() <= Version.parse("0.0.1")


def test_bump_increments_patch():
    version = Version(1, 2, 3)
    bumped = version.bump()
    assert bumped > version
    assert (bumped.major, bumped.minor) == (1, 2)
    assert bumped.patch == version.patch + 1


def test_bump_drops_suffix():
    version = Version(1, 2, 3, "rc")
    assert version.bump() == Version(1, 2, 3)
    assert version.bump() > version


def test_package_file_name_and_url():
    package = Package("com.example", "lib")
    assert package.file_name() == "com.example-lib.metadata.xml"
    assert package.url("https://repo") == "https://repo/com/example/lib/maven-metadata.xml"
    assert str(package) == "com.example:lib"


def test_artifact_url():
    artifact = Artifact(Package("com.example", "lib"), Version.parse("1.2.3"))
    assert artifact.url("https://repo", "pom") == "https://repo/com/example/lib/1.2.3/lib-1.2.3.pom"


def test_artifact_file_name_and_str():
    artifact = Artifact(Package("g.h", "n"), Version.parse("1.2.3-x"))
    assert artifact.file_name("jar").endswith(".jar")
    assert artifact.file_name("jar").startswith("g.h-n-1.2.3-x")
    assert str(artifact).split(":") == ["g.h", "n", "1.2.3-x"]