from __future__ import annotations

import pytest

from skill_catalog.catalog.manifest import is_manifest_path, parse_skill_manifest


def test_parses_front_matter_fields() -> None:
    parsed = parse_skill_manifest(
        "---\nname: pdf-tools\ndescription: Fill PDF forms\nversion: 1.2\ntags: [pdf, forms]\n---\n# PDF\n"
    )

    assert parsed.ok
    assert parsed.manifest is not None
    assert parsed.manifest.name == "pdf-tools"
    assert parsed.manifest.description == "Fill PDF forms"
    assert parsed.manifest.version == "1.2"
    assert parsed.manifest.tags == ("pdf", "forms")


def test_accepts_bytes_crlf_and_bom() -> None:
    parsed = parse_skill_manifest("\ufeff---\r\nname: demo\r\n---\r\nbody\r\n".encode("utf-8"))

    assert parsed.manifest is not None
    assert parsed.manifest.name == "demo"


def test_tags_from_metadata_and_comma_string() -> None:
    nested = parse_skill_manifest("---\nname: a\nmetadata:\n  tags: x, y\n---\n")

    assert nested.manifest is not None
    assert nested.manifest.tags == ("x", "y")


def test_empty_front_matter_is_valid_without_fields() -> None:
    parsed = parse_skill_manifest("---\n---\nbody\n")

    assert parsed.manifest is not None
    assert parsed.manifest.name is None
    assert parsed.manifest.tags == ()


@pytest.mark.parametrize(
    ("content", "fragment"),
    [
        ("", "empty"),
        ("# Just markdown\n", "missing YAML front matter"),
        ("---\nname: [unterminated\n---\n", "invalid YAML"),
        ("---\n- a\n- b\n---\n", "mapping"),
        (b"---\nname: \xff\xfe\n---\n", "UTF-8"),
    ],
)
def test_malformed_manifests_report_error(content: str | bytes, fragment: str) -> None:
    parsed = parse_skill_manifest(content)

    assert not parsed.ok
    assert parsed.error is not None
    assert fragment in parsed.error


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("SKILL.md", True),
        ("skills/pdf/SKILL.md", True),
        ("skills/pdf/skill.md", True),
        ("skills/pdf/README.md", False),
        ("skills/SKILL.md.bak", False),
    ],
)
def test_is_manifest_path(path: str, expected: bool) -> None:
    assert is_manifest_path(path) is expected
