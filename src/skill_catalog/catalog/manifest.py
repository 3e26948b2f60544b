"""The SKILL.md convention.

A skill is a directory holding a ``SKILL.md`` file that starts with a YAML
front matter block::

    ---
    name: pdf-tools
    description: Read and fill PDF forms
    version: 1.2.0
    ---
    # body...

A manifest without that block, or whose block is not a YAML mapping, is
malformed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any

import yaml

SKILL_MANIFEST_FILENAME = "SKILL.md"

_FRONT_MATTER_RE = re.compile(r"\A\ufeff?---[ \t]*\r?\n(?P<body>.*?)(?:\r?\n)?---[ \t]*(?:\r?\n|\Z)", re.DOTALL)


@dataclass(frozen=True)
class SkillManifest:
    name: str | None
    description: str | None
    version: str | None
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class ManifestParse:
    """Outcome of parsing a manifest: exactly one of ``manifest`` / ``error`` is set."""

    manifest: SkillManifest | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.manifest is not None


def is_manifest_path(path: str) -> bool:
    return PurePosixPath(path).name.lower() == SKILL_MANIFEST_FILENAME.lower()


def parse_skill_manifest(content: str | bytes) -> ManifestParse:
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8")
        except UnicodeDecodeError:
            return ManifestParse(error="manifest is not valid UTF-8")
    if not content.strip():
        return ManifestParse(error="manifest is empty")

    match = _FRONT_MATTER_RE.match(content)
    if match is None:
        return ManifestParse(error="missing YAML front matter")
    try:
        data = yaml.safe_load(match.group("body"))
    except yaml.YAMLError as exc:
        return ManifestParse(error=f"invalid YAML front matter: {_first_line(str(exc))}")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return ManifestParse(error="front matter must be a mapping")

    return ManifestParse(
        manifest=SkillManifest(
            name=_optional_str(data.get("name")),
            description=_optional_str(data.get("description")),
            version=_optional_str(data.get("version")),
            tags=_tags(data),
        )
    )


def _optional_str(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _tags(data: dict[str, Any]) -> tuple[str, ...]:
    raw = data.get("tags")
    if raw is None:
        metadata = data.get("metadata")
        if isinstance(metadata, dict):
            raw = metadata.get("tags")
    if isinstance(raw, str):
        raw = [part for part in raw.split(",")]
    if not isinstance(raw, list):
        return ()
    return tuple(str(tag).strip() for tag in raw if str(tag).strip())


def _first_line(text: str) -> str:
    return text.strip().splitlines()[0] if text.strip() else text
