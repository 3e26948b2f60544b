"""Domain records shared by the scanners, the cache and the installer."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Literal

SourceKind = Literal["repository", "hub"]
InstallStatus = Literal["succeeded", "failed", "skipped"]


@dataclass(frozen=True)
class RepositorySource:
    owner: str
    repo: str
    ref: str | None = None
    subpath: str | None = None
    kind: Literal["repository"] = field(default="repository", init=False)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class HubSource:
    hub_id: str
    kind: Literal["hub"] = field(default="hub", init=False)


SourceDescriptor = RepositorySource | HubSource


@dataclass(frozen=True)
class RepositoryOrigin:
    owner: str
    repo: str
    ref: str
    path: str

    @property
    def kind(self) -> Literal["repository"]:
        return "repository"


@dataclass(frozen=True)
class HubOrigin:
    hub_id: str
    slug: str
    version: str

    @property
    def kind(self) -> Literal["hub"]:
        return "hub"


SkillOrigin = RepositoryOrigin | HubOrigin


@dataclass(frozen=True)
class SkillMetadata:
    id: str
    name: str
    description: str
    source_kind: SourceKind
    origin: SkillOrigin
    version: str | None = None
    tags: tuple[str, ...] = ()
    manifest_path: str | None = None


@dataclass(frozen=True)
class ScanWarning:
    path: str
    message: str


@dataclass(frozen=True)
class ScanResult:
    source: SourceDescriptor
    skills: tuple[SkillMetadata, ...]
    scanned_at_ms: int
    warnings: tuple[ScanWarning, ...] = ()

    def find(self, skill_id: str) -> SkillMetadata | None:
        for skill in self.skills:
            if skill.id == skill_id:
                return skill
        return None


@dataclass(frozen=True)
class InstallRequest:
    skill_id: str
    origin: SkillOrigin
    skip: bool = False
    install_name: str | None = None

    @property
    def target_name(self) -> str:
        if self.install_name:
            return self.install_name
        return PurePosixPath(self.skill_id).name or self.skill_id

    @classmethod
    def from_skill(cls, skill: SkillMetadata) -> "InstallRequest":
        return cls(skill_id=skill.id, origin=skill.origin)


@dataclass(frozen=True)
class InstallOutcome:
    skill_id: str
    status: InstallStatus
    error: str | None = None
    installed_path: str | None = None


@dataclass(frozen=True)
class CuratedSource:
    id: str
    label: str
    source: str
