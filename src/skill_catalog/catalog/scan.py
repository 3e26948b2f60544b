"""Repository scanner: list SKILL.md units in a GitHub repository tree."""

from __future__ import annotations

from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any

from skill_catalog.catalog.cache import system_clock_ms
from skill_catalog.catalog.concurrency import gather_bounded
from skill_catalog.catalog.github import GitHubClient
from skill_catalog.catalog.manifest import is_manifest_path, parse_skill_manifest
from skill_catalog.catalog.models import (
    RepositoryOrigin,
    RepositorySource,
    ScanResult,
    ScanWarning,
    SkillMetadata,
)
from skill_catalog.config import get_settings
from skill_catalog.core.exceptions import NetworkError, SourceNotFound
from skill_catalog.core.logging.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from skill_catalog.catalog.github import RepositoryTree
    from skill_catalog.config import Settings

logger = get_logger(__name__)


@dataclass(frozen=True)
class RepositoryScanOptions:
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    max_concurrency: int | None = None

    def cache_params(self) -> dict[str, Any]:
        # concurrency does not change the result
        return {
            "include": sorted(set(self.include)) or None,
            "exclude": sorted(set(self.exclude)) or None,
        }


@dataclass(frozen=True)
class _Candidate:
    skill_id: str
    skill_dir: str
    manifest_path: str


async def scan_repository(
    descriptor: RepositorySource,
    options: RepositoryScanOptions | None = None,
    *,
    client: httpx.AsyncClient,
    settings: Settings | None = None,
    clock: Callable[[], int] | None = None,
) -> ScanResult:
    options = options or RepositoryScanOptions()
    catalog_settings = (settings or get_settings()).catalog
    github = GitHubClient(client, catalog_settings)

    ref = descriptor.ref or await github.get_default_branch(descriptor.owner, descriptor.repo)
    logger.info(
        "Scanning repository",
        data={"source": descriptor.full_name, "ref": ref, "subpath": descriptor.subpath},
    )
    tree = await github.get_tree(descriptor.owner, descriptor.repo, ref)

    warnings: list[ScanWarning] = []
    if tree.truncated:
        warnings.append(ScanWarning(path="", message="repository tree listing was truncated"))

    candidates = _find_candidates(tree, descriptor, options)

    async def _load(candidate: _Candidate) -> SkillMetadata | ScanWarning:
        try:
            content = await github.get_raw_file(
                descriptor.owner, descriptor.repo, ref, candidate.manifest_path
            )
        except (NetworkError, SourceNotFound) as exc:
            return ScanWarning(path=candidate.manifest_path, message=str(exc))

        parsed = parse_skill_manifest(content)
        if parsed.manifest is None:
            return ScanWarning(
                path=candidate.manifest_path,
                message=f"malformed manifest: {parsed.error}",
            )
        manifest = parsed.manifest
        name = manifest.name or candidate.skill_id
        return SkillMetadata(
            id=candidate.skill_id,
            name=name,
            description=manifest.description or name,
            source_kind="repository",
            origin=RepositoryOrigin(
                owner=descriptor.owner,
                repo=descriptor.repo,
                ref=ref,
                path=candidate.skill_dir,
            ),
            version=manifest.version,
            tags=manifest.tags,
            manifest_path=candidate.manifest_path,
        )

    limit = options.max_concurrency or catalog_settings.max_concurrency
    loaded = await gather_bounded(
        [lambda candidate=candidate: _load(candidate) for candidate in candidates],
        limit=limit,
    )

    skills: list[SkillMetadata] = []
    for item in loaded:
        if isinstance(item, ScanWarning):
            logger.warning(
                "Skipping skill entry",
                data={"source": descriptor.full_name, "path": item.path, "reason": item.message},
            )
            warnings.append(item)
        else:
            skills.append(item)

    logger.info(
        "Repository scan complete",
        data={"source": descriptor.full_name, "skills": len(skills), "warnings": len(warnings)},
    )
    return ScanResult(
        source=descriptor,
        skills=tuple(skills),
        scanned_at_ms=(clock or system_clock_ms)(),
        warnings=tuple(warnings),
    )


def _find_candidates(
    tree: RepositoryTree,
    descriptor: RepositorySource,
    options: RepositoryScanOptions,
) -> list[_Candidate]:
    root = descriptor.subpath or ""
    if root and not any(_is_within(entry.path, root) for entry in tree.entries):
        raise SourceNotFound(f"path {root} not found in {descriptor.full_name}@{tree.ref}")

    manifests: list[tuple[str, str]] = []
    for entry in tree.blobs():
        if not is_manifest_path(entry.path) or not _is_within(entry.path, root):
            continue
        skill_dir = str(PurePosixPath(entry.path).parent)
        if skill_dir == ".":
            skill_dir = ""
        if _has_hidden_segment(skill_dir):
            continue
        manifests.append((skill_dir, entry.path))

    skill_dirs = {skill_dir for skill_dir, _ in manifests}
    candidates: list[_Candidate] = []
    for skill_dir, manifest_path in manifests:
        if _nested_in_other_skill(skill_dir, skill_dirs):
            continue
        skill_id = _relative_to(skill_dir, root) or descriptor.repo
        if not _selected(skill_id, options):
            continue
        candidates.append(_Candidate(skill_id=skill_id, skill_dir=skill_dir, manifest_path=manifest_path))
    return candidates


def _selected(skill_id: str, options: RepositoryScanOptions) -> bool:
    if options.include and not any(fnmatchcase(skill_id, pattern) for pattern in options.include):
        return False
    return not any(fnmatchcase(skill_id, pattern) for pattern in options.exclude)


def _is_within(path: str, root: str) -> bool:
    if not root:
        return True
    return path == root or path.startswith(f"{root}/")


def _relative_to(path: str, root: str) -> str:
    if path == root:
        return ""
    if not root:
        return path
    return path[len(root) + 1 :]


def _has_hidden_segment(path: str) -> bool:
    return any(part.startswith(".") for part in PurePosixPath(path).parts) if path else False


def _nested_in_other_skill(skill_dir: str, skill_dirs: set[str]) -> bool:
    if not skill_dir:
        return False
    parent = PurePosixPath(skill_dir).parent
    while True:
        candidate = "" if str(parent) == "." else str(parent)
        if candidate in skill_dirs:
            return True
        if not candidate:
            return False
        parent = parent.parent
