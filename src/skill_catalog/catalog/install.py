"""Install skills from repositories or ClawdHub into a local directory."""

from __future__ import annotations

import asyncio
import hashlib
import io
import json
import os
import shutil
import tempfile
import threading
import zipfile
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Any, Literal
from uuid import uuid4

from skill_catalog.catalog.clawdhub.client import download_clawdhub_skill
from skill_catalog.catalog.concurrency import gather_bounded
from skill_catalog.catalog.github import GitHubClient
from skill_catalog.catalog.manifest import SKILL_MANIFEST_FILENAME, parse_skill_manifest
from skill_catalog.catalog.models import HubOrigin, InstallOutcome, InstallRequest, RepositoryOrigin
from skill_catalog.config import get_settings
from skill_catalog.core.exceptions import (
    InstallWriteFailed,
    InvalidInstallRequest,
    InvalidSkillContent,
    SkillCatalogError,
)
from skill_catalog.core.logging.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    import httpx

    from skill_catalog.config import CatalogSettings, Settings

logger = get_logger(__name__)

SKILL_SOURCE_FILENAME = ".skill-source.json"
SKILL_SOURCE_SCHEMA_VERSION = 1


@dataclass(frozen=True)
class InstalledSkillSource:
    schema_version: int
    source_kind: Literal["repository", "hub"]
    skill_id: str
    version: str | None
    installed_at: str
    content_fingerprint: str
    repo_owner: str | None = None
    repo_name: str | None = None
    repo_ref: str | None = None
    repo_path: str | None = None
    hub_id: str | None = None
    hub_slug: str | None = None

    def matches(self, request: InstallRequest) -> bool:
        origin = request.origin
        if isinstance(origin, HubOrigin):
            return (
                self.source_kind == "hub"
                and self.hub_id == origin.hub_id
                and self.hub_slug == origin.slug
                and self.version == origin.version
            )
        return (
            self.source_kind == "repository"
            and self.repo_owner == origin.owner
            and self.repo_name == origin.repo
            and self.repo_path == origin.path
            and self.repo_ref == origin.ref
        )


@dataclass(frozen=True)
class SidecarRead:
    """Result of reading a provenance sidecar.

    ``source`` and ``error`` both ``None`` means no sidecar exists.
    """

    source: InstalledSkillSource | None = None
    error: str | None = None


def get_skill_source_sidecar_path(skill_dir: Path) -> Path:
    return skill_dir / SKILL_SOURCE_FILENAME


def compute_skill_content_fingerprint(skill_dir: Path) -> str:
    digest = hashlib.sha256()
    root = skill_dir.resolve()
    sidecar_path = get_skill_source_sidecar_path(root)

    for path in sorted(root.rglob("*")):
        if path == sidecar_path or not path.is_file():
            continue
        relative = path.relative_to(root).as_posix()
        digest.update(relative.encode("utf-8"))
        digest.update(b"\0")
        digest.update(path.read_bytes())
        digest.update(b"\0")

    return f"sha256:{digest.hexdigest()}"


def read_installed_skill_source(skill_dir: Path) -> SidecarRead:
    sidecar_path = get_skill_source_sidecar_path(skill_dir)
    if not sidecar_path.exists():
        return SidecarRead()
    try:
        payload = json.loads(sidecar_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        return SidecarRead(error=f"invalid json: {exc}")
    if not isinstance(payload, dict):
        return SidecarRead(error="metadata root must be an object")
    if payload.get("schema_version") != SKILL_SOURCE_SCHEMA_VERSION:
        return SidecarRead(error=f"unsupported schema_version: {payload.get('schema_version')}")
    if payload.get("source_kind") not in {"repository", "hub"}:
        return SidecarRead(error="source_kind must be 'repository' or 'hub'")

    fields = InstalledSkillSource.__dataclass_fields__
    try:
        source = InstalledSkillSource(**{key: value for key, value in payload.items() if key in fields})
    except TypeError as exc:
        return SidecarRead(error=str(exc))
    return SidecarRead(source=source)


def write_installed_skill_source(skill_dir: Path, source: InstalledSkillSource) -> None:
    payload = {key: getattr(source, key) for key in InstalledSkillSource.__dataclass_fields__}
    get_skill_source_sidecar_path(skill_dir).write_text(
        json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True) + "\n",
        encoding="utf-8",
    )


def mark_installed_requests(
    requests: Sequence[InstallRequest],
    target_root: Path | str,
) -> list[InstallRequest]:
    """Flag requests whose skill is already installed from the same origin revision."""
    root = Path(target_root).expanduser()
    marked: list[InstallRequest] = []
    for request in requests:
        read = read_installed_skill_source(root / request.target_name)
        if read.source is not None and read.source.matches(request):
            marked.append(replace(request, skip=True))
        else:
            marked.append(request)
    return marked


async def install(
    requests: Sequence[InstallRequest],
    target_root: Path | str,
    *,
    client: httpx.AsyncClient,
    settings: Settings | None = None,
) -> list[InstallOutcome]:
    """Install each request under ``target_root``; one outcome per request, in input order."""
    if target_root is None or not str(target_root).strip():
        raise InvalidInstallRequest("target root path is empty")
    root = Path(target_root).expanduser()
    catalog_settings = (settings or get_settings()).catalog
    semaphore = asyncio.Semaphore(catalog_settings.max_concurrency)

    async def _throttled(factory: Callable[[], Awaitable[Any]]) -> Any:
        async with semaphore:
            return await factory()

    github = GitHubClient(client, catalog_settings)
    outcomes = await asyncio.gather(
        *(
            _install_one(request, root, client, catalog_settings, github, _throttled)
            for request in requests
        )
    )
    return list(outcomes)


async def _install_one(
    request: InstallRequest,
    root: Path,
    client: httpx.AsyncClient,
    settings: CatalogSettings,
    github: GitHubClient,
    throttled: Callable[[Callable[[], Awaitable[Any]]], Awaitable[Any]],
) -> InstallOutcome:
    if request.skip:
        return InstallOutcome(skill_id=request.skill_id, status="skipped")
    try:
        name = _validate_install_name(request.target_name)
        files = await _fetch_skill_files(request, client, settings, github, throttled)
        manifest_version = _validate_skill_files(files)
        cancelled = threading.Event()
        try:
            installed_path = await asyncio.to_thread(
                _materialize_skill,
                files=files,
                root=root,
                name=name,
                request=request,
                manifest_version=manifest_version,
                cancelled=cancelled,
            )
        except asyncio.CancelledError:
            # the worker thread keeps running; it checks this before the final rename
            cancelled.set()
            raise
    except SkillCatalogError as exc:
        logger.warning(
            "Skill install failed",
            data={"skill_id": request.skill_id, "error": str(exc)},
        )
        return InstallOutcome(skill_id=request.skill_id, status="failed", error=str(exc))
    except Exception as exc:  # noqa: BLE001
        logger.error(
            "Unexpected skill install failure",
            data={"skill_id": request.skill_id, "error": repr(exc)},
        )
        return InstallOutcome(
            skill_id=request.skill_id,
            status="failed",
            error=f"InstallFailed: {exc}",
        )

    logger.info(
        "Skill installed",
        data={"skill_id": request.skill_id, "path": str(installed_path)},
    )
    return InstallOutcome(
        skill_id=request.skill_id,
        status="succeeded",
        installed_path=str(installed_path),
    )


def _validate_install_name(name: str) -> str:
    cleaned = name.strip()
    if (
        not cleaned
        or cleaned in {".", ".."}
        or cleaned.startswith(".")
        or "/" in cleaned
        or "\\" in cleaned
    ):
        raise InvalidInstallRequest(f"invalid install directory name: {name!r}")
    return cleaned


async def _fetch_skill_files(
    request: InstallRequest,
    client: httpx.AsyncClient,
    settings: CatalogSettings,
    github: GitHubClient,
    throttled: Callable[[Callable[[], Awaitable[Any]]], Awaitable[Any]],
) -> dict[str, bytes]:
    origin = request.origin
    match origin:
        case RepositoryOrigin():
            return await _fetch_repository_files(origin, github, throttled)
        case HubOrigin():
            archive = await throttled(
                lambda: download_clawdhub_skill(
                    client, settings, origin.slug, origin.version, hub_id=origin.hub_id
                )
            )
            return extract_skill_archive(archive)


async def _fetch_repository_files(
    origin: RepositoryOrigin,
    github: GitHubClient,
    throttled: Callable[[Callable[[], Awaitable[Any]]], Awaitable[Any]],
) -> dict[str, bytes]:
    tree = await throttled(lambda: github.get_tree(origin.owner, origin.repo, origin.ref))
    prefix = f"{origin.path}/" if origin.path else ""
    paths: list[tuple[str, str]] = []
    for entry in tree.blobs():
        if not entry.path.startswith(prefix):
            continue
        relative = _safe_relative_path(entry.path[len(prefix) :])
        if relative is None:
            continue
        paths.append((entry.path, relative))

    async def _download(path: str) -> bytes:
        return await throttled(lambda: github.get_raw_file(origin.owner, origin.repo, origin.ref, path))

    # the shared throttle already caps in-flight requests
    contents = await gather_bounded(
        [lambda path=path: _download(path) for path, _ in paths],
        limit=len(paths),
    )
    return {relative: content for (_, relative), content in zip(paths, contents, strict=True)}


def extract_skill_archive(archive: bytes) -> dict[str, bytes]:
    """Read a zip archive into ``{relative_path: content}``.

    A single top-level directory wrapping the whole archive is stripped.
    """
    try:
        with zipfile.ZipFile(io.BytesIO(archive)) as bundle:
            members = [info for info in bundle.infolist() if not info.is_dir()]
            files: dict[str, bytes] = {}
            for info in members:
                relative = _safe_relative_path(info.filename)
                if relative is None:
                    raise InvalidSkillContent(f"archive entry escapes skill root: {info.filename}")
                files[relative] = bundle.read(info)
    except zipfile.BadZipFile as exc:
        raise InvalidSkillContent(f"download is not a zip archive: {exc}") from exc

    if files and not any(path.lower() == SKILL_MANIFEST_FILENAME.lower() for path in files):
        top_levels = {PurePosixPath(path).parts[0] for path in files}
        if len(top_levels) == 1 and all("/" in path for path in files):
            wrapper = next(iter(top_levels))
            files = {path[len(wrapper) + 1 :]: content for path, content in files.items()}
    return files


def _safe_relative_path(path: str) -> str | None:
    raw = path.replace("\\", "/").strip()
    posix_path = PurePosixPath(raw)
    if not raw or posix_path.is_absolute() or ".." in posix_path.parts:
        return None
    normalized = str(posix_path).lstrip("/")
    if normalized in {"", "."}:
        return None
    return normalized


def _validate_skill_files(files: dict[str, bytes]) -> str | None:
    if not files:
        raise InvalidSkillContent("skill content is empty")
    manifest_key = next(
        (path for path in files if path.lower() == SKILL_MANIFEST_FILENAME.lower()),
        None,
    )
    if manifest_key is None:
        raise InvalidSkillContent(f"{SKILL_MANIFEST_FILENAME} not found at the skill root")
    if manifest_key != SKILL_MANIFEST_FILENAME:
        files[SKILL_MANIFEST_FILENAME] = files.pop(manifest_key)
    parsed = parse_skill_manifest(files[SKILL_MANIFEST_FILENAME])
    if parsed.manifest is None:
        raise InvalidSkillContent(f"malformed {SKILL_MANIFEST_FILENAME}: {parsed.error}")
    return parsed.manifest.version


def _write_file(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


def _materialize_skill(
    *,
    files: dict[str, bytes],
    root: Path,
    name: str,
    request: InstallRequest,
    manifest_version: str | None,
    cancelled: threading.Event | None = None,
) -> Path:
    """Write ``files`` to ``root/name`` through a staging directory.

    The staging directory is always removed; ``root/name`` is only touched by
    the final rename, which is skipped once ``cancelled`` is set.
    """
    try:
        root.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(dir=root, prefix=f".{name}.install-"))
    except OSError as exc:
        raise InstallWriteFailed(f"cannot prepare {root}: {exc}") from exc

    final_dir = root / name
    try:
        staged_dir = staging / name
        staged_dir.mkdir()
        for relative, content in files.items():
            _write_file(staged_dir / relative, content)
        write_installed_skill_source(staged_dir, _build_installed_skill_source(request, staged_dir, manifest_version))
        if cancelled is not None and cancelled.is_set():
            raise InstallWriteFailed(f"install into {final_dir} was cancelled")
        if final_dir.exists():
            atomic_replace_directory(existing_dir=final_dir, staged_dir=staged_dir)
        else:
            os.replace(staged_dir, final_dir)
    except OSError as exc:
        raise InstallWriteFailed(f"failed writing {final_dir}: {exc}") from exc
    finally:
        shutil.rmtree(staging, ignore_errors=True)
    return final_dir


def atomic_replace_directory(*, existing_dir: Path, staged_dir: Path) -> None:
    existing_dir = existing_dir.resolve()
    staged_dir = staged_dir.resolve()
    backup_dir = existing_dir.parent / f".{existing_dir.name}.backup-{uuid4().hex}"

    os.replace(existing_dir, backup_dir)
    try:
        os.replace(staged_dir, existing_dir)
    except BaseException:
        os.replace(backup_dir, existing_dir)
        raise
    shutil.rmtree(backup_dir, ignore_errors=True)


def _build_installed_skill_source(
    request: InstallRequest,
    staged_dir: Path,
    manifest_version: str | None,
) -> InstalledSkillSource:
    installed_at = datetime.now(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")
    fingerprint = compute_skill_content_fingerprint(staged_dir)
    origin = request.origin
    if isinstance(origin, HubOrigin):
        return InstalledSkillSource(
            schema_version=SKILL_SOURCE_SCHEMA_VERSION,
            source_kind="hub",
            skill_id=request.skill_id,
            version=origin.version,
            installed_at=installed_at,
            content_fingerprint=fingerprint,
            hub_id=origin.hub_id,
            hub_slug=origin.slug,
        )
    return InstalledSkillSource(
        schema_version=SKILL_SOURCE_SCHEMA_VERSION,
        source_kind="repository",
        skill_id=request.skill_id,
        version=manifest_version,
        installed_at=installed_at,
        content_fingerprint=fingerprint,
        repo_owner=origin.owner,
        repo_name=origin.repo,
        repo_ref=origin.ref,
        repo_path=origin.path,
    )
