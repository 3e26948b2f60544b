"""Parse user supplied source strings into normalized descriptors."""

from __future__ import annotations

import re
from urllib.parse import unquote, urlparse

from skill_catalog.catalog.models import HubSource, RepositorySource, SourceDescriptor
from skill_catalog.core.exceptions import InvalidSourceFormat

CLAWDHUB_SOURCE_ID = "clawdhub"
CLAWDHUB_SOURCE_STRING = "clawdhub:registry"

_HUB_PREFIXES = ("clawdhub", "hub")
_GITHUB_HOSTS = {"github.com", "www.github.com"}
_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+$")
_HUB_ID_RE = re.compile(r"^[a-z0-9][a-z0-9_.-]*$")
_SSH_RE = re.compile(r"^git@github\.com:(?P<path>.+)$", re.IGNORECASE)


def normalize_source(raw: str) -> SourceDescriptor:
    """Normalize a shorthand, URL or hub identifier into a descriptor.

    Recognized shapes:

    * ``owner/repo``, ``owner/repo/sub/dir``, optionally suffixed ``@ref`` or ``#ref``
    * ``https://github.com/owner/repo[.git][/tree/<ref>[/<subdir>]]``
    * ``git@github.com:owner/repo.git``
    * ``clawdhub``, ``clawdhub:<catalog>`` and ``hub:<catalog>``
    """
    if not isinstance(raw, str):
        raise InvalidSourceFormat("source must be a string")
    value = raw.strip()
    if not value:
        raise InvalidSourceFormat("source is empty")

    hub = _parse_hub_source(value)
    if hub is not None:
        return hub

    ssh_match = _SSH_RE.match(value)
    if ssh_match:
        return _parse_shorthand(ssh_match.group("path"), raw)

    if "://" in value:
        return _parse_url(value, raw)

    return _parse_shorthand(value, raw)


def format_source(descriptor: SourceDescriptor) -> str:
    """Render the canonical raw string for a descriptor."""
    match descriptor:
        case HubSource(hub_id=hub_id):
            if hub_id == CLAWDHUB_SOURCE_ID:
                return CLAWDHUB_SOURCE_STRING
            return f"{CLAWDHUB_SOURCE_ID}:{hub_id}"
        case RepositorySource(owner=owner, repo=repo, ref=ref, subpath=subpath):
            value = f"{owner}/{repo}"
            if subpath:
                value = f"{value}/{subpath}"
            if ref:
                value = f"{value}@{ref}"
            return value


def is_hub_source(raw: str | None) -> bool:
    if not raw:
        return False
    return _parse_hub_source(raw.strip()) is not None


def _parse_hub_source(value: str) -> HubSource | None:
    lowered = value.lower()
    if lowered == CLAWDHUB_SOURCE_ID:
        return HubSource(hub_id=CLAWDHUB_SOURCE_ID)
    prefix, sep, rest = lowered.partition(":")
    if not sep or prefix not in _HUB_PREFIXES:
        return None
    hub_id = rest.strip().strip("/")
    if hub_id in {"", "registry", CLAWDHUB_SOURCE_ID}:
        return HubSource(hub_id=CLAWDHUB_SOURCE_ID)
    if not _HUB_ID_RE.match(hub_id):
        raise InvalidSourceFormat(f"invalid hub identifier: {value}")
    return HubSource(hub_id=hub_id)


def _parse_url(value: str, raw: str) -> RepositorySource:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"}:
        raise InvalidSourceFormat(f"unsupported URL scheme: {raw}")
    if parsed.netloc.lower() not in _GITHUB_HOSTS:
        raise InvalidSourceFormat(f"unsupported host: {parsed.netloc or raw}")

    parts = [unquote(part) for part in parsed.path.strip("/").split("/") if part]
    if len(parts) < 2:
        raise InvalidSourceFormat(f"expected https://github.com/<owner>/<repo>: {raw}")

    owner, repo = parts[0], _strip_git_suffix(parts[1])
    ref: str | None = None
    subpath: str | None = None
    rest = parts[2:]
    if rest:
        if rest[0] not in {"tree", "blob"} or len(rest) < 2:
            raise InvalidSourceFormat(f"unsupported GitHub URL path: {raw}")
        ref = rest[1]
        subpath = "/".join(rest[2:]) or None
        if rest[0] == "blob" and subpath and subpath.rsplit("/", 1)[-1].lower() == "skill.md":
            subpath = subpath.rpartition("/")[0] or None
    if parsed.fragment:
        ref = parsed.fragment
    return _build_repository(owner, repo, ref, subpath, raw)


def _parse_shorthand(value: str, raw: str) -> RepositorySource:
    body = value
    ref: str | None = None
    for marker in ("#", "@"):
        if marker in body:
            body, _, ref_value = body.partition(marker)
            ref = ref_value.strip() or None
            break

    parts = [part for part in body.strip().strip("/").split("/") if part]
    if len(parts) < 2:
        raise InvalidSourceFormat(f"expected owner/repo: {raw}")
    owner, repo = parts[0], _strip_git_suffix(parts[1])
    subpath = "/".join(parts[2:]) or None
    return _build_repository(owner, repo, ref, subpath, raw)


def _build_repository(
    owner: str,
    repo: str,
    ref: str | None,
    subpath: str | None,
    raw: str,
) -> RepositorySource:
    if not _NAME_RE.match(owner) or not _NAME_RE.match(repo):
        raise InvalidSourceFormat(f"invalid owner or repository name: {raw}")
    if repo in {".", ".."}:
        raise InvalidSourceFormat(f"invalid repository name: {raw}")
    if subpath is not None:
        subpath = _clean_subpath(subpath, raw)
    if ref is not None:
        ref = ref.strip() or None
        if ref and (any(ch.isspace() for ch in ref) or ".." in ref):
            raise InvalidSourceFormat(f"invalid ref: {raw}")
    return RepositorySource(owner=owner.lower(), repo=repo.lower(), ref=ref, subpath=subpath)


def _clean_subpath(subpath: str, raw: str) -> str | None:
    parts = [part for part in subpath.replace("\\", "/").split("/") if part and part != "."]
    if any(part == ".." for part in parts):
        raise InvalidSourceFormat(f"path escapes repository root: {raw}")
    return "/".join(parts) or None


def _strip_git_suffix(repo: str) -> str:
    if repo.lower().endswith(".git"):
        return repo[:-4]
    return repo
