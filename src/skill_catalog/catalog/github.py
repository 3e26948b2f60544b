"""Thin async GitHub REST helpers used by the repository scanner and installer."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from skill_catalog.core.exceptions import NetworkError, RateLimited, SourceNotFound

if TYPE_CHECKING:
    from skill_catalog.config import CatalogSettings


class TreeEntryModel(BaseModel):
    path: str
    type: str
    sha: str | None = None
    size: int | None = None

    model_config = ConfigDict(extra="ignore")


class TreeModel(BaseModel):
    sha: str | None = None
    tree: list[TreeEntryModel] = Field(default_factory=list)
    truncated: bool = False

    model_config = ConfigDict(extra="ignore")


class RepositoryModel(BaseModel):
    default_branch: str
    full_name: str | None = None

    model_config = ConfigDict(extra="ignore")


@dataclass(frozen=True)
class RepositoryTree:
    ref: str
    entries: tuple[TreeEntryModel, ...]
    truncated: bool = False

    def blobs(self) -> list[TreeEntryModel]:
        return [entry for entry in self.entries if entry.type == "blob"]


def parse_retry_after(headers: httpx.Headers, *, now: float | None = None) -> float | None:
    """Return the retry hint in seconds from ``Retry-After`` or ``X-RateLimit-Reset``."""
    retry_after = headers.get("retry-after")
    if retry_after:
        try:
            return max(0.0, float(retry_after))
        except ValueError:
            pass
    reset = headers.get("x-ratelimit-reset")
    if reset:
        try:
            reset_at = float(reset)
        except ValueError:
            return None
        current = time.time() if now is None else now
        return max(0.0, reset_at - current)
    return None


def raise_for_catalog_status(response: httpx.Response, *, what: str) -> None:
    """Map an upstream HTTP status onto the catalog error taxonomy."""
    status = response.status_code
    if status < 400:
        return
    if status == 404:
        raise SourceNotFound(f"{what} not found")
    if status == 429 or (status == 403 and _rate_limit_exhausted(response.headers)):
        raise RateLimited(
            f"rate limited while fetching {what}",
            retry_after=parse_retry_after(response.headers),
        )
    if status in {401, 403}:
        raise SourceNotFound(f"{what} is not accessible (HTTP {status})")
    raise NetworkError(f"unexpected HTTP {status} while fetching {what}")


def _rate_limit_exhausted(headers: httpx.Headers) -> bool:
    if headers.get("retry-after"):
        return True
    return headers.get("x-ratelimit-remaining") == "0"


class GitHubClient:
    def __init__(self, client: httpx.AsyncClient, settings: CatalogSettings) -> None:
        self._client = client
        self._api_url = settings.github_api_url.rstrip("/")
        self._raw_url = settings.github_raw_url.rstrip("/")
        self._token = settings.resolved_github_token()

    def _headers(self, accept: str = "application/vnd.github+json") -> dict[str, str]:
        headers = {"Accept": accept, "X-GitHub-Api-Version": "2022-11-28"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _get(self, url: str, *, what: str, headers: dict[str, str] | None = None) -> httpx.Response:
        try:
            response = await self._client.get(url, headers=headers if headers is not None else self._headers())
        except httpx.TimeoutException as exc:
            raise NetworkError(f"timed out fetching {what}") from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"failed to fetch {what}: {exc}") from exc
        raise_for_catalog_status(response, what=what)
        return response

    async def get_default_branch(self, owner: str, repo: str) -> str:
        what = f"repository {owner}/{repo}"
        response = await self._get(f"{self._api_url}/repos/{owner}/{repo}", what=what)
        payload = _validate(RepositoryModel, response, what=what)
        return payload.default_branch

    async def get_tree(self, owner: str, repo: str, ref: str) -> RepositoryTree:
        what = f"ref {ref} of {owner}/{repo}"
        url = f"{self._api_url}/repos/{owner}/{repo}/git/trees/{quote(ref)}?recursive=1"
        response = await self._get(url, what=what)
        payload = _validate(TreeModel, response, what=what)
        return RepositoryTree(ref=ref, entries=tuple(payload.tree), truncated=payload.truncated)

    async def get_raw_file(self, owner: str, repo: str, ref: str, path: str) -> bytes:
        url = f"{self._raw_url}/{owner}/{repo}/{quote(ref)}/{quote(path)}"
        # raw host does not take the API Accept header
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
        response = await self._get(url, what=f"{path} in {owner}/{repo}@{ref}", headers=headers)
        return response.content


def _validate(model: type[Any], response: httpx.Response, *, what: str) -> Any:
    try:
        return model.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise NetworkError(f"unexpected response for {what}: {exc}") from exc
