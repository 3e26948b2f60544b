"""HTTP helpers for the ClawdHub skill registry.

Endpoints, relative to ``CatalogSettings.clawdhub_api_url``:

* ``GET /skills?limit=N[&cursor=C]`` -> ``{"items": [...], "nextCursor": "..." | null}``
* ``GET /skills/{slug}`` -> ``{"skill": {...}, "latestVersion": {"version": "..."}}``
* ``GET /skills/{slug}/versions/latest`` -> ``{"version": {"version": "..."}}``
* ``GET /download?slug=S&version=V`` -> zip archive

Cursors are opaque strings and are sent back verbatim. Every endpoint takes a
``catalog=<hub_id>`` query parameter when a non-default catalog is addressed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from skill_catalog.catalog.github import raise_for_catalog_status
from skill_catalog.catalog.source import CLAWDHUB_SOURCE_ID
from skill_catalog.core.exceptions import HubUnavailable, NetworkError

if TYPE_CHECKING:
    from skill_catalog.config import CatalogSettings


class ClawdHubVersionModel(BaseModel):
    version: str | None = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("version", mode="before")
    @classmethod
    def _coerce_version(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return str(value)
        return value


class ClawdHubSkillModel(BaseModel):
    slug: str
    display_name: str | None = Field(default=None, alias="displayName")
    summary: str | None = None
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    latest_version: ClawdHubVersionModel | None = Field(default=None, alias="latestVersion")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, dict):
            # some registry builds return {"latest": "1.0.0"} style tag maps
            return [str(key) for key in value]
        return value


class ClawdHubListModel(BaseModel):
    # entries are validated one at a time by the scanner
    items: list[Any] = Field(default_factory=list)
    next_cursor: str | None = Field(default=None, alias="nextCursor")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ClawdHubInfoModel(BaseModel):
    skill: ClawdHubSkillModel
    latest_version: ClawdHubVersionModel | None = Field(default=None, alias="latestVersion")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ClawdHubVersionEnvelope(BaseModel):
    version: ClawdHubVersionModel

    model_config = ConfigDict(extra="ignore")


@dataclass(frozen=True)
class ClawdHubListing:
    items: tuple[Any, ...]
    next_cursor: str | None


def _base_url(settings: CatalogSettings) -> str:
    return settings.clawdhub_api_url.rstrip("/")


def _catalog_params(hub_id: str) -> dict[str, str]:
    return {} if hub_id == CLAWDHUB_SOURCE_ID else {"catalog": hub_id}


def _headers(settings: CatalogSettings) -> dict[str, str]:
    headers = {"Accept": "application/json"}
    if settings.clawdhub_token:
        headers["Authorization"] = f"Bearer {settings.clawdhub_token}"
    return headers


async def _hub_get(
    client: httpx.AsyncClient,
    settings: CatalogSettings,
    path: str,
    *,
    what: str,
    params: dict[str, Any] | None = None,
) -> httpx.Response:
    try:
        response = await client.get(
            f"{_base_url(settings)}{path}",
            params=params,
            headers=_headers(settings),
        )
    except httpx.TransportError as exc:
        raise HubUnavailable(f"ClawdHub is unreachable while fetching {what}: {exc}") from exc
    if response.status_code >= 500:
        raise HubUnavailable(f"ClawdHub returned HTTP {response.status_code} for {what}")
    raise_for_catalog_status(response, what=what)
    return response


def _parse(model: type[Any], response: httpx.Response, *, what: str) -> Any:
    try:
        return model.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise NetworkError(f"unexpected ClawdHub response for {what}: {exc}") from exc


async def fetch_clawdhub_skills(
    client: httpx.AsyncClient,
    settings: CatalogSettings,
    *,
    cursor: str | None = None,
    limit: int | None = None,
    hub_id: str = CLAWDHUB_SOURCE_ID,
) -> ClawdHubListing:
    params: dict[str, Any] = {"limit": limit or settings.hub_page_size}
    if cursor:
        params["cursor"] = cursor
    params.update(_catalog_params(hub_id))
    response = await _hub_get(client, settings, "/skills", what="skill listing", params=params)
    listing = _parse(ClawdHubListModel, response, what="skill listing")
    return ClawdHubListing(items=tuple(listing.items), next_cursor=listing.next_cursor or None)


async def fetch_clawdhub_skill_version(
    client: httpx.AsyncClient,
    settings: CatalogSettings,
    slug: str,
    *,
    hub_id: str = CLAWDHUB_SOURCE_ID,
) -> str | None:
    what = f"latest version of {slug}"
    response = await _hub_get(
        client,
        settings,
        f"/skills/{quote(slug, safe='')}/versions/latest",
        what=what,
        params=_catalog_params(hub_id),
    )
    envelope = _parse(ClawdHubVersionEnvelope, response, what=what)
    return envelope.version.version


async def fetch_clawdhub_skill_info(
    client: httpx.AsyncClient,
    settings: CatalogSettings,
    slug: str,
    *,
    hub_id: str = CLAWDHUB_SOURCE_ID,
) -> ClawdHubInfoModel:
    what = f"skill {slug}"
    response = await _hub_get(
        client,
        settings,
        f"/skills/{quote(slug, safe='')}",
        what=what,
        params=_catalog_params(hub_id),
    )
    return _parse(ClawdHubInfoModel, response, what=what)


async def download_clawdhub_skill(
    client: httpx.AsyncClient,
    settings: CatalogSettings,
    slug: str,
    version: str,
    *,
    hub_id: str = CLAWDHUB_SOURCE_ID,
) -> bytes:
    what = f"archive of {slug}@{version}"
    response = await _hub_get(
        client,
        settings,
        "/download",
        what=what,
        params={"slug": slug, "version": version, **_catalog_params(hub_id)},
    )
    return response.content
