"""Paginated scanning of the ClawdHub registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from skill_catalog.catalog.cache import system_clock_ms
from skill_catalog.catalog.clawdhub.client import (
    ClawdHubSkillModel,
    fetch_clawdhub_skill_info,
    fetch_clawdhub_skill_version,
    fetch_clawdhub_skills,
)
from skill_catalog.catalog.concurrency import gather_bounded
from skill_catalog.catalog.models import HubOrigin, ScanResult, ScanWarning, SkillMetadata
from skill_catalog.config import get_settings
from skill_catalog.core.exceptions import RateLimited, ScanError
from skill_catalog.core.logging.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from skill_catalog.catalog.models import HubSource
    from skill_catalog.config import CatalogSettings, Settings

logger = get_logger(__name__)

# Hard cap on pages drained by scan_hub, regardless of caller options.
HUB_PAGE_SAFETY_LIMIT = 50


@dataclass(frozen=True)
class HubScanOptions:
    page_size: int | None = None
    resolve_full_info: bool = False
    max_pages: int | None = None
    max_concurrency: int | None = None

    def cache_params(self) -> dict[str, Any]:
        return {
            "page_size": self.page_size,
            "resolve_full_info": self.resolve_full_info or None,
            "max_pages": self.max_pages,
        }


@dataclass(frozen=True)
class HubPage:
    skills: tuple[SkillMetadata, ...]
    next_page_token: str | None
    warnings: tuple[ScanWarning, ...] = ()


async def scan_hub_page(
    descriptor: HubSource,
    page_token: str | None = None,
    options: HubScanOptions | None = None,
    *,
    client: httpx.AsyncClient,
    settings: Settings | None = None,
) -> HubPage:
    """Fetch one listing page and resolve per-skill version metadata."""
    options = options or HubScanOptions()
    catalog_settings = (settings or get_settings()).catalog

    listing = await fetch_clawdhub_skills(
        client,
        catalog_settings,
        cursor=page_token,
        limit=options.page_size,
        hub_id=descriptor.hub_id,
    )

    async def _resolve(item: Any) -> SkillMetadata | ScanWarning:
        return await _resolve_entry(client, catalog_settings, descriptor, item, options)

    resolved = await gather_bounded(
        [lambda item=item: _resolve(item) for item in listing.items],
        limit=options.max_concurrency or catalog_settings.max_concurrency,
    )

    skills: list[SkillMetadata] = []
    warnings: list[ScanWarning] = []
    for entry in resolved:
        if isinstance(entry, ScanWarning):
            logger.warning(
                "Skipping hub entry",
                data={"hub": descriptor.hub_id, "slug": entry.path, "reason": entry.message},
            )
            warnings.append(entry)
        else:
            skills.append(entry)

    return HubPage(skills=tuple(skills), next_page_token=listing.next_cursor, warnings=tuple(warnings))


async def scan_hub(
    descriptor: HubSource,
    options: HubScanOptions | None = None,
    *,
    client: httpx.AsyncClient,
    settings: Settings | None = None,
    clock: Callable[[], int] | None = None,
) -> ScanResult:
    """Drain ``scan_hub_page`` and concatenate pages in order."""
    options = options or HubScanOptions()
    resolved_settings = settings or get_settings()
    page_limit = options.max_pages or resolved_settings.catalog.hub_max_pages or HUB_PAGE_SAFETY_LIMIT
    page_limit = min(page_limit, HUB_PAGE_SAFETY_LIMIT)

    logger.info("Scanning hub", data={"hub": descriptor.hub_id, "page_limit": page_limit})

    skills: list[SkillMetadata] = []
    warnings: list[ScanWarning] = []
    seen_tokens: set[str] = set()
    token: str | None = None
    pages = 0
    while True:
        page = await scan_hub_page(descriptor, token, options, client=client, settings=resolved_settings)
        pages += 1
        skills.extend(page.skills)
        warnings.extend(page.warnings)

        token = page.next_page_token
        if token is None:
            break
        if token in seen_tokens:
            warnings.append(ScanWarning(path="", message=f"hub repeated page cursor {token!r}; stopping"))
            logger.warning("Hub repeated a page cursor", data={"hub": descriptor.hub_id, "cursor": token})
            break
        seen_tokens.add(token)
        if pages >= page_limit:
            if pages >= HUB_PAGE_SAFETY_LIMIT:
                warnings.append(
                    ScanWarning(path="", message=f"stopped after {pages} pages (safety limit)")
                )
                logger.warning("Hub page safety limit reached", data={"hub": descriptor.hub_id, "pages": pages})
            break

    logger.info(
        "Hub scan complete",
        data={"hub": descriptor.hub_id, "pages": pages, "skills": len(skills)},
    )
    return ScanResult(
        source=descriptor,
        skills=tuple(skills),
        scanned_at_ms=(clock or system_clock_ms)(),
        warnings=tuple(warnings),
    )


async def _resolve_entry(
    client: httpx.AsyncClient,
    settings: CatalogSettings,
    descriptor: HubSource,
    raw_item: Any,
    options: HubScanOptions,
) -> SkillMetadata | ScanWarning:
    try:
        item = ClawdHubSkillModel.model_validate(raw_item)
    except ValidationError as exc:
        slug = raw_item.get("slug") if isinstance(raw_item, dict) else None
        return ScanWarning(
            path=slug if isinstance(slug, str) else "",
            message=f"invalid listing entry: {_first_error(exc)}",
        )
    slug = item.slug.strip()
    if not slug:
        return ScanWarning(path="", message="listing entry without slug")

    version = item.latest_version.version if item.latest_version else None
    if not version:
        try:
            version = await fetch_clawdhub_skill_version(client, settings, slug, hub_id=descriptor.hub_id)
        except RateLimited:
            raise
        except ScanError as exc:
            return ScanWarning(path=slug, message=f"version lookup failed: {exc}")
        if not version:
            return ScanWarning(path=slug, message="no published version")

    name = (item.display_name or "").strip() or slug
    description = (item.description or item.summary or "").strip()
    tags = tuple(item.tags)

    if options.resolve_full_info:
        try:
            info = await fetch_clawdhub_skill_info(client, settings, slug, hub_id=descriptor.hub_id)
        except RateLimited:
            raise
        except ScanError as exc:
            logger.debug("Hub info lookup failed", data={"slug": slug, "error": str(exc)})
        else:
            description = (info.skill.description or info.skill.summary or description).strip()
            tags = tuple(info.skill.tags) or tags

    return SkillMetadata(
        id=slug,
        name=name,
        description=description or name,
        source_kind="hub",
        origin=HubOrigin(hub_id=descriptor.hub_id, slug=slug, version=version),
        version=version,
        tags=tags,
    )


def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ())) or "entry"
    return f"{location}: {error.get('msg', 'invalid')}"
