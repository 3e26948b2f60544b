"""Caller-facing facade tying normalization, caching, scanning and install together."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from skill_catalog.catalog.clawdhub.scan import HubPage, HubScanOptions, scan_hub, scan_hub_page
from skill_catalog.catalog.install import install, mark_installed_requests
from skill_catalog.catalog.models import (
    HubSource,
    InstallRequest,
    RepositorySource,
    SkillMetadata,
)
from skill_catalog.catalog.scan import RepositoryScanOptions, scan_repository
from skill_catalog.catalog.source import normalize_source
from skill_catalog.config import build_http_client, get_settings
from skill_catalog.core.exceptions import InvalidSourceFormat
from skill_catalog.core.logging.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path

    import httpx

    from skill_catalog.catalog.cache import CacheStore
    from skill_catalog.catalog.models import InstallOutcome, ScanResult, SourceDescriptor
    from skill_catalog.config import Settings

logger = get_logger(__name__)

ScanOptions = RepositoryScanOptions | HubScanOptions


class SkillsCatalog:
    """Scan sources through a shared cache and install selected skills.

    Use as ``async with SkillsCatalog(cache) as catalog:`` when no HTTP client
    is injected; the catalog then owns and closes its own client.
    """

    def __init__(
        self,
        cache: CacheStore,
        *,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.cache = cache
        self.settings = settings or get_settings()
        self._client = client
        self._owns_client = client is None
        self._clock = clock

    async def __aenter__(self) -> "SkillsCatalog":
        if self._client is None:
            self._client = build_http_client(self.settings)
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = build_http_client(self.settings)
            self._owns_client = True
        return self._client

    def cache_key(self, descriptor: SourceDescriptor, options: ScanOptions | None = None) -> str:
        options = _options_for(descriptor, options)
        return self.cache.get_cache_key(descriptor, options.cache_params())

    async def scan(
        self,
        source: str | SourceDescriptor,
        options: ScanOptions | None = None,
        *,
        refresh: bool = False,
    ) -> ScanResult:
        descriptor = normalize_source(source) if isinstance(source, str) else source
        options = _options_for(descriptor, options)
        key = self.cache.get_cache_key(descriptor, options.cache_params())

        if not refresh:
            cached = self.cache.get_cached_scan(key)
            if cached is not None:
                logger.debug("Scan cache hit", data={"key": key})
                return cached

        match descriptor:
            case RepositorySource():
                result = await scan_repository(
                    descriptor,
                    cast(RepositoryScanOptions, options),
                    client=self.client,
                    settings=self.settings,
                    clock=self._clock,
                )
            case HubSource():
                result = await scan_hub(
                    descriptor,
                    cast(HubScanOptions, options),
                    client=self.client,
                    settings=self.settings,
                    clock=self._clock,
                )

        self.cache.set_cached_scan(key, result, self.settings.catalog.cache_ttl_ms)
        return result

    async def scan_page(
        self,
        source: str | HubSource,
        page_token: str | None = None,
        options: HubScanOptions | None = None,
    ) -> HubPage:
        descriptor = normalize_source(source) if isinstance(source, str) else source
        if not isinstance(descriptor, HubSource):
            raise InvalidSourceFormat("paged scanning is only available for hub sources")
        return await scan_hub_page(
            descriptor,
            page_token,
            options,
            client=self.client,
            settings=self.settings,
        )

    async def install(
        self,
        items: Sequence[SkillMetadata | InstallRequest],
        target_root: Path | str,
        *,
        skip_installed: bool = False,
    ) -> list[InstallOutcome]:
        requests = [
            InstallRequest.from_skill(item) if isinstance(item, SkillMetadata) else item
            for item in items
        ]
        if skip_installed and str(target_root).strip():
            requests = mark_installed_requests(requests, target_root)
        return await install(requests, target_root, client=self.client, settings=self.settings)


def _options_for(descriptor: SourceDescriptor, options: ScanOptions | None) -> ScanOptions:
    match descriptor:
        case RepositorySource():
            if options is None:
                return RepositoryScanOptions()
            if not isinstance(options, RepositoryScanOptions):
                raise TypeError("repository sources take RepositoryScanOptions")
            return options
        case HubSource():
            if options is None:
                return HubScanOptions()
            if not isinstance(options, HubScanOptions):
                raise TypeError("hub sources take HubScanOptions")
            return options
