from __future__ import annotations

import asyncio

import httpx
import pytest
from catalog_fakes import GITHUB_API, HUB_API, add_github_repo, skill_md

from skill_catalog.catalog.cache import CacheStore
from skill_catalog.catalog.clawdhub.scan import HubScanOptions
from skill_catalog.catalog.models import RepositorySource
from skill_catalog.catalog.scan import RepositoryScanOptions
from skill_catalog.catalog.service import SkillsCatalog
from skill_catalog.core.exceptions import InvalidSourceFormat, SourceNotFound


def _serve_widgets(upstream) -> None:
    add_github_repo(
        upstream,
        "octo",
        "widgets",
        {"skills/pdf/SKILL.md": skill_md("pdf", "PDF", "1.0.0"), "skills/xlsx/SKILL.md": skill_md("xlsx")},
    )


@pytest.mark.asyncio
async def test_second_scan_is_served_from_cache(http_client, upstream, settings, clock) -> None:
    _serve_widgets(upstream)
    catalog = SkillsCatalog(CacheStore(clock=clock), settings=settings, client=http_client, clock=clock)

    first = await catalog.scan("octo/widgets")
    request_count = len(upstream.requests)
    second = await catalog.scan("https://github.com/Octo/widgets")

    assert second is first
    assert len(upstream.requests) == request_count


@pytest.mark.asyncio
async def test_refresh_and_expiry_rescan(http_client, upstream, settings, clock) -> None:
    _serve_widgets(upstream)
    catalog = SkillsCatalog(CacheStore(clock=clock), settings=settings, client=http_client, clock=clock)

    first = await catalog.scan("octo/widgets")
    refreshed = await catalog.scan("octo/widgets", refresh=True)
    clock.advance(settings.catalog.cache_ttl_ms + 1)
    expired = await catalog.scan("octo/widgets")

    assert refreshed is not first
    assert expired is not refreshed
    assert expired.skills == first.skills


@pytest.mark.asyncio
async def test_different_options_use_different_entries(http_client, upstream, settings, clock) -> None:
    _serve_widgets(upstream)
    catalog = SkillsCatalog(CacheStore(clock=clock), settings=settings, client=http_client, clock=clock)

    everything = await catalog.scan("octo/widgets")
    only_pdf = await catalog.scan("octo/widgets", RepositoryScanOptions(include=("skills/pdf",)))

    assert len(everything.skills) == 2
    assert [skill.id for skill in only_pdf.skills] == ["skills/pdf"]


@pytest.mark.asyncio
async def test_failed_scan_is_not_cached(http_client, upstream, settings, clock) -> None:
    cache = CacheStore(clock=clock)
    catalog = SkillsCatalog(cache, settings=settings, client=http_client, clock=clock)

    with pytest.raises(SourceNotFound):
        await catalog.scan("octo/ghost")

    assert len(cache) == 0


@pytest.mark.asyncio
async def test_cancelled_scan_writes_no_cache_entry(http_client, upstream, settings, clock) -> None:
    started = asyncio.Event()

    async def _hang(request: httpx.Request) -> httpx.Response:
        started.set()
        await asyncio.sleep(30)
        return httpx.Response(200, json={"default_branch": "main"})

    upstream.add_handler(f"{GITHUB_API}/repos/octo/widgets", _hang)
    cache = CacheStore(clock=clock)
    catalog = SkillsCatalog(cache, settings=settings, client=http_client, clock=clock)

    task = asyncio.create_task(catalog.scan("octo/widgets"))
    await asyncio.wait_for(started.wait(), timeout=5)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_hub_scan_and_page_through_catalog(http_client, upstream, settings, clock) -> None:
    item = {"slug": "pdf", "displayName": "PDF", "latestVersion": {"version": "1.0.0"}}
    upstream.add(f"{HUB_API}/skills?limit=2", json_body={"items": [item], "nextCursor": None})
    catalog = SkillsCatalog(CacheStore(clock=clock), settings=settings, client=http_client, clock=clock)

    result = await catalog.scan("clawdhub")
    page = await catalog.scan_page("clawdhub")

    assert [skill.id for skill in result.skills] == ["pdf"]
    assert page.skills == result.skills
    assert page.next_page_token is None


@pytest.mark.asyncio
async def test_scan_page_rejects_repository_sources(http_client, settings) -> None:
    catalog = SkillsCatalog(CacheStore(), settings=settings, client=http_client)

    with pytest.raises(InvalidSourceFormat):
        await catalog.scan_page("octo/widgets")


@pytest.mark.asyncio
async def test_mismatched_options_are_rejected(http_client, settings) -> None:
    catalog = SkillsCatalog(CacheStore(), settings=settings, client=http_client)

    with pytest.raises(TypeError):
        await catalog.scan("octo/widgets", HubScanOptions())
    with pytest.raises(TypeError):
        catalog.cache_key(RepositorySource(owner="o", repo="r"), HubScanOptions())


@pytest.mark.asyncio
async def test_invalid_source_string_raises(http_client, settings) -> None:
    catalog = SkillsCatalog(CacheStore(), settings=settings, client=http_client)

    with pytest.raises(InvalidSourceFormat):
        await catalog.scan("not a source")


@pytest.mark.asyncio
async def test_scan_then_install_with_skip_installed(http_client, upstream, settings, clock, tmp_path) -> None:
    _serve_widgets(upstream)
    catalog = SkillsCatalog(CacheStore(clock=clock), settings=settings, client=http_client, clock=clock)

    result = await catalog.scan("octo/widgets")
    first = await catalog.install(result.skills, tmp_path)
    second = await catalog.install(result.skills, tmp_path, skip_installed=True)

    assert [outcome.status for outcome in first] == ["succeeded", "succeeded"]
    assert [outcome.status for outcome in second] == ["skipped", "skipped"]
    assert sorted(path.name for path in tmp_path.iterdir()) == ["pdf", "xlsx"]


@pytest.mark.asyncio
async def test_owned_client_is_closed_on_exit(settings) -> None:
    async with SkillsCatalog(CacheStore(), settings=settings) as catalog:
        client = catalog.client

    assert client.is_closed
