from __future__ import annotations

import httpx
import pytest
import pytest_asyncio
from catalog_fakes import GITHUB_API, GITHUB_RAW, HUB_API, FakeClock, FakeUpstream

from skill_catalog.config import CatalogSettings, Settings


@pytest.fixture
def settings() -> Settings:
    return Settings(
        catalog=CatalogSettings(
            github_api_url=GITHUB_API,
            github_raw_url=GITHUB_RAW,
            github_token="test-token",
            clawdhub_api_url=HUB_API,
            max_concurrency=2,
            hub_page_size=2,
        )
    )


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def http_client(upstream: FakeUpstream):
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream.handle)) as client:
        yield client
