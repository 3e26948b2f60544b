"""Settings for the skill catalog.

Values resolve from defaults, then ``SKILL_CATALOG_`` prefixed environment
variables (``SKILL_CATALOG_CATALOG__MAX_CONCURRENCY=2``), then explicit
keyword arguments.
"""

from __future__ import annotations

import os

import httpx
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from skill_catalog import __version__


class CatalogSettings(BaseModel):
    """Remote endpoints and limits used by the scanners and the installer."""

    github_api_url: str = "https://api.github.com"
    github_raw_url: str = "https://raw.githubusercontent.com"
    github_token: str | None = None
    clawdhub_api_url: str = "https://clawdhub.com/api/v1"
    clawdhub_token: str | None = None
    cache_ttl_seconds: int = Field(default=1800, ge=0)
    max_concurrency: int = Field(default=4, ge=1, le=32)
    hub_page_size: int = Field(default=50, ge=1, le=200)
    hub_max_pages: int | None = Field(default=None, ge=1)
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    user_agent: str = f"skill-catalog/{__version__}"

    def resolved_github_token(self) -> str | None:
        # GITHUB_TOKEN / GH_TOKEN are honoured when no explicit token is configured
        return self.github_token or os.environ.get("GITHUB_TOKEN") or os.environ.get("GH_TOKEN")

    @property
    def cache_ttl_ms(self) -> int:
        return self.cache_ttl_seconds * 1000


class Settings(BaseSettings):
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    log_level: str = "WARNING"

    model_config = SettingsConfigDict(
        env_prefix="SKILL_CATALOG_",
        env_nested_delimiter="__",
        extra="ignore",
    )


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def update_settings(settings: Settings | None) -> None:
    """Replace (or with ``None`` reset) the process-wide settings."""
    global _settings
    _settings = settings


def build_http_client(settings: Settings | None = None) -> httpx.AsyncClient:
    resolved = (settings or get_settings()).catalog
    return httpx.AsyncClient(
        timeout=resolved.request_timeout_seconds,
        follow_redirects=True,
        headers={"User-Agent": resolved.user_agent},
    )
