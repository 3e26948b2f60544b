"""Skill catalog: scanning, caching and installing skills from remote sources."""

from skill_catalog.catalog.cache import CacheEntry, CacheStore, get_cache_key
from skill_catalog.catalog.clawdhub import (
    CLAWDHUB_SOURCE_ID,
    CLAWDHUB_SOURCE_STRING,
    HubPage,
    HubScanOptions,
    download_clawdhub_skill,
    fetch_clawdhub_skill_info,
    fetch_clawdhub_skill_version,
    fetch_clawdhub_skills,
    is_hub_source,
    scan_hub,
    scan_hub_page,
)
from skill_catalog.catalog.curated_sources import (
    CURATED_SKILLS_SOURCES,
    get_curated_skills_sources,
)
from skill_catalog.catalog.install import install, mark_installed_requests, read_installed_skill_source
from skill_catalog.catalog.models import (
    CuratedSource,
    HubOrigin,
    HubSource,
    InstallOutcome,
    InstallRequest,
    RepositoryOrigin,
    RepositorySource,
    ScanResult,
    ScanWarning,
    SkillMetadata,
    SourceDescriptor,
)
from skill_catalog.catalog.scan import RepositoryScanOptions, scan_repository
from skill_catalog.catalog.service import SkillsCatalog
from skill_catalog.catalog.source import format_source, normalize_source

__all__ = [
    "CLAWDHUB_SOURCE_ID",
    "CLAWDHUB_SOURCE_STRING",
    "CURATED_SKILLS_SOURCES",
    "CacheEntry",
    "CacheStore",
    "CuratedSource",
    "HubOrigin",
    "HubPage",
    "HubScanOptions",
    "HubSource",
    "InstallOutcome",
    "InstallRequest",
    "RepositoryOrigin",
    "RepositoryScanOptions",
    "RepositorySource",
    "ScanResult",
    "ScanWarning",
    "SkillMetadata",
    "SkillsCatalog",
    "SourceDescriptor",
    "download_clawdhub_skill",
    "fetch_clawdhub_skill_info",
    "fetch_clawdhub_skill_version",
    "fetch_clawdhub_skills",
    "format_source",
    "get_cache_key",
    "get_curated_skills_sources",
    "install",
    "is_hub_source",
    "mark_installed_requests",
    "normalize_source",
    "read_installed_skill_source",
    "scan_hub",
    "scan_hub_page",
    "scan_repository",
]
