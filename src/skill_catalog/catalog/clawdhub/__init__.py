"""ClawdHub registry support."""

from skill_catalog.catalog.clawdhub.client import (
    download_clawdhub_skill,
    fetch_clawdhub_skill_info,
    fetch_clawdhub_skill_version,
    fetch_clawdhub_skills,
)
from skill_catalog.catalog.clawdhub.scan import (
    HUB_PAGE_SAFETY_LIMIT,
    HubPage,
    HubScanOptions,
    scan_hub,
    scan_hub_page,
)
from skill_catalog.catalog.source import (
    CLAWDHUB_SOURCE_ID,
    CLAWDHUB_SOURCE_STRING,
    is_hub_source,
)

__all__ = [
    "CLAWDHUB_SOURCE_ID",
    "CLAWDHUB_SOURCE_STRING",
    "HUB_PAGE_SAFETY_LIMIT",
    "HubPage",
    "HubScanOptions",
    "download_clawdhub_skill",
    "fetch_clawdhub_skill_info",
    "fetch_clawdhub_skill_version",
    "fetch_clawdhub_skills",
    "is_hub_source",
    "scan_hub",
    "scan_hub_page",
]
