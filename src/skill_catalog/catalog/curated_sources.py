"""Known-good sources offered as scan defaults."""

from __future__ import annotations

from skill_catalog.catalog.models import CuratedSource
from skill_catalog.catalog.source import CLAWDHUB_SOURCE_STRING

CURATED_SKILLS_SOURCES: tuple[CuratedSource, ...] = (
    CuratedSource(
        id="anthropic",
        label="Anthropic",
        source="anthropics/skills",
    ),
    CuratedSource(
        id="huggingface",
        label="Hugging Face",
        source="huggingface/skills",
    ),
    CuratedSource(
        id="fast-agent",
        label="fast-agent",
        source="fast-agent-ai/skills",
    ),
    CuratedSource(
        id="clawdhub",
        label="ClawdHub",
        source=CLAWDHUB_SOURCE_STRING,
    ),
)


def get_curated_skills_sources() -> tuple[CuratedSource, ...]:
    return CURATED_SKILLS_SOURCES
