from __future__ import annotations

import pytest

from skill_catalog.core.exceptions import (
    HubUnavailable,
    InstallWriteFailed,
    InvalidSourceFormat,
    NetworkError,
    RateLimited,
    ScanError,
    SkillCatalogError,
    SourceNotFound,
)


@pytest.mark.parametrize("error_type", [SourceNotFound, HubUnavailable, RateLimited, NetworkError])
def test_scan_failures_share_a_base(error_type: type[ScanError]) -> None:
    error = error_type("boom")

    assert isinstance(error, ScanError)
    assert isinstance(error, SkillCatalogError)
    assert str(error) == f"{error_type.__name__}: boom"


def test_non_scan_errors_are_not_scan_errors() -> None:
    assert not isinstance(InvalidSourceFormat("x"), ScanError)
    assert not isinstance(InstallWriteFailed("x"), ScanError)


def test_rate_limited_renders_retry_hint() -> None:
    assert str(RateLimited("slow down", retry_after=30)) == "RateLimited: slow down (retry after 30s)"
    assert str(RateLimited("slow down")) == "RateLimited: slow down"


def test_detail_is_kept() -> None:
    assert SourceNotFound("missing repo").detail == "missing repo"
