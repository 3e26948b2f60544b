"""Error taxonomy for catalog scans and installs.

Every error carries a short machine-readable ``kind`` and a human-readable
``detail``. Callers render ``str(error)`` directly.
"""

from __future__ import annotations


class SkillCatalogError(Exception):
    kind = "SkillCatalogError"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        return f"{self.kind}: {self.detail}"


class InvalidSourceFormat(SkillCatalogError):
    """Raised when a raw source string matches none of the recognized shapes."""

    kind = "InvalidSourceFormat"


class ScanError(SkillCatalogError):
    """Base class for failures that abort a whole scan."""

    kind = "ScanError"


class SourceNotFound(ScanError):
    kind = "SourceNotFound"


class HubUnavailable(ScanError):
    """The hub service itself is unreachable or failing."""

    kind = "HubUnavailable"


class RateLimited(ScanError):
    kind = "RateLimited"

    def __init__(self, detail: str, *, retry_after: float | None = None) -> None:
        super().__init__(detail)
        self.retry_after = retry_after

    def __str__(self) -> str:
        if self.retry_after is None:
            return super().__str__()
        return f"{self.kind}: {self.detail} (retry after {self.retry_after:g}s)"


class NetworkError(ScanError):
    kind = "NetworkError"


class InvalidSkillContent(SkillCatalogError):
    """Fetched skill content does not follow the SKILL.md convention."""

    kind = "InvalidSkillContent"


class InstallWriteFailed(SkillCatalogError):
    kind = "InstallWriteFailed"


class InvalidInstallRequest(SkillCatalogError):
    """The install batch itself is malformed (for example an empty target root)."""

    kind = "InvalidInstallRequest"
