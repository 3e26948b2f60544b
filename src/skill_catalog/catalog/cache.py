"""In-memory TTL cache for scan results keyed by source identity."""

from __future__ import annotations

import json
import threading
import time
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from skill_catalog.catalog.models import ScanResult, SourceDescriptor

DEFAULT_CACHE_TTL_MS = 30 * 60 * 1000


def system_clock_ms() -> int:
    return int(time.time() * 1000)


def get_cache_key(descriptor: SourceDescriptor, params: Mapping[str, Any] | None = None) -> str:
    """Build a canonical cache key for a descriptor plus result-affecting scan params.

    ``None`` valued params are dropped so that omitting a param and passing its
    default ``None`` hash the same.
    """
    payload = {
        "source": asdict(descriptor),
        "params": {key: _canonical(value) for key, value in sorted((params or {}).items()) if value is not None},
    }
    return f"{descriptor.kind}:" + json.dumps(payload, sort_keys=True, separators=(",", ":"))


def _canonical(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [_canonical(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted(_canonical(item) for item in value)
    if isinstance(value, dict):
        return {str(key): _canonical(item) for key, item in sorted(value.items())}
    return value


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: ScanResult
    created_at_ms: int
    expires_at_ms: int


class CacheStore:
    """Keyed store of scan results with lazy expiry.

    One instance is created by the process entry point and shared by reference.
    """

    def __init__(self, clock: Callable[[], int] | None = None) -> None:
        self._clock = clock or system_clock_ms
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get_cache_key(self, descriptor: SourceDescriptor, params: Mapping[str, Any] | None = None) -> str:
        return get_cache_key(descriptor, params)

    def get_cached_scan(self, key: str) -> ScanResult | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or now > entry.expires_at_ms:
            return None
        return entry.value

    def get_entry(self, key: str) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(key)

    def set_cached_scan(self, key: str, result: ScanResult, ttl_ms: int = DEFAULT_CACHE_TTL_MS) -> None:
        if ttl_ms < 0:
            raise ValueError("ttl_ms must be non-negative")
        now = self._clock()
        entry = CacheEntry(key=key, value=result, created_at_ms=now, expires_at_ms=now + ttl_ms)
        with self._lock:
            self._entries[key] = entry

    def clear_cache(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def prune_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if now > entry.expires_at_ms]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
