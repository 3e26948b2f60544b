"""HTTP, clock and payload fakes shared by the catalog tests."""

from __future__ import annotations

import inspect
import io
import json
import zipfile
from typing import Any

import httpx

GITHUB_API = "https://api.github.test"
GITHUB_RAW = "https://raw.github.test"
HUB_API = "https://hub.test/api/v1"


def _route_key(url: httpx.URL | str) -> str:
    parsed = httpx.URL(url)
    query = "&".join(sorted(f"{key}={value}" for key, value in parsed.params.multi_items()))
    return f"{parsed.host}{parsed.path}?{query}"


class FakeUpstream:
    """Records requests and answers from a URL -> response table (404 otherwise)."""

    def __init__(self) -> None:
        self.routes: dict[str, Any] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        url: str,
        *,
        json_body: Any = None,
        content: bytes | str | None = None,
        status: int = 200,
        headers: dict[str, str] | None = None,
    ) -> None:
        if json_body is not None:
            self.routes[_route_key(url)] = (status, {"json": json_body}, headers)
        else:
            self.routes[_route_key(url)] = (status, {"content": content or b""}, headers)

    def add_handler(self, url: str, handler: Any) -> None:
        self.routes[_route_key(url)] = handler

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(_route_key(request.url))
        if route is None:
            return httpx.Response(404, json={"message": "Not Found"})
        if isinstance(route, tuple):
            status, body, headers = route
            return httpx.Response(status, headers=headers, **body)
        result = route(request)
        if inspect.isawaitable(result):
            result = await result
        return result

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


class FakeClock:
    def __init__(self, now_ms: int = 1_700_000_000_000) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


def tree_payload(*paths: str, truncated: bool = False) -> dict[str, Any]:
    entries: list[dict[str, Any]] = []
    seen_dirs: set[str] = set()
    for path in paths:
        parts = path.split("/")
        for index in range(1, len(parts)):
            directory = "/".join(parts[:index])
            if directory not in seen_dirs:
                seen_dirs.add(directory)
                entries.append({"path": directory, "type": "tree", "sha": f"t-{directory}"})
        entries.append({"path": path, "type": "blob", "sha": f"b-{path}", "size": 10})
    return {"sha": "root", "tree": entries, "truncated": truncated}


def skill_md(name: str | None, description: str | None = None, version: str | None = None) -> str:
    lines = ["---"]
    if name is not None:
        lines.append(f"name: {name}")
    if description is not None:
        lines.append(f"description: {description}")
    if version is not None:
        lines.append(f"version: {json.dumps(version)}")
    lines.append("---")
    lines.append(f"# {name or 'skill'}")
    return "\n".join(lines) + "\n"


def zip_bytes(files: dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as bundle:
        for name, content in files.items():
            bundle.writestr(name, content)
    return buffer.getvalue()


def add_github_repo(
    upstream: FakeUpstream,
    owner: str,
    repo: str,
    files: dict[str, str],
    *,
    ref: str = "main",
    default_branch: str = "main",
) -> None:
    """Serve repository metadata, a recursive tree and raw files for ``files``."""
    upstream.add(
        f"{GITHUB_API}/repos/{owner}/{repo}",
        json_body={"full_name": f"{owner}/{repo}", "default_branch": default_branch},
    )
    upstream.add(
        f"{GITHUB_API}/repos/{owner}/{repo}/git/trees/{ref}?recursive=1",
        json_body=tree_payload(*files),
    )
    for path, content in files.items():
        upstream.add(f"{GITHUB_RAW}/{owner}/{repo}/{ref}/{path}", content=content)
