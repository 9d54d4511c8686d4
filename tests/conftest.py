"""Shared pytest fixtures and fake collaborators."""

from __future__ import annotations

import asyncio
import hashlib
from pathlib import Path
from typing import Any

import pytest

from graphql_static.errors import DownloadError
from graphql_static.graph import ContentGraph, FileNode
from graphql_static.paths import PublicFiles, split_name, url_basename
from graphql_static.reporter import Reporter
from graphql_static.resolvers import ResolveContext


class FakeDownloader:
    """Stores ``url``-derived bytes on disk and tracks how many calls overlap."""

    def __init__(self, graph: ContentGraph, root: Path, delay: float = 0.0) -> None:
        self.graph = graph
        self.root = root
        self.delay = delay
        self.calls: list[str] = []
        self.failing: set[str] = set()
        self.in_flight = 0
        self.max_in_flight = 0

    async def download_to_store(self, url: str, *, node_id: str) -> FileNode:
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if url in self.failing:
                raise DownloadError(url, 404, "Not Found")
            return store_file(self.graph, self.root, url, url.encode(), node_id=node_id)
        finally:
            self.in_flight -= 1


def store_file(graph: ContentGraph, root: Path, url: str, body: bytes, *, node_id: str | None = None) -> FileNode:
    digest = hashlib.sha256(body).hexdigest()
    base = url_basename(url)
    path = root / digest / base
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(body)
    name, ext = split_name(base)
    node = FileNode(
        id=node_id or graph.create_node_id(url),
        url=url,
        absolute_path=str(path),
        base=base,
        name=name,
        ext=ext,
        content_digest=digest,
        size=len(body),
    )
    graph.create_node(node)
    return node


class FakeClient:
    def __init__(self, data: Any, error: Exception | None = None) -> None:
        self.data = data
        self.error = error
        self.requests: list[tuple[str, Any]] = []

    async def request(self, query: str, variables: dict[str, Any] | None = None) -> Any:
        self.requests.append((query, variables))
        if self.error is not None:
            raise self.error
        return self.data


@pytest.fixture
def graph() -> ContentGraph:
    return ContentGraph()


@pytest.fixture
def reporter() -> Reporter:
    return Reporter()


@pytest.fixture
def downloader(graph, tmp_path) -> FakeDownloader:
    return FakeDownloader(graph, tmp_path / "store")


@pytest.fixture
def context(graph, reporter, tmp_path) -> ResolveContext:
    return ResolveContext(graph=graph, reporter=reporter, public_files=PublicFiles(tmp_path / "public", "/prefix"))
