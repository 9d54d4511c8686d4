"""Download a remote file once per external id and link it into the graph."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Protocol

from .errors import GraphQLStaticError, IndexIntegrityError, MaterializationError
from .graph import ContentGraph, FileNode, StaticLink


class Downloader(Protocol):
    async def download_to_store(self, url: str, *, node_id: str) -> FileNode: ...


def link_node_id(graph: ContentGraph, external_id: str) -> str:
    return graph.create_node_id(f"{external_id} >>> {StaticLink.type}")


def file_node_id(graph: ContentGraph, external_id: str) -> str:
    return graph.create_node_id(f"{external_id} >>> {FileNode.type}")


class Materializer:
    """Creates one :class:`FileNode` and one :class:`StaticLink` per external id.

    Re-materializing an id whose link, file node and blob are all present is a
    no-op. Concurrent calls for the same id share one download.
    """

    def __init__(self, graph: ContentGraph, downloader: Downloader) -> None:
        self.graph = graph
        self.downloader = downloader
        self._pending: dict[str, asyncio.Task[StaticLink]] = {}

    async def materialize(self, external_id: str, url: str) -> StaticLink:
        task = self._pending.get(external_id)
        if task is None:
            task = asyncio.ensure_future(self._materialize(external_id, url))
            self._pending[external_id] = task
            task.add_done_callback(lambda _t: self._pending.pop(external_id, None))
        return await asyncio.shield(task)

    async def _materialize(self, external_id: str, url: str) -> StaticLink:
        existing = self.existing_link(external_id, url)
        if existing is not None:
            logging.debug("Already materialized %s (%s)", external_id, url)
            return existing

        try:
            node = await self.downloader.download_to_store(url, node_id=file_node_id(self.graph, external_id))
        except (GraphQLStaticError, OSError) as exc:
            raise MaterializationError(external_id, url, exc) from exc

        link = StaticLink(id=link_node_id(self.graph, external_id), external_id=external_id, file_id=node.id)
        try:
            self.graph.create_node(link)
        except IndexIntegrityError as exc:
            raise MaterializationError(external_id, url, exc) from exc
        logging.debug("Linked %s -> %s", external_id, node.absolute_path)
        return link

    def existing_link(self, external_id: str, url: str) -> StaticLink | None:
        """Return the stored link for ``external_id`` if its file is intact and came from ``url``."""
        link = self.graph.get_node(link_node_id(self.graph, external_id), StaticLink.type)
        if link is None:
            return None
        node = self.graph.get_node(link.file_id, FileNode.type)
        if node is None or node.url != url or not Path(node.absolute_path).exists():
            return None
        return link
