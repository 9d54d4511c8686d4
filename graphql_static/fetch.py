"""HTTP transport: throttled fetch with retry, file downloads and GraphQL requests."""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Mapping

import aiohttp

from .errors import DownloadError, GraphQLRequestError
from .graph import ContentGraph, FileNode
from .paths import split_name, url_basename


class RequestScheduler:
    """Ensure a minimum delay between request starts."""

    def __init__(self, delay_sec: float) -> None:
        self.delay_sec = max(0.0, delay_sec)
        self._lock = asyncio.Lock()
        self._next_allowed = 0.0

    async def wait_turn(self) -> None:
        if self.delay_sec <= 0:
            return
        async with self._lock:
            now = time.monotonic()
            wait_for = self._next_allowed - now
            if wait_for > 0:
                await asyncio.sleep(wait_for)
                now = time.monotonic()
            self._next_allowed = now + self.delay_sec


async def fetch_bytes(
    session: aiohttp.ClientSession,
    scheduler: RequestScheduler,
    url: str,
    *,
    max_retries: int = 4,
    timeout_sec: float = 30,
    backoff_sec: float = 0.05,
) -> bytes:
    """GET ``url`` and return the body.

    5xx responses and transport errors are retried with exponential backoff;
    anything else that is not 2xx raises :class:`DownloadError` immediately.
    """
    timeout = aiohttp.ClientTimeout(total=timeout_sec)
    for attempt in range(max_retries + 1):
        try:
            await scheduler.wait_turn()
            async with session.get(url, timeout=timeout) as resp:
                status = resp.status
                if 200 <= status < 300:
                    return await resp.read()
                if status < 500 or attempt == max_retries:
                    raise DownloadError(url, status, resp.reason or "")
                logging.debug("HTTP %s for %s, retrying (%s/%s)", status, url, attempt + 1, max_retries)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            if attempt == max_retries:
                raise DownloadError(url, -1, str(exc) or type(exc).__name__) from exc
            logging.debug("Request failed for %s (%s), retrying", url, exc)
        await asyncio.sleep((2**attempt) * max(0.05, backoff_sec))
    raise DownloadError(url, -1, "retries exhausted")


class RemoteFileDownloader:
    """Download remote files into ``<cache_dir>/files/<sha256>/<base>`` and register them.

    Bodies already fetched in this process are reused per URL.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        graph: ContentGraph,
        cache_dir: Path,
        *,
        scheduler: RequestScheduler | None = None,
        max_retries: int = 4,
        timeout_sec: float = 30,
    ) -> None:
        self.session = session
        self.graph = graph
        self.files_dir = Path(cache_dir) / "files"
        self.scheduler = scheduler or RequestScheduler(0)
        self.max_retries = max_retries
        self.timeout_sec = timeout_sec
        self._stored: dict[str, tuple[Path, str, int]] = {}

    async def download_to_store(self, url: str, *, node_id: str) -> FileNode:
        stored = self._stored.get(url)
        if stored is not None and not stored[0].exists():
            logging.debug("Stored copy of %s is gone, fetching again", url)
            stored = None
        if stored is None:
            body = await fetch_bytes(
                self.session,
                self.scheduler,
                url,
                max_retries=self.max_retries,
                timeout_sec=self.timeout_sec,
                backoff_sec=self.scheduler.delay_sec,
            )
            stored = self._write(url, body)
            self._stored[url] = stored
        path, digest, size = stored
        name, ext = split_name(path.name)
        node = FileNode(
            id=node_id,
            url=url,
            absolute_path=str(path),
            base=path.name,
            name=name,
            ext=ext,
            content_digest=digest,
            size=size,
        )
        self.graph.create_node(node)
        return node

    def _write(self, url: str, body: bytes) -> tuple[Path, str, int]:
        digest = hashlib.sha256(body).hexdigest()
        base = url_basename(url) or digest
        path = self.files_dir / digest / base
        if not path.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_name(f".{base}.part")
            tmp.write_bytes(body)
            os.replace(tmp, path)
        logging.debug("Stored %s (%s bytes) at %s", url, len(body), path)
        return path, digest, len(body)


class GraphQLClient:
    """Minimal GraphQL-over-HTTP client posting ``{"query", "variables"}``."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        endpoint: str,
        headers: Mapping[str, str] | None = None,
        timeout_sec: float = 30,
    ) -> None:
        self.session = session
        self.endpoint = endpoint
        self.headers = dict(headers or {})
        self.timeout = aiohttp.ClientTimeout(total=timeout_sec)

    async def request(self, query: str, variables: Mapping[str, Any] | None = None) -> Any:
        """Run ``query`` and return the response's ``data`` member."""
        payload = {"query": query, "variables": dict(variables or {})}
        try:
            async with self.session.post(
                self.endpoint, json=payload, headers=self.headers, timeout=self.timeout
            ) as resp:
                status = resp.status
                text = await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise GraphQLRequestError(self.endpoint, f"request failed ({exc})") from exc

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise GraphQLRequestError(self.endpoint, f"HTTP {status}, invalid JSON: {exc}") from exc

        errors = body.get("errors") if isinstance(body, dict) else None
        if errors:
            messages = "; ".join(
                str(err.get("message", err)) if isinstance(err, dict) else str(err) for err in errors
            )
            raise GraphQLRequestError(self.endpoint, messages)
        if not 200 <= status < 300:
            raise GraphQLRequestError(self.endpoint, f"HTTP {status}")
        if not isinstance(body, dict) or "data" not in body:
            raise GraphQLRequestError(self.endpoint, "response has no data")
        return body["data"]
