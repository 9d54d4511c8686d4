"""Query GraphQL sources and materialize the files they list, batch by batch."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Mapping, Protocol, Sequence, TypeVar

from .config import SourceOptions
from .errors import ConfigError
from .materializer import Materializer
from .reporter import Reporter

T = TypeVar("T")
R = TypeVar("R")


class QueryClient(Protocol):
    async def request(self, query: str, variables: dict[str, Any] | None = None) -> Any: ...


ClientFactory = Callable[[SourceOptions], QueryClient]


@dataclass(frozen=True, slots=True)
class FileDescriptor:
    """A remote file as listed by a source: stable external id plus absolute URL."""

    id: str
    url: str

    @classmethod
    def coerce(cls, item: Any) -> FileDescriptor:
        """Accept a mapping or any object exposing ``id`` and ``url``."""
        if isinstance(item, FileDescriptor):
            return item
        if isinstance(item, Mapping):
            ext_id, url = item.get("id"), item.get("url")
        else:
            ext_id, url = getattr(item, "id", None), getattr(item, "url", None)
        if ext_id in (None, "") or not isinstance(url, str) or not url:
            raise ConfigError(f"projection produced an entry without id/url: {item!r}")
        return cls(id=str(ext_id), url=url)


def iter_batches(items: Sequence[T], size: int) -> list[list[T]]:
    """Split ``items`` into consecutive batches of at most ``size``."""
    if size < 1:
        raise ValueError(f"batch size must be at least 1, got {size}")
    return [list(items[start : start + size]) for start in range(0, len(items), size)]


async def run_in_batches(
    items: Sequence[T],
    size: int,
    worker: Callable[[T], Awaitable[R]],
    on_batch_done: Callable[[int, int], None] | None = None,
) -> list[R]:
    """Run ``worker`` over ``items``, one batch at a time.

    Every call in a batch runs concurrently and the batch settles completely
    before the next one starts. If any call failed, the first failure in item
    order is raised and later batches are never started.
    """
    results: list[R] = []
    batches = iter_batches(items, size)
    for number, batch in enumerate(batches, start=1):
        outcomes = await asyncio.gather(*(worker(item) for item in batch), return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
        results.extend(outcomes)
        if on_batch_done is not None:
            on_batch_done(number, len(batches))
    return results


def project(options: SourceOptions, data: Any) -> list[FileDescriptor]:
    items: Iterable[Any] | None = options.projection(data)
    return [FileDescriptor.coerce(item) for item in items or ()]


async def ingest_source(
    options: SourceOptions,
    *,
    materializer: Materializer,
    client_factory: ClientFactory,
    reporter: Reporter,
) -> int:
    """Query one source and materialize every file it lists; returns the file count."""
    client = client_factory(options)
    data = await client.request(options.query, options.variables)
    descriptors = project(options, data)
    reporter.info(f"{options.endpoint}: {len(descriptors)} files in batches of {options.chunk_size}")

    async def materialize(descriptor: FileDescriptor) -> None:
        await materializer.materialize(descriptor.id, descriptor.url)

    def batch_done(number: int, count: int) -> None:
        reporter.verbose(f"{options.endpoint}: batch {number}/{count} done")

    await run_in_batches(descriptors, options.chunk_size, materialize, batch_done)
    return len(descriptors)


async def source_nodes(
    sources: Sequence[SourceOptions],
    *,
    materializer: Materializer,
    client_factory: ClientFactory,
    reporter: Reporter,
) -> int:
    """Ingest all sources concurrently.

    A failing source does not cancel the others; once all have finished the
    first failure is raised.
    """
    outcomes = await asyncio.gather(
        *(
            ingest_source(source, materializer=materializer, client_factory=client_factory, reporter=reporter)
            for source in sources
        ),
        return_exceptions=True,
    )
    total = 0
    failure: BaseException | None = None
    for source, outcome in zip(sources, outcomes):
        if isinstance(outcome, BaseException):
            logging.error("Ingestion failed for %s: %s", source.endpoint, outcome)
            failure = failure or outcome
        else:
            total += outcome
    if failure is not None:
        raise failure
    return total
