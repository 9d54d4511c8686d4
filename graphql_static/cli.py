"""Command line entry point: ``graphql-static [ingest|verify] --config config.yaml``."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

import aiohttp

from .config import PluginOptions, SourceOptions, load_config
from .errors import GraphQLStaticError
from .fetch import GraphQLClient, RemoteFileDownloader, RequestScheduler
from .graph import ContentGraph, FileNode, StaticLink
from .ingest import source_nodes
from .materializer import Materializer
from .reporter import Reporter
from .verify import print_report, verify_graph


async def run_ingest(options: PluginOptions, reporter: Reporter | None = None) -> ContentGraph:
    """Ingest all configured sources into the graph snapshot and save it."""
    reporter = reporter or Reporter()
    snapshot = options.snapshot_path
    graph = ContentGraph.load(snapshot)
    scheduler = RequestScheduler(options.delay_sec)
    connector = aiohttp.TCPConnector(limit=max(8, options.concurrency * 2))

    async with aiohttp.ClientSession(connector=connector) as session:
        downloader = RemoteFileDownloader(
            session,
            graph,
            Path(options.cache_dir),
            scheduler=scheduler,
            max_retries=options.max_retries,
            timeout_sec=options.timeout_sec,
        )
        materializer = Materializer(graph, downloader)

        def client_factory(source: SourceOptions) -> GraphQLClient:
            return GraphQLClient(session, source.endpoint, source.options, timeout_sec=options.timeout_sec)

        try:
            total = await source_nodes(
                options.sources,
                materializer=materializer,
                client_factory=client_factory,
                reporter=reporter,
            )
        finally:
            graph.save(snapshot)

    logging.info(
        "Summary: sources=%s files=%s links=%s stored=%s warnings=%s snapshot=%s",
        len(options.sources),
        total,
        len(graph.get_all_nodes(StaticLink.type)),
        len(graph.get_all_nodes(FileNode.type)),
        len(reporter.warnings),
        snapshot,
    )
    return graph


def run_verify(options: PluginOptions) -> int:
    graph = ContentGraph.load(options.snapshot_path)
    report = verify_graph(graph)
    print_report(report)
    return 1 if report.ng > 0 else 0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Download files listed by GraphQL sources and index them")
    parser.add_argument("command", nargs="?", choices=["ingest", "verify"], default="ingest")
    parser.add_argument("--config", default="config.yaml", help="Path to config YAML file")
    parser.add_argument("--verbose", action="store_true", help="Log debug output")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    config_path = Path(args.config)
    if not config_path.exists():
        raise SystemExit(f"config file not found: {config_path}")
    try:
        options = load_config(config_path)
        if args.command == "verify":
            raise SystemExit(run_verify(options))
        asyncio.run(run_ingest(options))
    except GraphQLStaticError as exc:
        logging.error("%s", exc)
        raise SystemExit(1) from exc
    raise SystemExit(0)
