"""Consistency check of a saved graph snapshot against the file cache."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from pathlib import Path

from .graph import ContentGraph, FileNode, StaticLink


@dataclass(slots=True)
class VerifyReport:
    ok: int = 0
    problems: list[str] = field(default_factory=list)

    @property
    def ng(self) -> int:
        return len(self.problems)


def file_digest(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as fh:
        for block in iter(lambda: fh.read(1 << 16), b""):
            digest.update(block)
    return digest.hexdigest()


def verify_graph(graph: ContentGraph) -> VerifyReport:
    """Check links point at existing files, files are linked at most once, and blobs match their digest."""
    report = VerifyReport()
    linked_by: dict[str, str] = {}

    for link in graph.get_all_nodes(StaticLink.type):
        if graph.get_node(link.file_id, FileNode.type) is None:
            report.problems.append(f"link {link.external_id}: missing file node {link.file_id}")
            continue
        other = linked_by.get(link.file_id)
        if other is not None:
            report.problems.append(f"file {link.file_id}: linked by both {other} and {link.external_id}")
            continue
        linked_by[link.file_id] = link.external_id
        report.ok += 1

    for node in graph.get_all_nodes(FileNode.type):
        path = Path(node.absolute_path)
        if not path.is_file():
            report.problems.append(f"file {node.id}: blob not found at {path}")
            continue
        actual = file_digest(path)
        if actual != node.content_digest:
            report.problems.append(f"file {node.id}: digest mismatch (expected={node.content_digest}, actual={actual})")
            continue
        report.ok += 1

    return report


def print_report(report: VerifyReport) -> None:
    for problem in report.problems:
        print(f"[NG] {problem}")
    print(f"OK: {report.ok}")
    print(f"NG: {report.ng}")
