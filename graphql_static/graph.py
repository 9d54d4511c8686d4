"""In-memory content graph holding stored files and their index links."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Iterator, Mapping

from .errors import IndexIntegrityError

NODE_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "graphql-static")


@dataclass(slots=True)
class FileNode:
    """A downloaded file stored under its content digest."""

    id: str
    url: str
    absolute_path: str
    base: str
    name: str
    ext: str
    content_digest: str
    size: int

    type = "File"


@dataclass(slots=True)
class StaticLink:
    """Associates an external id with the file that was downloaded for it."""

    id: str
    external_id: str
    file_id: str

    type = "StaticLink"


Node = FileNode | StaticLink
NODE_TYPES: dict[str, type] = {FileNode.type: FileNode, StaticLink.type: StaticLink}


def create_node_id(seed: str) -> str:
    """Derive a stable node id from ``seed``."""
    return str(uuid.uuid5(NODE_NAMESPACE, seed))


class ContentGraph:
    """Node store with equality lookups over node attributes."""

    def __init__(self) -> None:
        self._nodes: dict[str, dict[str, Node]] = {name: {} for name in NODE_TYPES}
        self._indexes: dict[tuple[str, str], dict[Any, list[str]]] = {}

    def __len__(self) -> int:
        return sum(len(nodes) for nodes in self._nodes.values())

    def create_node_id(self, seed: str) -> str:
        return create_node_id(seed)

    def get_node(self, node_id: str, type_name: str | None = None) -> Node | None:
        if type_name is not None:
            return self._nodes.get(type_name, {}).get(node_id)
        for nodes in self._nodes.values():
            if node_id in nodes:
                return nodes[node_id]
        return None

    def get_all_nodes(self, type_name: str) -> list[Node]:
        return list(self._nodes.get(type_name, {}).values())

    def create_node(self, node: Node) -> Node:
        """Register ``node``; an existing node with the same id is replaced."""
        if isinstance(node, StaticLink):
            self._check_link(node)
        return self._put(node)

    def _put(self, node: Node) -> Node:
        nodes = self._nodes[node.type]
        previous = nodes.get(node.id)
        if previous is not None:
            self._unindex(previous)
        nodes[node.id] = node
        self._index(node)
        return node

    def _check_link(self, link: StaticLink) -> None:
        if self.get_node(link.file_id, FileNode.type) is None:
            raise IndexIntegrityError(f"link {link.external_id!r} references unknown file {link.file_id}")
        for other in self.run_query(StaticLink.type, {"file_id": link.file_id}):
            if other.id != link.id:
                raise IndexIntegrityError(
                    f"file {link.file_id} is already linked to {other.external_id!r}, refusing {link.external_id!r}"
                )

    def run_query(
        self,
        type_name: str,
        filter: Mapping[str, Any] | None = None,
        first_only: bool = False,
    ) -> Any:
        """Return nodes of ``type_name`` whose attributes equal every ``filter`` value.

        With ``first_only`` the first match or ``None`` is returned instead of a list.
        """
        nodes = self._nodes.get(type_name)
        if nodes is None:
            return None if first_only else []
        if not filter:
            candidates = list(nodes)
        else:
            candidate_sets = [self._lookup(type_name, key, value) for key, value in filter.items()]
            first, *rest = candidate_sets
            candidates = [node_id for node_id in first if all(node_id in ids for ids in rest)]
        if first_only:
            return nodes[candidates[0]] if candidates else None
        return [nodes[node_id] for node_id in candidates]

    def _lookup(self, type_name: str, key: str, value: Any) -> list[str]:
        index = self._indexes.get((type_name, key))
        if index is None:
            index = {}
            for node in self._nodes[type_name].values():
                index.setdefault(getattr(node, key, None), []).append(node.id)
            self._indexes[(type_name, key)] = index
        return index.get(value, [])

    def _index(self, node: Node) -> None:
        for (type_name, key), index in self._indexes.items():
            if type_name == node.type:
                index.setdefault(getattr(node, key, None), []).append(node.id)

    def _unindex(self, node: Node) -> None:
        for (type_name, key), index in self._indexes.items():
            if type_name != node.type:
                continue
            ids = index.get(getattr(node, key, None))
            if ids and node.id in ids:
                ids.remove(node.id)

    def delete_node(self, node_id: str) -> None:
        for nodes in self._nodes.values():
            node = nodes.pop(node_id, None)
            if node is not None:
                self._unindex(node)
                return

    def iter_nodes(self) -> Iterator[Node]:
        for nodes in self._nodes.values():
            yield from nodes.values()

    def save(self, path: Path) -> None:
        """Write all nodes to a JSON snapshot at ``path``."""
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"nodes": [{"type": node.type, **asdict(node)} for node in self.iter_nodes()]}
        path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        logging.debug("Saved %s nodes to %s", len(self), path)

    @classmethod
    def load(cls, path: Path) -> ContentGraph:
        """Read a snapshot written by :meth:`save`; a missing file gives an empty graph."""
        graph = cls()
        if not path.exists():
            return graph
        data = json.loads(path.read_text(encoding="utf-8"))
        entries = data.get("nodes") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            logging.warning("Ignoring malformed graph snapshot: %s", path)
            return graph
        for entry in entries:
            node_cls = NODE_TYPES.get(entry.get("type"))
            if node_cls is None:
                continue
            names = {f.name for f in fields(node_cls)}
            graph._put(node_cls(**{k: v for k, v in entry.items() if k in names}))
        logging.debug("Loaded %s nodes from %s", len(graph), path)
        return graph
