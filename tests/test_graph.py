"""Tests for ContentGraph queries, link integrity and snapshots."""

from __future__ import annotations

import pytest

from conftest import store_file
from graphql_static.errors import IndexIntegrityError
from graphql_static.graph import ContentGraph, FileNode, StaticLink, create_node_id


def test_node_id_is_stable_uuid():
    assert create_node_id("seed") == create_node_id("seed")
    assert len(create_node_id("seed")) == 36
    assert create_node_id("seed") != create_node_id("other")


def test_run_query_equality_and_first_only(graph, tmp_path):
    a = store_file(graph, tmp_path, "https://cdn.test/a.png", b"a")
    store_file(graph, tmp_path, "https://cdn.test/b.png", b"b")

    assert graph.run_query(FileNode.type, {"base": "a.png"}) == [a]
    assert graph.run_query(FileNode.type, {"base": "a.png"}, first_only=True) is a
    assert graph.run_query(FileNode.type, {"base": "zzz.png"}, first_only=True) is None
    assert graph.run_query(FileNode.type, {"base": "a.png", "ext": ".jpg"}) == []
    assert len(graph.run_query(FileNode.type)) == 2
    assert graph.run_query("Unknown", {"base": "a.png"}, first_only=True) is None


def test_index_follows_replacement(graph, tmp_path):
    node = store_file(graph, tmp_path, "https://cdn.test/a.png", b"a", node_id="n1")
    assert graph.run_query(FileNode.type, {"base": "a.png"}, first_only=True) is node

    replaced = store_file(graph, tmp_path, "https://cdn.test/c.png", b"c", node_id="n1")

    assert graph.run_query(FileNode.type, {"base": "a.png"}) == []
    assert graph.run_query(FileNode.type, {"base": "c.png"}) == [replaced]
    assert len(graph) == 1


def test_link_to_unknown_file_is_rejected(graph):
    with pytest.raises(IndexIntegrityError, match="unknown file"):
        graph.create_node(StaticLink(id="l1", external_id="x", file_id="missing"))


def test_relinking_same_id_is_allowed(graph, tmp_path):
    node = store_file(graph, tmp_path, "https://cdn.test/a.png", b"a")
    graph.create_node(StaticLink(id="l1", external_id="x", file_id=node.id))
    graph.create_node(StaticLink(id="l1", external_id="x", file_id=node.id))

    assert len(graph.get_all_nodes(StaticLink.type)) == 1


def test_snapshot_round_trip(graph, tmp_path):
    node = store_file(graph, tmp_path, "https://cdn.test/a.png", b"a")
    graph.create_node(StaticLink(id="l1", external_id="x", file_id=node.id))
    path = tmp_path / "cache" / "graph.json"

    graph.save(path)
    loaded = ContentGraph.load(path)

    assert loaded.get_node(node.id, FileNode.type) == node
    assert loaded.run_query(StaticLink.type, {"external_id": "x"}, first_only=True).file_id == node.id


def test_load_missing_or_malformed_snapshot(tmp_path):
    assert len(ContentGraph.load(tmp_path / "absent.json")) == 0
    bad = tmp_path / "bad.json"
    bad.write_text('["not", "a", "snapshot"]', encoding="utf-8")
    assert len(ContentGraph.load(bad)) == 0
