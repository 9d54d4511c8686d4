"""Tests for config loading and defaults."""

from __future__ import annotations

import json
import re
import textwrap

import pytest

from graphql_static.config import (
    DEFAULT_CHUNK_SIZE,
    TransformSpec,
    default_regex,
    import_callable,
    load_config,
)
from graphql_static.errors import ConfigError


def _write(tmp_path, body: str):
    path = tmp_path / "config.yaml"
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


def test_load_config_lists_and_defaults(tmp_path):
    path = _write(
        tmp_path,
        """
        pathPrefix: /blog/
        sources:
          - endpoint: https://cms.test/graphql
            query: "{ uploads { id url } }"
            variables: {limit: 5}
            options: {Authorization: Bearer t}
            projection: "json:loads"
            chunkSize: 50
        files:
          - typeName: Upload
          - typeName: Cover
            fieldName: image
        transformFields:
          - typeName: Article
            fieldName: content
            baseUrl: https://cms.test
        """,
    )

    options = load_config(path)

    assert options.path_prefix == "/blog"
    assert options.cache_dir == ".cache/graphql-static"
    source = options.sources[0]
    assert source.variables == {"limit": 5}
    assert source.options == {"Authorization": "Bearer t"}
    assert source.projection is json.loads
    assert source.chunk_size == 50
    assert [(f.type_name, f.static_field_name) for f in options.files] == [
        ("Upload", "staticFile"),
        ("Cover", "imageStatic"),
    ]
    transform = options.transform_fields[0]
    assert transform.transform_field_name == "contentTransformed"
    assert transform.regex_factory is default_regex


def test_single_entries_are_accepted(tmp_path):
    path = _write(
        tmp_path,
        """
        sources:
          endpoint: https://cms.test/graphql
          query: "{ a }"
        files:
          typeName: Upload
          staticFieldName: local
        """,
    )

    options = load_config(path)

    assert len(options.sources) == 1
    assert options.sources[0].chunk_size == DEFAULT_CHUNK_SIZE
    assert options.sources[0].projection({"x": 1}) == {"x": 1}
    assert options.files[0].static_field_name == "local"


@pytest.mark.parametrize(
    "body,match",
    [
        ("- a\n- b\n", "must be a mapping"),
        ("sources:\n  - query: x\n", "endpoint"),
        ("sources:\n  - {endpoint: e, query: q, chunkSize: 0}\n", "chunkSize"),
        ("transformFields:\n  - {typeName: A, fieldName: b}\n", "baseUrl"),
        ("files:\n  - Upload\n", "mappings"),
        ("sources: [\n", "invalid YAML"),
    ],
)
def test_invalid_config(tmp_path, body, match):
    with pytest.raises(ConfigError, match=match):
        load_config(_write(tmp_path, body))


def test_import_callable_errors():
    with pytest.raises(ConfigError, match="module:attribute"):
        import_callable("json.loads", "projection")
    with pytest.raises(ConfigError, match="cannot import"):
        import_callable("no_such_module_xyz:f", "projection")
    with pytest.raises(ConfigError, match="not found"):
        import_callable("json:nope", "projection")
    with pytest.raises(ConfigError, match="not callable"):
        import_callable("json.decoder:NaN", "projection")


def test_default_regex_stops_at_space_and_paren():
    pattern = default_regex(TransformSpec("A", "b", "https://cdn.test/x?"))

    assert pattern.findall("[a](https://cdn.test/x?/1.png) https://cdn.test/x?/2.png z") == [
        "https://cdn.test/x?/1.png",
        "https://cdn.test/x?/2.png",
    ]
    assert pattern.findall("https://cdn.test/xy/3.png") == []


def test_string_pattern_from_factory_is_compiled():
    spec = TransformSpec("A", "b", "https://cdn.test", regex_factory=lambda s: r"https://cdn\.test/\S+")

    assert isinstance(spec.build_regex(), re.Pattern)
