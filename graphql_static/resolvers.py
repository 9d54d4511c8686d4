"""Derived-field resolvers: stored-file links and URL-rewritten text fields."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Protocol

from .config import LinkSpec, PluginOptions, TransformSpec
from .errors import ConfigError
from .graph import ContentGraph, FileNode, StaticLink
from .paths import PublicFiles, url_basename
from .replacer import replace_async
from .reporter import Reporter


@dataclass(slots=True)
class ResolveContext:
    graph: ContentGraph
    reporter: Reporter
    public_files: PublicFiles

    @classmethod
    def from_options(
        cls,
        graph: ContentGraph,
        options: PluginOptions,
        reporter: Reporter | None = None,
    ) -> ResolveContext:
        """Context publishing into ``options.public_dir`` under ``options.path_prefix``."""
        public_files = PublicFiles(Path(options.public_dir), options.path_prefix)
        return cls(graph, reporter or Reporter(), public_files)


class FieldResolver(Protocol):
    type: str

    async def resolve(self, source: Mapping[str, Any], context: ResolveContext) -> Any: ...


class LinkFieldResolver:
    """Resolves to the :class:`FileNode` linked to ``source["id"]``, or ``None``."""

    type = "File"

    def __init__(self, spec: LinkSpec) -> None:
        self.spec = spec

    async def resolve(self, source: Mapping[str, Any], context: ResolveContext) -> FileNode | None:
        source_id = source.get("id")
        link = context.graph.run_query(StaticLink.type, {"external_id": source_id}, first_only=True)
        if link is None:
            context.reporter.warn(f'No static for "{source_id}". Maybe adjust your query.')
            return None
        node = context.graph.get_node(link.file_id, FileNode.type)
        if node is None:
            context.reporter.warn(f'Static link for "{source_id}" points to missing file {link.file_id}.')
            return None
        return node


class TransformFieldResolver:
    """Rewrites URLs in a text field to public paths of stored files, matched by basename."""

    type = "String!"

    def __init__(self, spec: TransformSpec) -> None:
        self.spec = spec
        self.pattern = spec.build_regex()

    async def resolve(self, source: Mapping[str, Any], context: ResolveContext) -> str:
        context.reporter.verbose(
            f"Searching static replacement files for: {self.spec.type_name}.{self.spec.transform_field_name}"
        )

        async def lookup(url: str, *groups: str) -> str:
            context.reporter.verbose(f'Searching static file for "{url}"')
            base = url_basename(url)
            node = context.graph.run_query(FileNode.type, {"base": base}, first_only=True) if base else None
            if node is None:
                context.reporter.warn(f'Missing static file for: "{url}"')
                return url
            try:
                static_path = context.public_files.public_url(node)
            except OSError as exc:
                context.reporter.warn(f'Cannot publish static file for "{url}": {exc}')
                return url
            context.reporter.verbose(f'Found static replacement "{static_path}"')
            return static_path

        return await replace_async(source.get(self.spec.field_name), self.pattern, lookup)


class ResolverRegistry:
    """Resolvers keyed by ``(type_name, field_name)``."""

    def __init__(self) -> None:
        self._resolvers: dict[tuple[str, str], FieldResolver] = {}

    def __len__(self) -> int:
        return len(self._resolvers)

    def __contains__(self, key: object) -> bool:
        return key in self._resolvers

    def register(self, type_name: str, field_name: str, resolver: FieldResolver) -> None:
        key = (type_name, field_name)
        if key in self._resolvers:
            raise ConfigError(f"resolver for {type_name}.{field_name} is already registered")
        self._resolvers[key] = resolver

    def get(self, type_name: str, field_name: str) -> FieldResolver:
        return self._resolvers[(type_name, field_name)]

    async def resolve(
        self,
        type_name: str,
        field_name: str,
        source: Mapping[str, Any],
        context: ResolveContext,
    ) -> Any:
        return await self.get(type_name, field_name).resolve(source, context)

    def as_mapping(self) -> dict[str, dict[str, FieldResolver]]:
        """Nested ``{type: {field: resolver}}`` view for a host's resolver registration."""
        nested: dict[str, dict[str, FieldResolver]] = {}
        for (type_name, field_name), resolver in self._resolvers.items():
            nested.setdefault(type_name, {})[field_name] = resolver
        return nested


def create_resolvers(options: PluginOptions, registry: ResolverRegistry | None = None) -> ResolverRegistry:
    """Register a link resolver per ``files`` entry and a transform resolver per ``transform_fields`` entry."""
    registry = registry if registry is not None else ResolverRegistry()
    for link_spec in options.files:
        registry.register(link_spec.type_name, link_spec.static_field_name, LinkFieldResolver(link_spec))
    for transform_spec in options.transform_fields:
        registry.register(
            transform_spec.type_name,
            transform_spec.transform_field_name,
            TransformFieldResolver(transform_spec),
        )
    return registry
