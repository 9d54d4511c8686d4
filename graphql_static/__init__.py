"""Download files listed by GraphQL sources and rewrite text fields to point at local copies."""

from .config import LinkSpec, PluginOptions, SourceOptions, TransformSpec, load_config
from .errors import (
    ConfigError,
    DownloadError,
    GraphQLRequestError,
    GraphQLStaticError,
    IndexIntegrityError,
    MaterializationError,
)
from .graph import ContentGraph, FileNode, StaticLink
from .ingest import FileDescriptor, ingest_source, iter_batches, run_in_batches, source_nodes
from .materializer import Materializer
from .replacer import replace_async
from .resolvers import LinkFieldResolver, ResolveContext, ResolverRegistry, TransformFieldResolver, create_resolvers

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "ContentGraph",
    "DownloadError",
    "FileDescriptor",
    "FileNode",
    "GraphQLRequestError",
    "GraphQLStaticError",
    "IndexIntegrityError",
    "LinkFieldResolver",
    "LinkSpec",
    "MaterializationError",
    "Materializer",
    "PluginOptions",
    "ResolveContext",
    "ResolverRegistry",
    "SourceOptions",
    "StaticLink",
    "TransformFieldResolver",
    "TransformSpec",
    "create_resolvers",
    "ingest_source",
    "iter_batches",
    "load_config",
    "replace_async",
    "run_in_batches",
    "source_nodes",
]
