"""Plugin options, their defaults, and loading them from YAML."""

from __future__ import annotations

import importlib
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml

from .errors import ConfigError

DEFAULT_CHUNK_SIZE = 200
DEFAULT_STATIC_FIELD_NAME = "staticFile"


def default_static_field_name(field_name: str) -> str:
    return f"{field_name}Static"


def default_transform_field_name(field_name: str) -> str:
    return f"{field_name}Transformed"


def default_regex(spec: TransformSpec) -> re.Pattern[str]:
    """Match ``base_url`` followed by anything up to a space or ``)``.

    This finds the URL inside markdown links and images such as
    ``[My image](https://example.com/uploads/myImage.png)``.
    """
    return re.compile(re.escape(spec.base_url) + r"[^ )]+")


def project_identity(data: Any) -> Any:
    return data


@dataclass(slots=True)
class SourceOptions:
    """One GraphQL endpoint to pull file descriptors from."""

    endpoint: str
    query: str
    variables: dict[str, Any] = field(default_factory=dict)
    options: dict[str, str] = field(default_factory=dict)
    projection: Callable[[Any], Any] = project_identity
    chunk_size: int = DEFAULT_CHUNK_SIZE


@dataclass(slots=True)
class LinkSpec:
    """Expose the stored file for each ``type_name`` entity as ``static_field_name``."""

    type_name: str
    static_field_name: str = DEFAULT_STATIC_FIELD_NAME


@dataclass(slots=True)
class TransformSpec:
    """Rewrite URLs under ``base_url`` in ``type_name.field_name``."""

    type_name: str
    field_name: str
    base_url: str
    transform_field_name: str = ""
    regex_factory: Callable[[TransformSpec], re.Pattern[str]] = default_regex

    def __post_init__(self) -> None:
        if not self.transform_field_name:
            self.transform_field_name = default_transform_field_name(self.field_name)

    def build_regex(self) -> re.Pattern[str]:
        pattern = self.regex_factory(self)
        if isinstance(pattern, str):
            pattern = re.compile(pattern)
        return pattern


@dataclass(slots=True)
class PluginOptions:
    """Runtime configuration loaded from config.yaml."""

    sources: list[SourceOptions] = field(default_factory=list)
    files: list[LinkSpec] = field(default_factory=list)
    transform_fields: list[TransformSpec] = field(default_factory=list)
    cache_dir: str = ".cache/graphql-static"
    public_dir: str = "public"
    path_prefix: str = ""
    concurrency: int = 12
    delay_sec: float = 0.0
    max_retries: int = 4
    timeout_sec: float = 30

    @property
    def snapshot_path(self) -> Path:
        return Path(self.cache_dir) / "graph.json"


def import_callable(ref: Any, what: str) -> Callable[..., Any]:
    """Resolve a ``"package.module:attribute"`` reference, or pass a callable through."""
    if callable(ref):
        return ref
    if not isinstance(ref, str) or ":" not in ref:
        raise ConfigError(f"{what} must be a callable or a 'module:attribute' reference, got {ref!r}")
    module_name, _, attr_path = ref.partition(":")
    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigError(f"cannot import {what} module {module_name!r}: {exc}") from exc
    for attr in attr_path.split("."):
        try:
            obj = getattr(obj, attr)
        except AttributeError as exc:
            raise ConfigError(f"{what} {ref!r} not found") from exc
    if not callable(obj):
        raise ConfigError(f"{what} {ref!r} is not callable")
    return obj


def as_list(value: Any) -> list[Any]:
    """Accept a single entry or a list of entries."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _require(entry: Mapping[str, Any], key: str, section: str) -> Any:
    value = entry.get(key)
    if value in (None, ""):
        raise ConfigError(f"{section} entry is missing {key!r}: {dict(entry)!r}")
    return value


def _mapping(entry: Any, section: str) -> Mapping[str, Any]:
    if not isinstance(entry, Mapping):
        raise ConfigError(f"{section} entries must be mappings, got {entry!r}")
    return entry


def parse_source(entry: Any) -> SourceOptions:
    entry = _mapping(entry, "sources")
    chunk_size = int(entry.get("chunkSize", DEFAULT_CHUNK_SIZE))
    if chunk_size < 1:
        raise ConfigError(f"chunkSize must be at least 1, got {chunk_size}")
    projection = entry.get("projection", entry.get("source"))
    return SourceOptions(
        endpoint=str(_require(entry, "endpoint", "sources")),
        query=str(_require(entry, "query", "sources")),
        variables=dict(entry.get("variables") or {}),
        options={str(k): str(v) for k, v in (entry.get("options") or {}).items()},
        projection=import_callable(projection, "projection") if projection is not None else project_identity,
        chunk_size=chunk_size,
    )


def parse_link(entry: Any) -> LinkSpec:
    entry = _mapping(entry, "files")
    type_name = str(_require(entry, "typeName", "files"))
    static_field_name = entry.get("staticFieldName")
    if not static_field_name and entry.get("fieldName"):
        static_field_name = default_static_field_name(str(entry["fieldName"]))
    return LinkSpec(type_name=type_name, static_field_name=str(static_field_name or DEFAULT_STATIC_FIELD_NAME))


def parse_transform(entry: Any) -> TransformSpec:
    entry = _mapping(entry, "transformFields")
    regex_factory = entry.get("regexFactory", entry.get("regex"))
    return TransformSpec(
        type_name=str(_require(entry, "typeName", "transformFields")),
        field_name=str(_require(entry, "fieldName", "transformFields")),
        base_url=str(_require(entry, "baseUrl", "transformFields")),
        transform_field_name=str(entry.get("transformFieldName") or ""),
        regex_factory=import_callable(regex_factory, "regexFactory") if regex_factory is not None else default_regex,
    )


def parse_options(data: Mapping[str, Any]) -> PluginOptions:
    """Build :class:`PluginOptions` from a decoded config mapping, applying defaults."""
    return PluginOptions(
        sources=[parse_source(e) for e in as_list(data.get("sources"))],
        files=[parse_link(e) for e in as_list(data.get("files"))],
        transform_fields=[parse_transform(e) for e in as_list(data.get("transformFields"))],
        cache_dir=str(data.get("cacheDir", ".cache/graphql-static")),
        public_dir=str(data.get("publicDir", "public")),
        path_prefix=str(data.get("pathPrefix") or "").rstrip("/"),
        concurrency=int(data.get("concurrency", 12)),
        delay_sec=float(data.get("delaySec", 0.0)),
        max_retries=int(data.get("maxRetries", 4)),
        timeout_sec=float(data.get("timeoutSec", 30)),
    )


def load_config(config_path: Path) -> PluginOptions:
    """Load config.yaml."""
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError("config.yaml must be a mapping")
    return parse_options(data)
