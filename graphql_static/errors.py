"""Exception hierarchy for graphql_static."""

from __future__ import annotations


class GraphQLStaticError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(GraphQLStaticError):
    """Invalid or unloadable configuration."""


class DownloadError(GraphQLStaticError):
    """A remote file could not be fetched."""

    def __init__(self, url: str, status: int, reason: str = "") -> None:
        self.url = url
        self.status = status
        detail = f"HTTP {status}" if status > 0 else "request failed"
        if reason:
            detail = f"{detail} ({reason})"
        super().__init__(f"{detail} for {url}")


class GraphQLRequestError(GraphQLStaticError):
    """The GraphQL endpoint returned an error or an unusable body."""

    def __init__(self, endpoint: str, message: str) -> None:
        self.endpoint = endpoint
        super().__init__(f"{endpoint}: {message}")


class MaterializationError(GraphQLStaticError):
    """Downloading or linking the file for one external id failed."""

    def __init__(self, external_id: str, url: str, cause: BaseException) -> None:
        self.external_id = external_id
        self.url = url
        self.cause = cause
        super().__init__(f"failed to materialize {external_id!r} from {url}: {cause}")


class IndexIntegrityError(GraphQLStaticError):
    """A write would break the one-link-per-file invariant."""
