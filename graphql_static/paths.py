"""URL parsing helpers and copying stored files into the public directory."""

from __future__ import annotations

import logging
import os
import posixpath
import shutil
from pathlib import Path
from urllib.parse import unquote, urlparse

from .graph import FileNode


def url_basename(url: str) -> str:
    """Return the last path segment of ``url`` with percent-escapes decoded."""
    path = urlparse(url).path
    return unquote(posixpath.basename(path.rstrip("/")))


def split_name(base: str) -> tuple[str, str]:
    """Split ``base`` into ``(name, ext)``; ``ext`` keeps its leading dot."""
    name, ext = posixpath.splitext(base)
    return name, ext


class PublicFiles:
    """Publishes stored files under ``<public_dir>/static/<digest>/<base>``."""

    def __init__(self, public_dir: Path, path_prefix: str = "") -> None:
        self.public_dir = Path(public_dir)
        self.path_prefix = path_prefix.rstrip("/")

    def request_path(self, node: FileNode) -> str:
        return f"static/{node.content_digest}/{node.base}"

    def get_cached_path_or_copy(self, node: FileNode) -> Path:
        """Copy the stored blob for ``node`` to its public location unless it is already there."""
        destination = self.public_dir / self.request_path(node)
        if destination.exists():
            return destination
        destination.parent.mkdir(parents=True, exist_ok=True)
        tmp = destination.with_name(f".{destination.name}.part")
        shutil.copyfile(node.absolute_path, tmp)
        os.replace(tmp, destination)
        logging.debug("Copied %s -> %s", node.absolute_path, destination)
        return destination

    def public_url(self, node: FileNode) -> str:
        self.get_cached_path_or_copy(node)
        return f"{self.path_prefix}/{self.request_path(node)}"
