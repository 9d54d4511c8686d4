"""Diagnostics sink handed to resolvers and ingestion."""

from __future__ import annotations

import logging


class Reporter:
    """Route advisory messages to logging and count warnings."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._log = logger or logging.getLogger("graphql_static")
        self.warnings: list[str] = []

    def warn(self, message: str) -> None:
        self.warnings.append(message)
        self._log.warning("%s", message)

    def info(self, message: str) -> None:
        self._log.info("%s", message)

    def verbose(self, message: str) -> None:
        self._log.debug("%s", message)
