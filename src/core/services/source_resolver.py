"""Resolución de artefactos con fallback entre fuentes.

Las fuentes se prueban estrictamente en orden de prioridad, nunca en paralelo.
El primer éxito corta la iteración; un fallo de una fuente solo se registra
en el log hasta que se agotan todas.
"""

from __future__ import annotations

import logging
from typing import Protocol, Sequence

from core.domain.models import Source
from core.errors import FetchError, SourcesExhaustedError, UnknownSourceError
from core.log_config import get_logger


class Fetcher(Protocol):
    async def fetch(self, source: Source, resource_path: str) -> str:
        ...


class SourceResolver:
    def __init__(
        self,
        sources: Sequence[Source],
        fetcher: Fetcher,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._sources = tuple(sources)
        self._fetcher = fetcher
        self._log = get_logger(logger, "sources")

    @property
    def sources(self) -> tuple[Source, ...]:
        return self._sources

    def only(self, name: str) -> "SourceResolver":
        """Resolver restringido a una única fuente (sin fallback)."""

        for source in self._sources:
            if source.name == name:
                return SourceResolver([source], self._fetcher, logger=self._log.parent)
        raise UnknownSourceError(name, [s.name for s in self._sources])

    async def fetch_artifact(self, resource_path: str) -> str:
        tried: list[str] = []
        last_error: FetchError | None = None

        for source in self._sources:
            tried.append(source.name)
            try:
                content = await self._fetcher.fetch(source, resource_path)
            except FetchError as exc:
                last_error = exc
                self._log.info("%s: source %s failed: %s", resource_path, source.name, exc)
                continue

            self._log.debug("%s: fetched from %s (%d chars)", resource_path, source.name, len(content))
            return content

        raise SourcesExhaustedError(resource_path, tried, last_error)
