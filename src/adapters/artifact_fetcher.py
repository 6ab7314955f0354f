"""Descarga de un artefacto desde UNA fuente.

Traduce los fallos de httpx a la jerarquía `FetchError` para que el resolver
pueda distinguir timeout, status no-2xx y bucles de redirección.
"""

from __future__ import annotations

import logging

import httpx

from core.domain.models import Source
from core.errors import (
    FetchTimeoutError,
    HttpStatusError,
    RedirectLimitError,
    TransportError,
)
from core.log_config import get_logger


class ArtifactFetcher:
    """Una petición GET acotada por el timeout de la fuente, sin reintentos."""

    def __init__(self, client: httpx.AsyncClient, *, logger: logging.Logger | None = None) -> None:
        self._client = client
        self._log = get_logger(logger, "fetch")

    async def fetch(self, source: Source, resource_path: str) -> str:
        url = source.url_for(resource_path)
        self._log.debug("GET %s (source=%s, timeout=%ss)", url, source.name, source.timeout)

        try:
            response = await self._client.get(url, timeout=httpx.Timeout(source.timeout))
        except httpx.TimeoutException as exc:
            raise FetchTimeoutError(source.name, url, source.timeout) from exc
        except httpx.TooManyRedirects as exc:
            raise RedirectLimitError(source.name, url, self._client.max_redirects) from exc
        except httpx.HTTPError as exc:
            raise TransportError(source.name, url, f"{type(exc).__name__}: {exc} ({url})") from exc

        if not response.is_success:
            raise HttpStatusError(source.name, url, response.status_code)

        if response.history:
            self._log.debug("%s redirected %d time(s) to %s", url, len(response.history), response.url)
        return response.text
