"""Wrapper de httpx.

Estandariza headers, redirecciones y límites para todas las fuentes.
El timeout no se fija aquí: cada `Source` trae el suyo y se pasa por petición.
"""

from __future__ import annotations

import httpx

from core.config import AppSettings

ACCEPT_HEADER = "application/json, text/plain;q=0.9, */*;q=0.8"


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros.

    - Sigue redirecciones hasta `settings.http_max_redirects` saltos.
    - `transport` permite inyectar `httpx.MockTransport` en tests.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": ACCEPT_HEADER,
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        follow_redirects=True,
        max_redirects=settings.http_max_redirects,
        headers=headers,
        transport=transport,
    )
