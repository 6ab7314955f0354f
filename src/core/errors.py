"""Jerarquía de errores de vscode-config.

- `FetchError` y subclases: fallo de UNA fuente (recuperable, se prueba la siguiente).
- El resto: fatales para la ejecución, salvo donde el instalador los degrada
  a advertencia (keybindings, lista de extensiones).
"""

from __future__ import annotations

from typing import Sequence


class ConfigSyncError(Exception):
    """Clase base de todos los errores que expone vscode-config."""


class FetchError(ConfigSyncError):
    """Una única fuente no pudo entregar un recurso."""

    def __init__(self, source: str, url: str, message: str) -> None:
        self.source = source
        self.url = url
        super().__init__(message)


class HttpStatusError(FetchError):
    def __init__(self, source: str, url: str, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(source, url, f"HTTP {status_code} from {url}")


class FetchTimeoutError(FetchError):
    def __init__(self, source: str, url: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(source, url, f"timed out after {timeout:g}s fetching {url}")


class RedirectLimitError(FetchError):
    def __init__(self, source: str, url: str, max_redirects: int) -> None:
        self.max_redirects = max_redirects
        super().__init__(source, url, f"more than {max_redirects} redirects fetching {url}")


class TransportError(FetchError):
    pass


class SourcesExhaustedError(ConfigSyncError):
    """Todas las fuentes configuradas fallaron para un recurso."""

    def __init__(
        self,
        resource_path: str,
        tried: Sequence[str],
        last_error: Exception | None,
    ) -> None:
        self.resource_path = resource_path
        self.tried = list(tried)
        self.last_error = last_error
        detail = str(last_error) if last_error else "no sources configured"
        super().__init__(
            f"could not fetch {resource_path} from any source "
            f"({', '.join(self.tried) or '-'}); last error: {detail}"
        )


class UnknownSourceError(ConfigSyncError):
    def __init__(self, name: str, known: Sequence[str]) -> None:
        self.name = name
        self.known = list(known)
        super().__init__(f"unknown source {name!r}; known sources: {', '.join(self.known)}")


class ExtensionListError(ConfigSyncError):
    """Ni extensions.json ni extensions.list dieron una lista utilizable."""


class PackageManagerNotFoundError(ConfigSyncError):
    """El CLI del editor no está en el PATH o no responde a `--version`."""


class ExtensionQueryError(ConfigSyncError):
    """`--list-extensions` falló o superó el timeout."""


class SettingsInstallError(ConfigSyncError):
    """No se pudo descargar o escribir settings.json."""


class BackupError(ConfigSyncError):
    """No se pudo crear o restaurar un backup."""
