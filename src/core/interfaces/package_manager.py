"""Contrato del gestor de extensiones (el binario del editor).

El Core solo depende de esta abstracción; `adapters.code_cli` la implementa
con `code --install-extension` / `code --list-extensions`, y los tests con
fakes en memoria.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import ProcessResult


@runtime_checkable
class ExtensionManager(Protocol):
    """Contrato mínimo para instalar y listar extensiones.

    Reglas de diseño:
    - Todo es asíncrono: son procesos externos.
    - `install_extension` nunca lanza por un fallo del proceso; lo devuelve
      en el `ProcessResult` (exit code, timeout).
    """

    async def version(self) -> str:
        """Primera línea de `--version`. Lanza `PackageManagerNotFoundError`."""

        ...

    async def list_extensions(self) -> list[str]:
        """Ids instalados, en el orden que reporta el editor. Lanza `ExtensionQueryError`."""

        ...

    async def install_extension(self, extension_id: str, *, timeout: float) -> ProcessResult:
        """Instala una extensión; `timeout` en segundos."""

        ...
