"""Modelos del dominio (Pydantic v2).

Estos modelos describen *qué* es la información de una ejecución (fuentes,
resultados de instalación, resumen de reconciliación), no *cómo* se obtiene.
Todo se crea al inicio de una ejecución y se descarta al final.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, computed_field
from pydantic.config import ConfigDict

UNKNOWN_PUBLISHER = "unknown"
DISPLAY_ERROR_MAX_CHARS = 100


class Source(BaseModel):
    """Endpoint remoto con artefactos de configuración."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Nombre corto de la fuente (p.ej. 'github', 'jsdelivr').",
    )
    base_url: str = Field(
        ...,
        min_length=8,
        description="URL base; los artefactos se resuelven como `{base_url}/{path}`.",
    )
    timeout: float = Field(
        default=10.0,
        gt=0,
        description="Timeout de cada petición a esta fuente (segundos).",
    )

    def url_for(self, resource_path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{resource_path.lstrip('/')}"


class InstallMode(str, Enum):
    """Qué hacer con un settings.json local ya existente."""

    OVERWRITE = "overwrite"
    SKIP_EXISTING = "skip-existing"


class ExtensionRef(BaseModel):
    """Identificador `publisher.name` descompuesto, solo para reportes."""

    model_config = ConfigDict(frozen=True)

    publisher: str
    name: str

    @classmethod
    def parse(cls, extension_id: str) -> "ExtensionRef":
        publisher, sep, name = extension_id.partition(".")
        if not sep:
            return cls(publisher=UNKNOWN_PUBLISHER, name=extension_id)
        return cls(publisher=publisher, name=name)


class ProcessResult(BaseModel):
    """Resultado crudo de invocar un proceso externo."""

    model_config = ConfigDict(frozen=True)

    exit_code: int | None = Field(
        default=None,
        description="Código de salida; None si el proceso no llegó a terminar.",
    )
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return not self.timed_out and self.exit_code == 0

    def describe_failure(self) -> str:
        if self.timed_out:
            return "timed out"
        detail = self.stderr.strip() or self.stdout.strip()
        if self.exit_code is None:
            return detail or "process error"
        if detail:
            return f"exit code {self.exit_code}: {detail}"
        return f"exit code {self.exit_code}"


class InstallResult(BaseModel):
    """Resultado de instalar una extensión (tras reintentos y verificación)."""

    model_config = ConfigDict(frozen=True)

    extension_id: str = Field(..., min_length=1)
    success: bool = False
    error: str | None = None
    attempts: int = Field(default=1, ge=1)
    verified: bool = Field(
        default=False,
        description="True solo si el proceso reportó éxito y la extensión aparece listada.",
    )


class FailedExtension(BaseModel):
    """Detalle de una extensión que no se pudo instalar."""

    model_config = ConfigDict(frozen=True)

    extension_id: str
    publisher: str
    name: str
    error: str = Field(..., description="Mensaje completo (sin truncar).")
    attempts: int = Field(default=1, ge=1)

    @classmethod
    def from_result(cls, result: InstallResult) -> "FailedExtension":
        ref = ExtensionRef.parse(result.extension_id)
        return cls(
            extension_id=result.extension_id,
            publisher=ref.publisher,
            name=ref.name,
            error=result.error or "unknown error",
            attempts=result.attempts,
        )

    @property
    def display_error(self) -> str:
        first_line = self.error.strip().splitlines()[0] if self.error.strip() else self.error
        if len(first_line) <= DISPLAY_ERROR_MAX_CHARS:
            return first_line
        return first_line[: DISPLAY_ERROR_MAX_CHARS - 1].rstrip() + "…"


class ReconciliationSummary(BaseModel):
    """Resumen inmutable de una reconciliación de extensiones."""

    model_config = ConfigDict(frozen=True)

    installed: int = Field(default=0, ge=0, description="Instaladas y verificadas.")
    failed: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0, description="Ya presentes antes de empezar.")
    total: int = Field(default=0, ge=0, description="Extensiones deseadas (únicas).")
    failures: tuple[FailedExtension, ...] = ()
    planned: tuple[str, ...] = Field(
        default=(),
        description="Extensiones que un dry-run instalaría.",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0


class InstallOptions(BaseModel):
    """Opciones de la invocación (lo que el usuario pasa por CLI)."""

    force: bool = Field(default=False, description="No hacer backup previo.")
    timeout: float | None = Field(
        default=None,
        gt=0,
        description="Timeout de instalación por extensión (segundos).",
    )
    source: str | None = Field(
        default=None,
        description="Forzar una única fuente por nombre (sin fallback).",
    )
    dry_run: bool = False
    mode: InstallMode = InstallMode.OVERWRITE


class InstallReport(BaseModel):
    """Registro de una ejecución de `install`, incluyendo éxitos parciales."""

    settings_written: bool = False
    keybindings_written: bool = False
    backup_path: Path | None = None
    extensions: ReconciliationSummary = Field(default_factory=ReconciliationSummary)
    extensions_skipped_reason: str | None = Field(
        default=None,
        description="Presente si la reconciliación no se ejecutó.",
    )
    warnings: list[str] = Field(default_factory=list)
    dry_run: bool = False
