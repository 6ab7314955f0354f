"""Configuración del Core.

Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
Adaptadores (HTTP, `code` CLI) y servicios leen de aquí la misma config.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.domain.models import Source

__version__ = "1.2.0"

CONFIG_REPO = "ChenyCHENYU/vscode-config"


def get_user_config_dir() -> Path:
    """Directorio de configuración de la propia herramienta (cross-platform)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "vscode-config"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "vscode-config"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "vscode-config"
    return Path.home() / ".config" / "vscode-config"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str], *, env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario.

    Los valores se escriben entre comillas simples para que JSON
    (p.ej. `VSCODE_CONFIG_SOURCES`) sobreviva al parser de dotenv.
    """

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# vscode-config user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}='{existing[key]}'")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


def get_vscode_user_dir() -> Path:
    """Directorio `User` de VS Code, donde viven settings/keybindings/snippets."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))
        return base / "Code" / "User"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "Code" / "User"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "Code" / "User"
    return Path.home() / ".config" / "Code" / "User"


def _default_sources() -> list[Source]:
    return [
        Source(
            name="github",
            base_url=f"https://raw.githubusercontent.com/{CONFIG_REPO}/main",
            timeout=10.0,
        ),
        Source(
            name="jsdelivr",
            base_url=f"https://cdn.jsdelivr.net/gh/{CONFIG_REPO}@main",
            timeout=15.0,
        ),
        Source(
            name="fastly",
            base_url=f"https://fastly.jsdelivr.net/gh/{CONFIG_REPO}@main",
            timeout=15.0,
        ),
    ]


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Un único contrato de configuración para CLI, adapters y servicios.
    `sources` se puede sobrescribir con JSON en `VSCODE_CONFIG_SOURCES`.
    """

    model_config = SettingsConfigDict(
        env_prefix="VSCODE_CONFIG_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    sources: list[Source] = Field(
        default_factory=_default_sources,
        min_length=1,
        description="Fuentes remotas en orden de prioridad (primaria primero).",
    )
    http_max_redirects: int = Field(
        default=5,
        ge=0,
        le=20,
        description="Saltos de redirección máximos por petición.",
    )
    user_agent: str = Field(
        default=f"vscode-config/{__version__}",
        min_length=1,
        description="User-Agent enviado a las fuentes.",
    )

    code_binary: str = Field(
        default="code",
        min_length=1,
        description="Ejecutable de VS Code (code, code-insiders, codium...).",
    )
    vscode_user_dir: Path | None = Field(
        default=None,
        description="Directorio User de VS Code. Por defecto depende de la plataforma.",
    )

    max_concurrent: int = Field(
        default=2,
        ge=1,
        le=16,
        description="Instalaciones de extensiones simultáneas por lote.",
    )
    max_retries: int = Field(
        default=1,
        ge=0,
        le=10,
        description="Reintentos por extensión tras el primer intento.",
    )
    retry_delay_ms: int = Field(
        default=2000,
        ge=0,
        description="Espera entre reintentos (ms).",
    )
    install_timeout_ms: int = Field(
        default=30_000,
        gt=0,
        description="Timeout de cada `code --install-extension` (ms).",
    )

    log_level: str = Field(
        default="WARNING",
        description="Nivel de logging (DEBUG, INFO, WARNING, ERROR).",
    )
    log_file: Path | None = Field(
        default=None,
        description="Fichero de log opcional, además de la consola.",
    )

    def resolved_user_dir(self) -> Path:
        return self.vscode_user_dir or get_vscode_user_dir()
