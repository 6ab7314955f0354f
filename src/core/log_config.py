"""Configuración de logging explícita.

El nivel no se lee de variables de entorno globales en cada módulo: la CLI
construye un `LogConfig`, obtiene un logger con `build_logger` y lo pasa a
los servicios.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "vscode_config"

_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class LogConfig(BaseModel):
    level: str = Field(default="WARNING", description="Nivel mínimo a emitir.")
    log_file: Path | None = Field(default=None, description="Fichero de log opcional.")
    console: bool = Field(default=True, description="Emitir también por consola (Rich).")

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {value}")
        return level

    @classmethod
    def verbose(cls, base: "LogConfig", enabled: bool) -> "LogConfig":
        return base.model_copy(update={"level": "DEBUG"}) if enabled else base


def build_logger(config: LogConfig, *, console: Console | None = None) -> logging.Logger:
    """Devuelve el logger de la herramienta configurado según `config`.

    Los handlers anteriores se reemplazan, así que llamarlo varias veces
    (p.ej. en tests) no duplica salida. No propaga al root logger.
    """

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(config.level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if config.console:
        rich_handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=False,
        )
        rich_handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(rich_handler)

    if config.log_file:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    logger.debug("Logging initialized (level=%s, file=%s)", config.level, config.log_file)
    return logger


def get_logger(parent: logging.Logger | None, name: str) -> logging.Logger:
    """Logger hijo del que se recibió por contexto (o del de la herramienta)."""

    base = parent or logging.getLogger(LOGGER_NAME)
    return base.getChild(name)
