"""Obtención de la lista de extensiones deseadas.

Formatos soportados, en este orden:
- `extensions.json`: array JSON de ids, u objeto con `recommendations` (formato
  de VS Code). Se toleran comentarios `//`, `/* */` y comas finales.
- `extensions.list`: un id por línea; `#` y `//` marcan comentarios.
"""

from __future__ import annotations

import json
import logging
import re

from core.errors import ConfigSyncError, ExtensionListError
from core.log_config import get_logger
from core.services.source_resolver import SourceResolver

EXTENSIONS_JSON = "extensions.json"
EXTENSIONS_LIST = "extensions.list"

_COMMENT_PREFIXES = ("#", "//")

# Cadenas JSON, comentarios y comas finales (seguidas solo de espacios o
# comentarios antes de `]`/`}`); las cadenas se conservan tal cual, el resto
# de tokens se elimina.
_JSONC_TOKEN_RE = re.compile(
    r'"(?:\\.|[^"\\])*"'
    r"|/\*.*?\*/"
    r"|//[^\n]*"
    r"|,(?=(?:\s|/\*.*?\*/|//[^\n]*)*[\]}])",
    re.DOTALL,
)


def _strip_jsonc(text: str) -> str:
    def keep_strings(match: re.Match[str]) -> str:
        token = match.group(0)
        return token if token.startswith('"') else ""

    return _JSONC_TOKEN_RE.sub(keep_strings, text)


def parse_extensions_json(text: str) -> list[str]:
    """Parsea `extensions.json`. Lanza `ValueError` si la forma no es válida."""

    data = json.loads(_strip_jsonc(text))

    if isinstance(data, dict):
        if "recommendations" not in data:
            raise ValueError("object without a 'recommendations' field")
        data = data["recommendations"]

    if not isinstance(data, list):
        raise ValueError(f"expected an array of extension ids, got {type(data).__name__}")

    ids: list[str] = []
    for item in data:
        if not isinstance(item, str):
            raise ValueError(f"extension id must be a string, got {item!r}")
        value = item.strip()
        if value:
            ids.append(value)
    return ids


def parse_extensions_list(text: str) -> list[str]:
    """Parsea `extensions.list` (un id por línea)."""

    ids: list[str] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith(_COMMENT_PREFIXES):
            continue
        ids.append(line)
    return ids


async def resolve_extension_list(
    resolver: SourceResolver,
    *,
    logger: logging.Logger | None = None,
) -> list[str]:
    log = get_logger(logger, "extensions")

    try:
        text = await resolver.fetch_artifact(EXTENSIONS_JSON)
        ids = parse_extensions_json(text)
        log.debug("%s: %d extension(s)", EXTENSIONS_JSON, len(ids))
        return ids
    except ConfigSyncError as exc:
        primary_error = f"{EXTENSIONS_JSON} unavailable: {exc}"
    except ValueError as exc:
        # json.JSONDecodeError es subclase de ValueError.
        primary_error = f"{EXTENSIONS_JSON} malformed: {exc}"

    log.info("%s; falling back to %s", primary_error, EXTENSIONS_LIST)

    try:
        text = await resolver.fetch_artifact(EXTENSIONS_LIST)
    except ConfigSyncError as exc:
        raise ExtensionListError(
            f"{primary_error}; {EXTENSIONS_LIST} unavailable: {exc}"
        ) from exc

    ids = parse_extensions_list(text)
    if not ids:
        raise ExtensionListError(f"{primary_error}; {EXTENSIONS_LIST} contains no extension ids")

    log.debug("%s: %d extension(s)", EXTENSIONS_LIST, len(ids))
    return ids
