"""Backups del directorio User de VS Code.

Un backup es un directorio `backup-<epoch-ms>` dentro del propio directorio
User, con copia de `settings.json`, `keybindings.json` y el subárbol
`snippets` (lo que exista).
"""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path

from core.errors import BackupError
from core.log_config import get_logger

BACKUP_PREFIX = "backup-"
BACKED_UP_ITEMS = ("settings.json", "keybindings.json", "snippets")


def _now_ms() -> int:
    return int(time.time() * 1000)


def _copy_item(src: Path, dst: Path) -> None:
    if src.is_dir():
        shutil.copytree(src, dst, dirs_exist_ok=True)
    else:
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, dst)


def create_backup(
    user_dir: Path,
    *,
    now_ms: int | None = None,
    logger: logging.Logger | None = None,
) -> Path | None:
    """Copia la configuración actual a un nuevo `backup-<ms>`.

    Devuelve None si no hay nada que respaldar. Los `OSError` se propagan:
    decidir si un backup fallido es fatal es cosa del llamador.
    """

    log = get_logger(logger, "backup")
    present = [user_dir / item for item in BACKED_UP_ITEMS if (user_dir / item).exists()]
    if not present:
        log.debug("nothing to back up in %s", user_dir)
        return None

    stamp = now_ms if now_ms is not None else _now_ms()
    while True:
        backup_dir = user_dir / f"{BACKUP_PREFIX}{stamp}"
        try:
            backup_dir.mkdir(parents=True)
            break
        except FileExistsError:
            stamp += 1

    for item in present:
        _copy_item(item, backup_dir / item.name)

    log.info("backed up %s to %s", ", ".join(p.name for p in present), backup_dir)
    return backup_dir


def list_backups(user_dir: Path) -> list[Path]:
    """Directorios `backup-<ms>` válidos, el más reciente primero."""

    if not user_dir.is_dir():
        return []

    found: list[tuple[int, Path]] = []
    for entry in user_dir.iterdir():
        if not entry.is_dir() or not entry.name.startswith(BACKUP_PREFIX):
            continue
        stamp = entry.name[len(BACKUP_PREFIX) :]
        if not stamp.isdigit():
            continue
        found.append((int(stamp), entry))
    return [path for _, path in sorted(found, key=lambda item: item[0], reverse=True)]


def latest_backup(user_dir: Path) -> Path | None:
    backups = list_backups(user_dir)
    return backups[0] if backups else None


def restore_backup(
    backup_dir: Path,
    user_dir: Path,
    *,
    now_ms: int | None = None,
    logger: logging.Logger | None = None,
) -> list[str]:
    """Restaura un backup sobre `user_dir` y devuelve los elementos restaurados.

    Antes de sobrescribir, cada elemento actual se copia a
    `<nombre>.temp-backup-<ms>` junto al original.
    """

    log = get_logger(logger, "backup")
    if not backup_dir.is_dir():
        raise BackupError(f"backup directory does not exist: {backup_dir}")

    stamp = now_ms if now_ms is not None else _now_ms()
    restored: list[str] = []
    for item in BACKED_UP_ITEMS:
        src = backup_dir / item
        if not src.exists():
            continue
        target = user_dir / item
        try:
            if target.exists():
                _copy_item(target, target.with_name(f"{item}.temp-backup-{stamp}"))
            _copy_item(src, target)
        except OSError as exc:
            raise BackupError(f"failed to restore {item}: {exc}") from exc
        restored.append(item)

    log.info("restored %s from %s", ", ".join(restored) or "nothing", backup_dir)
    return restored
