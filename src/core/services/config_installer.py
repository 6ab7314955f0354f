"""Orquestación de `install`.

Ejecuta un `install` completo y devuelve un `InstallReport` que registra los
éxitos parciales en lugar de reducirlos a un único fallo:

sondeo del editor → settings → backup → escritura de settings → keybindings
→ lista de extensiones → extensiones instaladas → reconciliación.

Solo abortan la ejecución un editor ausente, una fuente forzada desconocida
o un fallo al descargar/escribir settings.json. Keybindings y los pasos de
extensiones se degradan a advertencias. La config de reconciliación se
valida antes de tocar nada en disco.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from adapters.backup import create_backup
from core.config import AppSettings
from core.domain.models import InstallMode, InstallOptions, InstallReport
from core.errors import ConfigSyncError, ExtensionListError, ExtensionQueryError, SettingsInstallError
from core.interfaces.package_manager import ExtensionManager
from core.log_config import get_logger
from core.services.extension_list import resolve_extension_list
from core.services.reconciler import ExtensionReconciler, ReconcileConfig, ReconcileHooks
from core.services.source_resolver import SourceResolver

SETTINGS_FILE = "settings.json"
KEYBINDINGS_FILE = "keybindings.json"


@dataclass
class InstallerHooks:
    """Callbacks opcionales para la UI (spinners, advertencias)."""

    step: Callable[[str], None] | None = None
    warning: Callable[[str], None] | None = None
    reconcile: ReconcileHooks = field(default_factory=ReconcileHooks)


class _Run:
    def __init__(self, report: InstallReport, hooks: InstallerHooks, log: logging.Logger) -> None:
        self.report = report
        self.hooks = hooks
        self.log = log

    def step(self, message: str) -> None:
        self.log.info(message)
        if self.hooks.step:
            self.hooks.step(message)

    def warn(self, message: str) -> None:
        self.log.warning(message)
        self.report.warnings.append(message)
        if self.hooks.warning:
            self.hooks.warning(message)


def write_artifact(path: Path, content: str, *, mode: InstallMode, dry_run: bool) -> bool:
    """Escribe un fichero de config. Devuelve False si se dejó intacto."""

    if mode is InstallMode.SKIP_EXISTING and path.exists():
        return False
    if dry_run:
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return True


async def install_config(
    *,
    settings: AppSettings,
    options: InstallOptions,
    resolver: SourceResolver,
    manager: ExtensionManager,
    user_dir: Path | None = None,
    hooks: InstallerHooks | None = None,
    logger: logging.Logger | None = None,
) -> InstallReport:
    hooks = hooks or InstallerHooks()
    log = get_logger(logger, "install")
    user_dir = user_dir or settings.resolved_user_dir()
    run = _Run(InstallReport(dry_run=options.dry_run), hooks, log)
    config = ReconcileConfig.from_settings(settings, timeout_seconds=options.timeout)

    if options.source:
        resolver = resolver.only(options.source)

    run.step("Checking editor CLI")
    await manager.version()

    run.step(f"Fetching {SETTINGS_FILE}")
    try:
        settings_text = await resolver.fetch_artifact(SETTINGS_FILE)
    except ConfigSyncError as exc:
        raise SettingsInstallError(f"failed to fetch {SETTINGS_FILE}: {exc}") from exc

    if options.force or options.dry_run:
        log.debug("backup skipped (force=%s, dry_run=%s)", options.force, options.dry_run)
    else:
        run.step("Backing up current configuration")
        try:
            run.report.backup_path = create_backup(user_dir, logger=logger)
        except OSError as exc:
            run.warn(f"backup failed, continuing without one: {exc}")

    settings_path = user_dir / SETTINGS_FILE
    try:
        run.report.settings_written = write_artifact(
            settings_path, settings_text, mode=options.mode, dry_run=options.dry_run
        )
    except OSError as exc:
        raise SettingsInstallError(f"failed to write {settings_path}: {exc}") from exc
    if not run.report.settings_written and not options.dry_run:
        log.info("%s exists, kept (mode=%s)", settings_path, options.mode.value)

    run.step(f"Fetching {KEYBINDINGS_FILE}")
    try:
        keybindings_text = await resolver.fetch_artifact(KEYBINDINGS_FILE)
        run.report.keybindings_written = write_artifact(
            user_dir / KEYBINDINGS_FILE,
            keybindings_text,
            mode=options.mode,
            dry_run=options.dry_run,
        )
    except (ConfigSyncError, OSError) as exc:
        run.warn(f"{KEYBINDINGS_FILE} skipped: {exc}")

    run.step("Resolving extension list")
    try:
        desired = await resolve_extension_list(resolver, logger=logger)
        installed = await manager.list_extensions()
    except (ExtensionListError, ExtensionQueryError) as exc:
        run.report.extensions_skipped_reason = str(exc)
        run.warn(f"extensions skipped: {exc}")
        return run.report

    reconciler = ExtensionReconciler(manager, logger=logger, hooks=hooks.reconcile)
    run.step("Reconciling extensions")
    run.report.extensions = await reconciler.reconcile(
        desired, installed, config, dry_run=options.dry_run
    )
    return run.report
