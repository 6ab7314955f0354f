"""CLI principal (Typer).

Comandos:
- `install`: descarga la configuración compartida, hace backup y reconcilia extensiones.
- `restore`: restaura un backup (el más reciente por defecto).
- `doctor`: diagnóstico del entorno y gestión de fuentes.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from adapters.artifact_fetcher import ArtifactFetcher
from adapters.backup import latest_backup, restore_backup
from adapters.code_cli import CodeCLI
from adapters.http_client import build_async_client
from cli import doctor
from cli.ui_components import format_install_result, print_banner, print_report
from core.config import AppSettings, __version__
from core.domain.models import InstallMode, InstallOptions, InstallReport
from core.errors import ConfigSyncError
from core.log_config import LogConfig, build_logger
from core.services.config_installer import InstallerHooks, install_config
from core.services.reconciler import ReconcileHooks
from core.services.source_resolver import SourceResolver

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Install the shared VS Code configuration (settings, keybindings, extensions).",
)
app.add_typer(doctor.app, name="doctor")

_console = Console()
_err_console = Console(stderr=True)

_TROUBLESHOOTING = (
    "Check your network connection",
    "Make sure VS Code is installed and `code` is on PATH",
    "On slow networks try --timeout 60, or pick a mirror with --source",
)


def _logger(settings: AppSettings, verbose: bool) -> logging.Logger:
    config = LogConfig(level=settings.log_level, log_file=settings.log_file)
    return build_logger(LogConfig.verbose(config, verbose), console=_err_console)


def _fail(message: str) -> typer.Exit:
    _err_console.print(f"\n[bold red]Install failed:[/bold red] [red]{message}[/red]")
    _err_console.print("\n[yellow]Troubleshooting:[/yellow]")
    for hint in _TROUBLESHOOTING:
        _err_console.print(f"  [dim]• {hint}[/dim]")
    return typer.Exit(code=1)


def _hooks() -> InstallerHooks:
    return InstallerHooks(
        step=lambda message: _console.print(f"[cyan]›[/cyan] {message}"),
        warning=lambda message: _console.print(f"[yellow]! {message}[/yellow]"),
        reconcile=ReconcileHooks(
            batch_start=lambda index, total, ids: _console.print(
                f"[dim]  batch {index}/{total}: {', '.join(ids)}[/dim]"
            ),
            retry=lambda extension_id, attempt, error: _console.print(
                f"[dim]  ↻ {extension_id} attempt {attempt} failed, retrying[/dim]"
            ),
            item_done=lambda result: _console.print(format_install_result(result)),
        ),
    )


async def _install(
    settings: AppSettings,
    options: InstallOptions,
    logger: logging.Logger,
) -> InstallReport:
    async with build_async_client(settings) as client:
        resolver = SourceResolver(
            settings.sources,
            ArtifactFetcher(client, logger=logger),
            logger=logger,
        )
        return await install_config(
            settings=settings,
            options=options,
            resolver=resolver,
            manager=CodeCLI(settings.code_binary, logger=logger),
            hooks=_hooks(),
            logger=logger,
        )


@app.command()
def install(
    force: bool = typer.Option(False, "--force", help="Skip the backup of the current configuration."),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        min=1,
        help="Per-extension install timeout in seconds (default 30).",
    ),
    source: Optional[str] = typer.Option(None, "--source", help="Use only this source (no fallback)."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Fetch and plan, but write and install nothing."),
    mode: InstallMode = typer.Option(
        InstallMode.OVERWRITE,
        "--mode",
        case_sensitive=False,
        help="overwrite: replace files; skip-existing: keep files that already exist.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Install the latest shared configuration."""

    settings = AppSettings()
    logger = _logger(settings, verbose)
    options = InstallOptions(force=force, timeout=timeout, source=source, dry_run=dry_run, mode=mode)

    print_banner(_console)
    try:
        report = asyncio.run(_install(settings, options, logger))
    except ConfigSyncError as exc:
        raise _fail(str(exc)) from exc

    _console.print()
    print_report(_console, report)
    if dry_run:
        _console.print("\n[bold cyan]Dry run finished, nothing was changed.[/bold cyan]")
        return

    _console.print("\n[bold green]Configuration installed.[/bold green] Restart VS Code to apply all changes.")
    if report.backup_path:
        _console.print(f"[dim]Previous configuration backed up to {report.backup_path}[/dim]")


@app.command()
def restore(
    backup: Optional[Path] = typer.Option(
        None,
        "--backup",
        exists=True,
        file_okay=False,
        resolve_path=True,
        help="Backup directory to restore (defaults to the most recent one).",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Restore settings, keybindings and snippets from a backup."""

    settings = AppSettings()
    logger = _logger(settings, verbose)
    user_dir = settings.resolved_user_dir()

    target = backup or latest_backup(user_dir)
    if target is None:
        _console.print("[yellow]No backups found.[/yellow] Run `vscode-config install` to create one.")
        return

    _console.print(f"[blue]Restoring from[/blue] {target}")
    try:
        restored = restore_backup(target, user_dir, logger=logger)
    except ConfigSyncError as exc:
        _err_console.print(f"[bold red]Restore failed:[/bold red] [red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    if not restored:
        _console.print("[yellow]The backup contains no configuration files.[/yellow]")
        return
    for item in restored:
        _console.print(f"  [green]✓[/green] {item}")
    _console.print("\n[bold green]Restore complete.[/bold green] Restart VS Code to apply it.")


@app.command()
def version() -> None:
    """Show the tool version."""

    _console.print(f"vscode-config {__version__}")


def run() -> None:
    app()
