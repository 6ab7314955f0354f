"""Doctor command: environment diagnostics and source configuration."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from adapters.artifact_fetcher import ArtifactFetcher
from adapters.backup import BACKED_UP_ITEMS, latest_backup, list_backups
from adapters.code_cli import CodeCLI
from adapters.http_client import build_async_client
from core.config import AppSettings, write_user_env_vars
from core.domain.models import Source
from core.errors import ConfigSyncError
from core.services.config_installer import SETTINGS_FILE

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and source configuration.")

_console = Console()


async def _check_editor(settings: AppSettings) -> tuple[bool, str, int | None]:
    manager = CodeCLI(settings.code_binary)
    try:
        version = await manager.version()
    except ConfigSyncError as exc:
        return False, str(exc), None
    try:
        count = len(await manager.list_extensions())
    except ConfigSyncError:
        count = None
    return True, version, count


async def _check_sources(settings: AppSettings) -> list[tuple[Source, bool, str]]:
    """Probe every source for settings.json, without fallback."""

    rows: list[tuple[Source, bool, str]] = []
    async with build_async_client(settings) as client:
        fetcher = ArtifactFetcher(client)
        for source in settings.sources:
            try:
                content = await fetcher.fetch(source, SETTINGS_FILE)
            except ConfigSyncError as exc:
                rows.append((source, False, str(exc)))
                continue
            rows.append((source, True, f"{len(content)} chars"))
    return rows


def _describe_path(path: Path) -> str:
    if path.is_dir():
        return f"directory, {sum(1 for _ in path.rglob('*'))} entries"
    return f"{path.stat().st_size} bytes"


@app.command()
def run() -> None:
    """Run baseline diagnostics: editor CLI, config files, backups, sources."""

    settings = AppSettings()
    user_dir = settings.resolved_user_dir()

    table = Table(title="vscode-config Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    ok_editor, detail_editor, extension_count = asyncio.run(_check_editor(settings))
    table.add_row(f"Editor CLI ({settings.code_binary})", "OK" if ok_editor else "FAIL", detail_editor)
    if extension_count is not None:
        table.add_row("Installed extensions", "OK", str(extension_count))

    table.add_row("User dir", "OK" if user_dir.is_dir() else "MISSING", str(user_dir))
    for item in BACKED_UP_ITEMS:
        path = user_dir / item
        if path.exists():
            table.add_row(item, "OK", _describe_path(path))
        else:
            table.add_row(item, "MISSING", "-")

    backups = list_backups(user_dir)
    newest = latest_backup(user_dir)
    table.add_row("Backups", str(len(backups)), newest.name if newest else "-")

    for source, ok, detail in asyncio.run(_check_sources(settings)):
        table.add_row(f"Source {source.name}", "OK" if ok else "FAIL", detail)

    _console.print(table)

    if not ok_editor:
        _console.print(
            "\n[yellow]Note:[/yellow] In VS Code run 'Shell Command: Install code command in PATH', "
            "or set VSCODE_CONFIG_CODE_BINARY."
        )


@app.command(name="set-source")
def set_source(
    name: str = typer.Argument(..., help="Source name (replaces an existing source with the same name)."),
    base_url: str = typer.Argument(..., help="Base URL hosting settings.json, keybindings.json, ..."),
    timeout: float = typer.Option(10.0, "--timeout", min=0.1, help="Request timeout for this source (seconds)."),
    primary: bool = typer.Option(False, "--primary", help="Try this source before the others."),
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Write to this .env instead of the user one."),
) -> None:
    """Add or replace a source and store the list in the user config .env."""

    settings = AppSettings()
    try:
        new_source = Source(name=name, base_url=base_url, timeout=timeout)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    sources = [s for s in settings.sources if s.name != name]
    if primary:
        sources.insert(0, new_source)
    else:
        sources.append(new_source)

    payload = json.dumps([s.model_dump(mode="json") for s in sources], separators=(",", ":"))
    path = write_user_env_vars({"VSCODE_CONFIG_SOURCES": payload}, env_path=env_file)

    _console.print(f"[green]Saved {len(sources)} source(s) to:[/green] {path}")
    for index, source in enumerate(sources, start=1):
        _console.print(f"  {index}. {source.name}  {source.base_url}  ({source.timeout:g}s)")
