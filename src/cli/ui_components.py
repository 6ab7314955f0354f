"""Componentes de UI para CLI (Rich).

Separa los detalles visuales de la lógica de los comandos; los servicios
del Core nunca imprimen, solo devuelven modelos.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import __version__
from core.domain.models import InstallReport, InstallResult, ReconciliationSummary


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida."""

    title = Text("vscode-config", style="bold cyan")
    subtitle = Text(f"Shared VS Code settings • keybindings • extensions  v{__version__}", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def format_install_result(result: InstallResult) -> Text:
    if result.success:
        suffix = f" (attempt {result.attempts})" if result.attempts > 1 else ""
        return Text.assemble(("  ✓ ", "green"), result.extension_id, (suffix, "dim"))
    return Text.assemble(("  ✗ ", "red"), result.extension_id, (f"  {result.error}", "dim"))


def build_failures_table(summary: ReconciliationSummary) -> Table:
    table = Table(title="Failed extensions")
    table.add_column("Publisher", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Attempts", style="yellow", justify="right")
    table.add_column("Error", style="red")
    for failure in summary.failures:
        table.add_row(failure.publisher, failure.name, str(failure.attempts), failure.display_error)
    return table


def _file_status(written: bool, *, dry_run: bool) -> str:
    if dry_run:
        return "[dim]dry-run[/dim]"
    return "[green]written[/green]" if written else "[yellow]kept / skipped[/yellow]"


def build_report_table(report: InstallReport) -> Table:
    """Tabla final: qué se instaló y qué no, sin esconder éxitos parciales."""

    table = Table(title="Install summary")
    table.add_column("Item", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")

    table.add_row("settings.json", _file_status(report.settings_written, dry_run=report.dry_run))
    table.add_row("keybindings.json", _file_status(report.keybindings_written, dry_run=report.dry_run))
    table.add_row("Backup", str(report.backup_path) if report.backup_path else "[dim]none[/dim]")

    summary = report.extensions
    if report.extensions_skipped_reason:
        table.add_row("Extensions", "[yellow]skipped[/yellow]")
    elif report.dry_run:
        table.add_row(
            "Extensions",
            f"{len(summary.planned)} to install, {summary.skipped} already installed",
        )
    else:
        status = "green" if summary.all_succeeded else "yellow"
        table.add_row(
            "Extensions",
            f"[{status}]{summary.installed} installed[/{status}], "
            f"{summary.failed} failed, {summary.skipped} already installed "
            f"(total {summary.total})",
        )
    return table


def print_report(console: Console, report: InstallReport) -> None:
    console.print(build_report_table(report))

    if report.dry_run and report.extensions.planned:
        console.print("[bold]Would install:[/bold]")
        for extension_id in report.extensions.planned:
            console.print(f"  • {extension_id}")

    if report.extensions.failures:
        console.print(build_failures_table(report.extensions))

    if report.warnings:
        console.print("\n[yellow]Warnings:[/yellow]")
        for warning in report.warnings:
            console.print(f"  [yellow]![/yellow] {warning}")
