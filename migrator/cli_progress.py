"""Console rendering and progress helpers for the migration CLI."""
from __future__ import annotations

from typing import Any, Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .models import ItemResult, MigrationSummary, Outcome
from .reporter import Reporter, progress_line
from .utils.events import ProgressSnapshot

console = Console()


def render_configuration_summary(config: Dict[str, Any], out: Optional[Console] = None) -> None:
    """Render startup configuration summary."""
    out = out or console
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    out.print(
        Panel(
            table,
            title="[bold green]piece-migrate[/bold green]",
            subtitle="[dim]piece migration[/dim]",
            border_style="blue",
        )
    )


class MigrationProgressDisplay:
    """Event-based console display for a migration run."""

    def __init__(self, out: Optional[Console] = None):
        self._console = out or console

    def attach(self, driver) -> None:
        driver.on("enumerated", self.on_enumerated)
        driver.on("batch_start", self.on_batch_start)
        driver.on("item_complete", self.on_item_complete)
        driver.on("progress", self.on_progress)
        driver.on("batch_complete", self.on_batch_complete)
        driver.on("finish", self.on_finish)

    def _echo(self, message: str) -> None:
        self._console.print(message, highlight=False)

    def on_enumerated(self, total: int, skipped: int, remaining: int) -> None:
        self._echo(f"[green]✓[/green] Found {total} total piece files")
        self._echo(f"[green]✓[/green] Already migrated: {skipped}")
        self._echo(f"[green]✓[/green] Remaining to migrate: {remaining}\n")
        if remaining == 0:
            self._echo("[bold green]✅ All files already migrated![/bold green]")

    def on_batch_start(self, index: int, count: int, size: int) -> None:
        self._echo(f"[bold]Batch {index}/{count}[/bold]: {size} files")

    def on_item_complete(self, result: ItemResult) -> None:
        name = result.name
        if result.outcome is Outcome.SUCCESS:
            self._echo(f"[green]✓[/green] {name} -> CID: {result.piece_cid}")
        elif result.outcome is Outcome.DUPLICATE:
            self._echo(f"[green]✓[/green] {name} -> Already migrated ({result.reason})")
        elif result.outcome is Outcome.PERMANENT_SKIP:
            self._echo(f"[yellow]⚠[/yellow] {name} -> Skipped (exceeds size limit)")
        else:
            self._echo(f"[red]✗ Failed:[/red] {name} - {result.error}")

    def on_progress(self, snapshot: ProgressSnapshot) -> None:
        self._echo(f"[cyan]{progress_line(snapshot)}[/cyan]")

    def on_batch_complete(self, index: int, count: int) -> None:
        self._echo(f"[green]✓[/green] Batch {index} complete. Progress saved.\n")

    def on_shutdown_requested(self) -> None:
        self._echo(
            "\n[yellow]⚠️  Shutting down gracefully after the current batch... "
            "(press Ctrl+C again to force quit)[/yellow]"
        )

    def on_force_exit(self) -> None:
        self._echo("\n[red]⚠️  Force killing... progress may not be saved![/red]")

    def on_finish(self, summary: MigrationSummary) -> None:
        title = "Migration Interrupted" if summary.interrupted else "Migration Complete"
        self._echo("\n" + "=" * 60)
        self._echo(f"[bold]{title}[/bold]")
        self._echo("=" * 60)
        for line in Reporter.summary_lines(summary):
            self._echo(line)

        if summary.error_log is not None:
            self._echo(f"\n[yellow]⚠ Error log saved to: {summary.error_log}[/yellow]")
            self._echo("Review failed pieces and re-run migration to retry.")

        verdict = Reporter.verdict(summary)
        style = "green" if summary.all_migrated and not summary.interrupted else "yellow"
        self._echo(f"\n[{style}]{verdict}[/{style}]")
