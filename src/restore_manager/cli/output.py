"""Rich output rendering for CLI."""

import logging
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from ..models.checkpoint_models import ActionOutcome, Checkpoint, CycleSummary

logger = logging.getLogger(__name__)


class OutputRenderer:
    """
    Rich output renderer for CLI.

    Handles checkpoint tables, cycle summaries and errors.
    """

    def __init__(self, console: Optional[Console] = None, quiet: bool = False):
        """
        Initialize output renderer.

        Args:
            console: Rich console (creates new if not provided)
            quiet: Only print failures (unattended runs)
        """
        self.console = console or Console()
        self.quiet = quiet

    def render_checkpoints(self, checkpoints: List[Checkpoint]) -> None:
        """Render the inventory as a table, oldest first."""
        table = Table(title=f"Restore points ({len(checkpoints)})")
        table.add_column("#", justify="right", style="cyan")
        table.add_column("Created (local)")
        table.add_column("Type")
        table.add_column("Description")

        for checkpoint in checkpoints:
            if checkpoint.created_at is not None:
                created = checkpoint.created_at.astimezone().strftime("%Y-%m-%d %H:%M:%S")
            else:
                created = f"[yellow]? {checkpoint.raw_created_at or ''}[/yellow]"
            table.add_row(
                str(checkpoint.id),
                created,
                checkpoint.restore_point_type or "",
                checkpoint.description,
            )
        self.console.print(table)

    def render_outcome(self, outcome: ActionOutcome) -> None:
        """Render a single action result."""
        operation = outcome.event.value
        if outcome.succeeded:
            if not self.quiet:
                self.console.print(f"[green]✓[/green] {operation} {outcome.target}")
            return
        kind = outcome.error_kind.value if outcome.error_kind else "unknown"
        self.console.print(
            f"[red]✗ {operation} failed[/red] target={outcome.target} kind={kind}: {outcome.error}"
        )

    def render_summary(self, summary: CycleSummary) -> None:
        """Render every outcome and the closing summary line."""
        if not self.quiet:
            plan = summary.plan
            self.console.print(f"[dim]create: {plan.create_reason}[/dim]")
            self.console.print(f"[dim]prune: {plan.prune_reason}[/dim]")
            if summary.undatable_count:
                self.console.print(
                    f"[yellow]{summary.undatable_count} checkpoint(s) have unrecognized "
                    f"timestamps and were excluded from age checks[/yellow]"
                )
        for outcome in summary.outcomes:
            self.render_outcome(outcome)
        if not self.quiet:
            self.console.print(summary.format_line())

    def render_error(self, message: str) -> None:
        self.console.print(f"[bold red]Error:[/bold red] {message}")

    def render_info(self, message: str) -> None:
        if not self.quiet:
            self.console.print(message)
