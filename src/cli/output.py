"""Terminal output handling using Rich library.

This module provides the OutputHandler class for all CLI terminal output:
colored status lines, a spinner for long stages, and the plan and run
summaries. Supports verbosity levels and --no-color flag.
"""

from contextlib import contextmanager
from typing import Iterator

from rich.console import Console
from rich.live import Live
from rich.spinner import Spinner
from rich.markup import escape

from src.sync.models import (
    ArchivePage,
    CreatePage,
    MovePage,
    Operation,
    OperationPlan,
    RestorePage,
    SkipAttachment,
    UpdateContent,
    UpdateMetadata,
    UploadAttachment,
)
from src.sync.pipeline import RunReport
from src.sync.plan_executor import Outcome


def describe(operation: Operation) -> str:
    """One-line human description of an operation.

    Example:
        >>> describe(ArchivePage(page_id="12", title="Old", source="old.md"))
        "archive 'Old' (old.md)"
    """
    if isinstance(operation, RestorePage):
        return f"restore '{operation.title}' ({operation.path})"
    if isinstance(operation, CreatePage):
        return f"create {operation.kind.value} '{operation.title}' ({operation.path})"
    if isinstance(operation, MovePage):
        target = operation.parent_path or operation.parent_id or "space root"
        return f"move '{operation.title}' under {target}"
    if isinstance(operation, UploadAttachment):
        return f"upload {operation.attachment.key} to {operation.path}"
    if isinstance(operation, SkipAttachment):
        return f"keep {operation.attachment.key} on {operation.path}"
    if isinstance(operation, UpdateContent):
        return f"update '{operation.title}' ({operation.path})"
    if isinstance(operation, UpdateMetadata):
        parts = []
        if not operation.labels.is_empty:
            parts.append("labels")
        if operation.cover_changed:
            parts.append("cover")
        if operation.status is not None:
            parts.append("status")
        if operation.editors is not None:
            parts.append("restrictions")
        if operation.refresh_marker is not None:
            parts.append("source marker")
        return f"update {', '.join(parts)} of {operation.path}"
    if isinstance(operation, ArchivePage):
        source = f" ({operation.source})" if operation.source else ""
        return f"archive '{operation.title}'{source}"
    return repr(operation)


_STYLES = {
    RestorePage: "cyan",
    CreatePage: "green",
    MovePage: "blue",
    UploadAttachment: "green",
    UpdateContent: "yellow",
    UpdateMetadata: "yellow",
    ArchivePage: "red",
}


class OutputHandler:
    """Handles all terminal output using Rich library.

    Attributes:
        verbosity: Verbosity level (0=summary, 1=info, 2=debug)
        console: Rich Console instance for output

    Example:
        >>> handler = OutputHandler(verbosity=1, no_color=False)
        >>> handler.success("Operation completed")
        >>> with handler.spinner("Processing..."):
        ...     pass
    """

    def __init__(self, verbosity: int = 0, no_color: bool = False):
        """Initialize output handler.

        Args:
            verbosity: Verbosity level (0=summary, 1=info, 2=debug)
            no_color: Disable color output if True
        """
        self.verbosity = verbosity
        self.console = Console(
            no_color=no_color,
            highlight=False,
        )

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {escape(message)}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {escape(message)}", style="red")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {escape(message)}", style="yellow")

    def info(self, message: str) -> None:
        """Display info message (only if verbosity >= 1)."""
        if self.verbosity >= 1:
            self.console.print(escape(message))

    def debug(self, message: str) -> None:
        """Display debug message (only if verbosity >= 2)."""
        if self.verbosity >= 2:
            self.console.print(f"[dim]{escape(message)}[/dim]")

    def print(self, message: str) -> None:
        """Display message without formatting."""
        self.console.print(message)

    @contextmanager
    def spinner(self, message: str) -> Iterator[None]:
        """Display spinner for single operations.

        Example:
            >>> with handler.spinner("Querying space..."):
            ...     state = reader.read()
        """
        spinner = Spinner("dots", text=message)
        with Live(spinner, console=self.console, refresh_per_second=10, transient=True):
            yield

    def print_plan(self, plan: OperationPlan) -> None:
        """Display the planned operations and reconciliation diagnostics."""
        changes = plan.changes
        self.console.print(f"\n[bold]Plan: {len(changes)} change(s)[/bold]")
        for operation in plan.operations:
            if isinstance(operation, SkipAttachment) and self.verbosity < 2:
                continue
            style = _STYLES.get(type(operation), "dim")
            self.console.print(f"  [{style}]•[/{style}] {escape(describe(operation))}")
        for diagnostic in plan.diagnostics:
            self.warning(str(diagnostic))
        if plan.is_empty:
            self.console.print("[green]Already in sync. No changes to apply.[/green]")

    def print_report(self, report: RunReport) -> None:
        """Display document errors, warnings and the run summary."""
        for warning in report.warnings:
            self.warning(str(warning))
        for error in report.errors:
            self.error(str(error))

        self.console.print("\n[bold]Sync Summary:[/bold]")
        converted = report.documents - len(report.errors)
        self.console.print(f"  Documents: {converted}/{report.documents} converted")
        if report.warnings:
            self.console.print(f"  [yellow]⚠[/yellow] Warnings: {len(report.warnings)}")

        if report.execution is None:
            self.console.print(f"\n[yellow]Dry run: {len(report.plan.changes)} change(s) not applied[/yellow]")
            return

        execution = report.execution
        self.console.print(f"  [green]✓[/green] Applied: {execution.succeeded}")
        if execution.failed:
            self.console.print(f"  [red]✗[/red] Failed: {execution.failed}")
        if execution.skipped:
            self.console.print(f"  [yellow]⊘[/yellow] Skipped: {execution.skipped}")
        for result in execution.failures:
            prefix = "skipped" if result.outcome == Outcome.SKIPPED else "failed"
            self.error(f"{prefix}: {describe(result.operation)}: {result.message}")

        if report.ok:
            self.console.print("\n[green]Sync completed successfully[/green]")
        else:
            self.console.print("\n[red]Sync completed with errors[/red]")
