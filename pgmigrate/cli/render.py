"""
Human-readable progress rendering for the CLI.
"""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.table import Table

from pgmigrate.clients.base import TransferHandle
from pgmigrate.core.listeners import MigrationListener
from pgmigrate.core.step import Step, has_rollback
from pgmigrate.core.types import CompensationReport, MigrationResult, StepKind, StepOutcome


class RichProgressListener(MigrationListener):
    """Prints one line per lifecycle event, in the style of ``action(...)``."""

    def __init__(self, console: Console):
        self.console = console
        self._last_progress: str | None = None

    def on_step_enter(self, step: Step) -> None:
        self.console.print(f"[bold]{step.label}[/bold]...", end=" ")

    def on_step_success(self, step: Step, outcome: StepOutcome) -> None:
        self.console.print("[green]done[/green]")

    def on_step_failure(self, step: Step, error: BaseException) -> None:
        self.console.print("[red]failed[/red]")

    def on_abort(self, step: Step, message: str) -> None:
        self.console.print("[yellow]aborted[/yellow]")

    def on_unwind_start(self, pending: list[Step]) -> None:
        if any(has_rollback(s) for s in pending):
            self.console.print("[bold]Restoring application state[/bold]")

    def on_compensate(self, step: Step) -> None:
        self.console.print(f"  [green]restored[/green] {step.label}")

    def on_compensation_failed(self, step: Step, error: Exception) -> None:
        self.console.print(f"  [red]could not restore[/red] {step.label}: {error}")

    def on_transfer_progress(self, handle: TransferHandle) -> None:
        if handle.progress and handle.progress != self._last_progress:
            self._last_progress = handle.progress
            self.console.print(f"\n  {handle.progress}", end="")


def render_plan(console: Console, steps: list[Step]) -> None:
    table = Table(title="Migration plan")
    table.add_column("#", justify="right")
    table.add_column("Step")
    table.add_column("Kind")
    table.add_column("Rollback")

    for index, step in enumerate(steps, start=1):
        table.add_row(
            str(index),
            step.label,
            step.kind.value,
            "yes" if has_rollback(step) else "-",
        )

    if any(step.kind is StepKind.PROVISION for step in steps):
        # Enqueued at run time by the provisioning step.
        table.add_row(
            str(len(steps) + 1),
            "Rebind configuration (enqueued by Provision database)",
            StepKind.REBIND.value,
            "on failure",
        )

    console.print(table)


def render_compensation(console: Console, report: CompensationReport) -> None:
    if report.failed:
        console.print(
            "[bold red]Some changes could not be undone; inspect the application:[/bold red]"
        )
        for name in report.failed:
            console.print(f"  - {name}: {report.errors[name]}")


def render_result(console: Console, result: MigrationResult) -> None:
    if result.is_aborted:
        console.print(f"[yellow]{result.abort_message}[/yellow]")
    elif result.is_completed:
        console.print(
            f"[bold green]Migration complete[/bold green] ({result.duration:.1f}s)"
        )
    render_compensation(console, result.compensation)


def render_metrics(console: Console, metrics: dict[str, Any]) -> None:
    """Print per-step counts collected by a metrics listener."""
    table = Table(title="Migration metrics")
    table.add_column("Step")
    table.add_column("Phase")
    table.add_column("Succeeded", justify="right")
    table.add_column("Failed", justify="right")

    for phase, section in (("forward", "steps"), ("rollback", "compensations")):
        for name, counts in metrics[section].items():
            table.add_row(name, phase, str(counts["success"]), str(counts["failed"]))

    console.print(table)
    console.print(
        f"Runs: {metrics['total_runs']} "
        f"(completed {metrics['total_completed']}, aborted {metrics['total_aborted']}, "
        f"failed {metrics['total_failed']}), success rate {metrics['success_rate']}"
    )
