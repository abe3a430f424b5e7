"""Aggregate task outcomes and print the per-pass summary."""

from __future__ import annotations

from collections import Counter

from rich.console import Console
from rich.markup import escape

from ..core.models import RunResult, TaskOutcome, TaskStatus

console = Console()


def summarize(outcomes: list[TaskOutcome], *, variant: str = "") -> RunResult:
    """Count outcomes by status."""
    counts = Counter(o.status for o in outcomes)
    return RunResult(
        variant=variant,
        rendered=counts[TaskStatus.RENDERED],
        skipped=counts[TaskStatus.SKIPPED],
        failed=counts[TaskStatus.FAILED],
        failures=sorted(
            (o for o in outcomes if o.status is TaskStatus.FAILED),
            key=lambda o: o.filename,
        ),
    )


def print_summary(result: RunResult, *, theme: str = "", out: Console | None = None) -> None:
    """Print the summary lines for one theme pass; always shows counts."""
    out = out or console
    label = theme or result.variant
    out.print(f"[bold green]--- Mermaid theme build finished ('{label}') ---[/]")
    out.print(f"[green]Rendered:[/] {result.rendered} new")
    out.print(f"[green]Skipped:[/]  {result.skipped} cached")
    if result.failed:
        out.print(f"[bold red]Failed:[/]   {result.failed}")
        for failure in result.failures:
            out.print(f"  [red]✗[/] {escape(failure.filename)}: {escape(failure.error or '')}")
