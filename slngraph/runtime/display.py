"""Rich-based end-of-run summary."""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table

from slngraph.runtime.pipeline import RunResult

logger = logging.getLogger("slngraph.runtime.display")


def _counts_table(result: RunResult) -> Table:
    stats = result.stats
    table = Table(title="Projects", show_header=False, box=None, pad_edge=False)
    table.add_column("metric", style="bold")
    table.add_column("value", justify="right")
    table.add_row("Found", str(stats.found))
    table.add_row("Valid", str(stats.valid))
    table.add_row("Bad", f"[red]{stats.bad}[/red]" if stats.bad else "0")
    table.add_row("Managed", str(stats.managed))
    table.add_row("Native", str(stats.native))
    table.add_row("Duplicates", str(len(result.duplicates)))
    table.add_row("ID repairs", str(len(result.repairs)))
    if result.manifest is not None:
        table.add_row("Seeds", str(len(result.manifest.seeds)))
    table.add_row("In build", f"[green]{len(result.closure.in_build)}[/green]")
    table.add_row("Ignored", str(len(result.closure.ignored)))
    for kind, count in result.edge_counts.items():
        table.add_row(f"Edges ({kind})", str(count))
    return table


def _duplicates_table(result: RunResult) -> Optional[Table]:
    if not result.duplicates:
        return None
    table = Table(title="Duplicate outputs", title_style="bold red")
    table.add_column("Output")
    table.add_column("Kept")
    table.add_column("Rejected")
    for duplicate in result.duplicates:
        table.add_row(
            duplicate.output_path,
            duplicate.kept.full_path,
            "\n".join(node.full_path for node in duplicate.rejected),
        )
    return table


def _repairs_table(result: RunResult) -> Optional[Table]:
    if not result.repairs:
        return None
    table = Table(title="Replaced project IDs", title_style="bold yellow")
    table.add_column("Project")
    table.add_column("Old ID")
    table.add_column("New ID")
    for repair in result.repairs:
        table.add_row(repair.node.full_path, repair.old_id or "-", repair.new_id)
    return table


def _timings_table(result: RunResult) -> Table:
    table = Table(title="Phases", show_header=False, box=None, pad_edge=False)
    table.add_column("phase")
    table.add_column("seconds", justify="right")
    for phase, elapsed in result.timings.items():
        table.add_row(phase, f"{elapsed:.2f}s")
    return table


def render_summary(result: RunResult, console: Optional[Console] = None) -> None:
    """Print the run summary.

    Args:
        result: Outcome of :meth:`SolutionBuilder.run`.
        console: Target console; stdout when None.
    """
    console = console or Console()
    parts = [_counts_table(result)]
    for table in (_duplicates_table(result), _repairs_table(result)):
        if table is not None:
            parts.append(table)
    parts.append(_timings_table(result))

    outputs = [f"Solution: {result.solution_path}"]
    if result.dgml_path is not None:
        outputs.append(f"Graph: {result.dgml_path}")
    if result.manifest_paths:
        outputs.append(f"Listings: {len(result.manifest_paths)} files")
    if result.written_descriptors:
        outputs.append(f"Descriptors updated: {len(result.written_descriptors)}")

    console.print(Panel(Group(*parts), title="slngraph"))
    for line in outputs:
        console.print(line)
