"""Orphans command: list sources no project includes."""

import logging
import os
import sys

from rich.console import Console

from slngraph.analysis.orphans import OrphanFinder

logger = logging.getLogger("slngraph.cli.orphans")


def orphans_command(args) -> int:
    """Execute orphans command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        int: Exit code.
    """
    if not os.path.isdir(args.search_dir):
        print(f"error: search directory {args.search_dir} does not exist", file=sys.stderr)
        return 1

    finder = OrphanFinder(
        global_properties={"Configuration": args.configuration, "Platform": args.platform}
    )
    report = finder.find(args.search_dir)

    console = Console()
    for path in report.orphans:
        console.print(path, markup=False, highlight=False, soft_wrap=True)
    console.print(
        f"[bold]{len(report.orphans)}[/bold] orphaned files "
        f"in {report.projects} projects"
        + (f", [red]{len(report.bad_projects)} unreadable[/red]" if report.bad_projects else "")
    )
    return 0
