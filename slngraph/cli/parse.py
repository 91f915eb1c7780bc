"""Parse command: print the projects and dependencies of a solution."""

import logging
import sys

from rich.console import Console
from rich.tree import Tree

from slngraph.export.solution_reader import read_solution

logger = logging.getLogger("slngraph.cli.parse")


def parse_command(args) -> int:
    """Execute parse command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        int: Exit code.
    """
    try:
        projects = read_solution(args.solution)
    except (OSError, UnicodeDecodeError) as e:
        print(f"error: cannot read {args.solution}: {e}", file=sys.stderr)
        return 1

    console = Console()
    tree = Tree(f"{args.solution} ({len(projects)} projects)")
    for project in projects:
        branch = tree.add(f"{project.name}  [dim]{project.path}[/dim]")
        for dependency in project.dependencies:
            branch.add(dependency)
    console.print(tree)
    return 0
