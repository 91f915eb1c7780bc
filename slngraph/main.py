"""Main CLI entry point for slngraph.

Provides commands: build, parse, orphans
"""

import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

from slngraph.cli.build import build_command
from slngraph.cli.orphans import orphans_command
from slngraph.cli.parse import parse_command

logger = logging.getLogger("slngraph.cli")


def setup_logging(verbose: bool = False, console: Optional[Console] = None) -> None:
    """Setup logging configuration with Rich integration.

    Args:
        verbose: Enable verbose logging.
        console: Rich Console instance for coordinated output (optional).
    """
    level = logging.DEBUG if verbose else logging.WARNING

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        log_time_format="[%H:%M:%S]",
    )

    logging.basicConfig(
        level=level,
        format="[%(name)s] [%(levelname)s] %(message)s",
        handlers=[handler],
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="slngraph",
        description="slngraph - project dependency graphs and solution files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    build_parser_ = subparsers.add_parser(
        "build",
        help="Discover projects, infer dependencies and write a solution",
    )
    build_parser_.add_argument("search_dir", help="Root of the source tree to search")
    build_parser_.add_argument(
        "-o",
        "--output",
        required=True,
        help="Solution file to write (.sln)",
    )
    build_parser_.add_argument(
        "-c",
        "--configuration",
        default=None,
        help="Build configuration (default: Debug)",
    )
    build_parser_.add_argument(
        "-p",
        "--platform",
        default=None,
        help="Build platform (default: Win32)",
    )
    build_parser_.add_argument(
        "--manifest",
        default=None,
        help="Build manifest naming the projects to build; all projects when omitted",
    )
    build_parser_.add_argument(
        "--items-name",
        default=None,
        help="Manifest item type listing the projects (default: Projects)",
    )
    build_parser_.add_argument(
        "--parallel",
        action="store_true",
        default=None,
        help="Evaluate projects and scan sources concurrently",
    )
    build_parser_.add_argument(
        "-w",
        "--workers",
        type=int,
        default=None,
        help="Maximum concurrent workers (default: 8)",
    )
    build_parser_.add_argument(
        "--project-references",
        action="store_true",
        default=None,
        help=(
            "Rewrite projects to reference their dependencies as project "
            "references instead of listing dependencies in the solution"
        ),
    )
    build_parser_.add_argument(
        "--no-dgml",
        dest="write_dgml",
        action="store_false",
        default=None,
        help="Do not write the DGML dependency graph",
    )
    build_parser_.add_argument(
        "--dgml",
        default=None,
        help="DGML output path (default: next to the solution)",
    )
    build_parser_.add_argument(
        "--debug-manifests",
        action="store_true",
        default=None,
        help="Write plain-text project listings next to the solution",
    )
    build_parser_.add_argument(
        "--debug-dir",
        default=None,
        help="Directory for the project listings",
    )
    build_parser_.add_argument(
        "--framework-version",
        default=None,
        help="Warn about managed C++ projects targeting another framework version",
    )
    build_parser_.add_argument(
        "--config",
        default=None,
        help="Configuration file (TOML/JSON) or inline configuration string",
    )
    build_parser_.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Do not print the run summary",
    )

    parse_parser = subparsers.add_parser(
        "parse",
        help="Print the projects and dependencies of a solution file",
    )
    parse_parser.add_argument("solution", help="Solution file to read")

    orphans_parser = subparsers.add_parser(
        "orphans",
        help="List source files no project includes",
    )
    orphans_parser.add_argument("search_dir", help="Root of the source tree to search")
    orphans_parser.add_argument("-c", "--configuration", default="Debug")
    orphans_parser.add_argument("-p", "--platform", default="Win32")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        int: Exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if args.command == "build":
        return build_command(args)
    elif args.command == "parse":
        return parse_command(args)
    elif args.command == "orphans":
        return orphans_command(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
