"""Build command implementation."""

import logging
import sys
import traceback
from typing import Any, Dict

from rich.console import Console

from slngraph.parsers.base import ConfigurationError
from slngraph.runtime.config_loader import load_build_config
from slngraph.runtime.display import render_summary
from slngraph.runtime.pipeline import SolutionBuilder

logger = logging.getLogger("slngraph.cli.build")

RECOVERABLE_BUILD_ERRORS = (
    ConfigurationError,
    OSError,
    RuntimeError,
    TypeError,
    ValueError,
)


def build_command(args) -> int:
    """Execute build command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        int: Exit code.
    """
    try:
        return _build_command_impl(args)
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    except RECOVERABLE_BUILD_ERRORS as e:
        print(f"\n{'=' * 70}", file=sys.stderr)
        print("FATAL ERROR in build_command:", file=sys.stderr)
        print(f"{'=' * 70}", file=sys.stderr)
        print(f"Exception: {e}", file=sys.stderr)
        print("\nTraceback:", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
        print(f"{'=' * 70}\n", file=sys.stderr)
        return 1


def _overrides(args) -> Dict[str, Any]:
    return {
        "search_dir": args.search_dir,
        "solution_path": args.output,
        "configuration": args.configuration,
        "platform": args.platform,
        "manifest_path": args.manifest,
        "items_name": args.items_name,
        "parallel": args.parallel,
        "max_workers": args.workers,
        "use_project_references": args.project_references,
        "write_dgml": args.write_dgml,
        "dgml_path": args.dgml,
        "write_debug_manifests": args.debug_manifests,
        "debug_dir": args.debug_dir,
        "expected_framework_version": args.framework_version,
    }


def _build_command_impl(args) -> int:
    logger.debug("=== slngraph build ===")
    logger.debug("Search dir: %s", args.search_dir)
    logger.debug("Output: %s", args.output)

    try:
        config = load_build_config(getattr(args, "config", None)).merged(_overrides(args))
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc

    result = SolutionBuilder(config).run()

    if not getattr(args, "quiet", False):
        render_summary(result, Console())
    return 0
