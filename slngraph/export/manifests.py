"""Plain-text listings of the analysis, for debugging a build set."""

import logging
from pathlib import Path
from typing import Iterable, List, Union

from slngraph.graph.manager import ProjectGraph
from slngraph.graph.schema import BuildClosure

logger = logging.getLogger("slngraph.export.manifests")

BUILD_LIST = "build_list.txt"
PROJECTS_ALL = "projects_all.txt"
PROJECTS_IN_BUILD = "projects_in_build.txt"
PROJECTS_NOT_IN_BUILD = "projects_not_in_build.txt"
PROJECTS_MANAGED_VC = "projects_managed_vc.txt"
PROJECTS_NATIVE_LIBRARIES = "projects_native_libraries.txt"
PROJECTS_PDB_FILES = "projects_PDB_files.txt"


def _write_lines(path: Path, lines: Iterable[str]) -> Path:
    with open(path, "w", encoding="utf-8") as handle:
        for line in lines:
            handle.write(line + "\n")
    return path


def export_debug_manifests(
    graph: ProjectGraph, closure: BuildClosure, output_dir: Union[str, Path]
) -> List[Path]:
    """Write every debug listing into ``output_dir``.

    Returns:
        List[Path]: Written files.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Writing debug manifests to %s", output_dir)
    in_build = closure.in_build
    written: List[Path] = []

    written.append(
        _write_lines(
            output_dir / BUILD_LIST,
            sorted(
                node.output_path
                for node in in_build
                if node.output_path and not node.output_name.endswith(".lib")
            ),
        )
    )

    all_lines: List[str] = []
    for node in graph.nodes:
        all_lines.append(f"{node.file_name:>50}\t{node.full_path}")
        dependencies = graph.dependencies(node)
        if dependencies:
            all_lines.append(f"{'Depends on':>50}")
            for dependency in sorted(dependencies, key=lambda n: n.full_path):
                all_lines.append(f"{'':>50}\t{dependency.full_path}")
    written.append(_write_lines(output_dir / PROJECTS_ALL, all_lines))

    written.append(
        _write_lines(
            output_dir / PROJECTS_IN_BUILD,
            (f"{node.file_name:>50} - {node.full_path}" for node in in_build),
        )
    )
    written.append(
        _write_lines(
            output_dir / PROJECTS_NOT_IN_BUILD,
            (f"{node.file_name:>50} - {node.full_path}" for node in closure.ignored),
        )
    )
    written.append(
        _write_lines(
            output_dir / PROJECTS_MANAGED_VC,
            (
                f"{node.file_name:>50} - {node.full_path}"
                for node in in_build
                if node.is_native and node.is_managed
            ),
        )
    )
    written.append(
        _write_lines(
            output_dir / PROJECTS_NATIVE_LIBRARIES,
            sorted(
                node.output_path
                for node in in_build
                if node.is_native and node.output_name.endswith(".lib")
            ),
        )
    )
    written.append(
        _write_lines(
            output_dir / PROJECTS_PDB_FILES,
            sorted({node.pdb_name for node in in_build if node.pdb_name}),
        )
    )

    logger.info("Debug manifests completed: %d files", len(written))
    return written
