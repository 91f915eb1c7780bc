"""Solution file export for the build closure."""

import logging
from pathlib import Path
from typing import List, Union

from slngraph.graph.manager import ProjectGraph
from slngraph.graph.schema import BuildClosure, ProjectKind, ProjectNode

logger = logging.getLogger("slngraph.export.solution")

SOLUTION_HEADER = "Microsoft Visual Studio Solution File, Format Version 12.00"
NEWLINE = "\r\n"

PROJECT_TYPE_IDS = {
    ProjectKind.MANAGED: "{FAE04EC0-301F-11D3-BF4B-00C04F79EFBE}",
    ProjectKind.NATIVE: "{8BC9CEB8-8B4A-11D0-8D11-00A0C91BC942}",
}


def _project_block(
    graph: ProjectGraph, node: ProjectNode, inline_dependencies: bool
) -> List[str]:
    lines = [
        f'Project("{PROJECT_TYPE_IDS[node.kind]}") = '
        f'"{node.display_name}", "{node.full_path}", "{node.declared_id}"'
    ]
    if inline_dependencies:
        dependencies = sorted(graph.dependencies(node), key=lambda n: n.full_path)
        if dependencies:
            lines.append("\tProjectSection(ProjectDependencies) = postProject")
            for dependency in dependencies:
                lines.append(f"\t\t{dependency.declared_id} = {dependency.declared_id}")
            lines.append("\tEndProjectSection")
    lines.append("EndProject")
    return lines


def render_solution(
    graph: ProjectGraph,
    closure: BuildClosure,
    configuration: str,
    platform: str,
    inline_dependencies: bool = True,
) -> str:
    """Render the solution text.

    Args:
        graph: Graph holding the dependency edges.
        closure: Projects to list, already sorted by full path.
        configuration: Solution configuration name.
        platform: Solution platform name.
        inline_dependencies: Write per-project dependency sections. Off
            when dependencies are expressed as project references instead.

    Returns:
        str: Solution text with CRLF line endings.
    """
    pair = f"{configuration}|{platform}"
    lines = [SOLUTION_HEADER]
    for node in closure.in_build:
        lines.extend(_project_block(graph, node, inline_dependencies))

    lines.append("Global")
    lines.append("\tGlobalSection(SolutionConfigurationPlatforms) = preSolution")
    lines.append(f"\t\t{pair} = {pair}")
    lines.append("\tEndGlobalSection")
    lines.append("\tGlobalSection(ProjectConfigurationPlatforms) = postSolution")
    for node in closure.in_build:
        lines.append(f"\t\t{node.declared_id}.{pair}.ActiveCfg = {pair}")
        lines.append(f"\t\t{node.declared_id}.{pair}.Build.0 = {pair}")
    lines.append("\tEndGlobalSection")
    lines.append("\tGlobalSection(ExtensibilityGlobals) = postSolution")
    lines.append("\tEndGlobalSection")
    lines.append("\tGlobalSection(ExtensibilityAddIns) = postSolution")
    lines.append("\tEndGlobalSection")
    lines.append("EndGlobal")
    return NEWLINE.join(lines) + NEWLINE


def export_solution(
    graph: ProjectGraph,
    closure: BuildClosure,
    output_path: Union[str, Path],
    configuration: str,
    platform: str,
    inline_dependencies: bool = True,
) -> Path:
    """Write the solution file.

    Args:
        graph: Graph holding the dependency edges.
        closure: Projects to list.
        output_path: Output file path.
        configuration: Solution configuration name.
        platform: Solution platform name.
        inline_dependencies: See :func:`render_solution`.

    Returns:
        Path: The written file.
    """
    output_path = Path(output_path)
    logger.info("Exporting solution: %s", output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    text = render_solution(graph, closure, configuration, platform, inline_dependencies)
    with open(output_path, "w", encoding="utf-8", newline="") as handle:
        handle.write(text)
    logger.info("Solution export completed: %d projects", len(closure.in_build))
    return output_path
