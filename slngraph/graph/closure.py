"""Build-set computation over the dependency graph."""

import logging
from typing import List, Optional, Sequence, Set

from slngraph.graph.manager import ProjectGraph
from slngraph.graph.schema import BuildClosure, ProjectNode
from slngraph.utils.path_utils import path_key

logger = logging.getLogger("slngraph.graph.closure")


class BuildClosureComputer:
    """Computes which projects a set of seed projects needs."""

    def __init__(self, graph: ProjectGraph) -> None:
        self.graph = graph

    def compute(self, seeds: Optional[Sequence[str]] = None) -> BuildClosure:
        """Return the build closure.

        Args:
            seeds: Full paths of the projects to build. ``None`` puts every
                node in the build.

        Returns:
            BuildClosure: Members and non-members, both sorted by full path.
        """
        nodes = self.graph.nodes
        if seeds is None:
            return BuildClosure(
                in_build=nodes,
                ignored=[],
                seeds=[node.key for node in nodes],
                all_mode=True,
            )

        seed_keys = {path_key(seed) for seed in seeds}
        known = {node.key for node in nodes}
        for seed in sorted(seed_keys - known):
            logger.warning("Build list entry %s is not a retained project", seed)

        visited: Set[int] = set()
        for node in nodes:
            if node.key in seed_keys:
                self._visit(node, visited)

        in_build = [node for node in nodes if node.index in visited]
        ignored = [node for node in nodes if node.index not in visited]
        logger.info(
            "Build closure: %d of %d projects from %d seeds",
            len(in_build),
            len(nodes),
            len(seed_keys),
        )
        return BuildClosure(in_build=in_build, ignored=ignored, seeds=sorted(seed_keys))

    def _visit(self, start: ProjectNode, visited: Set[int]) -> None:
        stack: List[ProjectNode] = [start]
        while stack:
            node = stack.pop()
            if node.index in visited:
                continue
            visited.add(node.index)
            for dependency in self.graph.dependencies(node):
                if dependency.index not in visited:
                    stack.append(dependency)
