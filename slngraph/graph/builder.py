"""Dependency inference strategies.

Four independent strategies add edges to a :class:`ProjectGraph`:

* link: a native input library matches another project's import library
* type library: an ``#import``-ed type library matches another project's
  produced type library
* assembly: a reference assembly matches another project's output
* explicit: ``ExtraDependencies`` directives from the build manifest

Every lookup is built over nodes in full path order and keeps the first
claimant of a key, so collisions resolve the same way on every run.
"""

import logging
import os
from typing import Dict, Iterable, Optional

from slngraph.graph.manager import ProjectGraph
from slngraph.graph.schema import EdgeKind, ExtraDependencyDirective, ProjectNode
from slngraph.utils.path_utils import strip_extension

logger = logging.getLogger("slngraph.graph.builder")


def _first_wins(lookup: Dict[str, ProjectNode], key: Optional[str], node: ProjectNode) -> None:
    if not key:
        return
    existing = lookup.get(key)
    if existing is None:
        lookup[key] = node
    elif existing is not node:
        logger.debug(
            "Key %s claimed by %s and %s, keeping the first",
            key,
            existing.full_path,
            node.full_path,
        )


class DependencyGraphBuilder:
    """Adds inferred edges to a project graph.

    Args:
        graph: Graph whose nodes are already final.
    """

    def __init__(self, graph: ProjectGraph) -> None:
        self.graph = graph

    def build(
        self, directives: Iterable[ExtraDependencyDirective] = ()
    ) -> Dict[str, int]:
        """Run every strategy.

        Returns:
            Dict[str, int]: Edges added per strategy.
        """
        counts = {
            EdgeKind.LINK_LIBRARY.value: self.add_link_dependencies(),
            EdgeKind.TYPE_LIBRARY.value: self.add_type_library_dependencies(),
            EdgeKind.ASSEMBLY_REFERENCE.value: self.add_assembly_dependencies(),
            EdgeKind.EXPLICIT.value: self.add_explicit_dependencies(directives),
        }
        logger.info(
            "Dependency graph built: %d nodes, %d edges",
            self.graph.node_count(),
            self.graph.edge_count(),
        )
        return counts

    def add_link_dependencies(self) -> int:
        """Native projects depend on producers of the libraries they link."""
        producers: Dict[str, ProjectNode] = {}
        for node in self.graph.nodes:
            if node.is_native:
                _first_wins(producers, node.import_library, node)

        added = 0
        for node in self.graph.nodes:
            if not node.is_native:
                continue
            for library in node.input_libraries:
                target = producers.get(library)
                if target is not None and self.graph.add_edge(
                    node, target, EdgeKind.LINK_LIBRARY
                ):
                    added += 1
        return added

    def add_type_library_dependencies(self) -> int:
        """Importers of a type library depend on the project generating it."""
        producers: Dict[str, ProjectNode] = {}
        for node in self.graph.nodes:
            if node.type_library:
                _first_wins(producers, strip_extension(node.type_library).lower(), node)

        added = 0
        for node in self.graph.nodes:
            for name in node.input_type_libraries:
                target = producers.get(name)
                if target is not None and self.graph.add_edge(
                    node, target, EdgeKind.TYPE_LIBRARY
                ):
                    added += 1
        return added

    def add_assembly_dependencies(self) -> int:
        """Projects depend on the producers of assemblies they reference."""
        producers: Dict[str, ProjectNode] = {}
        for node in self.graph.nodes:
            _first_wins(producers, node.output_name.lower(), node)

        added = 0
        for node in self.graph.nodes:
            for reference in node.reference_assemblies:
                name = reference if reference.endswith(".dll") else reference + ".dll"
                target = producers.get(name)
                if target is not None and self.graph.add_edge(
                    node, target, EdgeKind.ASSEMBLY_REFERENCE
                ):
                    added += 1
        return added

    def add_explicit_dependencies(
        self, directives: Iterable[ExtraDependencyDirective]
    ) -> int:
        """Apply manifest overrides matched by descriptor file name."""
        by_file_name: Dict[str, ProjectNode] = {}
        for node in self.graph.nodes:
            _first_wins(by_file_name, node.file_name.lower(), node)

        added = 0
        for directive in directives:
            missing = [
                path
                for path in (directive.project_file, directive.depends_on)
                if not os.path.isfile(path)
            ]
            if missing:
                for path in missing:
                    logger.error("ExtraDependencies entry %s does not exist", path)
                continue

            source = by_file_name.get(os.path.basename(directive.project_file).lower())
            target = by_file_name.get(os.path.basename(directive.depends_on).lower())
            if source is None or target is None:
                logger.warning(
                    "ExtraDependencies %s -> %s does not match any project",
                    directive.project_file,
                    directive.depends_on,
                )
                continue
            if self.graph.add_edge(source, target, EdgeKind.EXPLICIT):
                added += 1
        return added
