"""Project graph for a single run.

Nodes live in an arena sorted by full path and are addressed by their
index; the edges are kept in a NetworkX ``DiGraph`` over those indices.
Sorting before indexing makes edge insertion, and therefore every export,
independent of the order ingestion finished in.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

import networkx as nx

from slngraph.graph.schema import EdgeKind, ProjectNode
from slngraph.utils.path_utils import path_key

logger = logging.getLogger("slngraph.graph.manager")


class ProjectGraph:
    """Directed dependency graph over retained project nodes.

    An edge ``A -> B`` means A depends on B, so B must build first.
    Self-loops and parallel edges are never stored.
    """

    def __init__(self, nodes: Iterable[ProjectNode]) -> None:
        """Initialize the arena.

        Args:
            nodes: Retained nodes; full paths must be unique.
        """
        self._nodes: List[ProjectNode] = sorted(nodes, key=lambda n: n.full_path)
        self._by_key: Dict[str, ProjectNode] = {}
        self._graph = nx.DiGraph()
        for index, node in enumerate(self._nodes):
            node.index = index
            self._by_key[node.key] = node
            self._graph.add_node(index)
        logger.debug("ProjectGraph initialized with %d nodes", len(self._nodes))

    @property
    def nodes(self) -> List[ProjectNode]:
        return list(self._nodes)

    def get(self, full_path: str) -> Optional[ProjectNode]:
        return self._by_key.get(path_key(full_path))

    def add_edge(self, source: ProjectNode, target: ProjectNode, kind: EdgeKind) -> bool:
        """Record that ``source`` depends on ``target``.

        Returns:
            bool: True when a new edge was stored.
        """
        if source is target:
            logger.debug("Ignoring self-dependency of %s", source.full_path)
            return False
        if self._graph.has_edge(source.index, target.index):
            return False
        self._graph.add_edge(source.index, target.index, kind=kind.value)
        logger.debug(
            "Edge %s -> %s (%s)", source.file_name, target.file_name, kind.value
        )
        return True

    def has_edge(self, source: ProjectNode, target: ProjectNode) -> bool:
        return self._graph.has_edge(source.index, target.index)

    def dependencies(self, node: ProjectNode) -> List[ProjectNode]:
        """Direct dependencies in insertion order."""
        return [self._nodes[i] for i in self._graph.successors(node.index)]

    def dependents(self, node: ProjectNode) -> List[ProjectNode]:
        return [self._nodes[i] for i in self._graph.predecessors(node.index)]

    def used_by_count(self, node: ProjectNode) -> int:
        """Number of nodes that depend on ``node``."""
        return self._graph.in_degree(node.index)

    def edges(self) -> List[Tuple[ProjectNode, ProjectNode, EdgeKind]]:
        return [
            (self._nodes[u], self._nodes[v], EdgeKind(data["kind"]))
            for u, v, data in self._graph.edges(data=True)
        ]

    def node_count(self) -> int:
        return len(self._nodes)

    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    def find_cycles(self) -> List[List[ProjectNode]]:
        """Strongly connected components with more than one member."""
        cycles = []
        for component in nx.strongly_connected_components(self._graph):
            if len(component) > 1:
                cycles.append([self._nodes[i] for i in sorted(component)])
        cycles.sort(key=lambda members: members[0].full_path)
        return cycles

    def get_statistics(self) -> Dict[str, int]:
        managed = sum(1 for n in self._nodes if n.is_managed)
        return {
            "nodes": self.node_count(),
            "edges": self.edge_count(),
            "managed": managed,
            "native": sum(1 for n in self._nodes if n.is_native),
            "cycles": len(self.find_cycles()),
        }
