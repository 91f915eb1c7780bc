"""Identity registry enforcing unique project paths, outputs and IDs.

One registry lives for one run. Ingestion tasks register nodes
concurrently, so every mutation happens under a lock. The outcome does not
depend on registration order: when two projects claim the same output
artifact the one with the lexically smallest full path is kept, and when
two projects declare the same ID the smallest path keeps it.
"""

import logging
import threading
import uuid
from typing import Dict, List, Optional, Set

from slngraph.graph.schema import Duplicate, IdRepair, ProjectNode
from slngraph.utils.path_utils import path_key

logger = logging.getLogger("slngraph.graph.registry")

# Namespace for deterministic replacement IDs.
_ID_NAMESPACE = uuid.UUID("4f0c1d8e-6a3b-5c2e-9d7f-2b8a6e4c1f03")


def format_project_id(value: uuid.UUID) -> str:
    """Render a UUID the way solution files and descriptors spell IDs."""
    return "{" + str(value).upper() + "}"


class IdentityRegistry:
    """Thread-safe registry of accepted project nodes.

    Attributes are only read after ingestion has finished, through the
    accessor methods which return path-sorted copies.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_path: Dict[str, ProjectNode] = {}
        self._by_output: Dict[str, ProjectNode] = {}
        self._duplicates: Dict[str, Duplicate] = {}

    def register(self, node: ProjectNode) -> bool:
        """Offer a node to the registry.

        Args:
            node: Fully constructed node.

        Returns:
            bool: True when the node is (currently) retained. A retained node
            can still be evicted later by a claimant with a smaller path.
        """
        with self._lock:
            if node.key in self._by_path:
                logger.error("Project %s registered twice, ignoring", node.full_path)
                return False

            output_key = node.output_key
            if not output_key:
                self._by_path[node.key] = node
                return True

            holder = self._by_output.get(output_key)
            if holder is None:
                self._by_output[output_key] = node
                self._by_path[node.key] = node
                return True

            duplicate = self._duplicates.get(output_key)
            if duplicate is None:
                duplicate = Duplicate(output_path=holder.output_path, projects=[holder])
                self._duplicates[output_key] = duplicate
            duplicate.projects.append(node)
            duplicate.projects.sort(key=lambda n: n.full_path)

            if node.full_path < holder.full_path:
                del self._by_path[holder.key]
                self._by_output[output_key] = node
                self._by_path[node.key] = node
                duplicate.output_path = node.output_path
                loser = holder
            else:
                loser = node

            logger.error(
                "Duplicate output path %s found in file: %s (kept %s)",
                loser.output_path,
                loser.full_path,
                self._by_output[output_key].full_path,
            )
            return loser is not node

    def resolve_ids(self) -> List[IdRepair]:
        """Give every retained node a unique declared ID.

        Nodes are visited in full path order. The first node claiming an ID
        keeps it and every later claimant gets a fresh one derived from its
        path, so reruns produce the same value. A node without an ID gets a
        fresh ID too, but only in memory: its descriptor is left alone.

        Returns:
            List[IdRepair]: Replacements of duplicate IDs, in path order.
        """
        with self._lock:
            nodes = sorted(self._by_path.values(), key=lambda n: n.full_path)
            used = {node.declared_id.lower() for node in nodes if node.declared_id}
            claimed: Dict[str, ProjectNode] = {}
            repairs: List[IdRepair] = []

            for node in nodes:
                current = node.declared_id.lower()
                if current and current not in claimed:
                    claimed[current] = node
                    continue

                new_id = self._fresh_id(node, used)
                used.add(new_id.lower())
                claimed[new_id.lower()] = node
                if current:
                    repairs.append(
                        IdRepair(node=node, old_id=node.declared_id, new_id=new_id)
                    )
                    logger.warning(
                        "Fixing duplicate ID %s found in file: %s (new ID %s)",
                        node.declared_id,
                        node.full_path,
                        new_id,
                    )
                else:
                    logger.debug("Project %s declares no ID, using %s", node.full_path, new_id)
                node.declared_id = new_id
            return repairs

    @staticmethod
    def _fresh_id(node: ProjectNode, used: Set[str]) -> str:
        attempt = 0
        while True:
            seed = f"{node.key}|{node.declared_id.lower()}|{attempt}"
            candidate = format_project_id(uuid.uuid5(_ID_NAMESPACE, seed))
            if candidate.lower() not in used:
                return candidate
            attempt += 1

    def nodes(self) -> List[ProjectNode]:
        with self._lock:
            return sorted(self._by_path.values(), key=lambda n: n.full_path)

    def duplicates(self) -> List[Duplicate]:
        with self._lock:
            return sorted(self._duplicates.values(), key=lambda d: d.output_path.lower())

    def get(self, full_path: str) -> Optional[ProjectNode]:
        with self._lock:
            return self._by_path.get(path_key(full_path))

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_path)
