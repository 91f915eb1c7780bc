"""Descriptor corrections applied after analysis.

Analysis never writes to descriptors. Corrections it decides on (replaced
duplicate IDs, project references) are queued here and applied in one
step once the solution text is final, each descriptor being saved once.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Set

from slngraph.graph.schema import IdRepair, ProjectNode
from slngraph.parsers.base import RECOVERABLE_ERRORS
from slngraph.parsers.msbuild.protocols import EvaluatedProject, ProjectEvaluator
from slngraph.parsers.project_model import assembly_name_of
from slngraph.utils.path_utils import path_key, relative_path, resolve_path

logger = logging.getLogger("slngraph.runtime.corrections")


@dataclass
class PendingWrite:
    """One queued change to a descriptor.

    ``apply`` mutates the evaluated project and reports whether anything
    changed.
    """

    node: ProjectNode
    description: str
    apply: Callable[[EvaluatedProject], bool]


def convert_to_project_references(
    project: EvaluatedProject,
    node: ProjectNode,
    dependencies: Iterable[ProjectNode],
    assembly_names: Set[str],
) -> bool:
    """Replace assembly references to sibling projects with project references.

    Args:
        project: Descriptor of ``node``.
        node: Node being rewritten.
        dependencies: Direct dependencies of ``node``.
        assembly_names: Lowercase assembly names of every retained project.

    Returns:
        bool: True when the descriptor changed.
    """
    changed = False
    group = None
    for item in project.get_items("Reference"):
        if assembly_name_of(item.include).lower() not in assembly_names:
            continue
        if item.imported:
            logger.warning(
                "Reference %s of %s comes from an imported file and is kept",
                item.include,
                project.full_path,
            )
            continue
        if group is None:
            group = item.group
        project.remove_item(item)
        changed = True

    existing = {
        path_key(resolve_path(item.include, project.directory_path))
        for item in project.get_items("ProjectReference")
    }
    for dependency in dependencies:
        if dependency.key in existing:
            continue
        added = project.add_item(
            "ProjectReference",
            relative_path(node.full_path, dependency.full_path),
            {"Project": dependency.declared_id, "Name": dependency.assembly_name},
            group=group,
        )
        group = added.group
        changed = True
    return changed


class CorrectionPlan:
    """Queue of descriptor writes, grouped per file on apply."""

    def __init__(self, evaluator: ProjectEvaluator) -> None:
        self.evaluator = evaluator
        self._writes: List[PendingWrite] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._writes)

    def schedule(self, write: PendingWrite) -> None:
        with self._lock:
            self._writes.append(write)

    def schedule_id_repair(self, repair: IdRepair) -> None:
        def apply(project: EvaluatedProject) -> bool:
            project.set_property("ProjectGuid", repair.new_id)
            return True

        self.schedule(
            PendingWrite(
                node=repair.node,
                description=f"ProjectGuid {repair.old_id or '(none)'} -> {repair.new_id}",
                apply=apply,
            )
        )

    def schedule_project_references(
        self,
        node: ProjectNode,
        dependencies: List[ProjectNode],
        assembly_names: Set[str],
    ) -> None:
        self.schedule(
            PendingWrite(
                node=node,
                description=f"{len(dependencies)} project references",
                apply=lambda project: convert_to_project_references(
                    project, node, dependencies, assembly_names
                ),
            )
        )

    def apply(self) -> List[str]:
        """Apply every queued write and save each changed descriptor once.

        A descriptor that cannot be loaded or saved is logged and skipped. A
        write that fails is logged and the other writes to the same
        descriptor still go through.

        Returns:
            List[str]: Paths of the descriptors written, sorted.
        """
        with self._lock:
            writes = list(self._writes)
            self._writes.clear()

        by_file: Dict[str, List[PendingWrite]] = {}
        for write in writes:
            by_file.setdefault(write.node.key, []).append(write)

        written: List[str] = []
        for key in sorted(by_file):
            file_writes = by_file[key]
            node = file_writes[0].node
            project: Optional[EvaluatedProject] = node.project
            try:
                if project is None:
                    project = self.evaluator.expand(node.full_path)
            except RECOVERABLE_ERRORS as exc:
                logger.error("Failed to load %s: %s", node.full_path, exc)
                continue

            changed = False
            for write in file_writes:
                try:
                    applied = write.apply(project)
                except RECOVERABLE_ERRORS as exc:
                    logger.error(
                        "Failed to update %s (%s): %s", node.full_path, write.description, exc
                    )
                    continue
                if applied:
                    changed = True
                    logger.info("Updating %s: %s", node.full_path, write.description)
            if not changed:
                continue
            try:
                self.evaluator.save(project)
            except RECOVERABLE_ERRORS as exc:
                logger.error("Failed to save %s: %s", node.full_path, exc)
                continue
            written.append(node.full_path)
        return sorted(written)
