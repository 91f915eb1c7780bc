"""Node, edge and result types of the project dependency graph."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from slngraph.utils.path_utils import path_key


class ProjectKind(str, Enum):
    """Descriptor family a node was built from."""

    MANAGED = "managed"
    NATIVE = "native"


class EdgeKind(str, Enum):
    """Evidence an edge was inferred from."""

    LINK_LIBRARY = "link_library"
    TYPE_LIBRARY = "type_library"
    ASSEMBLY_REFERENCE = "assembly_reference"
    EXPLICIT = "explicit"


@dataclass(eq=False)
class ProjectNode:
    """One project descriptor and everything inferred from it.

    Nodes compare by identity. ``index`` is assigned when the node is placed
    into a :class:`~slngraph.graph.manager.ProjectGraph`.
    """

    full_path: str
    declared_id: str
    display_name: str
    kind: ProjectKind
    output_name: str
    output_path: str
    assembly_name: str = ""
    pdb_name: str = ""
    is_managed: bool = False
    framework_version: str = ""
    reference_assemblies: List[str] = field(default_factory=list)
    # Native only
    import_library: Optional[str] = None
    input_libraries: List[str] = field(default_factory=list)
    type_library: Optional[str] = None
    input_type_libraries: List[str] = field(default_factory=list)
    project: Any = field(default=None, repr=False)
    index: int = -1

    @property
    def key(self) -> str:
        return path_key(self.full_path)

    @property
    def output_key(self) -> str:
        return path_key(self.output_path) if self.output_path else ""

    @property
    def file_name(self) -> str:
        return os.path.basename(self.full_path)

    @property
    def is_native(self) -> bool:
        return self.kind == ProjectKind.NATIVE

    def add_reference_assembly(self, name: str) -> None:
        name = name.strip().lower()
        if name and name not in self.reference_assemblies:
            self.reference_assemblies.append(name)

    def add_type_library_import(self, name: str) -> None:
        name = name.strip().lower()
        if name and name not in self.input_type_libraries:
            self.input_type_libraries.append(name)


@dataclass
class Duplicate:
    """Projects claiming the same output artifact path.

    ``projects`` is sorted by full path; the first entry is the one that
    was kept.
    """

    output_path: str
    projects: List[ProjectNode] = field(default_factory=list)

    @property
    def kept(self) -> ProjectNode:
        return self.projects[0]

    @property
    def rejected(self) -> List[ProjectNode]:
        return self.projects[1:]


@dataclass
class IdRepair:
    """A project identifier replaced because another project declared it."""

    node: ProjectNode
    old_id: str
    new_id: str


@dataclass(frozen=True)
class ExtraDependencyDirective:
    """Manifest override: ``project_file`` depends on ``depends_on``."""

    project_file: str
    depends_on: str


@dataclass
class BuildClosure:
    """Result of the build-set computation."""

    in_build: List[ProjectNode]
    ignored: List[ProjectNode]
    seeds: List[str] = field(default_factory=list)
    all_mode: bool = False

    def __contains__(self, node: object) -> bool:
        return any(member is node for member in self.in_build)
