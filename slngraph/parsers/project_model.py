"""Builds :class:`ProjectNode` objects from evaluated descriptors.

Construction is split in two: the descriptor itself yields outputs, link
inputs, reference assemblies and the managed flag, and a
:class:`ScanRequest` lists the source files whose ``#import`` and
``#using`` lines still have to be scanned. The caller runs the scan and
merges the findings with :func:`apply_scan_result`.
"""

from __future__ import annotations

import logging
import os
from typing import List, Optional, Set, Tuple

from slngraph.graph.schema import ProjectKind, ProjectNode
from slngraph.parsers.msbuild.evaluator import NATIVE_EXTENSIONS
from slngraph.parsers.msbuild.protocols import EvaluatedProject
from slngraph.parsers.source_scan import ScanRequest, ScanResult
from slngraph.utils.path_utils import file_name, has_extension, resolve_path

logger = logging.getLogger("slngraph.parsers.project_model")

SOURCE_ITEM_TYPES = ("ClCompile", "ClInclude")


def kind_of(path: str) -> ProjectKind:
    """Descriptor kind by file extension."""
    if os.path.splitext(path)[1].lower() in NATIVE_EXTENSIONS:
        return ProjectKind.NATIVE
    return ProjectKind.MANAGED


def assembly_name_of(include: str) -> str:
    """Bare assembly name of a ``Reference`` include.

    ``"System.Data, Version=4.0.0.0, Culture=neutral"`` becomes
    ``"System.Data"``.
    """
    return include.split(",", 1)[0].strip()


def gather_reference_assemblies(project: EvaluatedProject) -> List[str]:
    """Lowercase names of every ``Reference`` item, in item order.

    A hint path with an extension is treated as the real file and wins over
    the include, which otherwise contributes its first comma segment.
    """
    names: List[str] = []
    for item in project.get_items("Reference"):
        hint_path = (item.get_direct_metadata("HintPath") or "").strip()
        if hint_path and has_extension(hint_path):
            name = file_name(hint_path).lower()
        else:
            name = assembly_name_of(item.include).lower()
        if name and name not in names:
            names.append(name)
    return names


def _existing_sources(project: EvaluatedProject) -> List[str]:
    files: List[str] = []
    seen: Set[str] = set()
    for item_type in SOURCE_ITEM_TYPES:
        for item in project.get_items(item_type):
            path = resolve_path(item.include, project.directory_path)
            if path not in seen and os.path.isfile(path):
                seen.add(path)
                files.append(path)
    return files


class ProjectModelBuilder:
    """Turns evaluated descriptors into nodes.

    Args:
        expected_framework_version: When set, managed native projects
            targeting another framework version produce a warning.
    """

    def __init__(self, expected_framework_version: Optional[str] = None) -> None:
        self.expected_framework_version = expected_framework_version

    def build(self, project: EvaluatedProject) -> Tuple[ProjectNode, ScanRequest]:
        """Construct the node for one descriptor.

        Returns:
            Tuple[ProjectNode, ScanRequest]: The node and the files that
            still need scanning for it.
        """
        if kind_of(project.full_path) == ProjectKind.NATIVE:
            return self._build_native(project)
        return self._build_managed(project), ScanRequest(owner=project.full_path)

    def _common(self, project: EvaluatedProject, kind: ProjectKind, name: str) -> ProjectNode:
        display_name = project.get_property_value("ProjectName") or os.path.splitext(
            os.path.basename(project.full_path)
        )[0]
        target_ext = project.get_property_value("TargetExt")
        return ProjectNode(
            full_path=os.path.normpath(project.full_path),
            declared_id=project.get_property_value("ProjectGuid").strip(),
            display_name=display_name,
            kind=kind,
            output_name=(name + target_ext).lower(),
            output_path="",
            assembly_name=name,
            project=project,
        )

    def _build_managed(self, project: EvaluatedProject) -> ProjectNode:
        assembly_name = project.get_property_value("AssemblyName")
        node = self._common(project, ProjectKind.MANAGED, assembly_name)
        output_dir = resolve_path(
            project.get_property_value("OutputPath"), project.directory_path
        )
        node.output_path = os.path.join(output_dir, node.output_name)
        node.pdb_name = (assembly_name + ".pdb").lower()
        node.is_managed = True
        node.framework_version = project.get_property_value("TargetFrameworkVersion")
        for name in gather_reference_assemblies(project):
            node.add_reference_assembly(name)
        logger.debug("Managed project %s -> %s", node.file_name, node.output_name)
        return node

    def _build_native(self, project: EvaluatedProject) -> Tuple[ProjectNode, ScanRequest]:
        target_name = project.get_property_value("TargetName")
        node = self._common(project, ProjectKind.NATIVE, target_name)
        target_path = project.get_property_value("TargetPath")
        node.output_path = resolve_path(target_path, project.directory_path) if target_path else ""
        node.framework_version = project.get_property_value("TargetFrameworkVersion")

        self._gather_link_inputs(project, node)
        self._gather_type_library(project, node)

        sources = _existing_sources(project)
        request = ScanRequest(owner=project.full_path, type_library_files=list(sources))

        # Each check runs even when an earlier one already decided the flag.
        references = gather_reference_assemblies(project)
        clr_support = project.get_property("CLRSupport")
        clr_disabled = clr_support is not None and clr_support.strip().lower() == "false"
        compiled_managed = [
            item.include
            for item in project.get_items("ClCompile")
            if item.get_metadata_value("CompileAsManaged").strip().lower() == "true"
        ]
        node.is_managed = bool(references) or not clr_disabled or bool(compiled_managed)

        if node.is_managed:
            for name in references:
                node.add_reference_assembly(name)
            request.managed_files = list(sources)
            self._check_framework_version(node)

        logger.debug(
            "Native project %s -> %s (managed=%s, %d link inputs)",
            node.file_name,
            node.output_name,
            node.is_managed,
            len(node.input_libraries),
        )
        return node, request

    def _gather_link_inputs(self, project: EvaluatedProject, node: ProjectNode) -> None:
        is_static = node.output_name.endswith(".lib")
        definition = project.get_item_definition("Lib" if is_static else "Link")
        if definition is None:
            return

        import_library = definition.get_metadata_value("ImportLibrary").strip()
        if import_library:
            node.import_library = file_name(import_library).lower()
        if is_static:
            node.import_library = node.output_name

        for entry in definition.get_metadata_value("AdditionalDependencies").split(";"):
            entry = entry.strip()
            if not entry or entry.startswith("%"):
                continue
            name = file_name(project.expand_string(entry)).lower()
            if name and name not in node.input_libraries:
                node.input_libraries.append(name)

        pdb = definition.get_metadata_value("ProgramDatabaseFile").strip()
        if pdb:
            node.pdb_name = file_name(pdb).lower()

    def _gather_type_library(self, project: EvaluatedProject, node: ProjectNode) -> None:
        definition = project.get_item_definition("Midl")
        meta = definition.get_metadata("TypeLibraryName") if definition is not None else None
        if meta is None or meta.is_imported or not meta.value.strip():
            return

        compiles_idl = bool(project.get_items("Midl")) or any(
            ".idl" in item.include.lower() for item in project.get_items("CustomBuild")
        )
        if not compiles_idl:
            logger.debug(
                "%s names type library %s but compiles no IDL", node.file_name, meta.value
            )
            return
        node.type_library = file_name(project.expand_string(meta.value)).lower()

    def _check_framework_version(self, node: ProjectNode) -> None:
        expected = self.expected_framework_version
        if not expected or not node.framework_version:
            return
        if node.framework_version.strip().lower() != expected.strip().lower():
            logger.warning(
                "Managed native project %s targets framework %s instead of %s",
                node.full_path,
                node.framework_version,
                expected,
            )


def apply_scan_result(node: ProjectNode, result: ScanResult) -> None:
    """Merge scan findings into the node they were requested for."""
    for name in result.type_libraries:
        node.add_type_library_import(name)
    if node.is_managed:
        for name in result.reference_assemblies:
            node.add_reference_assembly(name)
