"""Shared fixtures: descriptor writers, node factory and a fake project."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import pytest

from slngraph.graph.schema import ProjectKind, ProjectNode
from slngraph.parsers.msbuild.protocols import ItemDefinition, ProjectItem

MSBUILD_NS = "http://schemas.microsoft.com/developer/msbuild/2003"

Item = Tuple[str, str, Mapping[str, str]]


def _properties_xml(properties: Mapping[str, str], indent: str = "    ") -> str:
    return "\n".join(f"{indent}<{key}>{value}</{key}>" for key, value in properties.items())


def _items_xml(items: Iterable[Item]) -> str:
    lines: List[str] = []
    for item_type, include, metadata in items:
        if not metadata:
            lines.append(f'    <{item_type} Include="{include}" />')
            continue
        lines.append(f'    <{item_type} Include="{include}">')
        lines.append(_properties_xml(metadata, indent="      "))
        lines.append(f"    </{item_type}>")
    return "\n".join(lines)


def render_vcxproj(
    guid: str,
    configuration_type: str = "DynamicLibrary",
    properties: Optional[Mapping[str, str]] = None,
    definitions: Optional[Mapping[str, Mapping[str, str]]] = None,
    items: Iterable[Item] = (),
) -> str:
    definition_xml = ""
    if definitions:
        blocks = []
        for item_type, metadata in definitions.items():
            blocks.append(
                f"    <{item_type}>\n{_properties_xml(metadata, indent='      ')}\n    </{item_type}>"
            )
        definition_xml = "  <ItemDefinitionGroup>\n" + "\n".join(blocks) + "\n  </ItemDefinitionGroup>\n"
    return f"""<?xml version="1.0" encoding="utf-8"?>
<Project DefaultTargets="Build" ToolsVersion="4.0" xmlns="{MSBUILD_NS}">
  <PropertyGroup Label="Globals">
    <ProjectGuid>{guid}</ProjectGuid>
  </PropertyGroup>
  <Import Project="$(VCTargetsPath)\\Microsoft.Cpp.Default.props" />
  <PropertyGroup Label="Configuration">
    <ConfigurationType>{configuration_type}</ConfigurationType>
{_properties_xml(properties or {})}
  </PropertyGroup>
{definition_xml}  <ItemGroup>
{_items_xml(items)}
  </ItemGroup>
  <Import Project="$(VCTargetsPath)\\Microsoft.Cpp.targets" />
</Project>
"""


def render_csproj(
    guid: str,
    assembly_name: str,
    output_type: str = "Library",
    properties: Optional[Mapping[str, str]] = None,
    items: Iterable[Item] = (),
) -> str:
    return f"""<?xml version="1.0" encoding="utf-8"?>
<Project ToolsVersion="4.0" DefaultTargets="Build" xmlns="{MSBUILD_NS}">
  <!-- managed project -->
  <PropertyGroup>
    <ProjectGuid>{guid}</ProjectGuid>
    <OutputType>{output_type}</OutputType>
    <AssemblyName>{assembly_name}</AssemblyName>
{_properties_xml(properties or {})}
  </PropertyGroup>
  <ItemGroup>
{_items_xml(items)}
  </ItemGroup>
  <Import Project="$(MSBuildToolsPath)\\Microsoft.CSharp.targets" />
</Project>
"""


def render_manifest(
    projects: Iterable[str],
    extra: Iterable[Tuple[str, str]] = (),
    items_name: str = "Projects",
) -> str:
    lines = [f'    <{items_name} Include="{path}" />' for path in projects]
    for project, depends_on in extra:
        lines.append(f'    <ExtraDependencies Include="{project}">')
        lines.append(f"      <DependsOn>{depends_on}</DependsOn>")
        lines.append("    </ExtraDependencies>")
    body = "\n".join(lines)
    return f"""<?xml version="1.0" encoding="utf-8"?>
<Project xmlns="{MSBUILD_NS}">
  <ItemGroup>
{body}
  </ItemGroup>
</Project>
"""


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def write_vcxproj():
    """Factory writing a native descriptor; returns its path."""

    def _factory(path: Path, guid: str, **kwargs) -> Path:
        return _write(path, render_vcxproj(guid, **kwargs))

    return _factory


@pytest.fixture
def write_csproj():
    """Factory writing a managed descriptor; returns its path."""

    def _factory(path: Path, guid: str, assembly_name: str, **kwargs) -> Path:
        return _write(path, render_csproj(guid, assembly_name, **kwargs))

    return _factory


@pytest.fixture
def write_manifest():
    """Factory writing a build manifest; returns its path."""

    def _factory(path: Path, projects: Iterable[str], **kwargs) -> Path:
        return _write(path, render_manifest(projects, **kwargs))

    return _factory


@pytest.fixture
def make_node():
    """Factory for ProjectNode objects that need no descriptor on disk."""

    def _factory(
        full_path: str,
        kind: ProjectKind = ProjectKind.NATIVE,
        output_path: Optional[str] = None,
        declared_id: str = "",
        **fields,
    ) -> ProjectNode:
        stem = os.path.splitext(os.path.basename(full_path))[0]
        ext = ".dll"
        output_name = fields.pop("output_name", f"{stem}{ext}".lower())
        return ProjectNode(
            full_path=full_path,
            declared_id=declared_id,
            display_name=stem,
            kind=kind,
            output_name=output_name,
            output_path=output_path
            if output_path is not None
            else os.path.join(os.path.dirname(full_path), "bin", output_name),
            assembly_name=fields.pop("assembly_name", stem),
            is_managed=fields.pop("is_managed", kind == ProjectKind.MANAGED),
            **fields,
        )

    return _factory


class FakeProject:
    """In-memory stand-in for an evaluated descriptor."""

    def __init__(
        self,
        full_path: str,
        properties: Optional[Mapping[str, str]] = None,
        items: Iterable[ProjectItem] = (),
        definitions: Iterable[ItemDefinition] = (),
    ) -> None:
        self.full_path = str(full_path)
        self.directory_path = os.path.dirname(self.full_path)
        self.properties: Dict[str, str] = {k.lower(): v for k, v in (properties or {}).items()}
        self.items: List[ProjectItem] = list(items)
        self.definitions = {d.item_type.lower(): d for d in definitions}
        for item in self.items:
            if item.definition is None:
                item.definition = self.definitions.get(item.item_type.lower())
        self.saved = 0

    def get_property(self, name: str) -> Optional[str]:
        return self.properties.get(name.lower())

    def get_property_value(self, name: str) -> str:
        return self.properties.get(name.lower(), "")

    def get_items(self, item_type: str) -> List[ProjectItem]:
        return [i for i in self.items if i.item_type.lower() == item_type.lower()]

    def get_all_items(self) -> List[ProjectItem]:
        return list(self.items)

    def get_item_definition(self, item_type: str) -> Optional[ItemDefinition]:
        return self.definitions.get(item_type.lower())

    def expand_string(self, text: str) -> str:
        return re.sub(
            r"\$\(([^)]*)\)", lambda m: self.get_property_value(m.group(1)), text
        )

    def set_property(self, name: str, value: str) -> None:
        self.properties[name.lower()] = value

    def remove_item(self, item: ProjectItem) -> None:
        self.items = [i for i in self.items if i is not item]

    def add_item(self, item_type, include, metadata=None, group=None) -> ProjectItem:
        item = ProjectItem(
            item_type=item_type,
            include=include,
            metadata=dict(metadata or {}),
            group=group if group is not None else "new-group",
        )
        self.items.append(item)
        return item


class FakeEvaluator:
    """Evaluator returning prepared FakeProject instances."""

    def __init__(self, projects: Iterable[FakeProject] = ()) -> None:
        self.projects = {os.path.normpath(p.full_path): p for p in projects}
        self.saved: List[str] = []

    def expand(self, path, global_properties=None) -> FakeProject:
        return self.projects[os.path.normpath(str(path))]

    def save(self, project: FakeProject) -> None:
        project.saved += 1
        self.saved.append(project.full_path)


@pytest.fixture
def fake_project():
    """The FakeProject class, for building evaluated projects in memory."""
    return FakeProject


@pytest.fixture
def fake_evaluator():
    """The FakeEvaluator class."""
    return FakeEvaluator
