"""Reference MSBuild evaluator built on ``xml.etree.ElementTree``.

Evaluation follows the MSBuild pass order closely enough for dependency
analysis:

1. properties and imports, in document order (``Choose`` included)
2. item definitions, after all properties are final
3. items, with wildcards, ``Exclude`` and ``Remove``

Built-in defaults stand in for the SDK and VC targets that are not
available outside Visual Studio, so a ``.vcxproj`` evaluates to the same
``TargetExt``, ``TargetPath`` and ``Link`` metadata a build would use.
Projects keep their parsed tree (comments included) so they can be
modified and saved back.
"""

from __future__ import annotations

import glob
import logging
import os
import re
import xml.etree.ElementTree as ET
from typing import Callable, Dict, List, Mapping, Optional, Set, Tuple

from slngraph.parsers.base import DescriptorError
from slngraph.parsers.msbuild.conditions import ConditionError, ConditionEvaluator
from slngraph.parsers.msbuild.protocols import ItemDefinition, ProjectItem
from slngraph.utils.path_utils import resolve_path

logger = logging.getLogger("slngraph.parsers.msbuild.evaluator")

_PROPERTY_RE = re.compile(r"\$\(\s*([A-Za-z_][\w.\-]*)\s*\)")
_METADATA_RE = re.compile(r"%\(\s*([A-Za-z_][\w.\-]*)\s*\)")
_WILDCARD_CHARS = ("*", "?")

NATIVE = "native"
MANAGED = "managed"

NATIVE_EXTENSIONS = (".vcxproj",)
MANAGED_EXTENSIONS = (".csproj", ".vbproj", ".fsproj")

_NATIVE_TARGET_EXT = {
    "application": ".exe",
    "dynamiclibrary": ".dll",
    "staticlibrary": ".lib",
    "makefile": "",
    "utility": "",
}
_MANAGED_TARGET_EXT = {
    "library": ".dll",
    "exe": ".exe",
    "winexe": ".exe",
    "appcontainerexe": ".exe",
    "module": ".netmodule",
}

_NATIVE_DEFAULT_LIBS = (
    "kernel32.lib;user32.lib;gdi32.lib;winspool.lib;comdlg32.lib;advapi32.lib;"
    "shell32.lib;ole32.lib;oleaut32.lib;uuid.lib;odbc32.lib;odbccp32.lib"
)

_NATIVE_ITEM_DEFINITIONS: Dict[str, Dict[str, str]] = {
    "ClCompile": {"CompileAsManaged": "false"},
    "Link": {
        "AdditionalDependencies": _NATIVE_DEFAULT_LIBS,
        "ImportLibrary": "$(OutDir)$(TargetName).lib",
        "ProgramDatabaseFile": "$(OutDir)$(TargetName).pdb",
    },
    "Lib": {
        "AdditionalDependencies": "",
        "OutputFile": "$(OutDir)$(TargetName)$(TargetExt)",
    },
    "Midl": {"TypeLibraryName": "$(IntDir)$(TargetName).tlb"},
}

_ITEM_ATTRIBUTES = {
    "include",
    "exclude",
    "remove",
    "update",
    "condition",
    "keepmetadata",
    "removemetadata",
    "keepduplicates",
    "matchonmetadata",
    "matchonmetadataoptions",
}

_SDK_EXCLUDED_DIRS = ("bin", "obj")


def project_kind(path: str) -> Optional[str]:
    """Classify a descriptor by its extension."""
    ext = os.path.splitext(path)[1].lower()
    if ext in NATIVE_EXTENSIONS:
        return NATIVE
    if ext in MANAGED_EXTENSIONS:
        return MANAGED
    return None


def _local(tag: str) -> str:
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


def _detect_namespace(root: ET.Element) -> str:
    if root.tag.startswith("{"):
        return root.tag.split("}")[0][1:]
    return ""


def _is_element(node: ET.Element) -> bool:
    # Comments and processing instructions carry a callable tag.
    return isinstance(node.tag, str)


def _append_child(parent: ET.Element, tag: str) -> ET.Element:
    existing = list(parent)
    child = ET.SubElement(parent, tag)
    if existing:
        last = existing[-1]
        child.tail = last.tail
        last.tail = parent.text
    return child


def _parse_xml(path: str) -> ET.ElementTree:
    parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True))
    try:
        return ET.parse(path, parser=parser)
    except (OSError, ET.ParseError) as exc:
        raise DescriptorError(f"Failed to load {path}: {exc}") from exc


class MSBuildProject:
    """Evaluated descriptor with write-back support."""

    def __init__(
        self,
        full_path: str,
        tree: ET.ElementTree,
        global_properties: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.full_path = full_path
        self.directory_path = os.path.dirname(full_path)
        self.kind = project_kind(full_path)
        self.imports: List[str] = []
        self.dirty = False
        self._tree = tree
        self._root = tree.getroot()
        self._ns = _detect_namespace(self._root)
        self._globals: Dict[str, str] = {
            key.lower(): value for key, value in (global_properties or {}).items()
        }
        self._properties: Dict[str, str] = {}
        self._item_definitions: Dict[str, ItemDefinition] = {}
        self._items: List[ProjectItem] = []
        self._sequence: List[Tuple[ET.Element, str, bool]] = []
        self._imported: Set[str] = set()

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------
    def evaluate(self) -> None:
        """Run the property, item definition and item passes."""
        self._properties = {}
        self._sequence = []
        self._imported = {os.path.normcase(self.full_path)}
        self.imports = []
        self._apply_early_defaults()
        self._walk(self._root, self.full_path, imported=False)
        self._apply_late_defaults()
        self._evaluate_item_definitions()
        self._evaluate_items()

    def _walk(self, container: ET.Element, source: str, imported: bool) -> None:
        for child in container:
            if not _is_element(child):
                continue
            tag = _local(child.tag)
            if tag == "PropertyGroup":
                if self._condition(child, source):
                    self._evaluate_property_group(child, source)
            elif tag == "Import":
                if self._condition(child, source):
                    self._import(child, source)
            elif tag == "ImportGroup":
                if self._condition(child, source):
                    for element in child:
                        if (
                            _is_element(element)
                            and _local(element.tag) == "Import"
                            and self._condition(element, source)
                        ):
                            self._import(element, source)
            elif tag == "Choose":
                branch = self._choose(child, source)
                if branch is not None:
                    self._walk(branch, source, imported)
            elif tag in ("ItemGroup", "ItemDefinitionGroup"):
                self._sequence.append((child, source, imported))

    def _evaluate_property_group(self, group: ET.Element, source: str) -> None:
        for prop in group:
            if not _is_element(prop) or not self._condition(prop, source):
                continue
            name = _local(prop.tag)
            if name.lower() in self._globals:
                continue
            self._properties[name.lower()] = self._expand(prop.text or "", source).strip()

    def _import(self, element: ET.Element, source: str) -> None:
        import_path = self._expand(element.get("Project", ""), source).strip()
        if not import_path:
            return
        resolved = resolve_path(import_path, os.path.dirname(source))
        if any(ch in resolved for ch in _WILDCARD_CHARS):
            candidates = sorted(glob.glob(resolved))
        elif os.path.isfile(resolved):
            candidates = [resolved]
        else:
            logger.debug("Import %s of %s not found, skipping", resolved, source)
            return
        for path in candidates:
            key = os.path.normcase(path)
            if key in self._imported:
                logger.debug("Import %s already evaluated, skipping", path)
                continue
            self._imported.add(key)
            self.imports.append(path)
            tree = _parse_xml(path)
            self._walk(tree.getroot(), path, imported=True)

    def _choose(self, element: ET.Element, source: str) -> Optional[ET.Element]:
        for branch in element:
            if not _is_element(branch):
                continue
            tag = _local(branch.tag)
            if tag == "When" and self._condition(branch, source):
                return branch
            if tag == "Otherwise":
                return branch
        return None

    def _apply_early_defaults(self) -> None:
        self._set_default("Configuration", "Debug")
        if self.kind == NATIVE:
            self._set_default("Platform", "Win32")
            self._set_default("ProjectName", "$(MSBuildProjectName)")
            self._set_default("ProjectDir", "$(MSBuildProjectDirectory)" + os.sep)
            self._set_default("SolutionDir", "$(ProjectDir)")
        elif self.kind == MANAGED:
            self._set_default("Platform", "AnyCPU")
            self._set_default("ProjectName", "$(MSBuildProjectName)")

    def _apply_late_defaults(self) -> None:
        if self.kind == NATIVE:
            self._set_default("ConfigurationType", "Application")
            self._set_default("TargetName", "$(ProjectName)")
            self._set_default("CLRSupport", "false")
            self._set_default("IntDir", "$(Configuration)\\")
            self._set_default("OutDir", "$(SolutionDir)$(Configuration)\\")
            config_type = self.get_property_value("ConfigurationType").lower()
            self._set_default("TargetExt", _NATIVE_TARGET_EXT.get(config_type, ".exe"))
            out_dir = self.get_property_value("OutDir")
        elif self.kind == MANAGED:
            self._set_default("AssemblyName", "$(MSBuildProjectName)")
            self._set_default("OutputType", "Library")
            self._set_default("OutputPath", "bin\\$(Configuration)\\")
            output_type = self.get_property_value("OutputType").lower()
            self._set_default("TargetExt", _MANAGED_TARGET_EXT.get(output_type, ".dll"))
            self._set_default("TargetName", "$(AssemblyName)")
            out_dir = self.get_property_value("OutputPath")
        else:
            return
        target_dir = resolve_path(out_dir, self.directory_path) if out_dir else self.directory_path
        self._set_default("TargetDir", target_dir + os.sep)
        self._set_default(
            "TargetPath",
            os.path.join(
                target_dir,
                self.get_property_value("TargetName") + self.get_property_value("TargetExt"),
            ),
        )

    def _set_default(self, name: str, value: str) -> None:
        lowered = name.lower()
        if lowered in self._globals or self._properties.get(lowered):
            return
        self._properties[lowered] = self._expand(value)

    def _evaluate_item_definitions(self) -> None:
        self._item_definitions = {}
        if self.kind == NATIVE:
            for item_type, defaults in _NATIVE_ITEM_DEFINITIONS.items():
                definition = self._definition(item_type)
                for name, value in defaults.items():
                    definition.set_metadata(name, self._expand(value), is_imported=True)

        for element, source, imported in self._sequence:
            if _local(element.tag) != "ItemDefinitionGroup":
                continue
            if not self._condition(element, source):
                continue
            for item_el in element:
                if not _is_element(item_el) or not self._condition(item_el, source):
                    continue
                definition = self._definition(_local(item_el.tag))
                for meta_el in item_el:
                    if not _is_element(meta_el) or not self._condition(meta_el, source):
                        continue
                    value = self._expand(
                        meta_el.text or "", source, metadata=definition.get_metadata_value
                    )
                    definition.set_metadata(
                        _local(meta_el.tag), value.strip(), is_imported=imported
                    )

    def _definition(self, item_type: str) -> ItemDefinition:
        key = item_type.lower()
        if key not in self._item_definitions:
            self._item_definitions[key] = ItemDefinition(item_type)
        return self._item_definitions[key]

    def _evaluate_items(self) -> None:
        self._items = []
        self._add_sdk_default_items()
        for element, source, imported in self._sequence:
            if _local(element.tag) != "ItemGroup":
                continue
            if not self._condition(element, source):
                continue
            for item_el in element:
                if not _is_element(item_el) or not self._condition(item_el, source):
                    continue
                self._evaluate_item(item_el, element, source, imported)

    def _add_sdk_default_items(self) -> None:
        if self.kind != MANAGED or not self._root.get("Sdk"):
            return
        if self.get_property_value("EnableDefaultCompileItems").lower() == "false":
            return
        for value in self._expand_includes("**\\*.cs"):
            if self._under_excluded_dir(value):
                continue
            self._items.append(
                ProjectItem(
                    item_type="Compile",
                    include=value,
                    definition=self._item_definitions.get("compile"),
                    imported=True,
                )
            )

    @staticmethod
    def _under_excluded_dir(value: str) -> bool:
        first = value.replace("\\", "/").split("/", 1)[0].lower()
        return first in _SDK_EXCLUDED_DIRS

    def _evaluate_item(
        self, item_el: ET.Element, group: ET.Element, source: str, imported: bool
    ) -> None:
        item_type = _local(item_el.tag)
        remove = item_el.get("Remove")
        if remove is not None:
            targets = {
                self._item_key(value)
                for value in self._expand_includes(self._expand(remove, source))
            }
            self._items = [
                item
                for item in self._items
                if item.item_type.lower() != item_type.lower()
                or self._item_key(item.include) not in targets
            ]
            return

        include = item_el.get("Include")
        if include is None:
            return
        excludes = {
            self._item_key(value)
            for value in self._expand_includes(self._expand(item_el.get("Exclude", ""), source))
        }
        metadata = self._item_metadata(item_el, source)
        definition = self._item_definitions.get(item_type.lower())
        for value in self._expand_includes(self._expand(include, source)):
            if self._item_key(value) in excludes:
                continue
            self._items.append(
                ProjectItem(
                    item_type=item_type,
                    include=value,
                    metadata=dict(metadata),
                    definition=definition,
                    imported=imported,
                    element=item_el,
                    group=group,
                )
            )

    def _item_metadata(self, item_el: ET.Element, source: str) -> Dict[str, str]:
        metadata: Dict[str, str] = {}
        for name, value in item_el.attrib.items():
            if name.lower() not in _ITEM_ATTRIBUTES:
                metadata[name] = self._expand(value, source)
        for meta_el in item_el:
            if not _is_element(meta_el) or not self._condition(meta_el, source):
                continue
            metadata[_local(meta_el.tag)] = self._expand(meta_el.text or "", source).strip()
        return metadata

    def _expand_includes(self, text: str) -> List[str]:
        values: List[str] = []
        for part in text.split(";"):
            part = part.strip()
            if not part:
                continue
            if not any(ch in part for ch in _WILDCARD_CHARS):
                values.append(part)
                continue
            pattern = resolve_path(part, self.directory_path)
            for match in sorted(glob.glob(pattern, recursive=True)):
                if os.path.isfile(match):
                    values.append(os.path.relpath(match, self.directory_path))
        return values

    def _item_key(self, value: str) -> str:
        return resolve_path(value, self.directory_path).lower()

    def _condition(self, element: ET.Element, source: str) -> bool:
        condition = element.get("Condition")
        if condition is None:
            return True
        evaluator = ConditionEvaluator(
            lambda text: self._expand(text, source), self.directory_path
        )
        try:
            return evaluator.evaluate(condition)
        except ConditionError as exc:
            raise DescriptorError(
                f"{source}: invalid condition {condition!r}: {exc}"
            ) from exc

    # ------------------------------------------------------------------
    # Expansion
    # ------------------------------------------------------------------
    def _expand(
        self,
        text: str,
        source: Optional[str] = None,
        metadata: Optional[Callable[[str], str]] = None,
    ) -> str:
        if not text:
            return ""
        result = _PROPERTY_RE.sub(lambda m: self._lookup(m.group(1), source), text)
        if metadata is not None:
            result = _METADATA_RE.sub(lambda m: metadata(m.group(1)), result)
        return result

    def _lookup(self, name: str, source: Optional[str]) -> str:
        value = self._property(name, source)
        if value is not None:
            return value
        return os.environ.get(name, "")

    def _property(self, name: str, source: Optional[str] = None) -> Optional[str]:
        lowered = name.lower()
        if lowered in self._globals:
            return self._globals[lowered]
        reserved = self._reserved(lowered, source)
        if reserved is not None:
            return reserved
        return self._properties.get(lowered)

    def _reserved(self, lowered: str, source: Optional[str]) -> Optional[str]:
        if not lowered.startswith("msbuild"):
            return None
        this_file = source or self.full_path
        project_file = os.path.basename(self.full_path)
        values = {
            "msbuildprojectfullpath": self.full_path,
            "msbuildprojectdirectory": self.directory_path,
            "msbuildprojectfile": project_file,
            "msbuildprojectname": os.path.splitext(project_file)[0],
            "msbuildprojectextension": os.path.splitext(project_file)[1],
            "msbuildthisfile": os.path.basename(this_file),
            "msbuildthisfilename": os.path.splitext(os.path.basename(this_file))[0],
            "msbuildthisfilefullpath": this_file,
            "msbuildthisfiledirectory": os.path.dirname(this_file) + os.sep,
        }
        return values.get(lowered)

    # ------------------------------------------------------------------
    # Evaluated view
    # ------------------------------------------------------------------
    def get_property(self, name: str) -> Optional[str]:
        return self._property(name)

    def get_property_value(self, name: str) -> str:
        return self._property(name) or ""

    def get_items(self, item_type: str) -> List[ProjectItem]:
        lowered = item_type.lower()
        return [item for item in self._items if item.item_type.lower() == lowered]

    def get_all_items(self) -> List[ProjectItem]:
        return list(self._items)

    def get_item_definition(self, item_type: str) -> Optional[ItemDefinition]:
        return self._item_definitions.get(item_type.lower())

    def expand_string(self, text: str) -> str:
        return self._expand(text)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def _qualify(self, tag: str) -> str:
        return f"{{{self._ns}}}{tag}" if self._ns else tag

    def set_property(self, name: str, value: str) -> None:
        """Set a property in the project file itself, adding it if absent."""
        lowered = name.lower()
        target: Optional[ET.Element] = None
        for group in self._root:
            if not _is_element(group) or _local(group.tag) != "PropertyGroup":
                continue
            for prop in group:
                if _is_element(prop) and _local(prop.tag).lower() == lowered:
                    target = prop
                    break
            if target is not None:
                break

        if target is None:
            group = next(
                (
                    g
                    for g in self._root
                    if _is_element(g)
                    and _local(g.tag) == "PropertyGroup"
                    and g.get("Condition") is None
                ),
                None,
            )
            if group is None:
                group = _append_child(self._root, self._qualify("PropertyGroup"))
            target = _append_child(group, self._qualify(name))

        target.text = value
        if lowered not in self._globals:
            self._properties[lowered] = value
        self.dirty = True

    def remove_item(self, item: ProjectItem) -> None:
        """Remove an item element that lives in the project file."""
        if item.imported or item.element is None or item.group is None:
            raise ValueError(f"Item {item.include!r} is not defined in {self.full_path}")
        if any(child is item.element for child in item.group):
            item.group.remove(item.element)
        self._items = [
            existing for existing in self._items if existing.element is not item.element
        ]
        self.dirty = True

    def add_item(
        self,
        item_type: str,
        include: str,
        metadata: Optional[Mapping[str, str]] = None,
        group: Optional[ET.Element] = None,
    ) -> ProjectItem:
        """Append an item, creating a new ItemGroup when none is given."""
        if group is None:
            group = _append_child(self._root, self._qualify("ItemGroup"))
        element = _append_child(group, self._qualify(item_type))
        element.set("Include", include)
        for name, value in (metadata or {}).items():
            meta = _append_child(element, self._qualify(name))
            meta.text = value
        item = ProjectItem(
            item_type=item_type,
            include=include,
            metadata=dict(metadata or {}),
            definition=self._item_definitions.get(item_type.lower()),
            element=element,
            group=group,
        )
        self._items.append(item)
        self.dirty = True
        return item

    def save(self, path: Optional[str] = None) -> None:
        """Write the tree back to disk."""
        target = path or self.full_path
        if self._ns:
            ET.register_namespace("", self._ns)
        try:
            self._tree.write(target, encoding="utf-8", xml_declaration=True)
        except OSError as exc:
            raise DescriptorError(f"Failed to save {target}: {exc}") from exc
        self.dirty = False
        logger.debug("Saved %s", target)


class MSBuildEvaluator:
    """Evaluates descriptors into :class:`MSBuildProject` handles.

    Args:
        global_properties: Properties applied to every evaluation. They win
            over any definition in the descriptor or its imports.
    """

    def __init__(self, global_properties: Optional[Mapping[str, str]] = None) -> None:
        self.global_properties: Dict[str, str] = dict(global_properties or {})

    def expand(
        self, path: str, global_properties: Optional[Mapping[str, str]] = None
    ) -> MSBuildProject:
        properties = dict(self.global_properties)
        properties.update(global_properties or {})
        full_path = os.path.abspath(str(path))
        tree = _parse_xml(full_path)
        if _local(tree.getroot().tag) != "Project":
            raise DescriptorError(f"{full_path} is not an MSBuild project")
        project = MSBuildProject(full_path, tree, properties)
        project.evaluate()
        logger.debug(
            "Evaluated %s (%d imports, %d items)",
            full_path,
            len(project.imports),
            len(project.get_all_items()),
        )
        return project

    def save(self, project: MSBuildProject) -> None:
        project.save()
