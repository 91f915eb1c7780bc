"""Interfaces between the analysis core and an MSBuild evaluator.

The core never touches descriptor XML directly. It only consumes the
evaluated view described here, so tests can substitute a hand-built fake
and production code can use :class:`MSBuildEvaluator`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol


@dataclass
class MetadataValue:
    """Evaluated metadata of an item definition."""

    name: str
    value: str
    is_imported: bool = False


@dataclass
class ItemDefinition:
    """Default metadata applied to every item of one item type."""

    item_type: str
    metadata: Dict[str, MetadataValue] = field(default_factory=dict)

    def get_metadata(self, name: str) -> Optional[MetadataValue]:
        return self.metadata.get(name.lower())

    def get_metadata_value(self, name: str) -> str:
        meta = self.get_metadata(name)
        return meta.value if meta is not None else ""

    def set_metadata(self, name: str, value: str, is_imported: bool = False) -> None:
        self.metadata[name.lower()] = MetadataValue(name, value, is_imported)


@dataclass
class ProjectItem:
    """One evaluated item such as ``<ClCompile Include="a.cpp" />``.

    ``metadata`` holds only the metadata written on the item itself;
    :meth:`get_metadata_value` falls back to the item definition.
    """

    item_type: str
    include: str
    metadata: Dict[str, str] = field(default_factory=dict)
    definition: Optional[ItemDefinition] = field(default=None, repr=False)
    imported: bool = False
    element: Any = field(default=None, repr=False, compare=False)
    group: Any = field(default=None, repr=False, compare=False)

    def get_direct_metadata(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key, value in self.metadata.items():
            if key.lower() == lowered:
                return value
        return None

    def get_metadata_value(self, name: str) -> str:
        direct = self.get_direct_metadata(name)
        if direct is not None:
            return direct
        if self.definition is not None:
            return self.definition.get_metadata_value(name)
        return ""


class EvaluatedProject(Protocol):
    """Evaluated, mutable view of one descriptor."""

    full_path: str
    directory_path: str

    def get_property(self, name: str) -> Optional[str]:
        """Return the property value or None when it was never defined."""

    def get_property_value(self, name: str) -> str:
        """Return the property value or an empty string."""

    def get_items(self, item_type: str) -> List[ProjectItem]:
        ...

    def get_all_items(self) -> List[ProjectItem]:
        ...

    def get_item_definition(self, item_type: str) -> Optional[ItemDefinition]:
        ...

    def expand_string(self, text: str) -> str:
        ...

    def set_property(self, name: str, value: str) -> None:
        ...

    def remove_item(self, item: ProjectItem) -> None:
        ...

    def add_item(
        self,
        item_type: str,
        include: str,
        metadata: Optional[Mapping[str, str]] = None,
        group: Any = None,
    ) -> ProjectItem:
        ...


class ProjectEvaluator(Protocol):
    """Loads descriptors and persists changes made to them."""

    def expand(
        self, path: str, global_properties: Optional[Mapping[str, str]] = None
    ) -> EvaluatedProject:
        """Evaluate a descriptor. Raises DescriptorError when it is unusable."""

    def save(self, project: EvaluatedProject) -> None:
        """Write the project's in-memory state back to its file."""
