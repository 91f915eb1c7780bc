"""Build manifest loader.

The manifest is itself an MSBuild file. Items of one configurable type
(``Projects`` by default) name the official build entry points, and
``ExtraDependencies`` items add dependencies inference cannot see::

    <ItemGroup>
      <Projects Include="src\\app\\app.vcxproj" />
      <ExtraDependencies Include="src\\app\\app.vcxproj">
        <DependsOn>tools\\gen\\gen.csproj</DependsOn>
      </ExtraDependencies>
    </ItemGroup>

Relative paths resolve against the manifest's directory.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from slngraph.graph.schema import ExtraDependencyDirective
from slngraph.parsers.base import ConfigurationError, DescriptorError, ManifestEntryError
from slngraph.parsers.msbuild.protocols import ProjectEvaluator
from slngraph.utils.path_utils import resolve_path

logger = logging.getLogger("slngraph.parsers.manifest")


@dataclass
class BuildManifest:
    """Seeds and override directives read from a manifest."""

    path: str
    seeds: List[str] = field(default_factory=list)
    directives: List[ExtraDependencyDirective] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)


class ManifestLoader:
    """Reads a build manifest through the project evaluator.

    Args:
        evaluator: Evaluator used to expand the manifest.
        items_name: Item type listing the build entry points.
        extra_dependencies_item: Item type carrying override directives.
    """

    def __init__(
        self,
        evaluator: ProjectEvaluator,
        items_name: str = "Projects",
        extra_dependencies_item: str = "ExtraDependencies",
    ) -> None:
        self.evaluator = evaluator
        self.items_name = items_name
        self.extra_dependencies_item = extra_dependencies_item

    def load(
        self, path: str, global_properties: Optional[Mapping[str, str]] = None
    ) -> BuildManifest:
        """Load seeds and directives.

        Raises:
            ConfigurationError: The manifest is missing or cannot be evaluated.
        """
        full_path = os.path.abspath(path)
        if not os.path.isfile(full_path):
            raise ConfigurationError(f"Build manifest not found: {full_path}")
        try:
            project = self.evaluator.expand(full_path, global_properties)
        except DescriptorError as exc:
            raise ConfigurationError(f"Cannot read build manifest {full_path}: {exc}") from exc

        manifest = BuildManifest(path=full_path)
        base_dir = os.path.dirname(full_path)

        for item in project.get_items(self.items_name):
            try:
                seed = self._resolve_entry(item.include, base_dir)
            except ManifestEntryError as exc:
                logger.error("%s", exc)
                manifest.missing.append(item.include)
                continue
            if seed not in manifest.seeds:
                manifest.seeds.append(seed)

        for item in project.get_items(self.extra_dependencies_item):
            depends_on = item.get_metadata_value("DependsOn").strip()
            if not depends_on:
                logger.error(
                    "%s entry %s has no DependsOn metadata",
                    self.extra_dependencies_item,
                    item.include,
                )
                continue
            manifest.directives.append(
                ExtraDependencyDirective(
                    project_file=resolve_path(item.include, base_dir),
                    depends_on=resolve_path(depends_on, base_dir),
                )
            )

        logger.info(
            "Loaded manifest %s: %d seeds, %d extra dependencies",
            full_path,
            len(manifest.seeds),
            len(manifest.directives),
        )
        return manifest

    @staticmethod
    def _resolve_entry(include: str, base_dir: str) -> str:
        path = resolve_path(include, base_dir)
        if not os.path.isfile(path):
            raise ManifestEntryError(f"Project {path} in build manifest does not exist")
        return path
