"""Finds source files that no project descriptor includes."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Set

from slngraph.parsers.base import DescriptorError
from slngraph.parsers.msbuild.evaluator import MSBuildEvaluator
from slngraph.parsers.msbuild.protocols import ProjectEvaluator
from slngraph.runtime.ingest import discover_projects
from slngraph.utils.path_utils import path_key, resolve_path

logger = logging.getLogger("slngraph.analysis.orphans")

SOURCE_PATTERNS = (
    "*.cs",
    "*.c",
    "*.cc",
    "*.cpp",
    "*.cxx",
    "*.h",
    "*.hh",
    "*.hpp",
    "*.hxx",
)


@dataclass
class OrphanReport:
    """Outcome of an orphan search."""

    orphans: List[str] = field(default_factory=list)
    projects: int = 0
    bad_projects: List[str] = field(default_factory=list)


class OrphanFinder:
    """Compares the sources on disk with the items of every descriptor.

    Args:
        evaluator: Descriptor evaluator; the reference evaluator when None.
        global_properties: Properties descriptors are evaluated with.
        project_patterns: File patterns identifying descriptors.
        source_patterns: File patterns identifying source files.
    """

    def __init__(
        self,
        evaluator: Optional[ProjectEvaluator] = None,
        global_properties: Optional[Mapping[str, str]] = None,
        project_patterns: Sequence[str] = ("*.csproj", "*.vcxproj"),
        source_patterns: Sequence[str] = SOURCE_PATTERNS,
    ) -> None:
        self.evaluator = evaluator or MSBuildEvaluator()
        self.global_properties = dict(global_properties or {})
        self.project_patterns = list(project_patterns)
        self.source_patterns = list(source_patterns)

    def find(self, search_dir: str) -> OrphanReport:
        """List sources under ``search_dir`` that no descriptor includes.

        Returns:
            OrphanReport: Orphans sorted by path.
        """
        report = OrphanReport()
        included: Set[str] = set()
        for path in discover_projects(search_dir, self.project_patterns):
            try:
                project = self.evaluator.expand(path, self.global_properties)
            except DescriptorError as exc:
                logger.error("Invalid project file %s: %s", path, exc)
                report.bad_projects.append(path)
                continue
            report.projects += 1
            for item in project.get_all_items():
                included.add(path_key(resolve_path(item.include, project.directory_path)))

        sources: Set[str] = set()
        for pattern in self.source_patterns:
            for source in Path(search_dir).rglob(pattern):
                if source.is_file():
                    sources.add(os.path.normpath(str(source.resolve())))

        report.orphans = sorted(s for s in sources if path_key(s) not in included)
        logger.info(
            "Found %d orphaned sources among %d files in %d projects",
            len(report.orphans),
            len(sources),
            report.projects,
        )
        return report
