"""Run orchestration: ingest, analyze, emit, then correct descriptors.

Phases run strictly in this order:

1. pre-flight checks (search directory, manifest)
2. ingestion into the identity registry
3. ID resolution, graph construction and closure computation
4. solution, DGML and listing export
5. descriptor corrections (ID repairs, project references)

Descriptors are only written in the last phase, after every artifact
derived from them has been produced.
"""

import logging
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Generator, List, Optional, Set

from slngraph.config.schema import BuildConfig
from slngraph.export.dgml import export_dgml
from slngraph.export.manifests import export_debug_manifests
from slngraph.export.solution import export_solution
from slngraph.graph.builder import DependencyGraphBuilder
from slngraph.graph.closure import BuildClosureComputer
from slngraph.graph.manager import ProjectGraph
from slngraph.graph.registry import IdentityRegistry
from slngraph.graph.schema import BuildClosure, Duplicate, IdRepair
from slngraph.parsers.base import ConfigurationError
from slngraph.parsers.manifest import BuildManifest, ManifestLoader
from slngraph.parsers.msbuild.evaluator import MSBuildEvaluator
from slngraph.parsers.msbuild.protocols import ProjectEvaluator
from slngraph.runtime.corrections import CorrectionPlan
from slngraph.runtime.ingest import IngestStats, ProjectIngestor, discover_projects

logger = logging.getLogger("slngraph.runtime.pipeline")


@dataclass
class RunResult:
    """Everything a run produced."""

    graph: ProjectGraph
    closure: BuildClosure
    stats: IngestStats
    duplicates: List[Duplicate] = field(default_factory=list)
    repairs: List[IdRepair] = field(default_factory=list)
    edge_counts: Dict[str, int] = field(default_factory=dict)
    manifest: Optional[BuildManifest] = None
    solution_path: Optional[Path] = None
    dgml_path: Optional[Path] = None
    manifest_paths: List[Path] = field(default_factory=list)
    written_descriptors: List[str] = field(default_factory=list)
    timings: Dict[str, float] = field(default_factory=dict)


class SolutionBuilder:
    """Builds a solution for a source tree.

    Args:
        config: Run settings.
        evaluator: Descriptor evaluator; the reference evaluator when None.
    """

    def __init__(self, config: BuildConfig, evaluator: Optional[ProjectEvaluator] = None) -> None:
        self.config = config
        self.evaluator = evaluator or MSBuildEvaluator()
        self.registry = IdentityRegistry()
        self.corrections = CorrectionPlan(self.evaluator)
        self.timings: Dict[str, float] = {}

    @contextmanager
    def _phase(self, name: str) -> Generator[None, None, None]:
        start = time.perf_counter()
        logger.info("Phase %s started", name)
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            self.timings[name] = elapsed
            logger.info("Phase %s finished in %.2fs", name, elapsed)

    def preflight(self) -> None:
        """Check the inputs a run cannot do without.

        Raises:
            ConfigurationError: Missing search directory, manifest or
                solution path.
        """
        if not self.config.solution_path:
            raise ConfigurationError("No solution path given")
        search_dir = self.config.search_dir
        if not os.path.isdir(search_dir):
            raise ConfigurationError(f"Search directory {search_dir} does not exist")
        if not os.access(search_dir, os.R_OK | os.X_OK):
            raise ConfigurationError(f"Search directory {search_dir} is not readable")
        manifest = self.config.manifest_path
        if manifest is not None and not os.path.isfile(manifest):
            raise ConfigurationError(f"Build manifest {manifest} does not exist")

    def load_manifest(self) -> Optional[BuildManifest]:
        if self.config.manifest_path is None:
            return None
        loader = ManifestLoader(
            self.evaluator,
            items_name=self.config.items_name,
            extra_dependencies_item=self.config.extra_dependencies_item,
        )
        return loader.load(self.config.manifest_path, self.config.global_properties())

    def run(self) -> RunResult:
        """Execute every phase and return what was produced."""
        self.preflight()
        config = self.config

        with self._phase("manifest"):
            manifest = self.load_manifest()

        with self._phase("ingest"):
            paths = discover_projects(config.search_dir, config.project_patterns)
            ingestor = ProjectIngestor(
                self.evaluator,
                self.registry,
                global_properties=config.global_properties(),
                parallel=config.parallel,
                max_workers=config.max_workers,
                expected_framework_version=config.expected_framework_version,
            )
            stats = ingestor.ingest(paths)

        with self._phase("analyze"):
            repairs = self.registry.resolve_ids()
            for repair in repairs:
                self.corrections.schedule_id_repair(repair)
            graph = ProjectGraph(self.registry.nodes())
            edge_counts = DependencyGraphBuilder(graph).build(
                manifest.directives if manifest else ()
            )
            closure = BuildClosureComputer(graph).compute(
                manifest.seeds if manifest else None
            )

        result = RunResult(
            graph=graph,
            closure=closure,
            stats=stats,
            duplicates=self.registry.duplicates(),
            repairs=repairs,
            edge_counts=edge_counts,
            manifest=manifest,
        )

        with self._phase("export"):
            self._export(result)

        with self._phase("corrections"):
            if config.use_project_references:
                self._schedule_project_references(graph)
            result.written_descriptors = self.corrections.apply()

        result.timings = dict(self.timings)
        return result

    def _export(self, result: RunResult) -> None:
        config = self.config
        solution_path = Path(config.solution_path)
        result.solution_path = export_solution(
            result.graph,
            result.closure,
            solution_path,
            config.configuration,
            config.platform,
            inline_dependencies=not config.use_project_references,
        )
        if config.write_dgml:
            dgml_path = (
                Path(config.dgml_path) if config.dgml_path else solution_path.with_suffix(".dgml")
            )
            result.dgml_path = export_dgml(result.graph, dgml_path)
        if config.write_debug_manifests:
            debug_dir = Path(config.debug_dir) if config.debug_dir else solution_path.parent
            result.manifest_paths = export_debug_manifests(
                result.graph, result.closure, debug_dir
            )

    def _schedule_project_references(self, graph: ProjectGraph) -> None:
        assembly_names: Set[str] = {
            node.assembly_name.lower() for node in graph.nodes if node.assembly_name
        }
        for node in graph.nodes:
            self.corrections.schedule_project_references(
                node, graph.dependencies(node), assembly_names
            )
