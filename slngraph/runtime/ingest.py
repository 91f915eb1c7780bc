"""Descriptor discovery and ingestion.

Every descriptor becomes one task: evaluate it, build its node, scan its
sources and offer the node to the identity registry. Tasks run on one
worker and their per-file source scans on a second one, so a descriptor
task never waits on the pool it occupies.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Sequence

from slngraph.graph.registry import IdentityRegistry
from slngraph.parsers.msbuild.protocols import ProjectEvaluator
from slngraph.parsers.project_model import ProjectModelBuilder, apply_scan_result
from slngraph.parsers.source_scan import SourceScanOracle
from slngraph.runtime.worker import Task, Worker

logger = logging.getLogger("slngraph.runtime.ingest")


@dataclass
class IngestStats:
    """Counts gathered while ingesting descriptors."""

    found: int = 0
    valid: int = 0
    bad: int = 0
    managed: int = 0
    native: int = 0
    rejected: int = 0
    scan_failures: int = 0
    bad_files: List[str] = field(default_factory=list)


def discover_projects(search_dir: str, patterns: Sequence[str]) -> List[str]:
    """Find descriptors below ``search_dir``.

    Returns:
        List[str]: Absolute, normalized paths sorted lexically.
    """
    root = Path(search_dir)
    found = set()
    for pattern in patterns:
        for path in root.rglob(pattern):
            if path.is_file():
                found.add(os.path.normpath(str(path.resolve())))
    paths = sorted(found)
    logger.info("Found %d project files under %s", len(paths), search_dir)
    return paths


class ProjectIngestor:
    """Evaluates descriptors and registers the resulting nodes.

    Args:
        evaluator: Descriptor evaluator.
        registry: Registry receiving the nodes.
        global_properties: Properties every descriptor is evaluated with.
        parallel: Use thread pools for descriptors and scans.
        max_workers: Threads per pool.
        expected_framework_version: See :class:`ProjectModelBuilder`.
    """

    def __init__(
        self,
        evaluator: ProjectEvaluator,
        registry: IdentityRegistry,
        global_properties: Optional[Mapping[str, str]] = None,
        parallel: bool = False,
        max_workers: int = 8,
        expected_framework_version: Optional[str] = None,
    ) -> None:
        self.evaluator = evaluator
        self.registry = registry
        self.global_properties = dict(global_properties or {})
        self.parallel = parallel
        self.max_workers = max_workers
        self.model_builder = ProjectModelBuilder(expected_framework_version)
        self.scanner = SourceScanOracle()

    def ingest(self, paths: Iterable[str]) -> IngestStats:
        """Ingest descriptors; failures are logged and counted, never raised."""
        paths = list(paths)
        stats = IngestStats(found=len(paths))
        with Worker(self.max_workers, self.parallel, name="ingest") as worker, Worker(
            self.max_workers, self.parallel, name="scan"
        ) as scan_worker:
            tasks = [
                Task(task_id=path, func=lambda p=path: self._ingest_one(p, scan_worker))
                for path in paths
            ]
            for result in worker.run(tasks):
                if not result.success:
                    logger.error("Invalid project file %s: %s", result.task_id, result.error)
                    stats.bad += 1
                    stats.bad_files.append(result.task_id)
                    continue
                node, scan_failures = result.result
                stats.valid += 1
                stats.scan_failures += scan_failures
                if node.is_managed:
                    stats.managed += 1
                if node.is_native:
                    stats.native += 1

        stats.rejected = stats.valid - len(self.registry)
        logger.info(
            "Ingested %d projects: %d valid, %d bad, %d rejected as duplicates",
            stats.found,
            stats.valid,
            stats.bad,
            stats.rejected,
        )
        return stats

    def _ingest_one(self, path: str, scan_worker: Worker):
        project = self.evaluator.expand(path, self.global_properties)
        node, request = self.model_builder.build(project)
        scan_failures = 0
        if not request.is_empty():
            scan = self.scanner.scan(request, scan_worker)
            apply_scan_result(node, scan)
            scan_failures = len(scan.failed_files)
        self.registry.register(node)
        return node, scan_failures
