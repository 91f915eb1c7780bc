"""Source scanner recovering type-library imports and assembly usings.

Native projects consume type libraries through ``#import "x.tlb"`` and
managed assemblies through ``#using <x.dll>``. Neither shows up in the
descriptor, so the compile and header items are scanned line by line.

Matching is textual: a directive that is commented out or
disabled by the preprocessor still counts.
"""

import codecs
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from slngraph.parsers.base import ScanError
from slngraph.runtime.worker import Task, Worker
from slngraph.utils.path_utils import file_name, strip_extension

logger = logging.getLogger("slngraph.parsers.source_scan")

# A quoted name counts only when it ends on a word character; that check
# runs on the captured group so the pattern stays linear.
IMPORT_RE = re.compile(r'#\s*import\s*"([^"]*)"(.*)$')
WORD_END_RE = re.compile(r"\w$")
USING_RE = re.compile(r"#\s*using.*<(.*)>.*$")


def decode_source(raw: bytes) -> str:
    """Decode source bytes, honouring a UTF-16 or UTF-8 byte order mark.

    Bytes that do not decode are dropped.
    """
    if raw.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return raw.decode("utf-16", errors="ignore")
    return raw.decode("utf-8-sig", errors="ignore")


@dataclass
class ScanRequest:
    """Files of one project that need scanning.

    Attributes:
        owner: Descriptor path, used in log messages.
        type_library_files: Files searched for ``#import`` directives.
        managed_files: Files searched for ``#using`` directives.
    """

    owner: str
    type_library_files: List[str] = field(default_factory=list)
    managed_files: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.type_library_files and not self.managed_files


@dataclass
class ScanResult:
    """Merged findings for one project, in file order."""

    type_libraries: List[str] = field(default_factory=list)
    reference_assemblies: List[str] = field(default_factory=list)
    failed_files: List[str] = field(default_factory=list)


class SourceScanOracle:
    """Line-oriented scanner for ``#import`` and ``#using`` directives."""

    NAME = "source_scan"

    def parse_file(
        self, file_path: Union[str, Path], imports: bool = True, usings: bool = False
    ) -> Dict[str, Any]:
        """Scan one source file.

        Args:
            file_path: Source or header file.
            imports: Collect ``#import`` type-library names.
            usings: Collect ``#using`` assembly names.

        Returns:
            Dict[str, Any]: ``{"file": str, "type_libraries": [...],
            "assemblies": [...]}`` with names lowercased and deduplicated in
            order of appearance.

        Raises:
            ScanError: The file cannot be read.
        """
        path = Path(file_path)
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise ScanError(f"Failed reading {path}: {exc}") from exc

        text = decode_source(raw)
        type_libraries: List[str] = []
        assemblies: List[str] = []
        for line in text.splitlines():
            if imports and "import" in line:
                match = IMPORT_RE.search(line)
                if match and WORD_END_RE.search(match.group(1)):
                    name = strip_extension(file_name(match.group(1))).lower()
                    if name and name not in type_libraries:
                        type_libraries.append(name)
            if usings and "using" in line:
                match = USING_RE.search(line)
                if match:
                    name = match.group(1).strip().lower()
                    if name and name not in assemblies:
                        assemblies.append(name)

        logger.debug(
            "Scanned %s: %d type libraries, %d assemblies",
            path.name,
            len(type_libraries),
            len(assemblies),
        )
        return {
            "file": str(path),
            "type_libraries": type_libraries,
            "assemblies": assemblies,
        }

    def scan(self, request: ScanRequest, worker: Optional[Worker] = None) -> ScanResult:
        """Scan every file of a request and merge the findings.

        A file that cannot be read is logged and skipped; the rest of the
        request is still scanned.

        Args:
            request: Files to scan.
            worker: Pool to run the per-file scans on. Inline when None.

        Returns:
            ScanResult: Findings merged in file order.
        """
        plan: Dict[str, Dict[str, bool]] = {}
        for path in request.type_library_files:
            plan.setdefault(path, {"imports": False, "usings": False})["imports"] = True
        for path in request.managed_files:
            plan.setdefault(path, {"imports": False, "usings": False})["usings"] = True

        tasks = [
            Task(
                task_id=path,
                func=lambda p=path, f=flags: self.parse_file(p, f["imports"], f["usings"]),
            )
            for path, flags in plan.items()
        ]
        runner = worker or Worker(parallel=False, name="scan-inline")
        result = ScanResult()
        for task_result in runner.run(tasks):
            if not task_result.success:
                logger.error(
                    "Failed to scan %s for %s: %s",
                    task_result.task_id,
                    request.owner,
                    task_result.error,
                )
                result.failed_files.append(task_result.task_id)
                continue
            for name in task_result.result["type_libraries"]:
                if name not in result.type_libraries:
                    result.type_libraries.append(name)
            for name in task_result.result["assemblies"]:
                if name not in result.reference_assemblies:
                    result.reference_assemblies.append(name)
        return result
