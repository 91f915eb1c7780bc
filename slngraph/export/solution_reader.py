"""Reads solution files back into project records."""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Union

logger = logging.getLogger("slngraph.export.solution_reader")

_PROJECT_RE = re.compile(
    r'^Project\("(?P<type>[^"]*)"\)\s*=\s*"(?P<name>[^"]*)"\s*,\s*"(?P<path>[^"]*)"\s*,\s*"(?P<id>[^"]*)"'
)
_DEPENDENCY_RE = re.compile(r"^\s*(\{[^}]*\})\s*=\s*(\{[^}]*\})\s*$")


@dataclass
class SolutionProject:
    """One project block of a solution file.

    ``dependencies`` holds IDs after :func:`parse_solution` and paths after
    :func:`read_solution`.
    """

    project_id: str
    name: str
    path: str
    type_id: str
    dependencies: List[str] = field(default_factory=list)


def parse_solution(text: str) -> List[SolutionProject]:
    """Parse solution text into project records in file order."""
    projects: List[SolutionProject] = []
    current = None
    in_dependencies = False
    for raw_line in text.splitlines():
        line = raw_line.lstrip("\ufeff")
        match = _PROJECT_RE.match(line)
        if match:
            current = SolutionProject(
                project_id=match.group("id"),
                name=match.group("name"),
                path=match.group("path"),
                type_id=match.group("type"),
            )
            projects.append(current)
            continue
        stripped = line.strip()
        if stripped == "EndProject":
            current = None
            in_dependencies = False
        elif stripped.startswith("ProjectSection(ProjectDependencies)"):
            in_dependencies = current is not None
        elif stripped == "EndProjectSection":
            in_dependencies = False
        elif in_dependencies and current is not None:
            dep = _DEPENDENCY_RE.match(line)
            if dep:
                current.dependencies.append(dep.group(1))
    return projects


def read_solution(path: Union[str, Path]) -> List[SolutionProject]:
    """Read a solution and resolve dependency IDs to project paths.

    Projects and each dependency list are sorted by path. An ID naming no
    project of the solution is kept as is.
    """
    text = Path(path).read_text(encoding="utf-8-sig")
    projects = parse_solution(text)
    by_id: Dict[str, str] = {p.project_id.lower(): p.path for p in projects}
    for project in projects:
        resolved = []
        for dep_id in project.dependencies:
            target = by_id.get(dep_id.lower())
            if target is None:
                logger.warning("Dependency %s of %s is not in the solution", dep_id, project.path)
                target = dep_id
            resolved.append(target)
        project.dependencies = sorted(resolved)
    projects.sort(key=lambda p: p.path)
    logger.info("Read %d projects from %s", len(projects), path)
    return projects
