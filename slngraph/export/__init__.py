"""Solution, DGML and listing exporters."""

from slngraph.export.dgml import export_dgml
from slngraph.export.manifests import export_debug_manifests
from slngraph.export.solution import export_solution, render_solution
from slngraph.export.solution_reader import read_solution

__all__ = [
    "export_debug_manifests",
    "export_dgml",
    "export_solution",
    "read_solution",
    "render_solution",
]
