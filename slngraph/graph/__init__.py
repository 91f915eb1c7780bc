"""Project graph, identity registry and closure computation."""

from slngraph.graph.manager import ProjectGraph
from slngraph.graph.registry import IdentityRegistry
from slngraph.graph.schema import (
    BuildClosure,
    Duplicate,
    EdgeKind,
    ExtraDependencyDirective,
    IdRepair,
    ProjectKind,
    ProjectNode,
)

__all__ = [
    "BuildClosure",
    "Duplicate",
    "EdgeKind",
    "ExtraDependencyDirective",
    "IdRepair",
    "IdentityRegistry",
    "ProjectGraph",
    "ProjectKind",
    "ProjectNode",
]
