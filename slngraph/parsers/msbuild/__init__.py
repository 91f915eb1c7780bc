"""MSBuild descriptor evaluation."""

from slngraph.parsers.msbuild.evaluator import MSBuildEvaluator, MSBuildProject
from slngraph.parsers.msbuild.protocols import (
    EvaluatedProject,
    ItemDefinition,
    MetadataValue,
    ProjectEvaluator,
    ProjectItem,
)

__all__ = [
    "EvaluatedProject",
    "ItemDefinition",
    "MSBuildEvaluator",
    "MSBuildProject",
    "MetadataValue",
    "ProjectEvaluator",
    "ProjectItem",
]
