"""Configuration schema definitions using Pydantic for validation.

Configuration errors surface before any descriptor is read, with the
offending field named in the message.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class BuildConfig(BaseModel):
    """Settings of one solution build run.

    Attributes:
        search_dir: Root of the tree searched for project descriptors.
        solution_path: Solution file to write.
        configuration: Build configuration, passed to the evaluator and
            written into the solution.
        platform: Build platform, same role as ``configuration``.
        manifest_path: Build manifest listing the entry points. Every
            project is built when unset.
        items_name: Manifest item type naming the entry points.
        extra_dependencies_item: Manifest item type carrying overrides.
        parallel: Evaluate descriptors and scan sources concurrently.
        max_workers: Maximum number of worker threads per pool.
        use_project_references: Rewrite descriptors to reference their
            dependencies as projects instead of writing them into the
            solution.
        write_dgml: Also write a DGML graph of the build set.
        dgml_path: DGML location, next to the solution when unset.
        write_debug_manifests: Write the plain-text project listings.
        debug_dir: Listing directory, the solution's directory when unset.
        project_patterns: File patterns identifying descriptors.
        expected_framework_version: Framework version managed native
            projects are expected to target.
    """

    search_dir: str = "."
    solution_path: Optional[str] = None
    configuration: str = "Debug"
    platform: str = "Win32"
    manifest_path: Optional[str] = None
    items_name: str = "Projects"
    extra_dependencies_item: str = "ExtraDependencies"
    parallel: bool = False
    max_workers: int = Field(default=8, ge=1, le=64)
    use_project_references: bool = False
    write_dgml: bool = True
    dgml_path: Optional[str] = None
    write_debug_manifests: bool = False
    debug_dir: Optional[str] = None
    project_patterns: List[str] = Field(default_factory=lambda: ["*.csproj", "*.vcxproj"])
    expected_framework_version: Optional[str] = None

    model_config = {"extra": "forbid"}

    @field_validator("configuration", "platform", "items_name", "extra_dependencies_item")
    @classmethod
    def validate_non_empty(cls, v: str) -> str:
        """Reject blank names."""
        if not v or not v.strip():
            raise ValueError("must be a non-empty string")
        return v.strip()

    @field_validator("project_patterns")
    @classmethod
    def validate_patterns(cls, v: List[str]) -> List[str]:
        """Validate that at least one descriptor pattern is configured."""
        patterns = [p.strip() for p in v if p and p.strip()]
        if not patterns:
            raise ValueError("project_patterns must contain at least one pattern")
        return patterns

    @property
    def all_mode(self) -> bool:
        """Every project is built when no manifest is given."""
        return self.manifest_path is None

    def global_properties(self) -> Dict[str, str]:
        """Properties every descriptor is evaluated with."""
        return {"Configuration": self.configuration, "Platform": self.platform}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BuildConfig":
        """Create configuration from dictionary.

        Raises:
            ValidationError: If configuration is invalid.
        """
        return cls.model_validate(data)

    def merged(self, overrides: Dict[str, Any]) -> "BuildConfig":
        """Return a validated copy with ``overrides`` applied.

        Keys whose value is None are ignored, so unset CLI flags keep the
        file's values.
        """
        data = self.model_dump()
        data.update({key: value for key, value in overrides.items() if value is not None})
        return BuildConfig.model_validate(data)
