"""Tests for orphaned source detection and descriptor discovery."""

from __future__ import annotations

from pathlib import Path

from slngraph.analysis.orphans import OrphanFinder
from slngraph.runtime.ingest import discover_projects

GUID = "{50000000-0000-0000-0000-000000000001}"


def test_orphans_exclude_included_and_wildcard_sources(
    tmp_path: Path, write_vcxproj, write_csproj
) -> None:
    """Sources reached by any item, wildcards included, are not orphans."""
    native = tmp_path / "native"
    write_vcxproj(
        native / "n.vcxproj",
        GUID,
        items=[("ClCompile", "src\\*.cpp", {}), ("ClInclude", "n.h", {})],
    )
    (native / "src").mkdir()
    (native / "src" / "a.cpp").write_text("", encoding="utf-8")
    (native / "n.h").write_text("", encoding="utf-8")
    (native / "old.h").write_text("", encoding="utf-8")
    managed = tmp_path / "managed"
    write_csproj(managed / "m.csproj", GUID, "M", items=[("Compile", "Program.cs", {})])
    (managed / "Program.cs").write_text("", encoding="utf-8")
    (managed / "Unused.cs").write_text("", encoding="utf-8")
    broken = tmp_path / "broken" / "x.vcxproj"
    broken.parent.mkdir()
    broken.write_text("not xml", encoding="utf-8")

    report = OrphanFinder().find(str(tmp_path))

    assert report.orphans == [str(managed / "Unused.cs"), str(native / "old.h")]
    assert report.projects == 2
    assert report.bad_projects == [str(broken)]


def test_discover_projects_is_sorted_and_filtered(tmp_path: Path) -> None:
    """Discovery returns matching descriptors only, sorted by path."""
    for relative in ("b/b.vcxproj", "a/a.csproj", "a/readme.txt", "c/c.vbproj"):
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("", encoding="utf-8")

    found = discover_projects(str(tmp_path), ["*.csproj", "*.vcxproj"])

    assert found == [str(tmp_path / "a" / "a.csproj"), str(tmp_path / "b" / "b.vcxproj")]
