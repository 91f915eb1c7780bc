"""Tests for deferred descriptor corrections."""

from __future__ import annotations

import os
from pathlib import Path

from slngraph.graph.schema import IdRepair, ProjectKind
from slngraph.parsers.msbuild.protocols import ProjectItem
from slngraph.runtime.corrections import (
    CorrectionPlan,
    PendingWrite,
    convert_to_project_references,
)


def test_references_to_siblings_become_project_references(
    tmp_path: Path, make_node, fake_project
) -> None:
    """Sibling assembly references are swapped; framework references stay."""
    ui_path = str(tmp_path / "ui" / "ui.csproj")
    lib_path = str(tmp_path / "lib" / "lib.csproj")
    group = object()
    project = fake_project(
        ui_path,
        items=[
            ProjectItem("Reference", "Lib, Version=1.0.0.0", group=group),
            ProjectItem("Reference", "System.Core", group=group),
        ],
    )
    ui = make_node(ui_path, kind=ProjectKind.MANAGED, project=project)
    lib = make_node(
        lib_path,
        kind=ProjectKind.MANAGED,
        declared_id="{30000000-0000-0000-0000-000000000000}",
        assembly_name="Lib",
    )

    changed = convert_to_project_references(project, ui, [lib], {"lib", "ui"})

    assert changed
    assert [i.include for i in project.get_items("Reference")] == ["System.Core"]
    added = project.get_items("ProjectReference")
    assert [i.include for i in added] == [os.path.join("..", "lib", "lib.csproj").replace("/", "\\")]
    assert added[0].group is group
    assert added[0].metadata == {"Project": lib.declared_id, "Name": "Lib"}


def test_existing_project_reference_is_not_duplicated(
    tmp_path: Path, make_node, fake_project
) -> None:
    """A dependency already referenced as a project leaves the file unchanged."""
    ui_path = str(tmp_path / "ui" / "ui.csproj")
    lib_path = str(tmp_path / "lib" / "lib.csproj")
    project = fake_project(ui_path, items=[ProjectItem("ProjectReference", "..\\lib\\lib.csproj")])
    ui = make_node(ui_path, kind=ProjectKind.MANAGED)
    lib = make_node(lib_path, kind=ProjectKind.MANAGED)

    assert convert_to_project_references(project, ui, [lib], {"lib"}) is False
    assert len(project.get_items("ProjectReference")) == 1


def test_plan_saves_each_descriptor_once(
    tmp_path: Path, make_node, fake_project, fake_evaluator
) -> None:
    """Several writes to one file are applied together and saved once."""
    path = str(tmp_path / "a" / "a.csproj")
    project = fake_project(path, properties={"ProjectGuid": "{OLD}"})
    node = make_node(path, kind=ProjectKind.MANAGED, declared_id="{NEW}", project=project)
    evaluator = fake_evaluator([project])
    plan = CorrectionPlan(evaluator)

    plan.schedule_id_repair(IdRepair(node=node, old_id="{OLD}", new_id="{NEW}"))
    plan.schedule_project_references(node, [], set())
    written = plan.apply()

    assert written == [path]
    assert project.get_property_value("ProjectGuid") == "{NEW}"
    assert project.saved == 1
    assert len(plan) == 0


def test_plan_reloads_missing_projects_and_skips_failures(
    tmp_path: Path, make_node, fake_project, fake_evaluator
) -> None:
    """Nodes without a loaded project are re-evaluated; failures are skipped."""
    good_path = str(tmp_path / "good.csproj")
    bad_path = str(tmp_path / "bad.csproj")
    good = fake_project(good_path)
    evaluator = fake_evaluator([good])
    plan = CorrectionPlan(evaluator)
    for path in (bad_path, good_path):
        plan.schedule_id_repair(
            IdRepair(node=make_node(path, kind=ProjectKind.MANAGED), old_id="", new_id="{X}")
        )

    written = plan.apply()

    assert written == [good_path]
    assert evaluator.saved == [good_path]


def test_imported_sibling_reference_is_kept(tmp_path: Path, make_node, fake_project) -> None:
    """References defined in an imported file cannot be removed and stay."""
    ui_path = str(tmp_path / "ui" / "ui.csproj")
    lib_path = str(tmp_path / "lib" / "lib.csproj")
    project = fake_project(ui_path, items=[ProjectItem("Reference", "Lib", imported=True)])
    ui = make_node(ui_path, kind=ProjectKind.MANAGED, project=project)
    lib = make_node(lib_path, kind=ProjectKind.MANAGED, assembly_name="Lib")

    changed = convert_to_project_references(project, ui, [lib], {"lib"})

    assert changed
    assert [i.include for i in project.get_items("Reference")] == ["Lib"]
    assert len(project.get_items("ProjectReference")) == 1


def test_failing_write_keeps_other_writes_to_the_file(
    tmp_path: Path, make_node, fake_project, fake_evaluator
) -> None:
    """One write raising does not discard the ID repair queued for the same file."""
    path = str(tmp_path / "a" / "a.csproj")
    project = fake_project(path, properties={"ProjectGuid": "{OLD}"})
    node = make_node(path, kind=ProjectKind.MANAGED, project=project)
    evaluator = fake_evaluator([project])
    plan = CorrectionPlan(evaluator)

    def fail(_project) -> bool:
        raise ValueError("Item 'Lib' is not defined")

    plan.schedule(PendingWrite(node=node, description="broken", apply=fail))
    plan.schedule_id_repair(IdRepair(node=node, old_id="{OLD}", new_id="{NEW}"))
    written = plan.apply()

    assert written == [path]
    assert project.get_property_value("ProjectGuid") == "{NEW}"
    assert project.saved == 1
