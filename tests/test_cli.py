"""Tests for slngraph CLI entrypoints."""

from __future__ import annotations

from pathlib import Path

import pytest

import slngraph.main as main
from slngraph.cli import build as build_module

GUID = "{40000000-0000-0000-0000-000000000001}"


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(main, "setup_logging", lambda *a, **k: None)


def test_main_without_command_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    """No subcommand prints usage and fails."""
    assert main.main([]) == 1
    assert "usage" in capsys.readouterr().out


def test_build_command_writes_solution(
    tmp_path: Path, write_vcxproj, capsys: pytest.CaptureFixture[str]
) -> None:
    """`build` writes the solution and prints a summary."""
    write_vcxproj(tmp_path / "src" / "core" / "core.vcxproj", GUID)
    output = tmp_path / "out" / "all.sln"

    exit_code = main.main(["build", str(tmp_path / "src"), "-o", str(output), "--no-dgml"])

    assert exit_code == 0
    assert output.is_file()
    assert not output.with_suffix(".dgml").exists()
    assert "slngraph" in capsys.readouterr().out


def test_build_command_passes_overrides(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Command-line flags override the configuration file."""
    config_file = tmp_path / "cfg.toml"
    config_file.write_text('configuration = "Release"\nplatform = "x64"\n', encoding="utf-8")
    captured = {}

    class _Builder:
        def __init__(self, config) -> None:
            captured["config"] = config

        def run(self):
            return None

    monkeypatch.setattr(build_module, "SolutionBuilder", _Builder)

    exit_code = main.main(
        [
            "build",
            str(tmp_path),
            "-o",
            str(tmp_path / "x.sln"),
            "-p",
            "Win32",
            "--parallel",
            "-w",
            "3",
            "--config",
            str(config_file),
            "-q",
        ]
    )

    assert exit_code == 0
    config = captured["config"]
    assert config.configuration == "Release"
    assert config.platform == "Win32"
    assert config.parallel is True
    assert config.max_workers == 3
    assert config.solution_path == str(tmp_path / "x.sln")


def test_build_command_reports_configuration_errors(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """A missing search directory exits with status 1 and a message."""
    exit_code = main.main(["build", str(tmp_path / "missing"), "-o", str(tmp_path / "x.sln")])

    assert exit_code == 1
    assert "does not exist" in capsys.readouterr().err


def test_build_command_rejects_invalid_worker_count(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Option validation errors surface before any work is done."""
    exit_code = main.main(["build", str(tmp_path), "-o", str(tmp_path / "x.sln"), "-w", "0"])

    assert exit_code == 1
    assert "max_workers" in capsys.readouterr().err


def test_parse_command_prints_projects(
    tmp_path: Path, write_vcxproj, capsys: pytest.CaptureFixture[str]
) -> None:
    """`parse` lists the projects of a written solution."""
    write_vcxproj(tmp_path / "src" / "core" / "core.vcxproj", GUID)
    output = tmp_path / "all.sln"
    assert main.main(["build", str(tmp_path / "src"), "-o", str(output), "-q"]) == 0
    capsys.readouterr()

    assert main.main(["parse", str(output)]) == 0
    out = capsys.readouterr().out
    assert "projects" in out
    assert "core" in out


def test_parse_command_missing_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """`parse` on a missing file fails cleanly."""
    assert main.main(["parse", str(tmp_path / "none.sln")]) == 1
    assert "cannot read" in capsys.readouterr().err


def test_orphans_command(
    tmp_path: Path, write_vcxproj, capsys: pytest.CaptureFixture[str]
) -> None:
    """`orphans` lists sources no descriptor includes."""
    project_dir = tmp_path / "p"
    write_vcxproj(project_dir / "p.vcxproj", GUID, items=[("ClCompile", "used.cpp", {})])
    (project_dir / "used.cpp").write_text("", encoding="utf-8")
    (project_dir / "stray.cpp").write_text("", encoding="utf-8")

    assert main.main(["orphans", str(tmp_path)]) == 0
    out = capsys.readouterr().out
    assert "stray.cpp" in out
    assert "used.cpp" not in out


def test_orphans_command_missing_dir(tmp_path: Path) -> None:
    """`orphans` on a missing directory fails."""
    assert main.main(["orphans", str(tmp_path / "missing")]) == 1
