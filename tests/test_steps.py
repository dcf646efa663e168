from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from shipyard_core import ExternalToolError
from shipyard_core.steps import AssetCompiler, DependencyInstaller
from shipyard_core.steps._runtime import version_matches
from shipyard_core.tools import ToolRunner


def _fake_tools(calls: list[list[str]], *, node: str = "v20.11.1", php: str = "8.2.15", fail: str | None = None):
    def _fake_run(command, **kwargs):
        del kwargs
        command = list(command)
        calls.append(command)
        if fail is not None and " ".join(command).startswith(fail):
            return subprocess.CompletedProcess(args=command, returncode=2, stdout="", stderr="boom")
        stdout = ""
        if command[0] == "node":
            stdout = node + "\n"
        elif command[0] == "php":
            stdout = php
        return subprocess.CompletedProcess(args=command, returncode=0, stdout=stdout, stderr="")

    return _fake_run


@pytest.mark.parametrize(
    ("installed", "expected", "ok"),
    [
        ("v20.11.1", "20", True),
        ("v20.11.1", "20.11", True),
        ("v200.1.0", "20", False),
        ("8.2.15", "8.2", True),
        ("8.3.0", "8.2", False),
        ("8.1.0", "", True),
    ],
)
def test_version_matches(installed: str, expected: str, ok: bool) -> None:
    assert version_matches(installed, expected) is ok


def test_assets_disabled_runs_nothing(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr(subprocess, "run", _fake_tools(calls))
    result = AssetCompiler(ToolRunner(), node_version="20").run(tmp_path, enabled=False)
    assert result.ran is False
    assert calls == []


def test_assets_checks_node_then_ci_then_build(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr(subprocess, "run", _fake_tools(calls))
    result = AssetCompiler(ToolRunner(), node_version="20").run(tmp_path, enabled=True)
    assert calls == [["node", "--version"], ["npm", "ci"], ["npm", "run", "build"]]
    assert result.ran is True
    assert result.detail == "node v20.11.1"


def test_assets_wrong_node_version_stops_before_install(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr(subprocess, "run", _fake_tools(calls, node="v18.19.0"))
    with pytest.raises(ExternalToolError, match="does not match"):
        AssetCompiler(ToolRunner(), node_version="20").run(tmp_path, enabled=True)
    assert calls == [["node", "--version"]]


def test_assets_failed_install_skips_build(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr(subprocess, "run", _fake_tools(calls, fail="npm ci"))
    with pytest.raises(ExternalToolError) as excinfo:
        AssetCompiler(ToolRunner(), node_version="20").run(tmp_path, enabled=True)
    assert excinfo.value.returncode == 2
    assert ["npm", "run", "build"] not in calls


def test_dependencies_install_with_composer(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr(subprocess, "run", _fake_tools(calls))
    result = DependencyInstaller(ToolRunner()).run(
        tmp_path, enabled=True, runtime_version="8.2", descriptor=tmp_path / "auth.json"
    )
    assert calls[0] == ["php", "-r", "echo PHP_VERSION;"]
    assert calls[1][:2] == ["composer", "install"]
    assert "--no-dev" in calls[1]
    assert result.ran is True


def test_dependencies_runtime_mismatch_is_fatal(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr(subprocess, "run", _fake_tools(calls, php="8.1.2"))
    with pytest.raises(ExternalToolError, match="php 8.1.2"):
        DependencyInstaller(ToolRunner()).run(tmp_path, enabled=True, runtime_version="8.2")
    assert len(calls) == 1


def test_dependencies_disabled(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr(subprocess, "run", _fake_tools(calls))
    result = DependencyInstaller(ToolRunner()).run(tmp_path, enabled=False, runtime_version="8.2")
    assert result.ran is False
    assert calls == []
