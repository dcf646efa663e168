from __future__ import annotations

import importlib
import subprocess
from pathlib import Path
from types import SimpleNamespace

import pytest
from typer.testing import CliRunner

from shipyard_cli import __main__ as cli_entry
from shipyard_cli.main import app
from shipyard_core import CredentialResolutionError
from shipyard_core.inputs import ENV_INPUTS

runner = CliRunner()

_REQUIRED = [
    "--account-id",
    "123456789012",
    "--platform",
    "linux/arm64",
    "--image-tag",
    "dev-123",
    "--sha",
    "abc123def",
    "--registry",
    "registry.local/team/app",
]


@pytest.fixture(autouse=True)
def _clear_action_inputs(monkeypatch: pytest.MonkeyPatch) -> None:
    for keys in ENV_INPUTS.values():
        for key in keys:
            monkeypatch.delenv(key, raising=False)


def test_console_module_entrypoint_delegates_to_cli_main(monkeypatch: pytest.MonkeyPatch) -> None:
    cli_main = importlib.import_module("shipyard_cli.main")
    monkeypatch.setattr(cli_main, "main", lambda: 7)

    assert cli_entry.run() == 7
    assert cli_entry.main() == 7


def test_tags_command_prints_both_tags() -> None:
    result = runner.invoke(
        app, ["tags", "--platform", "linux/amd64", "--image-tag", "dev-123", "--sha", "abc123def", "--registry", "R"]
    )
    assert result.exit_code == 0
    assert result.stdout.splitlines() == ["R:dev-123-amd64", "R:abc123def-amd64"]


def test_tags_command_rejects_bad_platform() -> None:
    result = runner.invoke(
        app, ["tags", "--platform", "amd64", "--image-tag", "x", "--sha", "y", "--registry", "R"]
    )
    assert result.exit_code == 2


def test_plan_redacts_token(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["--context", str(tmp_path), "plan", *_REQUIRED, "--token", "ghp_supersecretvalue", "--no-cache", "true"],
    )
    assert result.exit_code == 0
    assert "registry.local/team/app:dev-123-arm64" in result.stdout
    assert "registry.local/team/app:abc123def-arm64" in result.stdout
    assert "ghp_supersecretvalue" not in result.stdout
    assert "--no-cache" in result.stdout


def test_plan_reads_inputs_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INPUT_ACCOUNT_ID", "123456789012")
    monkeypatch.setenv("INPUT_PLATFORM", "linux/amd64")
    monkeypatch.setenv("INPUT_IMAGE_TAG", "main")
    monkeypatch.setenv("GITHUB_SHA", "feedface")
    monkeypatch.setenv("INPUT_REGISTRY", "R")
    result = runner.invoke(app, ["--context", str(tmp_path), "plan"])
    assert result.exit_code == 0
    assert result.stdout.splitlines()[:2] == ["R:main-amd64", "R:feedface-amd64"]


def test_invalid_flag_value_exits_with_input_code(tmp_path: Path) -> None:
    result = runner.invoke(app, ["--context", str(tmp_path), "plan", *_REQUIRED, "--no-cache", "sometimes"])
    assert result.exit_code == 2


def test_missing_required_input_exits_with_input_code(tmp_path: Path) -> None:
    result = runner.invoke(app, ["--context", str(tmp_path), "plan", "--platform", "linux/amd64"])
    assert result.exit_code == 2


def test_build_propagates_tool_exit_code(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    import shipyard_core.pipeline as pipeline_mod

    class _FakeResolver:
        def __init__(self, settings, tool_runner):
            del settings, tool_runner

        def resolve(self, account_id, *, registry=None):
            del account_id, registry
            return SimpleNamespace(registry_host="registry.local")

    def _fake_run(command, **kwargs):
        del kwargs
        return subprocess.CompletedProcess(args=command, returncode=42, stdout="", stderr="push denied")

    monkeypatch.setattr(pipeline_mod, "CredentialResolver", _FakeResolver)
    monkeypatch.setattr(subprocess, "run", _fake_run)
    result = runner.invoke(app, ["--context", str(tmp_path), "build", *_REQUIRED])
    assert result.exit_code == 42


def test_build_credential_failure_exits_1(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    import shipyard_core.pipeline as pipeline_mod

    class _FailingResolver:
        def __init__(self, settings, tool_runner):
            del settings, tool_runner

        def resolve(self, account_id, *, registry=None):
            raise CredentialResolutionError(f"cannot assume role for {account_id}")

    monkeypatch.setattr(pipeline_mod, "CredentialResolver", _FailingResolver)
    result = runner.invoke(app, ["--context", str(tmp_path), "build", *_REQUIRED])
    assert result.exit_code == 1


def test_build_dry_run_reports_steps(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def _fake_run(*args, **kwargs):
        raise AssertionError("dry-run must not spawn processes")

    monkeypatch.setattr(subprocess, "run", _fake_run)
    result = runner.invoke(app, ["--context", str(tmp_path), "--dry-run", "build", *_REQUIRED])
    assert result.exit_code == 0
    assert "[shipyard:credentials] skipped dry-run" in result.stdout
    assert "[shipyard:image] ran" in result.stdout
    assert result.stdout.splitlines()[-2:] == [
        "registry.local/team/app:dev-123-arm64",
        "registry.local/team/app:abc123def-arm64",
    ]


def test_unwritable_auth_descriptor_exits_1(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    descriptor_mod = importlib.import_module("shipyard_core.auth_descriptor")
    import shipyard_core.pipeline as pipeline_mod

    class _FakeResolver:
        def __init__(self, settings, tool_runner):
            del settings, tool_runner

        def resolve(self, account_id, *, registry=None):
            del account_id, registry
            return SimpleNamespace(registry_host="registry.local")

    def _denied(*args, **kwargs):
        del args, kwargs
        raise PermissionError(13, "Permission denied")

    def _fake_run(*args, **kwargs):
        raise AssertionError("no tool may run after the descriptor failed")

    monkeypatch.setattr(pipeline_mod, "CredentialResolver", _FakeResolver)
    monkeypatch.setattr(descriptor_mod.os, "open", _denied)
    monkeypatch.setattr(subprocess, "run", _fake_run)
    result = runner.invoke(
        app, ["--context", str(tmp_path), "build", *_REQUIRED, "--auth-json", "true", "--token", "ghp_value123"]
    )

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "unable to write auth descriptor" in result.output
