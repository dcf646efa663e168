from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Optional

import typer

from shipyard_core import (
    BuildPipeline,
    CredentialResolutionError,
    ExternalToolError,
    InputValidationError,
    PipelineSettings,
    ShipyardError,
    build_parameters,
    load_settings,
    values_from_env,
)
from shipyard_core.inputs import merge_values
from shipyard_core.steps import tag_set

app = typer.Typer(help="Build and push architecture-specific container images", no_args_is_help=True)

EXIT_INPUT = 2
EXIT_CREDENTIALS = 1

# -------------------------
# Shared options
# -------------------------
ACCOUNT_ID = typer.Option(None, "--account-id", help="AWS account whose push role is assumed")
PLATFORM = typer.Option(None, "--platform", help="Target platform, e.g. linux/amd64")
IMAGE_TAG = typer.Option(None, "--image-tag", help="Tag fragment, suffixed with the architecture")
SHA = typer.Option(None, "--sha", help="Commit sha fragment, suffixed with the architecture")
REGISTRY = typer.Option(None, "--registry", help="Registry repository URL")
AUTH_JSON = typer.Option(None, "--auth-json", help="Write auth.json for the dependency installer (true/false)")
TOKEN = typer.Option(None, "--token", help="Package-registry token")
USERNAME = typer.Option(None, "--username", help="HTTP basic-auth username")
LICENSE = typer.Option(None, "--license", help="HTTP basic-auth license key")
RUNTIME_VERSION = typer.Option(None, "--runtime-version", help="PHP version required for the dependency install")
INSTALL_DEPENDENCIES = typer.Option(None, "--install-dependencies", help="Pre-install dependencies (true/false)")
BUILD_ASSETS = typer.Option(None, "--build-assets", help="Compile front-end assets first (true/false)")
NO_CACHE = typer.Option(None, "--no-cache", help="Disable the registry build cache (true/false)")
BUILD_ARGS = typer.Option(None, "--build-args", help="Newline-delimited KEY=VALUE build arguments")


@app.callback()
def cli(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", help="Settings file (default: ./shipyard.yml)"),
    context: Optional[Path] = typer.Option(None, "--context", help="Build context directory"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Log commands instead of running them"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(level)
    ctx.obj = {"config": config, "context": context, "dry_run": dry_run}


# -------------------------
# Commands
# -------------------------
@app.command("build")
def build(
    ctx: typer.Context,
    account_id: Optional[str] = ACCOUNT_ID,
    platform: Optional[str] = PLATFORM,
    image_tag: Optional[str] = IMAGE_TAG,
    sha: Optional[str] = SHA,
    registry: Optional[str] = REGISTRY,
    auth_json: Optional[str] = AUTH_JSON,
    token: Optional[str] = TOKEN,
    username: Optional[str] = USERNAME,
    license: Optional[str] = LICENSE,
    runtime_version: Optional[str] = RUNTIME_VERSION,
    install_dependencies: Optional[str] = INSTALL_DEPENDENCIES,
    build_assets: Optional[str] = BUILD_ASSETS,
    no_cache: Optional[str] = NO_CACHE,
    build_args: Optional[str] = BUILD_ARGS,
):
    """Resolve credentials, prepare the build context, then build and push both tags."""
    options = _collect(locals())

    def _build() -> None:
        pipeline = BuildPipeline(_settings(ctx))
        params = build_parameters(merge_values(values_from_env(), options))
        result = pipeline.run(params)
        for step in result.steps:
            status = "ran" if step.ran else "skipped"
            typer.echo(f"[shipyard:{step.name}] {status} {step.detail}".rstrip())
        for tag in result.tags.as_tuple():
            typer.echo(tag)

    _guarded(_build)


@app.command("plan")
def plan(
    ctx: typer.Context,
    account_id: Optional[str] = ACCOUNT_ID,
    platform: Optional[str] = PLATFORM,
    image_tag: Optional[str] = IMAGE_TAG,
    sha: Optional[str] = SHA,
    registry: Optional[str] = REGISTRY,
    auth_json: Optional[str] = AUTH_JSON,
    token: Optional[str] = TOKEN,
    username: Optional[str] = USERNAME,
    license: Optional[str] = LICENSE,
    runtime_version: Optional[str] = RUNTIME_VERSION,
    install_dependencies: Optional[str] = INSTALL_DEPENDENCIES,
    build_assets: Optional[str] = BUILD_ASSETS,
    no_cache: Optional[str] = NO_CACHE,
    build_args: Optional[str] = BUILD_ARGS,
):
    """Print the tags and the builder command without running anything."""
    options = _collect(locals())

    def _plan() -> None:
        pipeline = BuildPipeline(_settings(ctx))
        params = build_parameters(merge_values(values_from_env(), options))
        build_plan = pipeline.plan(params)
        for tag in build_plan.tags.as_tuple():
            typer.echo(tag)
        pipeline.runner.add_secret(params.token)
        typer.echo(pipeline.runner.describe(build_plan.command))

    _guarded(_plan)


@app.command("tags")
def tags(
    platform: str = typer.Option(..., "--platform"),
    image_tag: str = typer.Option(..., "--image-tag"),
    sha: str = typer.Option(..., "--sha"),
    registry: str = typer.Option(..., "--registry"),
):
    """Print the two architecture-suffixed tags."""

    def _tags() -> None:
        result = tag_set(platform=platform, image_tag=image_tag, sha=sha, registry=registry.rstrip("/"))
        for tag in result.as_tuple():
            typer.echo(tag)

    _guarded(_tags)


# -------------------------
# Helpers
# -------------------------
def _collect(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if key != "ctx"}


def _settings(ctx: typer.Context) -> PipelineSettings:
    obj = ctx.obj or {}
    settings = load_settings(obj.get("config"))
    overrides: dict[str, Any] = {}
    if obj.get("context") is not None:
        overrides["context_dir"] = obj["context"]
    if obj.get("dry_run"):
        overrides["dry_run"] = True
    if not overrides:
        return settings
    return replace(settings, **overrides)


def _guarded(action: Callable[[], None]) -> None:
    try:
        action()
    except InputValidationError as exc:
        typer.echo(f"[shipyard] invalid input: {exc}", err=True)
        raise typer.Exit(EXIT_INPUT)
    except CredentialResolutionError as exc:
        typer.echo(f"[shipyard] credential resolution failed: {exc}", err=True)
        raise typer.Exit(EXIT_CREDENTIALS)
    except ExternalToolError as exc:
        typer.echo(f"[shipyard] {exc}", err=True)
        raise typer.Exit(exc.returncode or 1)
    except ShipyardError as exc:
        typer.echo(f"[shipyard] failed: {exc}", err=True)
        raise typer.Exit(1)


def main(argv: list[str] | None = None) -> int:
    try:
        app(args=argv, prog_name="shipyard")
    except SystemExit as exc:
        if exc.code is None:
            return 0
        return exc.code if isinstance(exc.code, int) else 1
    return 0
