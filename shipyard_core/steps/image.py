"""Architecture-suffixed tags and the ``docker buildx`` invocation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping

from ..inputs import arch_suffix
from ..tools import ToolRunner
from ..types import BuildPlan, InvocationParameters, PipelineSettings, StepResult, TagSet

logger = logging.getLogger(__name__)

STEP_NAME = "image"


def tag_set(*, platform: str, image_tag: str, sha: str, registry: str) -> TagSet:
    arch = arch_suffix(platform)
    return TagSet(
        arch=arch,
        image_tag=f"{registry}:{image_tag}-{arch}",
        sha_tag=f"{registry}:{sha}-{arch}",
    )


def merge_build_args(
    caller_args: Mapping[str, str],
    *,
    token: str | None,
    token_build_arg: str,
    forward_token: bool,
) -> dict[str, str]:
    """Combine the internal token argument with caller arguments.

    Caller-supplied values win on a key collision.
    """
    merged: dict[str, str] = {}
    if forward_token and token:
        merged[token_build_arg] = token
    for key, value in caller_args.items():
        if key in merged:
            logger.warning(
                "build arg %s supplied by the caller overrides the generated auth argument", key
            )
        merged[key] = value
    return merged


def cache_ref_for(registry: str, arch: str, prefix: str) -> str:
    return f"{registry}:{prefix}-{arch}"


def build_command(
    *,
    platform: str,
    tags: TagSet,
    build_args: Mapping[str, str],
    cache_ref: str | None,
    dockerfile: Path,
    context_dir: Path,
) -> list[str]:
    command = ["docker", "buildx", "build", "--platform", platform, "--push"]
    for tag in tags.as_tuple():
        command += ["--tag", tag]
    for key, value in build_args.items():
        command += ["--build-arg", f"{key}={value}"]
    if cache_ref is None:
        command.append("--no-cache")
    else:
        command += [
            "--cache-from",
            f"type=registry,ref={cache_ref}",
            "--cache-to",
            f"type=registry,ref={cache_ref},mode=max",
        ]
    command += ["--file", str(dockerfile), str(context_dir)]
    return command


class ImageBuilder:
    def __init__(self, runner: ToolRunner, settings: PipelineSettings) -> None:
        self.runner = runner
        self.settings = settings

    def plan(self, params: InvocationParameters, context_dir: Path | None = None) -> BuildPlan:
        context = context_dir or self.settings.context_dir
        tags = tag_set(
            platform=params.platform,
            image_tag=params.image_tag,
            sha=params.sha,
            registry=params.registry,
        )
        build_args = merge_build_args(
            params.build_args,
            token=params.token,
            token_build_arg=self.settings.token_build_arg,
            forward_token=not params.install_dependencies,
        )
        cache_ref = (
            None
            if params.no_cache
            else cache_ref_for(params.registry, tags.arch, self.settings.cache_tag_prefix)
        )
        dockerfile = Path(self.settings.dockerfile)
        if not dockerfile.is_absolute():
            dockerfile = context / dockerfile
        command = build_command(
            platform=params.platform,
            tags=tags,
            build_args=build_args,
            cache_ref=cache_ref,
            dockerfile=dockerfile,
            context_dir=context,
        )
        return BuildPlan(tags=tags, build_args=build_args, cache_ref=cache_ref, command=tuple(command))

    def run(self, params: InvocationParameters, context_dir: Path | None = None) -> StepResult:
        plan = self.plan(params, context_dir)
        self.runner.add_secret(params.token)
        logger.info(
            "building %s for %s (cache=%s)",
            ", ".join(plan.tags.as_tuple()),
            params.platform,
            plan.cache_ref or "off",
        )
        self.runner.run(plan.command, stream=True)
        return StepResult(name=STEP_NAME, ran=True, detail=" ".join(plan.tags.as_tuple()))
