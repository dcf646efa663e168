"""Sequential build pipeline: credentials, auth descriptor, assets, dependencies, image."""

from __future__ import annotations

import logging
from pathlib import Path

from .auth_descriptor import auth_descriptor
from .credentials import CredentialResolver
from .errors import InputValidationError
from .steps import AssetCompiler, DependencyInstaller, ImageBuilder
from .tools import ToolRunner
from .types import BuildPlan, InvocationParameters, PipelineResult, PipelineSettings, StepResult

logger = logging.getLogger(__name__)


class BuildPipeline:
    """Run every step in order; the first failure stops the invocation."""

    def __init__(
        self,
        settings: PipelineSettings | None = None,
        *,
        runner: ToolRunner | None = None,
        resolver: CredentialResolver | None = None,
    ) -> None:
        self.settings = settings or PipelineSettings()
        self.runner = runner or ToolRunner(
            timeout_seconds=self.settings.timeout_seconds,
            dry_run=self.settings.dry_run,
        )
        self.resolver = resolver or CredentialResolver(self.settings, self.runner)
        self.assets = AssetCompiler(self.runner, node_version=self.settings.node_version)
        self.dependencies = DependencyInstaller(self.runner)
        self.image = ImageBuilder(self.runner, self.settings)

    @property
    def context_dir(self) -> Path:
        return self.settings.context_dir.resolve()

    def plan(self, params: InvocationParameters) -> BuildPlan:
        return self.image.plan(params, self.context_dir)

    def run(self, params: InvocationParameters) -> PipelineResult:
        context_dir = self.context_dir
        if not context_dir.is_dir():
            raise InputValidationError(f"build context is not a directory: {context_dir}")
        # the username only lands in auth.json, never on a command line
        self.runner.add_secret(params.token)
        self.runner.add_secret(params.license)

        # tags are derived up front so a bad platform fails before any tool runs
        plan = self.plan(params)
        steps: list[StepResult] = []

        if self.runner.dry_run:
            steps.append(StepResult(name="credentials", ran=False, detail="dry-run"))
        else:
            credentials = self.resolver.resolve(params.account_id, registry=params.registry)
            steps.append(StepResult(name="credentials", ran=True, detail=credentials.registry_host))

        with auth_descriptor(
            context_dir,
            enabled=params.auth_json,
            token=params.token,
            username=params.username,
            license=params.license,
            github_host=self.settings.github_host,
            basic_auth_host=self.settings.basic_auth_host,
            dry_run=self.runner.dry_run,
        ) as descriptor:
            steps.append(_auth_step(descriptor, dry_run=self.runner.dry_run))
            steps.append(self.assets.run(context_dir, enabled=params.build_assets))
            steps.append(
                self.dependencies.run(
                    context_dir,
                    enabled=params.install_dependencies,
                    runtime_version=params.runtime_version,
                    descriptor=descriptor,
                )
            )

        steps.append(self.image.run(params, context_dir))
        logger.info("pushed %s", ", ".join(plan.tags.as_tuple()))
        return PipelineResult(tags=plan.tags, steps=tuple(steps))


def _auth_step(descriptor: Path | None, *, dry_run: bool) -> StepResult:
    if descriptor is None:
        return StepResult(name="auth", ran=False, detail="auth descriptor disabled")
    if dry_run:
        return StepResult(name="auth", ran=False, detail="dry-run")
    return StepResult(name="auth", ran=True, detail=descriptor.name)
