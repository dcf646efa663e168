"""Composer install into the build context so the image build does not resolve dependencies."""

from __future__ import annotations

import logging
from pathlib import Path

from ..tools import ToolRunner
from ..types import StepResult
from ._runtime import ensure_runtime

logger = logging.getLogger(__name__)

STEP_NAME = "dependencies"

INSTALL_COMMAND = (
    "composer",
    "install",
    "--no-dev",
    "--no-interaction",
    "--prefer-dist",
    "--optimize-autoloader",
)


class DependencyInstaller:
    def __init__(self, runner: ToolRunner) -> None:
        self.runner = runner

    def run(
        self,
        context_dir: Path,
        *,
        enabled: bool,
        runtime_version: str,
        descriptor: Path | None = None,
    ) -> StepResult:
        if not enabled:
            return StepResult(name=STEP_NAME, ran=False, detail="dependency pre-install disabled")
        installed = ensure_runtime(
            self.runner,
            ["php", "-r", "echo PHP_VERSION;"],
            name="php",
            expected=runtime_version,
            cwd=context_dir,
        )
        # composer reads auth.json from the project directory on its own
        if descriptor is not None:
            logger.info("composer will authenticate with %s", descriptor.name)
        self.runner.run(list(INSTALL_COMMAND), cwd=context_dir, stream=True)
        return StepResult(name=STEP_NAME, ran=True, detail=f"php {installed or runtime_version}")
