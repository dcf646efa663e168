"""Front-end asset build run before the image build."""

from __future__ import annotations

import logging
from pathlib import Path

from ..tools import ToolRunner
from ..types import StepResult
from ._runtime import ensure_runtime

logger = logging.getLogger(__name__)

STEP_NAME = "assets"


class AssetCompiler:
    def __init__(self, runner: ToolRunner, *, node_version: str) -> None:
        self.runner = runner
        self.node_version = node_version

    def run(self, context_dir: Path, *, enabled: bool) -> StepResult:
        if not enabled:
            return StepResult(name=STEP_NAME, ran=False, detail="asset build disabled")
        installed = ensure_runtime(
            self.runner,
            ["node", "--version"],
            name="node",
            expected=self.node_version,
            cwd=context_dir,
        )
        self.runner.run(["npm", "ci"], cwd=context_dir, stream=True)
        self.runner.run(["npm", "run", "build"], cwd=context_dir, stream=True)
        logger.info("compiled front-end assets in %s", context_dir)
        return StepResult(name=STEP_NAME, ran=True, detail=f"node {installed or self.node_version}")
