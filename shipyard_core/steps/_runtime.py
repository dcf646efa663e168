"""Runtime version checks shared by the package-manager steps."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from ..errors import ExternalToolError
from ..tools import ToolRunner

logger = logging.getLogger(__name__)


def version_matches(installed: str, expected: str) -> bool:
    actual = installed.strip().lstrip("vV")
    wanted = expected.strip().lstrip("vV")
    if not wanted:
        return True
    return actual == wanted or actual.startswith(f"{wanted}.")


def ensure_runtime(
    runner: ToolRunner,
    command: Sequence[str],
    *,
    name: str,
    expected: str,
    cwd: Path | None = None,
) -> str:
    result = runner.run(command, cwd=cwd)
    installed = (result.stdout or "").strip()
    if runner.dry_run:
        return installed
    if not version_matches(installed, expected):
        raise ExternalToolError(
            f"{name} {installed or '(unknown)'} does not match required version {expected}",
            command=tuple(command),
        )
    logger.info("%s %s satisfies %s", name, installed, expected)
    return installed
