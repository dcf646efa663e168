"""Subprocess wrapper shared by every pipeline step."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Mapping, Sequence

from ..errors import ExternalToolError
from .security import MIN_SECRET_LENGTH, redact_command_for_log, redact_secrets

logger = logging.getLogger(__name__)

EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124


class ToolRunner:
    """Runs external CLIs once, without retries, and raises on any failure."""

    def __init__(
        self,
        *,
        timeout_seconds: float = 3600.0,
        dry_run: bool = False,
        secrets: Sequence[str] = (),
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.dry_run = dry_run
        self._secrets = tuple(item for item in secrets if item and len(item) >= MIN_SECRET_LENGTH)

    def add_secret(self, value: str | None) -> None:
        if value and len(value) >= MIN_SECRET_LENGTH and value not in self._secrets:
            self._secrets = (*self._secrets, value)

    def describe(self, command: Sequence[str]) -> str:
        return redact_secrets(" ".join(redact_command_for_log(list(command))), self._secrets)

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        input_text: str | None = None,
        stream: bool = False,
    ) -> subprocess.CompletedProcess[str]:
        command = list(command)
        described = self.describe(command)
        if self.dry_run:
            logger.info("dry-run: %s", described)
            return subprocess.CompletedProcess(args=command, returncode=0, stdout="", stderr="")

        timeout = max(float(self.timeout_seconds), 1.0)
        merged_env = {**os.environ, **env} if env else None
        logger.debug("tool command cwd=%s cmd=%s", cwd or ".", described)
        try:
            result = subprocess.run(
                command,
                check=False,
                capture_output=not stream,
                text=True,
                timeout=timeout,
                input=input_text,
                cwd=str(cwd) if cwd is not None else None,
                env=merged_env,
            )
        except FileNotFoundError as exc:
            raise ExternalToolError(
                f"{command[0]} not found. Install it and ensure it is available in PATH.",
                command=tuple(redact_command_for_log(command)),
                returncode=EXIT_NOT_FOUND,
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise ExternalToolError(
                f"{command[0]} timed out after {timeout:.1f}s",
                command=tuple(redact_command_for_log(command)),
                returncode=EXIT_TIMEOUT,
            ) from exc

        if result.returncode != 0:
            stderr = redact_secrets((result.stderr or "").strip(), self._secrets)
            raise ExternalToolError(
                _format_failure(described, result.returncode, stderr),
                command=tuple(redact_command_for_log(command)),
                returncode=result.returncode,
                stderr=stderr,
            )
        return result


def _format_failure(described: str, code: int, stderr: str) -> str:
    if stderr:
        return f"command failed (exit={code}) cmd='{described}' err='{stderr}'"
    return f"command failed (exit={code}) cmd='{described}'"
