"""Exception hierarchy for the build pipeline."""

from __future__ import annotations


class ShipyardError(RuntimeError):
    """Base error for every pipeline failure."""


class InputValidationError(ShipyardError, ValueError):
    """Raised when an invocation parameter or setting is missing or malformed."""


class CredentialResolutionError(ShipyardError):
    """Raised when registry credentials cannot be obtained."""


class ExternalToolError(ShipyardError):
    """Raised when an external CLI exits non-zero, is missing or times out."""

    def __init__(
        self,
        message: str,
        *,
        command: tuple[str, ...] = (),
        returncode: int = 1,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
