"""External tool invocation for shipyard."""

from .runner import EXIT_NOT_FOUND, EXIT_TIMEOUT, ToolRunner
from .security import MIN_SECRET_LENGTH, redact_command_for_log, redact_secrets

__all__ = [
    "ToolRunner",
    "EXIT_NOT_FOUND",
    "EXIT_TIMEOUT",
    "MIN_SECRET_LENGTH",
    "redact_command_for_log",
    "redact_secrets",
]
