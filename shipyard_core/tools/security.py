"""Redaction helpers for commands and values that reach the logs."""

from __future__ import annotations

from urllib.parse import urlsplit

_SENSITIVE_KEYS = ("password", "token", "secret", "license", "authorization", "bearer")
_VALUE_FLAGS = {"--password", "--token", "-p"}

# registered values shorter than this are never masked
MIN_SECRET_LENGTH = 8


def is_sensitive_key(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in _SENSITIVE_KEYS)


def redact_build_arg(item: str) -> str:
    key, sep, value = item.partition("=")
    if sep and value and is_sensitive_key(key):
        return f"{key}=***"
    return item


def redact_command_for_log(command: list[str] | tuple[str, ...]) -> list[str]:
    redacted: list[str] = []
    skip_next = False
    build_arg_next = False
    for item in command:
        lower = item.lower()
        if skip_next:
            redacted.append("***")
            skip_next = False
            continue
        if build_arg_next:
            redacted.append(redact_build_arg(item))
            build_arg_next = False
            continue
        if lower in _VALUE_FLAGS:
            redacted.append(item)
            skip_next = True
            continue
        if lower == "--build-arg":
            redacted.append(item)
            build_arg_next = True
            continue
        if lower.startswith("--build-arg="):
            redacted.append(f"--build-arg={redact_build_arg(item[len('--build-arg='):])}")
            continue
        if "://" in item:
            parsed = urlsplit(item)
            if parsed.password:
                safe_netloc = parsed.netloc.replace(parsed.password, "***")
                redacted.append(item.replace(parsed.netloc, safe_netloc))
                continue
        redacted.append(item)
    return redacted


def redact_secrets(text: str, secrets: tuple[str, ...]) -> str:
    result = text
    for secret in secrets:
        if secret and len(secret) >= MIN_SECRET_LENGTH:
            result = result.replace(secret, "***")
    return result
