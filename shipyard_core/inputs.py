"""Parsing and validation of invocation parameters."""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping

from .errors import InputValidationError
from .types import DEFAULT_RUNTIME_VERSION, InvocationParameters

logger = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})

REQUIRED_INPUTS = ("account_id", "platform", "image_tag", "sha", "registry")

# input name -> environment variables consulted in order
ENV_INPUTS: dict[str, tuple[str, ...]] = {
    "account_id": ("INPUT_ACCOUNT_ID",),
    "platform": ("INPUT_PLATFORM",),
    "image_tag": ("INPUT_IMAGE_TAG",),
    "sha": ("INPUT_GITHUB_SHA", "GITHUB_SHA"),
    "registry": ("INPUT_REGISTRY",),
    "auth_json": ("INPUT_AUTH_JSON",),
    "token": ("INPUT_TOKEN",),
    "username": ("INPUT_USERNAME",),
    "license": ("INPUT_LICENSE",),
    "runtime_version": ("INPUT_RUNTIME_VERSION",),
    "install_dependencies": ("INPUT_INSTALL_DEPENDENCIES",),
    "build_assets": ("INPUT_BUILD_ASSETS",),
    "no_cache": ("INPUT_NO_CACHE",),
    "build_args": ("INPUT_BUILD_ARGS",),
}


def parse_flag(value: Any, *, name: str, default: bool = False) -> bool:
    """Parse a boolean-ish input.

    ``None`` and blank strings fall back to ``default``; anything outside the
    accepted spellings is rejected instead of being treated as truthy.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if not normalized:
        return default
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise InputValidationError(
        f"invalid value for '{name}': {value!r} (expected one of true/false, yes/no, on/off, 1/0)"
    )


def parse_build_args(block: str | None) -> dict[str, str]:
    """Parse a newline-delimited ``KEY=VALUE`` block into an ordered mapping."""
    parsed: dict[str, str] = {}
    if not block:
        return parsed
    for lineno, raw in enumerate(block.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            raise InputValidationError(f"build-args line {lineno} is not KEY=VALUE: {line!r}")
        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            raise InputValidationError(f"build-args line {lineno} has an empty key")
        if key in parsed:
            logger.warning("build arg %s declared more than once; keeping the last value", key)
        parsed[key] = value
    return parsed


def arch_suffix(platform: str) -> str:
    value = platform.strip()
    if "/" not in value:
        raise InputValidationError(f"platform must look like 'os/arch', got {platform!r}")
    suffix = value.rsplit("/", 1)[1]
    if not suffix:
        raise InputValidationError(f"platform {platform!r} has an empty architecture")
    return suffix


def build_parameters(values: Mapping[str, Any]) -> InvocationParameters:
    missing = [name for name in REQUIRED_INPUTS if not _string_or_none(values.get(name))]
    if missing:
        raise InputValidationError(f"missing required input(s): {', '.join(missing)}")

    platform = str(values["platform"]).strip()
    arch_suffix(platform)

    build_args = values.get("build_args")
    if isinstance(build_args, Mapping):
        parsed_args = {str(key): str(value) for key, value in build_args.items()}
    else:
        parsed_args = parse_build_args(build_args)

    return InvocationParameters(
        account_id=str(values["account_id"]).strip(),
        platform=platform,
        image_tag=str(values["image_tag"]).strip(),
        sha=str(values["sha"]).strip(),
        registry=str(values["registry"]).strip().rstrip("/"),
        auth_json=parse_flag(values.get("auth_json"), name="auth_json"),
        token=_string_or_none(values.get("token")),
        username=_string_or_none(values.get("username")),
        license=_string_or_none(values.get("license")),
        runtime_version=_string_or_none(values.get("runtime_version")) or DEFAULT_RUNTIME_VERSION,
        install_dependencies=parse_flag(values.get("install_dependencies"), name="install_dependencies"),
        build_assets=parse_flag(values.get("build_assets"), name="build_assets"),
        no_cache=parse_flag(values.get("no_cache"), name="no_cache"),
        build_args=parsed_args,
    )


def values_from_env(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    env = os.environ if environ is None else environ
    values: dict[str, str] = {}
    for name, keys in ENV_INPUTS.items():
        for key in keys:
            if env.get(key):
                values[name] = env[key]
                break
    return values


def merge_values(*layers: Mapping[str, Any]) -> dict[str, Any]:
    """Later layers win; ``None`` never overrides an earlier value."""
    merged: dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            if value is not None:
                merged[key] = value
    return merged


def _string_or_none(value: Any) -> str | None:
    if value is None:
        return None
    data = str(value).strip()
    return data if data else None
