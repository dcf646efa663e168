"""YAML settings file for tool-level knobs that are not per-invocation inputs."""

from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import InputValidationError
from .inputs import parse_flag
from .types import PipelineSettings

CONFIG_FILENAME = "shipyard.yml"

# (section, key) -> (settings attribute, converter name)
_FIELDS: dict[tuple[str, str], tuple[str, str]] = {
    ("aws", "region"): ("region", "str"),
    ("aws", "role_name"): ("role_name", "str"),
    ("aws", "session_name"): ("session_name", "str"),
    ("aws", "session_duration"): ("session_duration", "int"),
    ("build", "context"): ("context_dir", "path"),
    ("build", "dockerfile"): ("dockerfile", "str"),
    ("build", "token_build_arg"): ("token_build_arg", "str"),
    ("build", "cache_tag_prefix"): ("cache_tag_prefix", "str"),
    ("auth", "github_host"): ("github_host", "str"),
    ("auth", "basic_auth_host"): ("basic_auth_host", "str"),
    ("assets", "node_version"): ("node_version", "str"),
    ("tools", "timeout_seconds"): ("timeout_seconds", "float"),
    ("tools", "dry_run"): ("dry_run", "bool"),
}


def _resolve_env_value(value: Any) -> Any:
    if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
        env_name = value[2:-1].strip()
        if env_name:
            return os.getenv(env_name, "")
    return value


_CONVERTERS = {
    "str": lambda value: str(value).strip(),
    "int": int,
    "float": float,
    "bool": lambda value: parse_flag(value, name="settings"),
    "path": lambda value: Path(str(value)).expanduser(),
}


def settings_from_mapping(raw: Mapping[str, Any], base: PipelineSettings | None = None) -> PipelineSettings:
    if not isinstance(raw, Mapping):
        raise InputValidationError("expected a mapping at the top of the settings file")
    overrides: dict[str, Any] = {}
    for (section, key), (attribute, kind) in _FIELDS.items():
        section_raw = raw.get(section)
        if section_raw is None:
            continue
        if not isinstance(section_raw, Mapping):
            raise InputValidationError(f"settings section '{section}' must be a mapping")
        if key not in section_raw:
            continue
        value = _resolve_env_value(section_raw[key])
        if value is None or value == "":
            continue
        try:
            overrides[attribute] = _CONVERTERS[kind](value)
        except (TypeError, ValueError) as exc:
            raise InputValidationError(f"invalid value for {section}.{key}: {value!r}") from exc
    return replace(base or PipelineSettings(), **overrides)


def load_settings(path: Path | str | None = None, *, start_dir: Path | None = None) -> PipelineSettings:
    """Load settings from ``path`` or from ``shipyard.yml`` in ``start_dir`` when present."""
    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise InputValidationError(f"settings file not found: {config_path}")
    else:
        config_path = (start_dir or Path.cwd()) / CONFIG_FILENAME
        if not config_path.exists():
            return PipelineSettings()
    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise InputValidationError(f"unable to parse {config_path}: {exc}") from exc
    return settings_from_mapping(raw)
