"""Pipeline datatypes and configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Mapping

DEFAULT_RUNTIME_VERSION = "8.2"
DEFAULT_NODE_VERSION = "20"


@dataclass(frozen=True)
class InvocationParameters:
    account_id: str
    platform: str
    image_tag: str
    sha: str
    registry: str
    auth_json: bool = False
    token: str | None = None
    username: str | None = None
    license: str | None = None
    runtime_version: str = DEFAULT_RUNTIME_VERSION
    install_dependencies: bool = False
    build_assets: bool = False
    no_cache: bool = False
    build_args: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PipelineSettings:
    region: str = "us-east-1"
    role_name: str = "github-actions-ecr"
    session_name: str = "shipyard"
    session_duration: int = 3600
    context_dir: Path = Path(".")
    dockerfile: str = "Dockerfile"
    token_build_arg: str = "GITHUB_TOKEN"
    cache_tag_prefix: str = "buildcache"
    github_host: str = "github.com"
    basic_auth_host: str = "nova.laravel.com"
    node_version: str = DEFAULT_NODE_VERSION
    timeout_seconds: float = 3600.0
    dry_run: bool = False


@dataclass(frozen=True)
class RegistryCredentials:
    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: str = field(repr=False)
    expiration: datetime | None
    registry_host: str
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class TagSet:
    arch: str
    image_tag: str
    sha_tag: str

    def as_tuple(self) -> tuple[str, str]:
        return (self.image_tag, self.sha_tag)


@dataclass(frozen=True)
class BuildPlan:
    tags: TagSet
    build_args: Mapping[str, str]
    cache_ref: str | None
    command: tuple[str, ...]


@dataclass(frozen=True)
class StepResult:
    name: str
    ran: bool
    detail: str = ""


@dataclass(frozen=True)
class PipelineResult:
    tags: TagSet
    steps: tuple[StepResult, ...] = ()
