"""Composer-style ``auth.json`` written into the build context for the duration of a scope."""

from __future__ import annotations

import json
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from .errors import InputValidationError, ShipyardError

logger = logging.getLogger(__name__)

DESCRIPTOR_FILENAME = "auth.json"


def build_descriptor(
    *,
    token: str | None = None,
    username: str | None = None,
    license: str | None = None,
    github_host: str = "github.com",
    basic_auth_host: str = "nova.laravel.com",
) -> dict[str, Any]:
    """Return only the entries whose secrets were supplied."""
    descriptor: dict[str, Any] = {}
    if token:
        descriptor["github-oauth"] = {github_host: token}
    if username and license:
        descriptor["http-basic"] = {basic_auth_host: {"username": username, "password": license}}
    elif username or license:
        logger.warning("ignoring incomplete http-basic credentials: both username and license are required")
    if not descriptor:
        logger.warning("auth descriptor requested but no secrets were supplied; writing an empty descriptor")
    return descriptor


def write_descriptor(path: Path, descriptor: dict[str, Any]) -> Path:
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    except OSError as exc:
        raise ShipyardError(f"unable to write auth descriptor {path}: {exc.strerror or exc}") from exc
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(descriptor, handle, indent=2)
    except OSError as exc:
        path.unlink(missing_ok=True)
        raise ShipyardError(f"unable to write auth descriptor {path}: {exc.strerror or exc}") from exc
    return path


@contextmanager
def auth_descriptor(
    context_dir: Path,
    *,
    enabled: bool,
    token: str | None = None,
    username: str | None = None,
    license: str | None = None,
    github_host: str = "github.com",
    basic_auth_host: str = "nova.laravel.com",
    dry_run: bool = False,
) -> Iterator[Path | None]:
    """Yield the descriptor path, or ``None`` when disabled.

    The file is removed when the scope exits, including on error. With
    ``dry_run`` the entries are logged and nothing is written.
    """
    if not enabled:
        yield None
        return

    path = context_dir / DESCRIPTOR_FILENAME
    if path.exists():
        raise InputValidationError(f"refusing to overwrite existing {path}")
    descriptor = build_descriptor(
        token=token,
        username=username,
        license=license,
        github_host=github_host,
        basic_auth_host=basic_auth_host,
    )
    if dry_run:
        logger.info("dry-run: would write %s with entries: %s", path, ", ".join(sorted(descriptor)) or "(none)")
        yield path
        return
    write_descriptor(path, descriptor)
    logger.info("wrote auth descriptor with entries: %s", ", ".join(sorted(descriptor)) or "(none)")
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)
        logger.info("removed auth descriptor %s", path)
