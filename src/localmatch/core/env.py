"""
Project root and `.env` handling.

The CLI reads a provider catalog and may persist the last location under a
cache directory; both are usually given as relative paths. They resolve
against the project root rather than whatever directory the CLI was started
from. The root is `LOCALMATCH_PROJECT_ROOT` when set, otherwise the nearest
ancestor of the working directory holding `.env`, `.git` or `pyproject.toml`.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

_ROOT_MARKERS = (".env", ".git", "pyproject.toml")


@lru_cache
def get_project_root() -> Path:
    override = os.getenv("LOCALMATCH_PROJECT_ROOT")
    if override:
        return Path(override).expanduser().resolve()

    cwd = Path.cwd().resolve()
    for directory in (cwd, *cwd.parents):
        if any((directory / marker).exists() for marker in _ROOT_MARKERS):
            return directory
    return cwd


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load the project `.env` once, never overriding variables already set."""
    env_path = Path(os.getenv("LOCALMATCH_ENV_FILE") or get_project_root() / ".env").expanduser()
    if not env_path.is_file():
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path


def resolve_project_path(path: str | Path) -> Path:
    """Absolute paths pass through; relative ones are anchored at the project root."""
    p = Path(path).expanduser()
    return p if p.is_absolute() else (get_project_root() / p).resolve()
