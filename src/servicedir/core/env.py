"""
Environment helpers.

- `load_dotenv_if_present()`: load a `.env` once (`SERVICEDIR_ENV_FILE`, else the nearest
  one above the working directory); never overrides variables already set.
- `resolve_project_path()`: resolve relative data paths against `SERVICEDIR_PROJECT_ROOT`
  or the working directory.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import find_dotenv, load_dotenv


def get_project_root() -> Path:
    override = os.getenv("SERVICEDIR_PROJECT_ROOT")
    return Path(override).expanduser().resolve() if override else Path.cwd().resolve()


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load `.env` once if present; returns the loaded path (or None)."""
    env_file = os.getenv("SERVICEDIR_ENV_FILE") or find_dotenv(usecwd=True)
    if not env_file or not Path(env_file).is_file():
        return None
    load_dotenv(dotenv_path=env_file, override=False)
    return Path(env_file).resolve()


def resolve_project_path(path: str | Path) -> Path:
    p = Path(path).expanduser()
    if p.is_absolute():
        return p
    return (get_project_root() / p).resolve()
