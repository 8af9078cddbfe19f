"""Locating a forum's root directory and its ``forumkit.toml``.

A forum root is the nearest directory, walking up from the start point,
that holds either ``forumkit.toml`` or the ``.forumkit/`` data directory.
The walk stops there, so a forum nested inside another never inherits the
outer forum's configuration. ``FORUMKIT_CONFIG`` names a config file
directly and bypasses the walk.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

import click

from forumkit.config.models import ForumkitConfig
from forumkit.infrastructure.database.engine import DATA_DIRNAME

CONFIG_FILENAME = "forumkit.toml"
CONFIG_ENV_VAR = "FORUMKIT_CONFIG"


def is_forum_root(path: Path) -> bool:
    return (path / CONFIG_FILENAME).is_file() or (path / DATA_DIRNAME).is_dir()


def find_forum_root(start: Path | None = None) -> Path | None:
    """Nearest forum root at or above *start* (default: cwd)."""
    current = (start or Path.cwd()).resolve()
    for candidate in (current, *current.parents):
        if is_forum_root(candidate):
            return candidate
    return None


def find_config(start: Path | None = None) -> Path | None:
    """The config file governing *start*, or None when the forum has none."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        return p if p.is_file() else None

    root = find_forum_root(start)
    if root is None:
        return None
    candidate = root / CONFIG_FILENAME
    return candidate if candidate.is_file() else None


def read_toml(path: Path) -> dict[str, Any]:
    """Parse *path*, reporting syntax errors as a CLI error naming the file."""
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {path}: {exc}"
        raise click.ClickException(msg) from exc


def load_config(path: Path | None = None, cwd: Path | None = None) -> ForumkitConfig:
    """Validated config sections, or the defaults when no file applies."""
    if path is None:
        path = find_config(cwd)
    if path is None:
        return ForumkitConfig()
    return ForumkitConfig.model_validate(read_toml(path))
