"""Fixtures for CLI command tests: an isolated data root per test."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner, Result

from forumkit.cli import cli

Invoke = Callable[..., Result]


@pytest.fixture
def forumkit(cli_runner: CliRunner, tmp_path: Path) -> Invoke:
    """Run ``forumkit --root <tmp> --sync --json ARGS``."""

    def run(*args: str) -> Result:
        return cli_runner.invoke(cli, ["--root", str(tmp_path), "--sync", "--json", *args])

    return run


def data_of(result: Result) -> dict[str, Any]:
    """Assert success and return the JSON ``data`` payload."""
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["ok"] is True
    return payload["data"]


def error_of(result: Result) -> str:
    """Assert failure (exit 1) and return the combined output."""
    assert result.exit_code == 1, result.output
    return result.output
