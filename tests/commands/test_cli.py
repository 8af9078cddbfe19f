"""Tests for the root CLI group, global flags, and the init command."""

from __future__ import annotations

import json
import tomllib
from pathlib import Path

import pytest
from click.testing import CliRunner

from forumkit import __version__
from forumkit.cli import cli


class TestRootGroup:
    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert f"forumkit, version {__version__}" in result.output

    def test_help_without_subcommand(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        result = cli_runner.invoke(cli, ["--root", str(tmp_path)])
        assert result.exit_code == 0
        for name in ("forum", "post", "user", "init"):
            assert name in result.output
        assert not (tmp_path / ".forumkit").exists()

    @pytest.mark.parametrize("group", ["forum", "post", "user", "init"])
    def test_examples(self, cli_runner: CliRunner, tmp_path: Path, group: str) -> None:
        result = cli_runner.invoke(cli, ["--root", str(tmp_path), group, "--examples"])
        assert result.exit_code == 0
        assert "Examples for" in result.output
        assert f"forumkit {group}" in result.output

    def test_subcommand_examples_are_filtered(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        result = cli_runner.invoke(cli, ["--root", str(tmp_path), "post", "reply", "--examples"])
        assert result.exit_code == 0
        assert "forumkit post reply 10 3" in result.output
        assert "forumkit post topic" not in result.output

    def test_subcommand_without_examples(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        result = cli_runner.invoke(
            cli, ["--root", str(tmp_path), "post", "subscribe", "--examples"]
        )
        assert result.exit_code == 0
        assert "No examples for" in result.output

    def test_help_stays_concise(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["forum", "--help"])
        assert result.exit_code == 0
        assert "--examples" in result.output
        assert "forumkit forum create" not in result.output


class TestInitCommand:
    def test_init(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        site = tmp_path / "site"
        result = cli_runner.invoke(
            cli,
            ["--root", str(tmp_path), "--json", "init", str(site), "--title", "Support"],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)["data"]
        assert data["title"] == "Support"
        config = tomllib.loads((site / "forumkit.toml").read_text(encoding="utf-8"))
        assert config["forum"]["title"] == "Support"
        assert (site / ".forumkit" / "forumkit.db").is_file()

    def test_init_twice_fails(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        args = ["--root", str(tmp_path), "--json", "init", str(tmp_path)]
        assert cli_runner.invoke(cli, args).exit_code == 0
        again = cli_runner.invoke(cli, args)
        assert again.exit_code == 1
        assert "VALIDATION_FAILED" in again.output
        assert "already exists" in again.output
        assert cli_runner.invoke(cli, [*args, "--force"]).exit_code == 0

    def test_config_title_reaches_listing(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        cli_runner.invoke(cli, ["--root", str(tmp_path), "init", str(tmp_path), "--title", "Docs"])
        result = cli_runner.invoke(
            cli, ["--config", str(tmp_path / "forumkit.toml"), "--json", "forum", "list"]
        )
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["data"]["forum_title"] == "Docs"
