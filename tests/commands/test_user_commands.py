"""Tests for the ``user`` command group."""

from __future__ import annotations

from pathlib import Path

from click.testing import CliRunner

from forumkit.cli import cli
from tests.commands.conftest import Invoke, data_of, error_of


class TestUserAdd:
    def test_add(self, forumkit: Invoke) -> None:
        user = data_of(forumkit("user", "add", "alice"))["user"]
        assert user["name"] == "alice"
        assert user["is_approved"] is True
        assert user["roles"] == []

    def test_add_with_roles_unapproved(self, forumkit: Invoke) -> None:
        user = data_of(
            forumkit("user", "add", "bob", "--role", "Staff", "--role", "Moderator", "--unapproved")
        )["user"]
        assert sorted(user["roles"]) == ["Moderator", "Staff"]
        assert user["is_approved"] is False

    def test_duplicate(self, forumkit: Invoke) -> None:
        forumkit("user", "add", "alice")
        assert "VALIDATION_FAILED" in error_of(forumkit("user", "add", "alice"))


class TestUserShow:
    def test_show(self, forumkit: Invoke) -> None:
        user_id = data_of(forumkit("user", "add", "alice"))["user"]["user_id"]
        assert data_of(forumkit("user", "show", str(user_id)))["user"]["name"] == "alice"

    def test_missing(self, forumkit: Invoke) -> None:
        assert "NOT_FOUND" in error_of(forumkit("user", "show", "99"))

    def test_quiet_prints_id(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        result = cli_runner.invoke(cli, ["--root", str(tmp_path), "-q", "user", "add", "carol"])
        assert result.exit_code == 0
        assert result.stdout.strip() == "1"

    def test_rich_output(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        result = cli_runner.invoke(cli, ["--root", str(tmp_path), "user", "add", "dave"])
        assert result.exit_code == 0
        assert "OK" in result.output
        assert "name: dave" in result.output
