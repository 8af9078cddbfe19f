"""Command group: user accounts."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from forumkit.commands._base import ForumGroup

if TYPE_CHECKING:
    from forumkit.commands._context import AppContext


@click.group(
    cls=ForumGroup,
    examples="""\
  forumkit user add alice
  forumkit user add bob --role Moderator --role Staff
  forumkit user add carol --unapproved
  forumkit user show 1""",
)
def user() -> None:
    """Manage user accounts."""


@user.command("add")
@click.argument("name")
@click.option("--role", "roles", multiple=True, help="Role to grant (repeatable).")
@click.option("--unapproved", is_flag=True, help="Create the account unverified.")
@click.pass_obj
def add(app: AppContext, name: str, roles: tuple[str, ...], unapproved: bool) -> None:
    """Create a user."""
    from forumkit.services.users import UserService

    app.emit(UserService(app.store).create_user(name, roles=roles, is_approved=not unapproved))


@user.command("show")
@click.argument("user_id", type=int)
@click.pass_obj
def show(app: AppContext, user_id: int) -> None:
    """Show a user and their roles."""
    from forumkit.services.users import UserService

    app.emit(UserService(app.store).get_user(user_id))
