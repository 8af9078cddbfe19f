"""Subcommand modules for forumkit.

Provides register_commands() which uses deferred imports to keep
``forumkit --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all command groups and standalone commands on the root CLI group."""
    # --- Groups ---
    from forumkit.commands.forum import forum
    from forumkit.commands.post import post
    from forumkit.commands.user import user

    cli.add_command(forum)
    cli.add_command(post)
    cli.add_command(user)

    # --- Standalone commands ---
    from forumkit.commands.init_cmd import init_cmd

    cli.add_command(init_cmd)
