"""Command: data root initialization (named init_cmd to avoid shadowing builtins)."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from forumkit.commands._base import ForumCommand

if TYPE_CHECKING:
    from forumkit.commands._context import AppContext

_INIT_EXAMPLES = """\
  forumkit init
  forumkit init /srv/forums --title "Support Forums"
  forumkit init . --force"""


@click.command("init", cls=ForumCommand, examples=_INIT_EXAMPLES)
@click.argument("path", required=False, default=".")
@click.option("--title", default="Forums", show_default=True, help="Forum site title.")
@click.option("--force", is_flag=True, help="Overwrite an existing forumkit.toml.")
@click.pass_obj
def init_cmd(app: AppContext, path: str, title: str, force: bool) -> None:
    """Create forumkit.toml and the forum database."""
    from forumkit.services.init import InitService

    app.emit(InitService.init_forum(Path(path).resolve(), title=title, force=force))
