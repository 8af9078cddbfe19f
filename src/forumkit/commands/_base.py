"""Click base classes carrying usage examples.

Each command group holds one example block. ``--examples`` on the group
prints the whole block; on a subcommand it prints only the lines that
invoke that subcommand, so ``forumkit post reply --examples`` shows the
reply examples without repeating them in every command definition.
"""

from __future__ import annotations

from typing import Any

import click


def examples_for(ctx: click.Context) -> str:
    """The example lines that apply to the command running in *ctx*."""
    words: list[str] = []
    current: click.Context | None = ctx
    while current is not None:
        own = getattr(current.command, "examples", None)
        if own:
            return _matching(own, words)
        if current.parent is not None and current.info_name:
            words.insert(0, current.info_name)
        current = current.parent
    return ""


def _matching(block: str, words: list[str]) -> str:
    """Lines of *block* whose arguments, after the program name, start with *words*.

    Examples:
        >>> _matching("  forumkit post topic 1\\n  forumkit post reply 2", ["reply"])
        '  forumkit post reply 2'
        >>> _matching("  forumkit init .", [])
        '  forumkit init .'
    """
    if not words:
        return block
    picked = []
    for line in block.splitlines():
        args = line.split()[2:]
        if args[: len(words)] == words:
            picked.append(line)
    return "\n".join(picked)


def _show_examples(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
    if not value or ctx.resilient_parsing:
        return
    text = examples_for(ctx)
    if text:
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(text)
    else:
        click.echo(f"No examples for '{ctx.command_path}'.")
    ctx.exit(0)


def examples_option() -> click.Option:
    return click.Option(
        ["--examples"],
        is_flag=True,
        expose_value=False,
        is_eager=True,
        callback=_show_examples,
        help="Show usage examples.",
    )


class ForumCommand(click.Command):
    """Command with ``--examples``, drawn from its own block or its group's."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        self.params.append(examples_option())


class ForumGroup(click.Group):
    """Group whose subcommands are :class:`ForumCommand` by default."""

    command_class = ForumCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        self.params.append(examples_option())
