"""Rich Console factory and theme for forumkit output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract. In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

FORUMKIT_THEME = Theme(
    {
        "fk.ok": "bold green",
        "fk.error": "bold red",
        "fk.warning": "bold yellow",
        "fk.op": "bold cyan",
        "fk.key": "dim",
        "fk.id": "bold blue",
        "fk.title": "bold",
        "fk.granted": "green",
        "fk.denied": "red",
        "fk.votes": "magenta",
        "fk.accepted": "bold green",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=FORUMKIT_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def flag_style(value: bool) -> str:
    return "fk.granted" if value else "fk.denied"
