"""URL name (slug) generation for forums and topics.

INVARIANT: a url name is generated once, when the row is created, and is
unique within its scope. Collisions get a numeric suffix starting at 2:
``hello-world``, ``hello-world2``, ``hello-world3``.
"""

from __future__ import annotations

from collections.abc import Iterable

from slugify import slugify

MAX_URL_NAME_LENGTH = 200
_FALLBACK_URL_NAME = "untitled"


def to_url_name(text: str) -> str:
    """Lowercase, ASCII, hyphen-separated form of *text*.

    Examples:
        >>> to_url_name("Hello World")
        'hello-world'
        >>> to_url_name("  Ça va? ")
        'ca-va'
    """
    return slugify(text, max_length=MAX_URL_NAME_LENGTH) or _FALLBACK_URL_NAME


def to_unique_url_name(text: str, existing: Iterable[str]) -> str:
    """Url name for *text* that does not appear in *existing*.

    *existing* is normally the result of a prefix lookup on the base url
    name, so it only needs to contain the candidates that could collide.
    """
    base = to_url_name(text)
    taken = set(existing)
    if base not in taken:
        return base
    suffix = 2
    while f"{base}{suffix}" in taken:
        suffix += 1
    return f"{base}{suffix}"
