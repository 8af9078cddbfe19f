"""Forum sort-order keys within a category.

A move shifts the target's key by 3 in the requested direction, which
always carries it past its neighbour (keys are spaced by 2), then the
whole category is renumbered ``0, 2, 4, ...``. Repeated moves therefore
never drift or collide.

INVARIANT: after :func:`resequence`, keys are strictly increasing and
evenly spaced by :data:`SORT_STEP`.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum

from forumkit.domain.models import Forum

SORT_STEP = 2
MOVE_DELTA = 3


class MoveDirection(StrEnum):
    """Direction of a single-position forum move."""

    UP = "up"
    DOWN = "down"

    @property
    def delta(self) -> int:
        return -MOVE_DELTA if self is MoveDirection.UP else MOVE_DELTA


def resequence(forums: Iterable[Forum]) -> list[Forum]:
    """Sort *forums* by key and reassign ``index * SORT_STEP`` in place.

    Equal keys keep their incoming order. Returns the sorted list.
    """
    ordered = sorted(forums, key=lambda f: f.sort_order)
    for index, forum in enumerate(ordered):
        forum.sort_order = index * SORT_STEP
    return ordered


def move_forum(forums: list[Forum], forum_id: int, direction: MoveDirection) -> list[Forum]:
    """Move *forum_id* one position in *direction* and renumber the category.

    Raises:
        KeyError: If *forum_id* is not among *forums*.
    """
    target = next((f for f in forums if f.forum_id == forum_id), None)
    if target is None:
        raise KeyError(forum_id)
    target.sort_order += direction.delta
    return resequence(forums)
