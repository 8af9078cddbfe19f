"""Tests for forum sort-order keys."""

from __future__ import annotations

import pytest

from forumkit.domain.models import Forum
from forumkit.domain.ordering import SORT_STEP, MoveDirection, move_forum, resequence


def _forums(*orders: int) -> list[Forum]:
    return [
        Forum(forum_id=i + 1, title=f"Forum {i + 1}", sort_order=order)
        for i, order in enumerate(orders)
    ]


def _ids(forums: list[Forum]) -> list[int]:
    return [f.forum_id for f in forums]


class TestResequence:
    def test_renumbers_evenly(self) -> None:
        ordered = resequence(_forums(7, 1, 30))
        assert _ids(ordered) == [2, 1, 3]
        assert [f.sort_order for f in ordered] == [0, SORT_STEP, 2 * SORT_STEP]

    def test_ties_keep_incoming_order(self) -> None:
        ordered = resequence(_forums(0, 0, 0))
        assert _ids(ordered) == [1, 2, 3]
        assert [f.sort_order for f in ordered] == [0, 2, 4]

    def test_empty(self) -> None:
        assert resequence([]) == []


class TestMoveForum:
    def test_move_up_swaps_with_previous(self) -> None:
        ordered = move_forum(_forums(0, 2, 4), 3, MoveDirection.UP)
        assert _ids(ordered) == [1, 3, 2]
        assert [f.sort_order for f in ordered] == [0, 2, 4]

    def test_move_down_swaps_with_next(self) -> None:
        ordered = move_forum(_forums(0, 2, 4), 1, MoveDirection.DOWN)
        assert _ids(ordered) == [2, 1, 3]

    def test_move_first_up_is_a_no_op(self) -> None:
        ordered = move_forum(_forums(0, 2, 4), 1, MoveDirection.UP)
        assert _ids(ordered) == [1, 2, 3]
        assert [f.sort_order for f in ordered] == [0, 2, 4]

    def test_move_last_down_is_a_no_op(self) -> None:
        ordered = move_forum(_forums(0, 2, 4), 3, MoveDirection.DOWN)
        assert _ids(ordered) == [1, 2, 3]

    def test_repeated_moves_do_not_drift(self) -> None:
        forums = _forums(0, 2, 4, 6)
        for _ in range(5):
            forums = move_forum(forums, 4, MoveDirection.UP)
        assert _ids(forums) == [4, 1, 2, 3]
        assert [f.sort_order for f in forums] == [0, 2, 4, 6]

    def test_unknown_forum_raises(self) -> None:
        with pytest.raises(KeyError):
            move_forum(_forums(0, 2), 99, MoveDirection.UP)

    def test_direction_delta(self) -> None:
        assert MoveDirection.UP.delta == -3
        assert MoveDirection.DOWN.delta == 3
