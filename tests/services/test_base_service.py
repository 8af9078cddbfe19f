"""Tests for BaseService effect running and event dispatch."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest

from forumkit.services.base import BaseService
from forumkit.services.forum import ForumService
from forumkit.services.moderation import ModerationLogService
from forumkit.services.posting import PostingService
from forumkit.services.subscriptions import SubscriptionService
from forumkit.services.topics import TopicService
from forumkit.services.users import UserService


class _Bus:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.dispatched: list[tuple[str, dict[str, Any]]] = []

    def dispatch(self, hook_name: str, payload: dict[str, Any]) -> int:
        if self.fail:
            raise RuntimeError("wal locked")
        self.dispatched.append((hook_name, payload))
        return len(self.dispatched)


def _service(bus: _Bus | None) -> BaseService:
    return BaseService(SimpleNamespace(event_bus=bus))  # type: ignore[arg-type]


class TestRunEffects:
    def test_runs_in_order(self) -> None:
        seen: list[str] = []
        warnings: list[str] = []
        completed = _service(None)._run_effects(
            [("a", lambda: seen.append("a")), ("b", lambda: seen.append("b"))], warnings
        )
        assert seen == ["a", "b"]
        assert completed == ["a", "b"]
        assert warnings == []

    def test_failure_is_a_warning_and_later_effects_run(self) -> None:
        seen: list[str] = []
        warnings: list[str] = []

        def broken() -> None:
            raise ValueError("nope")

        completed = _service(None)._run_effects(
            [("first", broken), ("second", lambda: seen.append("second"))], warnings
        )
        assert completed == ["second"]
        assert seen == ["second"]
        assert warnings == ["Post-commit effect failed: first"]


class TestDispatchEvent:
    def test_noop_without_bus(self) -> None:
        warnings: list[str] = []
        _service(None)._dispatch_event("notify_forum_update", {"forum": {}}, warnings)
        assert warnings == []

    def test_dispatches_payload(self) -> None:
        bus = _Bus()
        warnings: list[str] = []
        _service(bus)._dispatch_event("notify_forum_update", {"forum": {"id": 1}}, warnings)
        assert bus.dispatched == [("notify_forum_update", {"forum": {"id": 1}})]
        assert warnings == []

    def test_bus_failure_is_a_warning(self) -> None:
        warnings: list[str] = []
        _service(_Bus(fail=True))._dispatch_event("notify_new_post", {}, warnings)
        assert warnings == ["Event dispatch failed for notify_new_post"]


@pytest.mark.parametrize(
    "service_cls",
    [
        ForumService,
        PostingService,
        SubscriptionService,
        ModerationLogService,
        TopicService,
        UserService,
    ],
    ids=lambda c: c.__name__,
)
def test_services_extend_base(service_cls: type) -> None:
    assert issubclass(service_cls, BaseService)
