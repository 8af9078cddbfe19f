"""Shared pytest fixtures and test helpers for forumkit tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path
from typing import Any

import pluggy
import pytest
from click.testing import CliRunner

from forumkit.config.settings import ForumSettings
from forumkit.domain.models import Forum, NewPost, Topic, User
from forumkit.domain.permissions import evaluate_permissions
from forumkit.infrastructure.store import Store
from forumkit.services.telemetry import disable_telemetry

hookimpl = pluggy.HookimplMarker("forumkit")


class RecordingPlugin:
    """Plugin that records every hook call in dispatch order."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def of(self, hook_name: str) -> list[dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == hook_name]

    @hookimpl
    def process_event(
        self, message: str, user: dict[str, Any], event_kind: str, is_restricted: bool
    ) -> None:
        self.calls.append(
            (
                "process_event",
                {
                    "message": message,
                    "user": user,
                    "event_kind": event_kind,
                    "is_restricted": is_restricted,
                },
            )
        )

    @hookimpl
    def notify_forum_update(self, forum: dict[str, Any]) -> None:
        self.calls.append(("notify_forum_update", {"forum": forum}))

    @hookimpl
    def notify_topic_update(
        self, topic: dict[str, Any], forum: dict[str, Any], topic_link: str
    ) -> None:
        self.calls.append(
            ("notify_topic_update", {"topic": topic, "forum": forum, "topic_link": topic_link})
        )

    @hookimpl
    def notify_new_post(self, topic: dict[str, Any], post_id: int) -> None:
        self.calls.append(("notify_new_post", {"topic": topic, "post_id": post_id}))

    @hookimpl
    def notify_new_posts(self, topic: dict[str, Any], post_id: int) -> None:
        self.calls.append(("notify_new_posts", {"topic": topic, "post_id": post_id}))

    @hookimpl
    def notify_subscriber(
        self,
        topic: dict[str, Any],
        subscriber: dict[str, Any],
        topic_link: str,
        unsubscribe_link: str,
    ) -> None:
        self.calls.append(
            (
                "notify_subscriber",
                {
                    "topic": topic,
                    "subscriber": subscriber,
                    "topic_link": topic_link,
                    "unsubscribe_link": unsubscribe_link,
                },
            )
        )


@pytest.fixture(autouse=True)
def _reset_telemetry() -> Generator[None]:
    """Telemetry is a process-wide ContextVar; keep it off between tests."""
    yield
    disable_telemetry()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def settings(tmp_path: Path) -> ForumSettings:
    """Settings rooted at a temp directory, with inline events and background work."""
    return ForumSettings.from_cli(data_root=tmp_path, sync=True)


@pytest.fixture
def recorder() -> RecordingPlugin:
    return RecordingPlugin()


@pytest.fixture
def store(settings: ForumSettings, recorder: RecordingPlugin) -> Generator[Store]:
    """Fully initialized store with a recording plugin on the event bus."""
    s = Store(settings)
    s.init_event_bus(sync=True, plugins=[recorder])
    try:
        yield s
    finally:
        s.close()


# ---------------------------------------------------------------------------
# Shared test helpers (used across service test modules)
# ---------------------------------------------------------------------------


def make_user(store: Store, name: str, **kwargs: Any) -> User:
    """Create a user via UserService, asserting success."""
    from forumkit.services.users import UserService

    result = UserService(store).create_user(name, **kwargs)
    assert result.ok, result.error
    return User.model_validate(result.data["user"])


def make_forum(store: Store, title: str, **kwargs: Any) -> Forum:
    """Create a forum via ForumService, asserting success."""
    from forumkit.services.forum import ForumService

    result = ForumService(store).create_forum(title, **kwargs)
    assert result.ok, result.error
    return Forum.model_validate(result.data["forum"])


def reload_forum(store: Store, forum_id: int) -> Forum:
    with store.connect() as txn:
        forum = txn.forums.get(forum_id)
    assert forum is not None
    return forum


def start_topic(
    store: Store,
    forum: Forum,
    user: User,
    title: str = "Hello world",
    text: str = "First post",
) -> tuple[Topic, int]:
    """Start a topic via PostingService, asserting success. Returns (topic, first post id)."""
    from forumkit.services.posting import PostingService

    context = evaluate_permissions(forum, user)
    result = PostingService(store).post_new_topic(
        forum,
        user,
        context,
        NewPost(title=title, full_text=text),
        "127.0.0.1",
        f"/users/{user.user_id}",
        lambda t: f"/topics/{t.url_name}",
    )
    assert result.ok, result.error
    return Topic.model_validate(result.data["topic"]), int(result.data["post_id"])
