"""Pluggy hook specifications for forumkit events and live updates.

Every hook is dispatched through the WAL-backed EventBus, so arguments
are JSON-serializable: forums, topics and users travel as plain dicts
(``model_dump(mode="json")``).
"""

from __future__ import annotations

from typing import Any

import pluggy

hookspec = pluggy.HookspecMarker("forumkit")

# Broadcasts to live viewers. A missed update is superseded by the next one,
# so these are attempted once and never replayed.
LIVE_UPDATE_HOOKS = frozenset(
    {"notify_forum_update", "notify_topic_update", "notify_new_post", "notify_new_posts"}
)


class ForumkitHookSpec:
    """Hook specifications for the forumkit plugin system."""

    # --- Event publisher ------------------------------------------------

    @hookspec
    def process_event(
        self,
        message: str,
        user: dict[str, Any],
        event_kind: str,
        is_restricted: bool,
    ) -> None:
        """Publish an activity event. Restricted events must not reach public feeds."""

    # --- Live-update broker ---------------------------------------------

    @hookspec
    def notify_forum_update(self, forum: dict[str, Any]) -> None:
        """A forum's aggregates or last activity changed."""

    @hookspec
    def notify_topic_update(
        self,
        topic: dict[str, Any],
        forum: dict[str, Any],
        topic_link: str,
    ) -> None:
        """A topic's counters or last activity changed."""

    @hookspec
    def notify_new_post(self, topic: dict[str, Any], post_id: int) -> None:
        """A single new post, for viewers of the topic."""

    @hookspec
    def notify_new_posts(self, topic: dict[str, Any], post_id: int) -> None:
        """New-post counts changed, for topic listings."""

    # --- Subscriber mail ------------------------------------------------

    @hookspec
    def notify_subscriber(
        self,
        topic: dict[str, Any],
        subscriber: dict[str, Any],
        topic_link: str,
        unsubscribe_link: str,
    ) -> None:
        """Tell one subscriber about a reply in a topic they follow."""
