"""Built-in activity feed plugin.

Implements ``process_event`` by appending to the ``activity_feed`` table,
which backs "recent activity" listings. Restricted events are stored with
their flag so readers can keep them out of public feeds.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import pluggy
from sqlalchemy import insert

from forumkit.infrastructure.database.schema import activity_feed
from forumkit.services._helpers import now_iso

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

hookimpl = pluggy.HookimplMarker("forumkit")

logger = logging.getLogger(__name__)


class ActivityFeedPlugin:
    """Records published events in the activity feed."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @hookimpl
    def process_event(
        self,
        message: str,
        user: dict[str, Any],
        event_kind: str,
        is_restricted: bool,
    ) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                insert(activity_feed).values(
                    user_id=int(user["user_id"]),
                    event_kind=event_kind,
                    message=message,
                    is_restricted=int(is_restricted),
                    time=now_iso(),
                )
            )
        logger.debug("Feed event %s recorded for user %s", event_kind, user["user_id"])
