"""Search-index queue and moderation-log repositories."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, insert, select

from forumkit.domain.models import SearchIndexPayload
from forumkit.infrastructure.database.schema import moderation_log, search_queue
from forumkit.infrastructure.repositories._rows import iso

if TYPE_CHECKING:
    from sqlalchemy import Connection


class SearchQueueRepository:
    """FIFO queue of topics waiting to be reindexed.

    Ownership of a payload transfers to the queue on :meth:`enqueue`;
    an indexer drains it with :meth:`dequeue`.
    """

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def enqueue(self, payload: SearchIndexPayload, *, created: datetime) -> None:
        self._conn.execute(
            insert(search_queue).values(
                tenant_id=payload.tenant_id,
                topic_id=payload.topic_id,
                created=iso(created),
            )
        )

    def dequeue(self) -> SearchIndexPayload | None:
        """Remove and return the oldest payload, or None when empty."""
        row = self._conn.execute(
            select(search_queue).order_by(search_queue.c.id).limit(1)
        ).mappings().first()
        if row is None:
            return None
        self._conn.execute(delete(search_queue).where(search_queue.c.id == row["id"]))
        return SearchIndexPayload(tenant_id=row["tenant_id"], topic_id=row["topic_id"])

    def count(self) -> int:
        return int(self._conn.execute(select(func.count(search_queue.c.id))).scalar_one() or 0)


class ModerationLogRepository:
    """Append-only moderation log."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def log(
        self,
        *,
        time: datetime,
        user_id: int,
        user_name: str,
        moderation_type: str,
        forum_id: int | None = None,
        topic_id: int | None = None,
        post_id: int | None = None,
        comment: str = "",
        old_text: str | None = None,
        new_text: str | None = None,
    ) -> int:
        result = self._conn.execute(
            insert(moderation_log).values(
                time=iso(time),
                user_id=user_id,
                user_name=user_name,
                moderation_type=moderation_type,
                forum_id=forum_id,
                topic_id=topic_id,
                post_id=post_id,
                comment=comment,
                old_text=old_text,
                new_text=new_text,
            )
        )
        return int(result.inserted_primary_key[0])

    def get_for_post(self, post_id: int) -> list[dict[str, Any]]:
        rows = self._conn.execute(
            select(moderation_log)
            .where(moderation_log.c.post_id == post_id)
            .order_by(moderation_log.c.id)
        ).mappings()
        return [dict(row) for row in rows]
