"""Topic and post repositories."""

from __future__ import annotations

from collections.abc import Collection
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, insert, select, update

from forumkit.domain.models import NO_PARENT, Post, Topic
from forumkit.infrastructure.database.schema import posts, topics
from forumkit.infrastructure.repositories._rows import iso

if TYPE_CHECKING:
    from sqlalchemy import Connection, Select


class TopicRepository:
    """SQL for topics and their reply/activity counters."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def get(self, topic_id: int) -> Topic | None:
        row = self._conn.execute(
            select(topics).where(topics.c.topic_id == topic_id)
        ).mappings().first()
        return Topic.model_validate(dict(row)) if row is not None else None

    def get_url_names_that_start_with(self, forum_id: int, prefix: str) -> list[str]:
        rows = self._conn.execute(
            select(topics.c.url_name).where(
                topics.c.forum_id == forum_id,
                topics.c.url_name.startswith(prefix, autoescape=True),
            )
        )
        return [str(row.url_name) for row in rows]

    def create(
        self,
        *,
        forum_id: int,
        title: str,
        url_name: str,
        user_id: int,
        name: str,
        timestamp: datetime,
        reply_count: int = 0,
        view_count: int = 0,
        is_closed: bool = False,
        is_deleted: bool = False,
        is_pinned: bool = False,
    ) -> int:
        result = self._conn.execute(
            insert(topics).values(
                forum_id=forum_id,
                title=title,
                url_name=url_name,
                started_by_user_id=user_id,
                started_by_name=name,
                last_post_user_id=user_id,
                last_post_name=name,
                last_post_time=iso(timestamp),
                reply_count=reply_count,
                view_count=view_count,
                is_closed=int(is_closed),
                is_deleted=int(is_deleted),
                is_pinned=int(is_pinned),
            )
        )
        return int(result.inserted_primary_key[0])

    def increment_reply_count(self, topic_id: int) -> None:
        self._conn.execute(
            update(topics)
            .where(topics.c.topic_id == topic_id)
            .values(reply_count=topics.c.reply_count + 1)
        )

    def update_last_time_and_user(
        self, topic_id: int, user_id: int, name: str, last_time: datetime
    ) -> None:
        self._conn.execute(
            update(topics)
            .where(topics.c.topic_id == topic_id)
            .values(last_post_user_id=user_id, last_post_name=name, last_post_time=iso(last_time))
        )

    def set_flags(
        self,
        topic_id: int,
        *,
        is_closed: bool | None = None,
        is_deleted: bool | None = None,
        is_pinned: bool | None = None,
    ) -> None:
        """Update only the flags that are given."""
        values = {
            key: int(value)
            for key, value in (
                ("is_closed", is_closed),
                ("is_deleted", is_deleted),
                ("is_pinned", is_pinned),
            )
            if value is not None
        }
        if values:
            self._conn.execute(update(topics).where(topics.c.topic_id == topic_id).values(**values))

    def set_answer(self, topic_id: int, post_id: int | None) -> None:
        self._conn.execute(
            update(topics).where(topics.c.topic_id == topic_id).values(answer_post_id=post_id)
        )

    def get_last_updated_topic(self, forum_id: int) -> Topic | None:
        row = (
            self._conn.execute(
                select(topics)
                .where(topics.c.forum_id == forum_id, topics.c.is_deleted == 0)
                .order_by(topics.c.last_post_time.desc(), topics.c.topic_id.desc())
                .limit(1)
            )
            .mappings()
            .first()
        )
        return Topic.model_validate(dict(row)) if row is not None else None

    def get_topic_count(self, forum_id: int, *, include_deleted: bool) -> int:
        stmt = select(func.count(topics.c.topic_id)).where(topics.c.forum_id == forum_id)
        if not include_deleted:
            stmt = stmt.where(topics.c.is_deleted == 0)
        return int(self._conn.execute(stmt).scalar_one() or 0)

    def get_post_count(self, forum_id: int, *, include_deleted: bool) -> int:
        stmt = (
            select(func.count(posts.c.post_id))
            .select_from(posts.join(topics, posts.c.topic_id == topics.c.topic_id))
            .where(topics.c.forum_id == forum_id)
        )
        if not include_deleted:
            stmt = stmt.where(topics.c.is_deleted == 0, posts.c.is_deleted == 0)
        return int(self._conn.execute(stmt).scalar_one() or 0)

    def get_recent(
        self,
        *,
        include_deleted: bool,
        excluded_forum_ids: Collection[int],
        start_row: int,
        page_size: int,
    ) -> list[Topic]:
        """Topics by last activity, newest first. *start_row* is 1-based."""
        stmt = (
            self._recent_filter(select(topics), include_deleted, excluded_forum_ids)
            .order_by(topics.c.last_post_time.desc(), topics.c.topic_id.desc())
            .limit(page_size)
            .offset(max(start_row - 1, 0))
        )
        return [Topic.model_validate(dict(row)) for row in self._conn.execute(stmt).mappings()]

    def count_recent(self, *, include_deleted: bool, excluded_forum_ids: Collection[int]) -> int:
        stmt = self._recent_filter(
            select(func.count(topics.c.topic_id)), include_deleted, excluded_forum_ids
        )
        return int(self._conn.execute(stmt).scalar_one() or 0)

    @staticmethod
    def _recent_filter(
        stmt: Select, include_deleted: bool, excluded_forum_ids: Collection[int]
    ) -> Select:
        if not include_deleted:
            stmt = stmt.where(topics.c.is_deleted == 0)
        if excluded_forum_ids:
            stmt = stmt.where(topics.c.forum_id.not_in(list(excluded_forum_ids)))
        return stmt


class PostRepository:
    """SQL for posts."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def get(self, post_id: int) -> Post | None:
        row = self._conn.execute(
            select(posts).where(posts.c.post_id == post_id)
        ).mappings().first()
        return Post.model_validate(dict(row)) if row is not None else None

    def get_for_topic(self, topic_id: int, *, include_deleted: bool = True) -> list[Post]:
        """All posts in *topic_id* in posting order."""
        stmt = select(posts).where(posts.c.topic_id == topic_id)
        if not include_deleted:
            stmt = stmt.where(posts.c.is_deleted == 0)
        stmt = stmt.order_by(posts.c.post_time, posts.c.post_id)
        return [Post.model_validate(dict(row)) for row in self._conn.execute(stmt).mappings()]

    def create(
        self,
        *,
        topic_id: int,
        parent_post_id: int = NO_PARENT,
        ip: str,
        is_first_in_topic: bool,
        show_sig: bool,
        user_id: int,
        name: str,
        title: str,
        full_text: str,
        post_time: datetime,
        is_edited: bool = False,
        last_edit_name: str = "",
        last_edit_time: datetime | None = None,
        is_deleted: bool = False,
        votes: int = 0,
    ) -> int:
        result = self._conn.execute(
            insert(posts).values(
                topic_id=topic_id,
                parent_post_id=parent_post_id,
                ip=ip,
                is_first_in_topic=int(is_first_in_topic),
                show_sig=int(show_sig),
                user_id=user_id,
                name=name,
                title=title,
                full_text=full_text,
                post_time=iso(post_time),
                is_edited=int(is_edited),
                last_edit_name=last_edit_name,
                last_edit_time=iso(last_edit_time),
                is_deleted=int(is_deleted),
                votes=votes,
            )
        )
        return int(result.inserted_primary_key[0])

    def update(self, post: Post) -> None:
        """Persist the editable fields of *post*."""
        self._conn.execute(
            update(posts)
            .where(posts.c.post_id == post.post_id)
            .values(
                title=post.title,
                full_text=post.full_text,
                show_sig=int(post.show_sig),
                is_edited=int(post.is_edited),
                last_edit_name=post.last_edit_name,
                last_edit_time=iso(post.last_edit_time),
                is_deleted=int(post.is_deleted),
            )
        )
