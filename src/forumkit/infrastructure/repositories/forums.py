"""Forum and category repositories.

The caller owns the transaction: pass a ``Connection`` obtained from
``engine.begin()`` (writes) or ``engine.connect()`` (reads).
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Table, delete, func, insert, select, update

from forumkit.domain.models import Category, Forum
from forumkit.infrastructure.database.schema import (
    categories,
    forum_post_roles,
    forum_view_roles,
    forums,
)
from forumkit.infrastructure.repositories._rows import iso

if TYPE_CHECKING:
    from sqlalchemy import Connection


class CategoryRepository:
    """SQL for forum categories."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def get_all(self) -> list[Category]:
        rows = self._conn.execute(
            select(categories).order_by(categories.c.sort_order, categories.c.category_id)
        ).mappings()
        return [Category.model_validate(dict(row)) for row in rows]

    def create(self, title: str, sort_order: int = 0) -> int:
        result = self._conn.execute(insert(categories).values(title=title, sort_order=sort_order))
        return int(result.inserted_primary_key[0])


class ForumRepository:
    """SQL for forums, their aggregates, and their restriction roles."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, forum_id: int) -> Forum | None:
        row = self._conn.execute(
            select(forums).where(forums.c.forum_id == forum_id)
        ).mappings().first()
        return Forum.model_validate(dict(row)) if row is not None else None

    def get_all(self) -> list[Forum]:
        rows = self._conn.execute(
            select(forums).order_by(forums.c.sort_order, forums.c.forum_id)
        ).mappings()
        return [Forum.model_validate(dict(row)) for row in rows]

    def get_all_visible(self) -> list[Forum]:
        rows = self._conn.execute(
            select(forums)
            .where(forums.c.is_visible == 1)
            .order_by(forums.c.sort_order, forums.c.forum_id)
        ).mappings()
        return [Forum.model_validate(dict(row)) for row in rows]

    def get_forums_in_category(self, category_id: int | None) -> list[Forum]:
        """Forums sharing *category_id*; ``None`` selects uncategorized forums."""
        if category_id is None:
            condition = forums.c.category_id.is_(None)
        else:
            condition = forums.c.category_id == category_id
        rows = self._conn.execute(
            select(forums).where(condition).order_by(forums.c.sort_order, forums.c.forum_id)
        ).mappings()
        return [Forum.model_validate(dict(row)) for row in rows]

    def get_url_names_that_start_with(self, prefix: str) -> list[str]:
        rows = self._conn.execute(
            select(forums.c.url_name).where(forums.c.url_name.startswith(prefix, autoescape=True))
        )
        return [str(row.url_name) for row in rows]

    def get_all_forum_titles(self) -> dict[int, str]:
        rows = self._conn.execute(select(forums.c.forum_id, forums.c.title))
        return {int(row.forum_id): str(row.title) for row in rows}

    def get_aggregate_topic_count(self) -> int:
        return int(self._conn.execute(select(func.sum(forums.c.topic_count))).scalar_one() or 0)

    def get_aggregate_post_count(self) -> int:
        return int(self._conn.execute(select(func.sum(forums.c.post_count))).scalar_one() or 0)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self,
        *,
        category_id: int | None,
        title: str,
        description: str,
        is_visible: bool,
        is_archived: bool,
        sort_order: int,
        url_name: str,
        forum_adapter_name: str | None,
        is_qa_forum: bool,
    ) -> int:
        result = self._conn.execute(
            insert(forums).values(
                category_id=category_id,
                title=title,
                description=description,
                is_visible=int(is_visible),
                is_archived=int(is_archived),
                sort_order=sort_order,
                url_name=url_name,
                forum_adapter_name=forum_adapter_name,
                is_qa_forum=int(is_qa_forum),
            )
        )
        return int(result.inserted_primary_key[0])

    def update(
        self,
        forum_id: int,
        *,
        category_id: int | None,
        title: str,
        description: str,
        is_visible: bool,
        is_archived: bool,
        url_name: str,
        forum_adapter_name: str | None,
        is_qa_forum: bool,
    ) -> None:
        self._conn.execute(
            update(forums)
            .where(forums.c.forum_id == forum_id)
            .values(
                category_id=category_id,
                title=title,
                description=description,
                is_visible=int(is_visible),
                is_archived=int(is_archived),
                url_name=url_name,
                forum_adapter_name=forum_adapter_name,
                is_qa_forum=int(is_qa_forum),
            )
        )

    def update_sort_order(self, forum_id: int, sort_order: int) -> None:
        self._conn.execute(
            update(forums).where(forums.c.forum_id == forum_id).values(sort_order=sort_order)
        )

    def update_last_time_and_user(self, forum_id: int, last_time: datetime, last_name: str) -> None:
        self._conn.execute(
            update(forums)
            .where(forums.c.forum_id == forum_id)
            .values(last_post_time=iso(last_time), last_post_name=last_name)
        )

    def increment_post_and_topic_count(self, forum_id: int) -> None:
        self._conn.execute(
            update(forums)
            .where(forums.c.forum_id == forum_id)
            .values(topic_count=forums.c.topic_count + 1, post_count=forums.c.post_count + 1)
        )

    def increment_post_count(self, forum_id: int) -> None:
        self._conn.execute(
            update(forums)
            .where(forums.c.forum_id == forum_id)
            .values(post_count=forums.c.post_count + 1)
        )

    def update_topic_and_post_counts(
        self, forum_id: int, topic_count: int, post_count: int
    ) -> None:
        self._conn.execute(
            update(forums)
            .where(forums.c.forum_id == forum_id)
            .values(topic_count=topic_count, post_count=post_count)
        )

    # ------------------------------------------------------------------
    # Restriction roles
    # ------------------------------------------------------------------

    def get_view_roles(self, forum_id: int) -> list[str]:
        return self._roles(forum_view_roles, forum_id)

    def get_post_roles(self, forum_id: int) -> list[str]:
        return self._roles(forum_post_roles, forum_id)

    def get_view_restriction_role_graph(self) -> dict[int, set[str]]:
        """Map every forum id to its view roles (empty set when unrestricted)."""
        graph: dict[int, set[str]] = {
            int(row.forum_id): set() for row in self._conn.execute(select(forums.c.forum_id))
        }
        for row in self._conn.execute(select(forum_view_roles.c.forum_id, forum_view_roles.c.role)):
            graph.setdefault(int(row.forum_id), set()).add(str(row.role))
        return graph

    def add_view_role(self, forum_id: int, role: str) -> None:
        self._add_role(forum_view_roles, forum_id, role)

    def remove_view_role(self, forum_id: int, role: str) -> None:
        self._conn.execute(
            delete(forum_view_roles).where(
                forum_view_roles.c.forum_id == forum_id, forum_view_roles.c.role == role
            )
        )

    def remove_all_view_roles(self, forum_id: int) -> None:
        self._conn.execute(delete(forum_view_roles).where(forum_view_roles.c.forum_id == forum_id))

    def add_post_role(self, forum_id: int, role: str) -> None:
        self._add_role(forum_post_roles, forum_id, role)

    def remove_post_role(self, forum_id: int, role: str) -> None:
        self._conn.execute(
            delete(forum_post_roles).where(
                forum_post_roles.c.forum_id == forum_id, forum_post_roles.c.role == role
            )
        )

    def remove_all_post_roles(self, forum_id: int) -> None:
        self._conn.execute(delete(forum_post_roles).where(forum_post_roles.c.forum_id == forum_id))

    def _roles(self, table: Table, forum_id: int) -> list[str]:
        rows = self._conn.execute(
            select(table.c.role).where(table.c.forum_id == forum_id).order_by(table.c.role)
        )
        return [str(row.role) for row in rows]

    def _add_role(self, table: Table, forum_id: int, role: str) -> None:
        existing = self._conn.execute(
            select(table.c.role).where(table.c.forum_id == forum_id, table.c.role == role)
        ).first()
        if existing is None:
            self._conn.execute(insert(table).values(forum_id=forum_id, role=role))
