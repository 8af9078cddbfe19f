"""User, profile, and topic-subscription repositories."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from sqlalchemy import delete, insert, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from forumkit.domain.models import User
from forumkit.infrastructure.database.schema import (
    profiles,
    topic_subscriptions,
    user_roles,
    users,
)

if TYPE_CHECKING:
    from sqlalchemy import Connection, RowMapping


class UserRepository:
    """SQL for accounts and role memberships."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def get(self, user_id: int) -> User | None:
        row = self._conn.execute(select(users).where(users.c.user_id == user_id)).mappings().first()
        return self._to_user(row) if row is not None else None

    def get_by_name(self, name: str) -> User | None:
        row = self._conn.execute(select(users).where(users.c.name == name)).mappings().first()
        return self._to_user(row) if row is not None else None

    def create(self, name: str, *, is_approved: bool = True, roles: Iterable[str] = ()) -> int:
        result = self._conn.execute(insert(users).values(name=name, is_approved=int(is_approved)))
        user_id = int(result.inserted_primary_key[0])
        for role in set(roles):
            self.add_role(user_id, role)
        return user_id

    def add_role(self, user_id: int, role: str) -> None:
        stmt = (
            sqlite_insert(user_roles)
            .values(user_id=user_id, role=role)
            .on_conflict_do_nothing(index_elements=["user_id", "role"])
        )
        self._conn.execute(stmt)

    def remove_role(self, user_id: int, role: str) -> None:
        self._conn.execute(
            delete(user_roles).where(user_roles.c.user_id == user_id, user_roles.c.role == role)
        )

    def _to_user(self, row: RowMapping) -> User:
        roles = self._conn.execute(
            select(user_roles.c.role).where(user_roles.c.user_id == row["user_id"])
        )
        return User(
            user_id=int(row["user_id"]),
            name=str(row["name"]),
            is_approved=bool(row["is_approved"]),
            roles=frozenset(str(r.role) for r in roles),
        )


class ProfileRepository:
    """SQL for per-user profile data."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def set_last_post_id(self, user_id: int, post_id: int) -> None:
        stmt = sqlite_insert(profiles).values(user_id=user_id, last_post_id=post_id)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id"], set_={"last_post_id": stmt.excluded.last_post_id}
        )
        self._conn.execute(stmt)

    def get_last_post_id(self, user_id: int) -> int | None:
        value = self._conn.execute(
            select(profiles.c.last_post_id).where(profiles.c.user_id == user_id)
        ).scalar_one_or_none()
        return int(value) if value is not None else None


class SubscriptionRepository:
    """SQL for topic subscriptions."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def subscribe(self, topic_id: int, user_id: int) -> None:
        stmt = (
            sqlite_insert(topic_subscriptions)
            .values(topic_id=topic_id, user_id=user_id)
            .on_conflict_do_nothing(index_elements=["topic_id", "user_id"])
        )
        self._conn.execute(stmt)

    def unsubscribe(self, topic_id: int, user_id: int) -> None:
        self._conn.execute(
            delete(topic_subscriptions).where(
                topic_subscriptions.c.topic_id == topic_id,
                topic_subscriptions.c.user_id == user_id,
            )
        )

    def get_subscribed_users(self, topic_id: int) -> list[User]:
        rows = self._conn.execute(
            select(topic_subscriptions.c.user_id)
            .where(topic_subscriptions.c.topic_id == topic_id)
            .order_by(topic_subscriptions.c.user_id)
        )
        user_repo = UserRepository(self._conn)
        found = (user_repo.get(int(row.user_id)) for row in rows.fetchall())
        return [user for user in found if user is not None]
