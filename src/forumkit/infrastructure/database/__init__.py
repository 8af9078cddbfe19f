"""SQLite database engine and schema via SQLAlchemy Core."""

from forumkit.infrastructure.database.engine import create_db_engine, init_database
from forumkit.infrastructure.database.schema import (
    activity_feed,
    categories,
    event_wal,
    forum_post_roles,
    forum_view_roles,
    forums,
    metadata,
    moderation_log,
    posts,
    profiles,
    search_queue,
    topic_subscriptions,
    topics,
    user_roles,
    users,
)

__all__ = [
    "activity_feed",
    "categories",
    "create_db_engine",
    "event_wal",
    "forum_post_roles",
    "forum_view_roles",
    "forums",
    "init_database",
    "metadata",
    "moderation_log",
    "posts",
    "profiles",
    "search_queue",
    "topic_subscriptions",
    "topics",
    "user_roles",
    "users",
]
