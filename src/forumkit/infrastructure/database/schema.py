"""SQLAlchemy Core table definitions for the default forumkit store.

Timestamps are ISO 8601 text (UTC). Booleans are 0/1 integers.
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

categories = Table(
    "categories",
    metadata,
    Column("category_id", Integer, primary_key=True, autoincrement=True),
    Column("title", Text, nullable=False),
    Column("sort_order", Integer, default=0, server_default="0"),
)

forums = Table(
    "forums",
    metadata,
    Column("forum_id", Integer, primary_key=True, autoincrement=True),
    Column("category_id", Integer, ForeignKey("categories.category_id")),
    Column("title", Text, nullable=False),
    Column("description", Text, default="", server_default=""),
    Column("is_visible", Integer, default=1, server_default="1"),
    Column("is_archived", Integer, default=0, server_default="0"),
    Column("sort_order", Integer, default=0, server_default="0"),
    Column("topic_count", Integer, default=0, server_default="0"),
    Column("post_count", Integer, default=0, server_default="0"),
    Column("last_post_time", Text),
    Column("last_post_name", Text, default="", server_default=""),
    Column("url_name", Text, nullable=False, unique=True),
    Column("forum_adapter_name", Text),
    Column("is_qa_forum", Integer, default=0, server_default="0"),
)

forum_view_roles = Table(
    "forum_view_roles",
    metadata,
    Column("forum_id", Integer, ForeignKey("forums.forum_id"), nullable=False),
    Column("role", Text, nullable=False),
    UniqueConstraint("forum_id", "role"),
)

forum_post_roles = Table(
    "forum_post_roles",
    metadata,
    Column("forum_id", Integer, ForeignKey("forums.forum_id"), nullable=False),
    Column("role", Text, nullable=False),
    UniqueConstraint("forum_id", "role"),
)

topics = Table(
    "topics",
    metadata,
    Column("topic_id", Integer, primary_key=True, autoincrement=True),
    Column("forum_id", Integer, ForeignKey("forums.forum_id"), nullable=False),
    Column("title", Text, nullable=False),
    Column("url_name", Text, nullable=False),
    Column("started_by_user_id", Integer, nullable=False),
    Column("started_by_name", Text, nullable=False),
    Column("last_post_user_id", Integer, nullable=False),
    Column("last_post_name", Text, nullable=False),
    Column("last_post_time", Text, nullable=False),
    Column("reply_count", Integer, default=0, server_default="0"),
    Column("view_count", Integer, default=0, server_default="0"),
    Column("is_closed", Integer, default=0, server_default="0"),
    Column("is_deleted", Integer, default=0, server_default="0"),
    Column("is_pinned", Integer, default=0, server_default="0"),
    Column("answer_post_id", Integer),
    UniqueConstraint("forum_id", "url_name"),
)

posts = Table(
    "posts",
    metadata,
    Column("post_id", Integer, primary_key=True, autoincrement=True),
    Column("topic_id", Integer, ForeignKey("topics.topic_id"), nullable=False),
    Column("parent_post_id", Integer, default=0, server_default="0"),
    Column("ip", Text, default="", server_default=""),
    Column("is_first_in_topic", Integer, default=0, server_default="0"),
    Column("show_sig", Integer, default=0, server_default="0"),
    Column("user_id", Integer, nullable=False),
    Column("name", Text, nullable=False),
    Column("title", Text, default="", server_default=""),
    Column("full_text", Text, default="", server_default=""),
    Column("post_time", Text, nullable=False),
    Column("is_edited", Integer, default=0, server_default="0"),
    Column("last_edit_name", Text, default="", server_default=""),
    Column("last_edit_time", Text),
    Column("is_deleted", Integer, default=0, server_default="0"),
    Column("votes", Integer, default=0, server_default="0"),
)

users = Table(
    "users",
    metadata,
    Column("user_id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False, unique=True),
    Column("is_approved", Integer, default=1, server_default="1"),
)

user_roles = Table(
    "user_roles",
    metadata,
    Column("user_id", Integer, ForeignKey("users.user_id"), nullable=False),
    Column("role", Text, nullable=False),
    UniqueConstraint("user_id", "role"),
)

profiles = Table(
    "profiles",
    metadata,
    Column("user_id", Integer, ForeignKey("users.user_id"), primary_key=True),
    Column("last_post_id", Integer),
)

topic_subscriptions = Table(
    "topic_subscriptions",
    metadata,
    Column("topic_id", Integer, ForeignKey("topics.topic_id"), nullable=False),
    Column("user_id", Integer, ForeignKey("users.user_id"), nullable=False),
    UniqueConstraint("topic_id", "user_id"),
)

search_queue = Table(
    "search_queue",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("tenant_id", Text, nullable=False),
    Column("topic_id", Integer, nullable=False),
    Column("created", Text, nullable=False),
)

moderation_log = Table(
    "moderation_log",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("time", Text, nullable=False),
    Column("user_id", Integer, nullable=False),
    Column("user_name", Text, nullable=False),
    Column("moderation_type", Text, nullable=False),
    Column("forum_id", Integer),
    Column("topic_id", Integer),
    Column("post_id", Integer),
    Column("comment", Text, default="", server_default=""),
    Column("old_text", Text),
    Column("new_text", Text),
)

activity_feed = Table(
    "activity_feed",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False),
    Column("event_kind", Text, nullable=False),
    Column("message", Text, default="", server_default=""),
    Column("is_restricted", Integer, default=0, server_default="0"),
    Column("time", Text, nullable=False),
)

event_wal = Table(
    "event_wal",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("hook_name", Text, nullable=False),
    Column("forum_id", Integer),
    Column("topic_id", Integer),
    Column("payload", Text, nullable=False),  # JSON
    Column("status", Text, nullable=False),
    Column("error", Text),
    Column("retries", Integer, default=0, server_default="0"),
    Column("created", Text, nullable=False),
    Column("completed", Text),
)

# ---------------------------------------------------------------------------
# Indexes for frequently filtered columns
# ---------------------------------------------------------------------------

Index("ix_forums_category", forums.c.category_id)
Index("ix_topics_forum", topics.c.forum_id)
Index("ix_topics_last_post_time", topics.c.last_post_time)
Index("ix_posts_topic", posts.c.topic_id)
Index("ix_event_wal_status", event_wal.c.status)
Index("ix_event_wal_topic", event_wal.c.topic_id)
