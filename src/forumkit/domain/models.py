"""Forum entities and transient authoring inputs.

Entities mirror rows owned by the repository layer. They are mutable
pydantic models because the authoring pipeline and the sort-order manager
adjust them in memory before persisting. Inputs and queue payloads are frozen.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field

# Parent id of a top-level post.
NO_PARENT = 0


def as_utc(value: datetime) -> datetime:
    """Normalize *value* to an aware UTC datetime. Naive values are taken as UTC.

    Examples:
        >>> as_utc(datetime(2024, 1, 1, 12, 0)).isoformat()
        '2024-01-01T12:00:00+00:00'
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class Category(BaseModel):
    """A grouping of forums."""

    category_id: int
    title: str
    sort_order: int = 0


class Forum(BaseModel):
    """A forum and its denormalized activity aggregates."""

    forum_id: int
    category_id: int | None = None
    title: str
    description: str = ""
    is_visible: bool = True
    is_archived: bool = False
    sort_order: int = 0
    topic_count: int = 0
    post_count: int = 0
    last_post_time: UtcDatetime | None = None
    last_post_name: str = ""
    url_name: str = ""
    forum_adapter_name: str | None = None
    is_qa_forum: bool = False


class Topic(BaseModel):
    """A thread of posts inside a forum."""

    topic_id: int
    forum_id: int
    title: str
    url_name: str = ""
    started_by_user_id: int = 0
    started_by_name: str = ""
    last_post_user_id: int = 0
    last_post_name: str = ""
    last_post_time: UtcDatetime | None = None
    reply_count: int = 0
    view_count: int = 0
    is_closed: bool = False
    is_deleted: bool = False
    is_pinned: bool = False
    answer_post_id: int | None = None


class Post(BaseModel):
    """A single post. ``parent_post_id`` is :data:`NO_PARENT` for top-level posts."""

    post_id: int
    topic_id: int
    parent_post_id: int = NO_PARENT
    user_id: int = 0
    name: str = ""
    title: str = ""
    full_text: str = ""
    ip: str = ""
    post_time: UtcDatetime
    show_sig: bool = False
    last_edit_name: str = ""
    last_edit_time: UtcDatetime | None = None
    is_edited: bool = False
    is_deleted: bool = False
    votes: int = 0
    is_first_in_topic: bool = False


class User(BaseModel):
    """An account and its role memberships."""

    user_id: int
    name: str
    is_approved: bool = True
    roles: frozenset[str] = Field(default_factory=frozenset)

    def is_in_role(self, role: str) -> bool:
        return role in self.roles

    def in_any_role(self, roles: set[str] | frozenset[str]) -> bool:
        """True when the user holds at least one of *roles*."""
        return not self.roles.isdisjoint(roles)


class NewPost(BaseModel):
    """Raw input for a new topic or reply."""

    title: str
    full_text: str
    include_signature: bool = False
    is_plain_text: bool = True


class PostEdit(BaseModel):
    """Raw input for an edit, with the editor's moderation comment."""

    model_config = {"frozen": True}

    title: str
    full_text: str
    show_sig: bool = False
    is_plain_text: bool = True
    comment: str = ""


class SearchIndexPayload(BaseModel):
    """A unit of reindex work: this topic's content changed."""

    model_config = {"frozen": True}

    tenant_id: str
    topic_id: int
