"""Typed payload contracts for service and adapter boundaries.

These models validate operation payload shapes before they leave the
service layer so key regressions (for example ``groups`` vs ``categories``)
fail fast in tests and during development.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T", bound=BaseModel)


def dump_validated(model_cls: type[T], data: dict[str, Any]) -> dict[str, Any]:
    """Validate *data* against *model_cls* and return a normalized payload dict."""
    model = model_cls.model_validate(data)
    return model.model_dump(mode="python")


class SortKey(BaseModel):
    """One forum's position after a reorder."""

    forum_id: int
    title: str
    sort_order: int


class MoveForumResultData(BaseModel):
    """Payload contract for ``ForumService.move_forum_up`` / ``move_forum_down``."""

    forum_id: int
    direction: str
    category_id: int | None
    order: list[SortKey]


class CategoryGroup(BaseModel):
    """Forums under one category heading (``category_id`` None = uncategorized)."""

    model_config = ConfigDict(extra="allow")

    category_id: int | None
    title: str
    forums: list[dict[str, Any]] = Field(default_factory=list)


class CategorizedForumsResultData(BaseModel):
    """Payload contract for ``ForumService.get_categorized_forums``."""

    forum_title: str
    groups: list[CategoryGroup]


class PagerData(BaseModel):
    """Paging position of a listing."""

    page_count: int = Field(ge=1)
    page_index: int = Field(ge=1)
    page_size: int = Field(ge=1)


class RecentTopicsResultData(BaseModel):
    """Payload contract for ``ForumService.get_recent_topics``."""

    topics: list[dict[str, Any]]
    count: int
    pager: PagerData


class RoleChangeResultData(BaseModel):
    """Payload contract for ``ForumService.modify_forum_roles``."""

    forum_id: int
    modify_type: str
    role: str | None = None
    view_roles: list[str]
    post_roles: list[str]


class QAResultData(BaseModel):
    """Payload contract for ``ForumService.map_topic_for_qa``."""

    topic: dict[str, Any]
    question: dict[str, Any]
    answers: list[dict[str, Any]]
