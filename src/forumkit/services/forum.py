"""ForumService: forum lifecycle, ordering, permissions, and listings.

Pipeline for a sort-order move:
  LOAD -> SHIFT (±3) -> RESEQUENCE (index * 2) -> PERSIST
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from forumkit.domain.models import Forum, Topic, User
from forumkit.domain.ordering import MoveDirection, move_forum, resequence
from forumkit.domain.permissions import evaluate_permissions, is_forum_viewable
from forumkit.domain.qa import QAIntegrityError, map_topic_for_qa
from forumkit.domain.roles import ROLE_CHANGES_NEEDING_ROLE, ForumRoleChange
from forumkit.domain.urlnames import to_unique_url_name, to_url_name
from forumkit.services._helpers import page_count
from forumkit.services.base import BaseService
from forumkit.services.contracts import (
    CategorizedForumsResultData,
    MoveForumResultData,
    QAResultData,
    RecentTopicsResultData,
    RoleChangeResultData,
    dump_validated,
)
from forumkit.services.result import ErrorCode, ServiceResult
from forumkit.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from forumkit.infrastructure.store import StoreTransaction

logger = logging.getLogger(__name__)

# Last-activity stamp for a forum without topics.
NO_ACTIVITY_TIME = datetime(2000, 1, 1, tzinfo=UTC)


class ForumService(BaseService):
    """Forum CRUD, sort order, permission contexts, and forum listings."""

    # ------------------------------------------------------------------
    # Lookup and lifecycle
    # ------------------------------------------------------------------

    @traced
    def get_forum(self, forum_id: int) -> ServiceResult:
        with self._store.connect() as txn:
            forum = txn.forums.get(forum_id)
        if forum is None:
            return _forum_not_found("get_forum", forum_id)
        return ServiceResult(ok=True, op="get_forum", data={"forum": forum.model_dump(mode="json")})

    @traced
    def create_category(self, title: str, sort_order: int = 0) -> ServiceResult:
        with self._store.transaction() as txn:
            category_id = txn.categories.create(title, sort_order)
        return ServiceResult(
            ok=True,
            op="create_category",
            data={"category_id": category_id, "title": title, "sort_order": sort_order},
        )

    @traced
    def create_forum(
        self,
        title: str,
        *,
        category_id: int | None = None,
        description: str = "",
        is_visible: bool = True,
        is_archived: bool = False,
        sort_order: int = 0,
        forum_adapter_name: str | None = None,
        is_qa_forum: bool = False,
    ) -> ServiceResult:
        """Create a forum with a unique url name, then renumber its category."""
        op = "create_forum"
        if not title.strip():
            return ServiceResult.failure(
                op, ErrorCode.VALIDATION_FAILED, "Forum title is required"
            )

        with self._store.transaction() as txn:
            url_name = to_unique_url_name(
                title, txn.forums.get_url_names_that_start_with(to_url_name(title))
            )
            forum_id = txn.forums.create(
                category_id=category_id,
                title=title,
                description=description,
                is_visible=is_visible,
                is_archived=is_archived,
                sort_order=sort_order,
                url_name=url_name,
                forum_adapter_name=forum_adapter_name,
                is_qa_forum=is_qa_forum,
            )
            _persist_order(txn, resequence(txn.forums.get_forums_in_category(category_id)))
            forum = txn.forums.get(forum_id)

        assert forum is not None
        logger.info("Created forum %s (%s)", forum_id, url_name)
        return ServiceResult(ok=True, op=op, data={"forum": forum.model_dump(mode="json")})

    @traced
    def update_forum(
        self,
        forum_id: int,
        *,
        title: str,
        category_id: int | None = None,
        description: str = "",
        is_visible: bool = True,
        is_archived: bool = False,
        forum_adapter_name: str | None = None,
        is_qa_forum: bool = False,
    ) -> ServiceResult:
        """Update a forum. The url name is regenerated only when the title changes."""
        op = "update_forum"
        with self._store.transaction() as txn:
            forum = txn.forums.get(forum_id)
            if forum is None:
                return _forum_not_found(op, forum_id)
            url_name = forum.url_name
            if forum.title != title:
                url_name = to_unique_url_name(
                    title, txn.forums.get_url_names_that_start_with(to_url_name(title))
                )
            txn.forums.update(
                forum_id,
                category_id=category_id,
                title=title,
                description=description,
                is_visible=is_visible,
                is_archived=is_archived,
                url_name=url_name,
                forum_adapter_name=forum_adapter_name,
                is_qa_forum=is_qa_forum,
            )
            updated = txn.forums.get(forum_id)

        assert updated is not None
        return ServiceResult(ok=True, op=op, data={"forum": updated.model_dump(mode="json")})

    @traced
    def update_last(self, forum: Forum) -> ServiceResult:
        """Re-derive the forum's last-activity stamp from its newest live topic."""
        with self._store.transaction() as txn:
            topic = txn.topics.get_last_updated_topic(forum.forum_id)
            if topic is not None and topic.last_post_time is not None:
                last_time, last_name = topic.last_post_time, topic.last_post_name
            else:
                last_time, last_name = NO_ACTIVITY_TIME, ""
            txn.forums.update_last_time_and_user(forum.forum_id, last_time, last_name)
        return ServiceResult(
            ok=True,
            op="update_last",
            data={
                "forum_id": forum.forum_id,
                "last_post_time": last_time.isoformat(),
                "last_post_name": last_name,
            },
        )

    def update_counts(self, forum: Forum) -> None:
        """Recompute topic/post counts of *forum* in the background.

        Returns immediately. The counts are advisory; a failing recompute
        is logged by the background runner and never reported here.
        """
        forum_id = forum.forum_id

        def recount() -> None:
            with self._store.transaction() as txn:
                topic_count = txn.topics.get_topic_count(forum_id, include_deleted=False)
                post_count = txn.topics.get_post_count(forum_id, include_deleted=False)
                txn.forums.update_topic_and_post_counts(forum_id, topic_count, post_count)
            logger.debug(
                "Forum %s recounted: %d topics, %d posts", forum_id, topic_count, post_count
            )

        self._store.background.submit(f"update_counts:{forum_id}", recount)

    # ------------------------------------------------------------------
    # Sort order
    # ------------------------------------------------------------------

    @traced
    def move_forum_up(self, forum_id: int) -> ServiceResult:
        return self._move(forum_id, MoveDirection.UP)

    @traced
    def move_forum_down(self, forum_id: int) -> ServiceResult:
        return self._move(forum_id, MoveDirection.DOWN)

    def _move(self, forum_id: int, direction: MoveDirection) -> ServiceResult:
        op = f"move_forum_{direction}"
        with self._store.transaction() as txn:
            forum = txn.forums.get(forum_id)
            if forum is None:
                return ServiceResult.failure(
                    op,
                    ErrorCode.NOT_FOUND,
                    f"Forum {forum_id} doesn't exist, can't move it {direction}.",
                    detail={"forum_id": forum_id, "direction": str(direction)},
                )
            siblings = txn.forums.get_forums_in_category(forum.category_id)
            with trace_span("resequence", category_id=forum.category_id):
                ordered = move_forum(siblings, forum_id, direction)
            _persist_order(txn, ordered)

        data = dump_validated(
            MoveForumResultData,
            {
                "forum_id": forum_id,
                "direction": str(direction),
                "category_id": forum.category_id,
                "order": [
                    {"forum_id": f.forum_id, "title": f.title, "sort_order": f.sort_order}
                    for f in ordered
                ],
            },
        )
        return ServiceResult(ok=True, op=op, data=data)

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    @traced
    def get_permission_context(
        self, forum: Forum, user: User | None, topic: Topic | None = None
    ) -> ServiceResult:
        """Evaluate what *user* may do in *forum* (and *topic*).

        Computed fresh on every call from the forum's current restriction roles.
        """
        with self._store.connect() as txn:
            view_roles = txn.forums.get_view_roles(forum.forum_id)
            post_roles = txn.forums.get_post_roles(forum.forum_id)
        context = evaluate_permissions(
            forum, user, topic, view_roles=view_roles, post_roles=post_roles
        )
        return ServiceResult(
            ok=True,
            op="get_permission_context",
            data={
                "forum_id": forum.forum_id,
                "topic_id": topic.topic_id if topic is not None else None,
                "user_id": user.user_id if user is not None else None,
                "context": context.model_dump(mode="json"),
            },
        )

    @traced
    def get_non_viewable_forum_ids(self, user: User | None) -> ServiceResult:
        with self._store.connect() as txn:
            forum_ids = _non_viewable_forum_ids(txn, user)
        return ServiceResult(
            ok=True, op="get_non_viewable_forum_ids", data={"forum_ids": forum_ids}
        )

    @traced
    def get_viewable_forum_ids(self, user: User | None) -> ServiceResult:
        """Visible forums the user passes the view restriction of."""
        with self._store.connect() as txn:
            hidden = set(_non_viewable_forum_ids(txn, user))
            visible = txn.forums.get_all_visible()
        forum_ids = [f.forum_id for f in visible if f.forum_id not in hidden]
        return ServiceResult(ok=True, op="get_viewable_forum_ids", data={"forum_ids": forum_ids})

    @traced
    def get_forum_view_roles(self, forum_id: int) -> ServiceResult:
        with self._store.connect() as txn:
            roles = txn.forums.get_view_roles(forum_id)
        return ServiceResult(
            ok=True, op="get_forum_view_roles", data={"forum_id": forum_id, "roles": roles}
        )

    @traced
    def get_forum_post_roles(self, forum_id: int) -> ServiceResult:
        with self._store.connect() as txn:
            roles = txn.forums.get_post_roles(forum_id)
        return ServiceResult(
            ok=True, op="get_forum_post_roles", data={"forum_id": forum_id, "roles": roles}
        )

    @traced
    def modify_forum_roles(
        self,
        forum_id: int,
        modify_type: ForumRoleChange | str,
        role: str | None = None,
    ) -> ServiceResult:
        """Add or remove a view/post restriction role, or clear either set."""
        op = "modify_forum_roles"
        try:
            change = ForumRoleChange(modify_type)
        except ValueError:
            return ServiceResult.failure(
                op,
                ErrorCode.INVALID_ROLE_CHANGE,
                f"Unknown role change: {modify_type!r}",
                detail={"allowed": [c.value for c in ForumRoleChange]},
            )
        if change in ROLE_CHANGES_NEEDING_ROLE and not role:
            return ServiceResult.failure(
                op, ErrorCode.INVALID_ROLE_CHANGE, f"Role change {change} requires a role"
            )

        with self._store.transaction() as txn:
            if txn.forums.get(forum_id) is None:
                return _forum_not_found(op, forum_id)
            repo = txn.forums
            match change:
                case ForumRoleChange.ADD_POST:
                    repo.add_post_role(forum_id, role or "")
                case ForumRoleChange.REMOVE_POST:
                    repo.remove_post_role(forum_id, role or "")
                case ForumRoleChange.ADD_VIEW:
                    repo.add_view_role(forum_id, role or "")
                case ForumRoleChange.REMOVE_VIEW:
                    repo.remove_view_role(forum_id, role or "")
                case ForumRoleChange.REMOVE_ALL_POST:
                    repo.remove_all_post_roles(forum_id)
                case ForumRoleChange.REMOVE_ALL_VIEW:
                    repo.remove_all_view_roles(forum_id)
            view_roles = repo.get_view_roles(forum_id)
            post_roles = repo.get_post_roles(forum_id)

        logger.info("Forum %s roles changed: %s %s", forum_id, change, role or "")
        data = dump_validated(
            RoleChangeResultData,
            {
                "forum_id": forum_id,
                "modify_type": str(change),
                "role": role,
                "view_roles": view_roles,
                "post_roles": post_roles,
            },
        )
        return ServiceResult(ok=True, op=op, data=data)

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    @traced
    def get_categorized_forums(self, user: User | None = None) -> ServiceResult:
        """Forums grouped by category, uncategorized first.

        Without *user* every forum is listed; with one, only visible
        forums the user can view.
        """
        with self._store.connect() as txn:
            if user is None:
                forums = txn.forums.get_all()
            else:
                hidden = set(_non_viewable_forum_ids(txn, user))
                forums = [f for f in txn.forums.get_all_visible() if f.forum_id not in hidden]
            categories = txn.categories.get_all()

        def in_order(group: list[Forum]) -> list[dict[str, Any]]:
            return [f.model_dump(mode="json") for f in sorted(group, key=lambda f: f.sort_order)]

        groups: list[dict[str, Any]] = []
        uncategorized = [f for f in forums if f.category_id is None]
        if uncategorized:
            groups.append(
                {"category_id": None, "title": "Uncategorized", "forums": in_order(uncategorized)}
            )
        for category in categories:
            groups.append(
                {
                    "category_id": category.category_id,
                    "title": category.title,
                    "forums": in_order(
                        [f for f in forums if f.category_id == category.category_id]
                    ),
                }
            )

        data = dump_validated(
            CategorizedForumsResultData,
            {"forum_title": self._store.settings.forum.title, "groups": groups},
        )
        return ServiceResult(ok=True, op="get_categorized_forums", data=data)

    @traced
    def get_all_forum_titles(self) -> ServiceResult:
        with self._store.connect() as txn:
            titles = txn.forums.get_all_forum_titles()
        return ServiceResult(ok=True, op="get_all_forum_titles", data={"titles": titles})

    @traced
    def get_aggregate_counts(self) -> ServiceResult:
        with self._store.connect() as txn:
            topic_count = txn.forums.get_aggregate_topic_count()
            post_count = txn.forums.get_aggregate_post_count()
        return ServiceResult(
            ok=True,
            op="get_aggregate_counts",
            data={"topic_count": topic_count, "post_count": post_count},
        )

    @traced
    def get_recent_topics(
        self,
        user: User | None,
        include_deleted: bool = False,
        page_index: int = 1,
    ) -> ServiceResult:
        """Most recently active topics the user can view, one page at a time."""
        op = "get_recent_topics"
        if page_index < 1:
            return ServiceResult.failure(
                op, ErrorCode.VALIDATION_FAILED, f"Page index must be >= 1, got {page_index}"
            )
        page_size = self._store.settings.forum.topics_per_page
        start_row = (page_index - 1) * page_size + 1
        with self._store.connect() as txn:
            hidden = _non_viewable_forum_ids(txn, user)
            topics = txn.topics.get_recent(
                include_deleted=include_deleted,
                excluded_forum_ids=hidden,
                start_row=start_row,
                page_size=page_size,
            )
            total = txn.topics.count_recent(
                include_deleted=include_deleted, excluded_forum_ids=hidden
            )

        data = dump_validated(
            RecentTopicsResultData,
            {
                "topics": [t.model_dump(mode="json") for t in topics],
                "count": total,
                "pager": {
                    "page_count": page_count(total, page_size),
                    "page_index": page_index,
                    "page_size": page_size,
                },
            },
        )
        return ServiceResult(ok=True, op=op, data=data)

    # ------------------------------------------------------------------
    # Q&A
    # ------------------------------------------------------------------

    @traced
    def map_topic_for_qa(
        self, topic_id: int, last_read_time: datetime | None = None
    ) -> ServiceResult:
        """Project a topic's posts into question, ranked answers, and comments."""
        op = "map_topic_for_qa"
        with self._store.connect() as txn:
            topic = txn.topics.get(topic_id)
            if topic is None:
                return ServiceResult.failure(
                    op, ErrorCode.NOT_FOUND, f"Topic {topic_id} not found"
                )
            posts = txn.posts.get_for_topic(topic_id)

        try:
            projection = map_topic_for_qa(topic, posts, last_read_time)
        except QAIntegrityError as exc:
            logger.error("Q&A projection failed: %s", exc)
            return ServiceResult.failure(
                op,
                ErrorCode.DATA_INTEGRITY,
                str(exc),
                detail={"topic_id": exc.topic_id, "first_in_topic_posts": exc.found},
            )

        data = dump_validated(QAResultData, projection.model_dump(mode="json"))
        return ServiceResult(ok=True, op=op, data=data)


# ── Module-level helpers ────────────────────────────────────────────


def _forum_not_found(op: str, forum_id: int) -> ServiceResult:
    return ServiceResult.failure(
        op, ErrorCode.NOT_FOUND, f"Forum {forum_id} not found", detail={"forum_id": forum_id}
    )


def _persist_order(txn: StoreTransaction, ordered: list[Forum]) -> None:
    for forum in ordered:
        txn.forums.update_sort_order(forum.forum_id, forum.sort_order)


def _non_viewable_forum_ids(txn: StoreTransaction, user: User | None) -> list[int]:
    graph = txn.forums.get_view_restriction_role_graph()
    return sorted(
        forum_id
        for forum_id, roles in graph.items()
        if roles and not is_forum_viewable(user, roles)
    )
