"""Tests for ForumService: lifecycle, ordering, roles, listings, and Q&A."""

from __future__ import annotations

from collections.abc import Generator
from datetime import UTC, datetime, timedelta, timezone
from pathlib import Path

import pytest

from forumkit.config.settings import ForumSettings
from forumkit.domain.models import NewPost, Topic
from forumkit.infrastructure.repositories import TopicRepository
from forumkit.infrastructure.store import Store
from forumkit.services.forum import NO_ACTIVITY_TIME, ForumService
from forumkit.services.posting import PostingService
from forumkit.services.topics import TopicService
from tests.conftest import make_forum, make_user, reload_forum, start_topic


def _order(store: Store, category_id: int | None = None) -> list[tuple[str, int]]:
    with store.connect() as txn:
        return [(f.title, f.sort_order) for f in txn.forums.get_forums_in_category(category_id)]


def _reply(
    store: Store,
    topic: Topic,
    user_name: str,
    *,
    parent: int = 0,
    first: bool = False,
    at: datetime | None = None,
) -> int:
    with store.connect() as txn:
        user = txn.users.get_by_name(user_name)
    assert user is not None
    result = PostingService(store).post_reply(
        topic,
        user,
        parent,
        "127.0.0.1",
        first,
        NewPost(title="Re", full_text="reply"),
        at or datetime.now(UTC),
        "/topics/x",
        None,
        "/users/x",
        lambda p: f"/posts/{p.post_id}",
    )
    assert result.ok, result.error
    return int(result.data["post"]["post_id"])


class TestCreateForum:
    def test_creates_with_url_name(self, store: Store) -> None:
        result = ForumService(store).create_forum("General Discussion", description="Chat")
        assert result.ok
        assert result.op == "create_forum"
        forum = result.data["forum"]
        assert forum["url_name"] == "general-discussion"
        assert forum["description"] == "Chat"

    def test_duplicate_titles_get_numbered_url_names(self, store: Store) -> None:
        first = make_forum(store, "General")
        second = make_forum(store, "General")
        third = make_forum(store, "General")
        assert [first.url_name, second.url_name, third.url_name] == [
            "general",
            "general2",
            "general3",
        ]

    def test_empty_title_rejected(self, store: Store) -> None:
        result = ForumService(store).create_forum("   ")
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "VALIDATION_FAILED"

    def test_category_is_resequenced(self, store: Store) -> None:
        make_forum(store, "A")
        make_forum(store, "B")
        make_forum(store, "C", sort_order=1)
        assert _order(store) == [("A", 0), ("C", 2), ("B", 4)]

    def test_other_categories_untouched(self, store: Store) -> None:
        category_id = ForumService(store).create_category("Support", 1).data["category_id"]
        make_forum(store, "Help", category_id=category_id, sort_order=9)
        make_forum(store, "General", sort_order=5)
        assert _order(store, category_id) == [("Help", 0)]
        assert _order(store) == [("General", 0)]


class TestUpdateForum:
    def test_same_title_keeps_url_name(self, store: Store) -> None:
        forum = make_forum(store, "General")
        result = ForumService(store).update_forum(
            forum.forum_id, title="General", description="New"
        )
        assert result.ok
        assert result.data["forum"]["url_name"] == "general"
        assert result.data["forum"]["description"] == "New"

    def test_new_title_regenerates_url_name(self, store: Store) -> None:
        forum = make_forum(store, "General")
        make_forum(store, "Support")
        result = ForumService(store).update_forum(forum.forum_id, title="Support")
        assert result.data["forum"]["url_name"] == "support2"

    def test_missing_forum(self, store: Store) -> None:
        result = ForumService(store).update_forum(99, title="X")
        assert result.error is not None
        assert result.error.code == "NOT_FOUND"

    def test_get_forum(self, store: Store) -> None:
        forum = make_forum(store, "General")
        assert ForumService(store).get_forum(forum.forum_id).data["forum"]["title"] == "General"
        assert not ForumService(store).get_forum(99).ok


class TestMoveForum:
    def test_move_up(self, store: Store) -> None:
        make_forum(store, "A")
        make_forum(store, "B")
        c = make_forum(store, "C")
        result = ForumService(store).move_forum_up(c.forum_id)
        assert result.ok
        assert result.op == "move_forum_up"
        assert [(o["title"], o["sort_order"]) for o in result.data["order"]] == [
            ("A", 0),
            ("C", 2),
            ("B", 4),
        ]
        assert _order(store) == [("A", 0), ("C", 2), ("B", 4)]

    def test_move_down(self, store: Store) -> None:
        a = make_forum(store, "A")
        make_forum(store, "B")
        result = ForumService(store).move_forum_down(a.forum_id)
        assert result.op == "move_forum_down"
        assert _order(store) == [("B", 0), ("A", 2)]

    def test_move_top_up_stays(self, store: Store) -> None:
        a = make_forum(store, "A")
        make_forum(store, "B")
        ForumService(store).move_forum_up(a.forum_id)
        assert _order(store) == [("A", 0), ("B", 2)]

    def test_missing_forum_is_not_found(self, store: Store) -> None:
        result = ForumService(store).move_forum_up(99)
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "NOT_FOUND"
        assert result.error.message == "Forum 99 doesn't exist, can't move it up."
        assert result.error.detail == {"forum_id": 99, "direction": "up"}

    def test_move_stays_within_category(self, store: Store) -> None:
        service = ForumService(store)
        category_id = service.create_category("Support").data["category_id"]
        make_forum(store, "Loose")
        make_forum(store, "Help", category_id=category_id)
        faq = make_forum(store, "FAQ", category_id=category_id)
        service.move_forum_up(faq.forum_id)
        assert _order(store, category_id) == [("FAQ", 0), ("Help", 2)]
        assert _order(store) == [("Loose", 0)]


class TestRoles:
    def test_add_and_remove_view_role(self, store: Store) -> None:
        forum = make_forum(store, "Staff")
        service = ForumService(store)
        added = service.modify_forum_roles(forum.forum_id, "add_view", "Staff")
        assert added.ok
        assert added.data["view_roles"] == ["Staff"]
        assert added.data["post_roles"] == []
        removed = service.modify_forum_roles(forum.forum_id, "remove_view", "Staff")
        assert removed.data["view_roles"] == []

    def test_remove_all_post_roles(self, store: Store) -> None:
        forum = make_forum(store, "Staff")
        service = ForumService(store)
        service.modify_forum_roles(forum.forum_id, "add_post", "Staff")
        service.modify_forum_roles(forum.forum_id, "add_post", "Admin")
        assert service.get_forum_post_roles(forum.forum_id).data["roles"] == ["Admin", "Staff"]
        result = service.modify_forum_roles(forum.forum_id, "remove_all_post")
        assert result.data["post_roles"] == []

    def test_unknown_change_rejected(self, store: Store) -> None:
        forum = make_forum(store, "Staff")
        result = ForumService(store).modify_forum_roles(forum.forum_id, "grant_everything", "x")
        assert result.error is not None
        assert result.error.code == "INVALID_ROLE_CHANGE"

    def test_missing_role_rejected(self, store: Store) -> None:
        forum = make_forum(store, "Staff")
        result = ForumService(store).modify_forum_roles(forum.forum_id, "add_view")
        assert result.error is not None
        assert result.error.code == "INVALID_ROLE_CHANGE"

    def test_unknown_forum(self, store: Store) -> None:
        result = ForumService(store).modify_forum_roles(42, "add_view", "Staff")
        assert result.error is not None
        assert result.error.code == "NOT_FOUND"


class TestPermissionsAndVisibility:
    def test_context_uses_current_roles(self, store: Store) -> None:
        forum = make_forum(store, "Staff")
        member = make_user(store, "member", roles=["Member"])
        service = ForumService(store)
        before = service.get_permission_context(forum, member).data["context"]
        service.modify_forum_roles(forum.forum_id, "add_view", "Staff")
        after = service.get_permission_context(forum, member).data["context"]
        assert before["can_view"] is True
        assert after["can_view"] is False

    def test_viewable_and_non_viewable_ids(self, store: Store) -> None:
        open_forum = make_forum(store, "Open")
        staff_forum = make_forum(store, "Staff")
        hidden_forum = make_forum(store, "Hidden", is_visible=False)
        service = ForumService(store)
        service.modify_forum_roles(staff_forum.forum_id, "add_view", "Staff")
        staff = make_user(store, "staffer", roles=["Staff"])

        assert service.get_non_viewable_forum_ids(None).data["forum_ids"] == [
            staff_forum.forum_id
        ]
        assert service.get_non_viewable_forum_ids(staff).data["forum_ids"] == []
        assert service.get_viewable_forum_ids(None).data["forum_ids"] == [open_forum.forum_id]
        viewable = service.get_viewable_forum_ids(staff).data["forum_ids"]
        assert sorted(viewable) == sorted([open_forum.forum_id, staff_forum.forum_id])
        assert hidden_forum.forum_id not in viewable


class TestListings:
    def test_categorized_uncategorized_first(self, store: Store) -> None:
        service = ForumService(store)
        category_id = service.create_category("Support").data["category_id"]
        make_forum(store, "Help", category_id=category_id)
        make_forum(store, "General")
        result = service.get_categorized_forums()
        groups = result.data["groups"]
        assert result.data["forum_title"] == "Forums"
        assert [g["title"] for g in groups] == ["Uncategorized", "Support"]
        assert groups[0]["category_id"] is None
        assert [f["title"] for f in groups[1]["forums"]] == ["Help"]

    def test_categorized_for_user_hides_restricted(self, store: Store) -> None:
        service = ForumService(store)
        make_forum(store, "General")
        staff_forum = make_forum(store, "Staff")
        make_forum(store, "Hidden", is_visible=False)
        service.modify_forum_roles(staff_forum.forum_id, "add_view", "Staff")
        user = make_user(store, "alice")
        groups = service.get_categorized_forums(user).data["groups"]
        assert [f["title"] for g in groups for f in g["forums"]] == ["General"]

    def test_titles_and_aggregates(self, store: Store) -> None:
        general = make_forum(store, "General")
        other = make_forum(store, "Other")
        alice = make_user(store, "alice")
        topic, _ = start_topic(store, general, alice)
        _reply(store, topic, "alice")
        start_topic(store, other, alice)
        service = ForumService(store)
        assert service.get_all_forum_titles().data["titles"] == {
            general.forum_id: "General",
            other.forum_id: "Other",
        }
        assert service.get_aggregate_counts().data == {"topic_count": 2, "post_count": 3}


class TestRecentTopics:
    @pytest.fixture
    def small_page_store(self, tmp_path: Path) -> Generator[Store]:
        settings = ForumSettings.from_cli(
            data_root=tmp_path, sync=True, forum={"topics_per_page": 2}
        )
        s = Store(settings)
        s.init_event_bus(sync=True)
        try:
            yield s
        finally:
            s.close()

    def test_paging(self, small_page_store: Store) -> None:
        store = small_page_store
        forum = make_forum(store, "General")
        alice = make_user(store, "alice")
        topics = [start_topic(store, forum, alice, title=f"T{i}")[0] for i in range(5)]
        service = ForumService(store)

        page1 = service.get_recent_topics(alice)
        page3 = service.get_recent_topics(alice, page_index=3)
        assert [t["topic_id"] for t in page1.data["topics"]] == [
            topics[4].topic_id,
            topics[3].topic_id,
        ]
        assert page1.data["count"] == 5
        assert page1.data["pager"] == {"page_count": 3, "page_index": 1, "page_size": 2}
        assert [t["topic_id"] for t in page3.data["topics"]] == [topics[0].topic_id]

    def test_excludes_restricted_and_deleted(self, store: Store) -> None:
        general = make_forum(store, "General")
        staff_forum = make_forum(store, "Staff")
        alice = make_user(store, "alice")
        kept, _ = start_topic(store, general, alice, title="Kept")
        deleted, _ = start_topic(store, general, alice, title="Deleted")
        start_topic(store, staff_forum, alice, title="Secret")
        service = ForumService(store)
        service.modify_forum_roles(staff_forum.forum_id, "add_view", "Staff")
        TopicService(store).set_flags(deleted.topic_id, is_deleted=True)

        result = service.get_recent_topics(alice)
        assert [t["title"] for t in result.data["topics"]] == ["Kept"]
        with_deleted = service.get_recent_topics(alice, include_deleted=True)
        assert [t["title"] for t in with_deleted.data["topics"]] == ["Deleted", "Kept"]

    def test_empty_listing_has_one_page(self, store: Store) -> None:
        result = ForumService(store).get_recent_topics(None)
        assert result.data["topics"] == []
        assert result.data["pager"]["page_count"] == 1

    def test_page_index_must_be_positive(self, store: Store) -> None:
        result = ForumService(store).get_recent_topics(None, page_index=0)
        assert result.error is not None
        assert result.error.code == "VALIDATION_FAILED"


class TestLastAndCounts:
    def test_update_last_uses_newest_live_topic(self, store: Store) -> None:
        forum = make_forum(store, "General")
        alice = make_user(store, "alice")
        bob = make_user(store, "bob")
        start_topic(store, forum, alice, title="First")
        second, _ = start_topic(store, forum, bob, title="Second")
        TopicService(store).set_flags(second.topic_id, is_deleted=True)

        result = ForumService(store).update_last(forum)
        assert result.ok
        assert result.data["last_post_name"] == "alice"
        assert reload_forum(store, forum.forum_id).last_post_name == "alice"

    def test_update_last_without_topics(self, store: Store) -> None:
        forum = make_forum(store, "Empty")
        ForumService(store).update_last(forum)
        reloaded = reload_forum(store, forum.forum_id)
        assert reloaded.last_post_time == NO_ACTIVITY_TIME
        assert reloaded.last_post_name == ""

    def test_update_last_compares_instants_across_offsets(self, store: Store) -> None:
        forum = make_forum(store, "General")
        alice = make_user(store, "alice")
        bob = make_user(store, "bob")
        first, _ = start_topic(store, forum, alice, title="First")
        second, _ = start_topic(store, forum, bob, title="Second")
        plus_two = timezone(timedelta(hours=2))
        _reply(store, first, "alice", at=datetime(2030, 1, 1, 10, 0, tzinfo=plus_two))
        _reply(store, second, "bob", at=datetime(2030, 1, 1, 9, 0, tzinfo=UTC))

        service = ForumService(store)
        result = service.update_last(forum)
        assert result.data["last_post_name"] == "bob"
        assert result.data["last_post_time"] == "2030-01-01T09:00:00+00:00"
        recent = service.get_recent_topics(alice)
        assert [t["title"] for t in recent.data["topics"]] == ["Second", "First"]

    def test_update_counts_recomputes_in_background(self, store: Store) -> None:
        forum = make_forum(store, "General")
        alice = make_user(store, "alice")
        kept, _ = start_topic(store, forum, alice, title="Kept")
        _reply(store, kept, "alice")
        gone, _ = start_topic(store, forum, alice, title="Gone")
        TopicService(store).set_flags(gone.topic_id, is_deleted=True)
        assert reload_forum(store, forum.forum_id).topic_count == 2

        assert ForumService(store).update_counts(forum) is None
        store.background.wait()
        reloaded = reload_forum(store, forum.forum_id)
        assert (reloaded.topic_count, reloaded.post_count) == (1, 2)

    def test_update_counts_failure_is_not_reported(
        self, store: Store, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        forum = make_forum(store, "General")

        def boom(self: TopicRepository, forum_id: int, *, include_deleted: bool) -> int:
            raise RuntimeError("db gone")

        monkeypatch.setattr(TopicRepository, "get_topic_count", boom)
        assert ForumService(store).update_counts(forum) is None
        assert store.background.failures == 1


class TestQAProjection:
    def test_projection(self, store: Store) -> None:
        forum = make_forum(store, "Questions", is_qa_forum=True)
        alice = make_user(store, "alice")
        make_user(store, "bob")
        topic, question_id = start_topic(store, forum, alice, title="How?")
        answer_id = _reply(store, topic, "bob")
        comment_id = _reply(store, topic, "alice", parent=answer_id)
        TopicService(store).set_answer(topic.topic_id, answer_id)

        result = ForumService(store).map_topic_for_qa(topic.topic_id)
        assert result.ok
        assert result.data["question"]["post"]["post_id"] == question_id
        assert [a["post"]["post_id"] for a in result.data["answers"]] == [answer_id]
        assert [c["post_id"] for c in result.data["answers"][0]["children"]] == [comment_id]
        assert result.data["topic"]["answer_post_id"] == answer_id

    def test_naive_reply_time_ties_with_aware_time(self, store: Store) -> None:
        forum = make_forum(store, "Questions", is_qa_forum=True)
        alice = make_user(store, "alice")
        make_user(store, "bob")
        topic, _ = start_topic(store, forum, alice, title="How?")
        recent_id = _reply(store, topic, "bob", at=datetime.now(UTC))
        old_id = _reply(store, topic, "bob", at=datetime(2024, 1, 1, 12, 0))

        result = ForumService(store).map_topic_for_qa(topic.topic_id)
        assert result.ok, result.error
        assert [a["post"]["post_id"] for a in result.data["answers"]] == [recent_id, old_id]
        with store.connect() as txn:
            stored = txn.posts.get(old_id)
        assert stored is not None
        assert stored.post_time == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def test_missing_topic(self, store: Store) -> None:
        result = ForumService(store).map_topic_for_qa(404)
        assert result.error is not None
        assert result.error.code == "NOT_FOUND"

    def test_two_first_posts_is_data_integrity(self, store: Store) -> None:
        forum = make_forum(store, "Questions", is_qa_forum=True)
        alice = make_user(store, "alice")
        topic, _ = start_topic(store, forum, alice)
        _reply(store, topic, "alice", first=True)

        result = ForumService(store).map_topic_for_qa(topic.topic_id)
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "DATA_INTEGRITY"
        assert result.error.detail == {"topic_id": topic.topic_id, "first_in_topic_posts": 2}
