"""Tests for forum permission evaluation."""

from __future__ import annotations

import pytest

from forumkit.domain.models import Forum, Topic, User
from forumkit.domain.permissions import DenialReason, evaluate_permissions, is_forum_viewable


def _forum(**kwargs: object) -> Forum:
    return Forum(forum_id=1, title="General", **kwargs)


def _topic(**kwargs: object) -> Topic:
    return Topic(topic_id=10, forum_id=1, title="Hello", **kwargs)


def _user(*roles: str, approved: bool = True) -> User:
    return User(user_id=5, name="alice", is_approved=approved, roles=frozenset(roles))


class TestViewAndPost:
    def test_anonymous_can_view_open_forum_but_not_post(self) -> None:
        ctx = evaluate_permissions(_forum(), None)
        assert ctx.can_view is True
        assert ctx.can_post is False
        assert ctx.can_moderate is False
        assert ctx.denial_reasons == [DenialReason.LOGIN_TO_POST]

    def test_approved_user_in_open_forum(self) -> None:
        ctx = evaluate_permissions(_forum(), _user())
        assert ctx.can_view is True
        assert ctx.can_post is True
        assert ctx.denial_reasons == []
        assert ctx.denial_reason == ""

    def test_unapproved_user_cannot_post(self) -> None:
        ctx = evaluate_permissions(_forum(), _user(approved=False))
        assert ctx.can_view is True
        assert ctx.can_post is False
        assert ctx.denial_reasons == [DenialReason.VERIFY_ACCOUNT]

    def test_post_roles_restrict_posting(self) -> None:
        ctx = evaluate_permissions(_forum(), _user("Member"), post_roles=["Staff"])
        assert ctx.can_post is False
        assert ctx.denial_reasons == [DenialReason.FORUM_NO_POST]

    def test_post_role_holder_can_post(self) -> None:
        ctx = evaluate_permissions(_forum(), _user("Staff"), post_roles=["Staff", "Admin"])
        assert ctx.can_post is True

    def test_view_roles_hide_forum_and_block_posting(self) -> None:
        ctx = evaluate_permissions(_forum(), _user("Member"), view_roles=["Staff"])
        assert ctx.can_view is False
        assert ctx.can_post is False
        assert ctx.denial_reasons == [DenialReason.LOGIN_TO_POST]

    def test_view_role_holder_can_view(self) -> None:
        ctx = evaluate_permissions(_forum(), _user("Staff"), view_roles=["Staff"])
        assert ctx.can_view is True
        assert ctx.can_post is True

    def test_anonymous_cannot_view_restricted_forum(self) -> None:
        ctx = evaluate_permissions(_forum(), None, view_roles=["Staff"])
        assert ctx.can_view is False


class TestTopicAndForumState:
    def test_closed_topic_revokes_posting(self) -> None:
        ctx = evaluate_permissions(_forum(), _user(), _topic(is_closed=True))
        assert ctx.can_view is True
        assert ctx.can_post is False
        assert ctx.denial_reasons == [DenialReason.CLOSED]

    def test_deleted_topic_hidden_from_regular_user(self) -> None:
        ctx = evaluate_permissions(_forum(), _user(), _topic(is_deleted=True))
        assert ctx.can_view is False
        assert DenialReason.TOPIC_DELETED in ctx.denial_reasons

    def test_deleted_topic_visible_to_moderator_with_reason(self) -> None:
        ctx = evaluate_permissions(_forum(), _user("Moderator"), _topic(is_deleted=True))
        assert ctx.can_view is True
        assert ctx.can_moderate is True
        assert ctx.denial_reasons == [DenialReason.TOPIC_DELETED]

    def test_deleted_topic_hidden_from_admin_without_moderator_role(self) -> None:
        ctx = evaluate_permissions(_forum(), _user("Admin"), _topic(is_deleted=True))
        assert ctx.can_view is False
        assert ctx.can_moderate is True

    def test_archived_forum_revokes_posting(self) -> None:
        ctx = evaluate_permissions(_forum(is_archived=True), _user())
        assert ctx.can_view is True
        assert ctx.can_post is False
        assert ctx.denial_reasons == [DenialReason.ARCHIVED]

    def test_reasons_accumulate_in_evaluation_order(self) -> None:
        ctx = evaluate_permissions(
            _forum(is_archived=True), _user(approved=False), _topic(is_closed=True)
        )
        assert ctx.denial_reasons == [
            DenialReason.VERIFY_ACCOUNT,
            DenialReason.CLOSED,
            DenialReason.ARCHIVED,
        ]
        assert ctx.denial_reason == (
            "You can't post until you have verified your account. "
            "This topic is closed. This forum is archived."
        )

    def test_dump_includes_joined_reason(self) -> None:
        dumped = evaluate_permissions(_forum(is_archived=True), _user()).model_dump(mode="json")
        assert dumped["denial_reason"] == "This forum is archived."
        assert dumped["denial_reasons"] == ["This forum is archived."]


class TestModerate:
    @pytest.mark.parametrize("role", ["Admin", "Moderator"])
    def test_moderating_roles(self, role: str) -> None:
        assert evaluate_permissions(_forum(), _user(role)).can_moderate is True

    def test_moderation_independent_of_view(self) -> None:
        ctx = evaluate_permissions(_forum(), _user("Moderator"), view_roles=["Staff"])
        assert ctx.can_view is False
        assert ctx.can_moderate is True

    def test_regular_user_cannot_moderate(self) -> None:
        assert evaluate_permissions(_forum(), _user("Member")).can_moderate is False


class TestIsForumViewable:
    def test_unrestricted(self) -> None:
        assert is_forum_viewable(None, []) is True

    def test_restricted(self) -> None:
        assert is_forum_viewable(None, ["Staff"]) is False
        assert is_forum_viewable(_user("Staff"), ["Staff"]) is True
        assert is_forum_viewable(_user("Member"), ["Staff"]) is False
