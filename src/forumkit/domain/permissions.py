"""Forum permission evaluation.

A pure decision over (forum, user, optional topic) and the forum's
restriction roles. Each step may only narrow what earlier steps granted,
and every denial appends a reason in evaluation order:

1. view: open unless the forum has view roles the user lacks
2. post: needs a user who can view, is approved, and holds a post
   role when the forum has any
3. closed: a closed topic revokes posting
4. deleted: a deleted topic hides it from everyone but moderators;
   the reason is recorded even when a moderator keeps view
5. archived: an archived forum revokes posting
6. moderate: Admin or Moderator, independent of view and post

Contexts are computed per request and never cached.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum

from pydantic import BaseModel, Field, computed_field

from forumkit.domain.models import Forum, Topic, User
from forumkit.domain.roles import MODERATING_ROLES, PermanentRoles


class DenialReason(StrEnum):
    """Human-readable denial fragments, appended in evaluation order."""

    LOGIN_TO_POST = "You must be logged in to post."
    VERIFY_ACCOUNT = "You can't post until you have verified your account."
    FORUM_NO_POST = "You don't have permission to post in this forum."
    CLOSED = "This topic is closed."
    TOPIC_DELETED = "Topic is deleted."
    ARCHIVED = "This forum is archived."


class PermissionContext(BaseModel):
    """Capabilities of one user on one forum (and optionally one topic)."""

    can_view: bool = False
    can_post: bool = False
    can_moderate: bool = False
    denial_reasons: list[DenialReason] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def denial_reason(self) -> str:
        """All denial fragments joined into one message ("" when none)."""
        return " ".join(str(reason) for reason in self.denial_reasons)


def evaluate_permissions(
    forum: Forum,
    user: User | None,
    topic: Topic | None = None,
    *,
    view_roles: Iterable[str] = (),
    post_roles: Iterable[str] = (),
) -> PermissionContext:
    """Compute the permission context for *user* on *forum* / *topic*.

    *view_roles* and *post_roles* are the forum's restriction roles; an
    empty collection means the action is unrestricted.
    """
    view_restriction = frozenset(view_roles)
    post_restriction = frozenset(post_roles)
    context = PermissionContext()

    # view
    if not view_restriction:
        context.can_view = True
    else:
        context.can_view = user is not None and user.in_any_role(view_restriction)

    # post
    if user is None or not context.can_view:
        context.can_post = False
        context.denial_reasons.append(DenialReason.LOGIN_TO_POST)
    elif not user.is_approved:
        context.can_post = False
        context.denial_reasons.append(DenialReason.VERIFY_ACCOUNT)
    elif not post_restriction or user.in_any_role(post_restriction):
        context.can_post = True
    else:
        context.can_post = False
        context.denial_reasons.append(DenialReason.FORUM_NO_POST)

    if topic is not None and topic.is_closed:
        context.can_post = False
        context.denial_reasons.append(DenialReason.CLOSED)

    if topic is not None and topic.is_deleted:
        if user is None or not user.is_in_role(PermanentRoles.MODERATOR):
            context.can_view = False
        context.denial_reasons.append(DenialReason.TOPIC_DELETED)

    if forum.is_archived:
        context.can_post = False
        context.denial_reasons.append(DenialReason.ARCHIVED)

    # moderate
    context.can_moderate = user is not None and user.in_any_role(MODERATING_ROLES)

    return context


def is_forum_viewable(user: User | None, view_roles: Iterable[str]) -> bool:
    """Whether *user* passes a forum's view restriction (step 1 alone)."""
    restriction = frozenset(view_roles)
    if not restriction:
        return True
    return user is not None and user.in_any_role(restriction)
