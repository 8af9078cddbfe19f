"""Role names with built-in meaning, and moderation/event enums."""

from __future__ import annotations

from enum import StrEnum


class PermanentRoles(StrEnum):
    """Roles that exist on every installation and cannot be removed."""

    ADMIN = "Admin"
    MODERATOR = "Moderator"


MODERATING_ROLES: frozenset[str] = frozenset({PermanentRoles.ADMIN, PermanentRoles.MODERATOR})


class EventKind(StrEnum):
    """Kinds of activity published to the event feed."""

    NEW_TOPIC = "new_topic"
    NEW_POST = "new_post"


class ModerationType(StrEnum):
    """Actions recorded in the moderation log."""

    POST_EDIT = "post_edit"


class ForumRoleChange(StrEnum):
    """Mutations accepted by ``ForumService.modify_forum_roles``."""

    ADD_POST = "add_post"
    REMOVE_POST = "remove_post"
    ADD_VIEW = "add_view"
    REMOVE_VIEW = "remove_view"
    REMOVE_ALL_POST = "remove_all_post"
    REMOVE_ALL_VIEW = "remove_all_view"


ROLE_CHANGES_NEEDING_ROLE: frozenset[ForumRoleChange] = frozenset(
    {
        ForumRoleChange.ADD_POST,
        ForumRoleChange.REMOVE_POST,
        ForumRoleChange.ADD_VIEW,
        ForumRoleChange.REMOVE_VIEW,
    }
)
