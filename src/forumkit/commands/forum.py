"""Command group: forums, ordering, roles, and permissions."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from forumkit.commands._base import ForumGroup
from forumkit.domain.roles import ForumRoleChange

if TYPE_CHECKING:
    from forumkit.commands._context import AppContext


@click.group(
    cls=ForumGroup,
    examples="""\
  forumkit forum create "General Discussion"
  forumkit forum category "Support"
  forumkit forum create "Bug Reports" --category 1 --qa
  forumkit forum list --user 2
  forumkit forum up 3
  forumkit forum roles 3 add_view Staff
  forumkit forum can 3 --user 2 --topic 10
  forumkit forum recent --user 2 --page 2""",
)
def forum() -> None:
    """Manage forums."""


@forum.command("create")
@click.argument("title")
@click.option("--category", "category_id", type=int, default=None, help="Category id.")
@click.option("--description", default="", help="Forum description.")
@click.option("--hidden", is_flag=True, help="Hide the forum from listings.")
@click.option("--archived", is_flag=True, help="Create the forum archived (read-only).")
@click.option("--sort-order", type=int, default=0, help="Initial sort key.")
@click.option("--qa", "is_qa_forum", is_flag=True, help="Render topics as questions and answers.")
@click.pass_obj
def create(
    app: AppContext,
    title: str,
    category_id: int | None,
    description: str,
    hidden: bool,
    archived: bool,
    sort_order: int,
    is_qa_forum: bool,
) -> None:
    """Create a forum."""
    from forumkit.services.forum import ForumService

    app.emit(
        ForumService(app.store).create_forum(
            title,
            category_id=category_id,
            description=description,
            is_visible=not hidden,
            is_archived=archived,
            sort_order=sort_order,
            is_qa_forum=is_qa_forum,
        )
    )


@forum.command("category")
@click.argument("title")
@click.option("--sort-order", type=int, default=0, help="Category sort key.")
@click.pass_obj
def category(app: AppContext, title: str, sort_order: int) -> None:
    """Create a category."""
    from forumkit.services.forum import ForumService

    app.emit(ForumService(app.store).create_category(title, sort_order))


@forum.command("list")
@click.option("--user", "user_id", type=int, default=None, help="Only forums this user can view.")
@click.pass_obj
def list_forums(app: AppContext, user_id: int | None) -> None:
    """List forums grouped by category."""
    from forumkit.services.forum import ForumService

    user = app.require_user(user_id) if user_id is not None else None
    app.emit(ForumService(app.store).get_categorized_forums(user))


@forum.command("up")
@click.argument("forum_id", type=int)
@click.pass_obj
def up(app: AppContext, forum_id: int) -> None:
    """Move a forum one place up in its category."""
    from forumkit.services.forum import ForumService

    app.emit(ForumService(app.store).move_forum_up(forum_id))


@forum.command("down")
@click.argument("forum_id", type=int)
@click.pass_obj
def down(app: AppContext, forum_id: int) -> None:
    """Move a forum one place down in its category."""
    from forumkit.services.forum import ForumService

    app.emit(ForumService(app.store).move_forum_down(forum_id))


@forum.command("roles")
@click.argument("forum_id", type=int)
@click.argument("action", type=click.Choice([c.value for c in ForumRoleChange]))
@click.argument("role", required=False, default=None)
@click.pass_obj
def roles(app: AppContext, forum_id: int, action: str, role: str | None) -> None:
    """Change a forum's view or post restriction roles."""
    from forumkit.services.forum import ForumService

    app.emit(ForumService(app.store).modify_forum_roles(forum_id, action, role))


@forum.command("recount")
@click.argument("forum_id", type=int)
@click.pass_obj
def recount(app: AppContext, forum_id: int) -> None:
    """Recompute a forum's topic and post counts in the background."""
    from forumkit.services.forum import ForumService
    from forumkit.services.result import ServiceResult

    target = app.require_forum(forum_id)
    ForumService(app.store).update_counts(target)
    app.emit(
        ServiceResult(ok=True, op="update_counts", data={"forum_id": forum_id, "scheduled": True})
    )


@forum.command("can")
@click.argument("forum_id", type=int)
@click.option("--user", "user_id", type=int, default=None, help="Acting user (default: anonymous).")
@click.option("--topic", "topic_id", type=int, default=None, help="Evaluate against this topic.")
@click.pass_obj
def can(app: AppContext, forum_id: int, user_id: int | None, topic_id: int | None) -> None:
    """Show what a user may do in a forum."""
    from forumkit.services.forum import ForumService

    target = app.require_forum(forum_id)
    user = app.require_user(user_id) if user_id is not None else None
    topic = app.require_topic(topic_id) if topic_id is not None else None
    app.emit(ForumService(app.store).get_permission_context(target, user, topic))


@forum.command("recent")
@click.option(
    "--user", "user_id", type=int, default=None, help="Viewing user (default: anonymous)."
)
@click.option("--page", "page_index", type=int, default=1, show_default=True)
@click.option("--include-deleted", is_flag=True, help="Include deleted topics.")
@click.pass_obj
def recent(app: AppContext, user_id: int | None, page_index: int, include_deleted: bool) -> None:
    """List recently active topics."""
    from forumkit.services.forum import ForumService

    user = app.require_user(user_id) if user_id is not None else None
    app.emit(ForumService(app.store).get_recent_topics(user, include_deleted, page_index))
