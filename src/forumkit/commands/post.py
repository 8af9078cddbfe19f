"""Command group: topics, replies, edits, and Q&A views.

These commands play the part of a web controller: they resolve entities,
authorize the acting user, render the body text, and build the links
the pipeline publishes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from forumkit.commands._base import ForumGroup

if TYPE_CHECKING:
    from collections.abc import Callable

    from forumkit.commands._context import AppContext
    from forumkit.domain.models import Post, Topic, User
    from forumkit.services.posting import PostingService

CLI_IP = "127.0.0.1"


def topic_link(topic: Topic) -> str:
    return f"/Forums/Topic/{topic.url_name}"


def post_link(post: Post) -> str:
    return f"/Forums/PostLink/{post.post_id}"


def user_url(user: User) -> str:
    return f"/Forums/Account/ViewProfile/{user.user_id}"


def unsubscribe_link_for(topic: Topic) -> Callable[[User], str]:
    def build(subscriber: User) -> str:
        return f"/Forums/Subscription/Unsubscribe/{topic.topic_id}?user={subscriber.user_id}"

    return build


def _render_body(posting: PostingService, text: str, *, html: bool) -> str:
    parser = posting.text_parser
    return parser.client_html_to_html(text) if html else parser.forum_code_to_html(text)


def _forbidden(app: AppContext, op: str, message: str, denial_reason: str = "") -> None:
    from forumkit.services.result import ErrorCode, ServiceResult

    app.emit(
        ServiceResult.failure(
            op, ErrorCode.FORBIDDEN, message, detail={"denial_reason": denial_reason}
        )
    )


@click.group(
    cls=ForumGroup,
    examples="""\
  forumkit post topic 1 2 "Hello world" "First [b]post[/b]"
  forumkit post reply 10 3 "Thanks!" --notify
  forumkit post reply 10 3 "A comment" --parent 41
  forumkit post edit 41 2 "Corrected text" --comment "typo"
  forumkit post answer 10 43
  forumkit post qa 10""",
)
def post() -> None:
    """Author topics and replies."""


@post.command("topic")
@click.argument("forum_id", type=int)
@click.argument("user_id", type=int)
@click.argument("title")
@click.argument("text")
@click.option("--html", is_flag=True, help="TEXT is HTML rather than forum code.")
@click.option("--sig", "include_signature", is_flag=True, help="Show the author's signature.")
@click.option("--ip", default=CLI_IP, show_default=True, help="Author IP address.")
@click.pass_obj
def new_topic(
    app: AppContext,
    forum_id: int,
    user_id: int,
    title: str,
    text: str,
    html: bool,
    include_signature: bool,
    ip: str,
) -> None:
    """Start a new topic."""
    from forumkit.domain.models import NewPost
    from forumkit.domain.permissions import PermissionContext
    from forumkit.services.forum import ForumService
    from forumkit.services.posting import PostingService

    target = app.require_forum(forum_id)
    author = app.require_user(user_id)
    context = PermissionContext.model_validate(
        ForumService(app.store).get_permission_context(target, author).data["context"]
    )
    posting = PostingService(app.store)
    new_post = NewPost(
        title=title,
        full_text=_render_body(posting, text, html=html),
        include_signature=include_signature,
        is_plain_text=not html,
    )
    app.emit(
        posting.post_new_topic(
            target, author, context, new_post, ip, user_url(author), topic_link
        )
    )


@post.command("reply")
@click.argument("topic_id", type=int)
@click.argument("user_id", type=int)
@click.argument("text")
@click.option("--title", default=None, help="Reply title (default: 'Re: <topic>').")
@click.option("--parent", "parent_post_id", type=int, default=0, help="Post this replies to.")
@click.option("--notify", is_flag=True, help="Notify topic subscribers.")
@click.option("--html", is_flag=True, help="TEXT is HTML rather than forum code.")
@click.option("--sig", "include_signature", is_flag=True, help="Show the author's signature.")
@click.option("--ip", default=CLI_IP, show_default=True, help="Author IP address.")
@click.pass_obj
def reply(
    app: AppContext,
    topic_id: int,
    user_id: int,
    text: str,
    title: str | None,
    parent_post_id: int,
    notify: bool,
    html: bool,
    include_signature: bool,
    ip: str,
) -> None:
    """Reply to a topic."""
    from forumkit.domain.models import NewPost
    from forumkit.domain.permissions import PermissionContext
    from forumkit.services._helpers import now_utc
    from forumkit.services.forum import ForumService
    from forumkit.services.posting import PostingService

    topic = app.require_topic(topic_id)
    author = app.require_user(user_id)
    target = app.require_forum(topic.forum_id)
    context = PermissionContext.model_validate(
        ForumService(app.store).get_permission_context(target, author, topic).data["context"]
    )
    if not (context.can_view and context.can_post):
        _forbidden(
            app,
            "post_reply",
            f"User {author.name} can't reply to topic {topic.title}.",
            context.denial_reason,
        )
        return

    posting = PostingService(app.store)
    new_post = NewPost(
        title=title or f"Re: {topic.title}",
        full_text=_render_body(posting, text, html=html),
        include_signature=include_signature,
        is_plain_text=not html,
    )
    app.emit(
        posting.post_reply(
            topic,
            author,
            parent_post_id,
            ip,
            False,
            new_post,
            now_utc(),
            topic_link(topic),
            unsubscribe_link_for(topic) if notify else None,
            user_url(author),
            post_link,
        )
    )


@post.command("edit")
@click.argument("post_id", type=int)
@click.argument("user_id", type=int)
@click.argument("text")
@click.option("--title", default=None, help="New title (default: keep).")
@click.option("--comment", default="", help="Moderation log comment.")
@click.option("--html", is_flag=True, help="TEXT is HTML rather than forum code.")
@click.option("--sig", "show_sig", is_flag=True, help="Show the author's signature.")
@click.pass_obj
def edit(
    app: AppContext,
    post_id: int,
    user_id: int,
    text: str,
    title: str | None,
    comment: str,
    html: bool,
    show_sig: bool,
) -> None:
    """Edit a post as its author or a moderator."""
    from forumkit.domain.models import PostEdit
    from forumkit.domain.roles import MODERATING_ROLES
    from forumkit.services.posting import PostingService

    target = app.require_post(post_id)
    editor = app.require_user(user_id)
    if target.user_id != editor.user_id and not editor.in_any_role(MODERATING_ROLES):
        _forbidden(app, "edit_post", f"User {editor.name} can't edit post {post_id}.")
        return

    post_edit = PostEdit(
        title=title if title is not None else target.title,
        full_text=text,
        show_sig=show_sig,
        is_plain_text=not html,
        comment=comment,
    )
    app.emit(PostingService(app.store).edit_post(target, post_edit, editor))


@post.command("subscribe")
@click.argument("topic_id", type=int)
@click.argument("user_id", type=int)
@click.pass_obj
def subscribe(app: AppContext, topic_id: int, user_id: int) -> None:
    """Subscribe a user to replies in a topic."""
    from forumkit.services.subscriptions import SubscriptionService

    app.emit(SubscriptionService(app.store).subscribe(topic_id, user_id))


@post.command("answer")
@click.argument("topic_id", type=int)
@click.argument("post_id", type=int)
@click.pass_obj
def answer(app: AppContext, topic_id: int, post_id: int) -> None:
    """Mark a post as the accepted answer of its topic."""
    from forumkit.services.topics import TopicService

    app.emit(TopicService(app.store).set_answer(topic_id, post_id))


@post.command("qa")
@click.argument("topic_id", type=int)
@click.pass_obj
def qa(app: AppContext, topic_id: int) -> None:
    """Show a topic as question, ranked answers, and comments."""
    from forumkit.services.forum import ForumService

    app.emit(ForumService(app.store).map_topic_for_qa(topic_id))
