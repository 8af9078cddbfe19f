"""PostingService: the post-authoring pipeline.

Every operation persists its content inside one store transaction, then
runs a fixed list of post-commit effects:

  new topic:  PERSIST -> PUBLISH -> BROADCAST -> INDEX
  reply:      PERSIST -> INDEX -> SUBSCRIBERS -> PUBLISH -> BROADCAST
  edit:       PERSIST -> MODERATION LOG -> INDEX

Effects run after commit so that anything reacting to them reads the
settled rows. A failing effect is logged and reported as a warning; the
content write stands and the remaining effects still run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from markupsafe import Markup

from forumkit.domain.models import (
    NO_PARENT,
    Forum,
    NewPost,
    Post,
    PostEdit,
    SearchIndexPayload,
    Topic,
    User,
)
from forumkit.domain.permissions import PermissionContext
from forumkit.domain.roles import EventKind, ModerationType
from forumkit.domain.urlnames import to_unique_url_name, to_url_name
from forumkit.services._helpers import now_utc
from forumkit.services.base import BaseService, Effect
from forumkit.services.moderation import ModerationLogService
from forumkit.services.result import ErrorCode, ServiceResult
from forumkit.services.subscriptions import SubscriptionService
from forumkit.services.telemetry import traced
from forumkit.services.tenant import TenantService
from forumkit.services.text import TextParsingService

if TYPE_CHECKING:
    from forumkit.infrastructure.store import Store

logger = logging.getLogger(__name__)

NEW_TOPIC_MESSAGE = Markup('<a href="{0}">{1}</a> started a new topic: <a href="{2}">{3}</a>')
NEW_REPLY_MESSAGE = Markup('<a href="{0}">{1}</a> made a post in the topic: <a href="{2}">{3}</a>')


class PostingService(BaseService):
    """Creates topics, replies, and edits, and fans out their side effects.

    Collaborators default to the built-in implementations and can be
    replaced (for example with mocks in tests).
    """

    def __init__(
        self,
        store: Store,
        *,
        text_parser: TextParsingService | None = None,
        subscriptions: SubscriptionService | None = None,
        moderation_log: ModerationLogService | None = None,
        tenant: TenantService | None = None,
    ) -> None:
        super().__init__(store)
        text = store.settings.text
        self._text = (
            text_parser
            if text_parser is not None
            else TextParsingService(text.censor_words, text.censor_char)
        )
        self._subscriptions = (
            subscriptions if subscriptions is not None else SubscriptionService(store)
        )
        self._moderation_log = (
            moderation_log if moderation_log is not None else ModerationLogService(store)
        )
        self._tenant = tenant if tenant is not None else TenantService(store.settings)

    @property
    def text_parser(self) -> TextParsingService:
        return self._text

    # ------------------------------------------------------------------
    # New topic
    # ------------------------------------------------------------------

    @traced
    def post_new_topic(
        self,
        forum: Forum,
        user: User,
        permission_context: PermissionContext,
        new_post: NewPost,
        ip: str,
        user_url: str,
        topic_link_generator: Callable[[Topic], str],
    ) -> ServiceResult:
        """Start a topic in *forum* with *new_post* as its first post.

        Requires *permission_context* to grant both view and post.
        """
        op = "post_new_topic"
        if not (permission_context.can_post and permission_context.can_view):
            return ServiceResult.failure(
                op,
                ErrorCode.FORBIDDEN,
                f"User {user.name} can't post to forum {forum.title}.",
                detail={
                    "user_id": user.user_id,
                    "forum_id": forum.forum_id,
                    "denial_reason": permission_context.denial_reason,
                },
            )

        warnings: list[str] = []
        new_post.title = self._text.censor(new_post.title)
        timestamp = now_utc()

        with self._store.transaction() as txn:
            url_name = to_unique_url_name(
                new_post.title,
                txn.topics.get_url_names_that_start_with(
                    forum.forum_id, to_url_name(new_post.title)
                ),
            )
            topic_id = txn.topics.create(
                forum_id=forum.forum_id,
                title=new_post.title,
                url_name=url_name,
                user_id=user.user_id,
                name=user.name,
                timestamp=timestamp,
            )
            post_id = txn.posts.create(
                topic_id=topic_id,
                parent_post_id=NO_PARENT,
                ip=ip,
                is_first_in_topic=True,
                show_sig=new_post.include_signature,
                user_id=user.user_id,
                name=user.name,
                title=new_post.title,
                full_text=new_post.full_text,
                post_time=timestamp,
                last_edit_name=user.name,
            )
            txn.forums.update_last_time_and_user(forum.forum_id, timestamp, user.name)
            txn.forums.increment_post_and_topic_count(forum.forum_id)
            txn.profiles.set_last_post_id(user.user_id, post_id)

        topic = Topic(
            topic_id=topic_id,
            forum_id=forum.forum_id,
            title=new_post.title,
            url_name=url_name,
            started_by_user_id=user.user_id,
            started_by_name=user.name,
            last_post_user_id=user.user_id,
            last_post_name=user.name,
            last_post_time=timestamp,
        )
        logger.info("Topic %s started in forum %s by %s", topic_id, forum.forum_id, user.name)

        user_payload = user.model_dump(mode="json")
        state: dict[str, Any] = {"forum": forum, "topic_link": ""}

        def build_link() -> None:
            state["topic_link"] = topic_link_generator(topic)

        def publish_new_topic() -> None:
            message = NEW_TOPIC_MESSAGE.format(
                user_url, user.name, state["topic_link"], topic.title
            )
            self._dispatch_event(
                "process_event",
                {
                    "message": str(message),
                    "user": user_payload,
                    "event_kind": str(EventKind.NEW_TOPIC),
                    "is_restricted": self._has_view_restrictions(forum.forum_id),
                },
                warnings,
            )

        def publish_new_post() -> None:
            self._dispatch_event(
                "process_event",
                {
                    "message": "",
                    "user": user_payload,
                    "event_kind": str(EventKind.NEW_POST),
                    "is_restricted": False,
                },
                warnings,
            )

        def refresh_forum() -> None:
            state["forum"] = self._refetch_forum(forum.forum_id, state["forum"])

        def broadcast_forum() -> None:
            self._dispatch_event(
                "notify_forum_update", {"forum": state["forum"].model_dump(mode="json")}, warnings
            )

        def broadcast_topic() -> None:
            self._dispatch_event(
                "notify_topic_update",
                {
                    "topic": topic.model_dump(mode="json"),
                    "forum": state["forum"].model_dump(mode="json"),
                    "topic_link": state["topic_link"],
                },
                warnings,
            )

        effects: list[Effect] = [
            ("topic_link", build_link),
            ("publish_new_topic", publish_new_topic),
            ("publish_new_post", publish_new_post),
            ("refresh_forum", refresh_forum),
            ("notify_forum_update", broadcast_forum),
            ("notify_topic_update", broadcast_topic),
            ("enqueue_search", lambda: self._enqueue_search(topic.topic_id)),
        ]
        completed = self._run_effects(effects, warnings)

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "topic": topic.model_dump(mode="json"),
                "post_id": post_id,
                "topic_link": state["topic_link"],
                "effects": completed,
            },
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Reply
    # ------------------------------------------------------------------

    @traced
    def post_reply(
        self,
        topic: Topic,
        user: User,
        parent_post_id: int,
        ip: str,
        is_first_in_topic: bool,
        new_post: NewPost,
        post_time: datetime,
        topic_link: str,
        unsubscribe_link_generator: Callable[[User], str] | None,
        user_url: str,
        post_link_generator: Callable[[Post], str],
    ) -> ServiceResult:
        """Add *new_post* to *topic*.

        Subscribers are notified only when *unsubscribe_link_generator* is
        given; passing None makes a silent reply.
        """
        op = "post_reply"
        warnings: list[str] = []
        new_post.title = self._text.censor(new_post.title)

        with self._store.transaction() as txn:
            post_id = txn.posts.create(
                topic_id=topic.topic_id,
                parent_post_id=parent_post_id,
                ip=ip,
                is_first_in_topic=is_first_in_topic,
                show_sig=new_post.include_signature,
                user_id=user.user_id,
                name=user.name,
                title=new_post.title,
                full_text=new_post.full_text,
                post_time=post_time,
                last_edit_name=user.name,
            )
            txn.topics.increment_reply_count(topic.topic_id)
            txn.topics.update_last_time_and_user(topic.topic_id, user.user_id, user.name, post_time)
            txn.forums.update_last_time_and_user(topic.forum_id, post_time, user.name)
            txn.forums.increment_post_count(topic.forum_id)

        post = Post(
            post_id=post_id,
            topic_id=topic.topic_id,
            parent_post_id=parent_post_id,
            user_id=user.user_id,
            name=user.name,
            title=new_post.title,
            full_text=new_post.full_text,
            ip=ip,
            post_time=post_time,
            show_sig=new_post.include_signature,
            last_edit_name=user.name,
            is_first_in_topic=is_first_in_topic,
        )
        logger.info("Post %s added to topic %s by %s", post_id, topic.topic_id, user.name)

        topic_payload = topic.model_dump(mode="json")
        state: dict[str, Any] = {"forum": None, "topic": topic}

        def record_last_post() -> None:
            with self._store.transaction() as txn:
                txn.profiles.set_last_post_id(user.user_id, post_id)

        def notify_subscribers() -> None:
            if unsubscribe_link_generator is None:
                return
            self._absorb(
                self._subscriptions.notify_subscribers(
                    topic, user, topic_link, unsubscribe_link_generator
                ),
                warnings,
            )

        def publish_new_post() -> None:
            message = NEW_REPLY_MESSAGE.format(
                user_url, user.name, post_link_generator(post), topic.title
            )
            self._dispatch_event(
                "process_event",
                {
                    "message": str(message),
                    "user": user.model_dump(mode="json"),
                    "event_kind": str(EventKind.NEW_POST),
                    "is_restricted": self._has_view_restrictions(topic.forum_id),
                },
                warnings,
            )

        def broadcast_new_posts() -> None:
            self._dispatch_event(
                "notify_new_posts", {"topic": topic_payload, "post_id": post_id}, warnings
            )

        def broadcast_new_post() -> None:
            self._dispatch_event(
                "notify_new_post", {"topic": topic_payload, "post_id": post_id}, warnings
            )

        def refresh_forum() -> None:
            state["forum"] = self._refetch_forum(topic.forum_id, None)

        def broadcast_forum() -> None:
            if state["forum"] is None:
                raise LookupError(f"Forum {topic.forum_id} of topic {topic.topic_id} not found")
            self._dispatch_event(
                "notify_forum_update", {"forum": state["forum"].model_dump(mode="json")}, warnings
            )

        def refresh_topic() -> None:
            with self._store.connect() as txn:
                fetched = txn.topics.get(topic.topic_id)
            if fetched is not None:
                state["topic"] = fetched

        def broadcast_topic() -> None:
            if state["forum"] is None:
                raise LookupError(f"Forum {topic.forum_id} of topic {topic.topic_id} not found")
            self._dispatch_event(
                "notify_topic_update",
                {
                    "topic": state["topic"].model_dump(mode="json"),
                    "forum": state["forum"].model_dump(mode="json"),
                    "topic_link": topic_link,
                },
                warnings,
            )

        effects: list[Effect] = [
            ("enqueue_search", lambda: self._enqueue_search(topic.topic_id)),
            ("record_last_post", record_last_post),
            ("notify_subscribers", notify_subscribers),
            ("publish_new_post", publish_new_post),
            ("notify_new_posts", broadcast_new_posts),
            ("notify_new_post", broadcast_new_post),
            ("refresh_forum", refresh_forum),
            ("notify_forum_update", broadcast_forum),
            ("refresh_topic", refresh_topic),
            ("notify_topic_update", broadcast_topic),
        ]
        completed = self._run_effects(effects, warnings)

        return ServiceResult(
            ok=True,
            op=op,
            data={"post": post.model_dump(mode="json"), "effects": completed},
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Edit
    # ------------------------------------------------------------------

    @traced
    def edit_post(self, post: Post, post_edit: PostEdit, editing_user: User) -> ServiceResult:
        """Apply *post_edit* to *post* as *editing_user*.

        The caller must already have authorized the edit; no permission
        check happens here. *post* is updated in place.
        """
        op = "edit_post"
        warnings: list[str] = []
        old_text = post.full_text

        post.title = self._text.censor(post_edit.title)
        if post_edit.is_plain_text:
            post.full_text = self._text.forum_code_to_html(post_edit.full_text)
        else:
            post.full_text = self._text.client_html_to_html(post_edit.full_text)
        post.show_sig = post_edit.show_sig
        post.last_edit_time = now_utc()
        post.last_edit_name = editing_user.name
        post.is_edited = True

        with self._store.transaction() as txn:
            txn.posts.update(post)
        logger.info("Post %s edited by %s", post.post_id, editing_user.name)

        def log_edit() -> None:
            self._absorb(
                self._moderation_log.log_post(
                    editing_user, ModerationType.POST_EDIT, post, post_edit.comment, old_text
                ),
                warnings,
            )

        effects: list[Effect] = [
            ("moderation_log", log_edit),
            ("enqueue_search", lambda: self._enqueue_search(post.topic_id)),
        ]
        completed = self._run_effects(effects, warnings)

        return ServiceResult(
            ok=True,
            op=op,
            data={"post": post.model_dump(mode="json"), "effects": completed},
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _enqueue_search(self, topic_id: int) -> None:
        payload = SearchIndexPayload(tenant_id=self._tenant.get_tenant(), topic_id=topic_id)
        with self._store.transaction() as txn:
            txn.search_queue.enqueue(payload, created=now_utc())

    def _has_view_restrictions(self, forum_id: int) -> bool:
        with self._store.connect() as txn:
            return len(txn.forums.get_view_roles(forum_id)) > 0

    def _refetch_forum(self, forum_id: int, fallback: Forum | None) -> Forum | None:
        with self._store.connect() as txn:
            fetched = txn.forums.get(forum_id)
        return fetched if fetched is not None else fallback

    @staticmethod
    def _absorb(result: object, warnings: list[str]) -> None:
        """Fold a collaborator's ServiceResult into *warnings*."""
        if not isinstance(result, ServiceResult):
            return
        warnings.extend(result.warnings)
        if result.error is not None:
            warnings.append(f"{result.op}: {result.error.message}")
