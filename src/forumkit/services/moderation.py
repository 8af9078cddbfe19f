"""ModerationLogService: records moderator-visible actions on posts."""

from __future__ import annotations

import logging

from forumkit.domain.models import Post, User
from forumkit.domain.roles import ModerationType
from forumkit.services._helpers import now_utc
from forumkit.services.base import BaseService
from forumkit.services.result import ErrorCode, ServiceResult
from forumkit.services.telemetry import traced

logger = logging.getLogger(__name__)


class ModerationLogService(BaseService):
    """Append-only moderation log."""

    @traced
    def log_post(
        self,
        editor: User,
        moderation_type: ModerationType,
        post: Post,
        comment: str,
        old_text: str,
    ) -> ServiceResult:
        """Log *moderation_type* by *editor* on *post*.

        ``new_text`` is taken from *post*, which must already carry the
        changed content; *old_text* is the content it replaced.
        """
        op = "log_post"
        with self._store.transaction() as txn:
            topic = txn.topics.get(post.topic_id)
            if topic is None:
                return ServiceResult.failure(
                    op,
                    ErrorCode.NOT_FOUND,
                    f"Topic {post.topic_id} of post {post.post_id} not found",
                )
            entry_id = txn.moderation_log.log(
                time=now_utc(),
                user_id=editor.user_id,
                user_name=editor.name,
                moderation_type=str(moderation_type),
                forum_id=topic.forum_id,
                topic_id=topic.topic_id,
                post_id=post.post_id,
                comment=comment,
                old_text=old_text,
                new_text=post.full_text,
            )
        logger.debug("Moderation %s logged for post %s", moderation_type, post.post_id)
        return ServiceResult(ok=True, op=op, data={"id": entry_id, "post_id": post.post_id})

    @traced
    def get_post_log(self, post_id: int) -> ServiceResult:
        """All log entries for *post_id*, oldest first."""
        with self._store.connect() as txn:
            entries = txn.moderation_log.get_for_post(post_id)
        return ServiceResult(
            ok=True,
            op="get_post_log",
            data={"post_id": post_id, "count": len(entries), "items": entries},
        )
