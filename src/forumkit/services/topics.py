"""TopicService: topic and post lookups and moderator flags."""

from __future__ import annotations

from forumkit.services.base import BaseService
from forumkit.services.result import ErrorCode, ServiceResult
from forumkit.services.telemetry import traced


class TopicService(BaseService):
    """Reads and flag changes on topics and posts."""

    @traced
    def get_topic(self, topic_id: int) -> ServiceResult:
        with self._store.connect() as txn:
            topic = txn.topics.get(topic_id)
        if topic is None:
            return _not_found("get_topic", f"Topic {topic_id} not found")
        return ServiceResult(ok=True, op="get_topic", data={"topic": topic.model_dump(mode="json")})

    @traced
    def get_post(self, post_id: int) -> ServiceResult:
        with self._store.connect() as txn:
            post = txn.posts.get(post_id)
        if post is None:
            return _not_found("get_post", f"Post {post_id} not found")
        return ServiceResult(ok=True, op="get_post", data={"post": post.model_dump(mode="json")})

    @traced
    def set_flags(
        self,
        topic_id: int,
        *,
        is_closed: bool | None = None,
        is_deleted: bool | None = None,
        is_pinned: bool | None = None,
    ) -> ServiceResult:
        """Close, delete, or pin a topic. Flags left as None are unchanged."""
        op = "set_flags"
        with self._store.transaction() as txn:
            if txn.topics.get(topic_id) is None:
                return _not_found(op, f"Topic {topic_id} not found")
            txn.topics.set_flags(
                topic_id, is_closed=is_closed, is_deleted=is_deleted, is_pinned=is_pinned
            )
            topic = txn.topics.get(topic_id)
        assert topic is not None
        return ServiceResult(ok=True, op=op, data={"topic": topic.model_dump(mode="json")})

    @traced
    def set_answer(self, topic_id: int, post_id: int) -> ServiceResult:
        """Mark *post_id* as the accepted answer of *topic_id*."""
        op = "set_answer"
        with self._store.transaction() as txn:
            post = txn.posts.get(post_id)
            if post is None or post.topic_id != topic_id:
                return _not_found(op, f"Post {post_id} not found in topic {topic_id}")
            txn.topics.set_answer(topic_id, post_id)
        return ServiceResult(ok=True, op=op, data={"topic_id": topic_id, "answer_post_id": post_id})


def _not_found(op: str, message: str) -> ServiceResult:
    return ServiceResult.failure(op, ErrorCode.NOT_FOUND, message)
