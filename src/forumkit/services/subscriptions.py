"""SubscriptionService: topic subscriptions and reply notifications."""

from __future__ import annotations

import logging
from collections.abc import Callable

from forumkit.domain.models import Topic, User
from forumkit.services.base import BaseService
from forumkit.services.result import ErrorCode, ServiceResult
from forumkit.services.telemetry import traced

logger = logging.getLogger(__name__)


class SubscriptionService(BaseService):
    """Who follows which topic, and telling them about replies."""

    @traced
    def subscribe(self, topic_id: int, user_id: int) -> ServiceResult:
        op = "subscribe"
        with self._store.transaction() as txn:
            if txn.topics.get(topic_id) is None:
                return ServiceResult.failure(
                    op, ErrorCode.NOT_FOUND, f"Topic {topic_id} not found"
                )
            if txn.users.get(user_id) is None:
                return ServiceResult.failure(
                    op, ErrorCode.NOT_FOUND, f"User {user_id} not found"
                )
            txn.subscriptions.subscribe(topic_id, user_id)
        return ServiceResult(ok=True, op=op, data={"topic_id": topic_id, "user_id": user_id})

    @traced
    def unsubscribe(self, topic_id: int, user_id: int) -> ServiceResult:
        with self._store.transaction() as txn:
            txn.subscriptions.unsubscribe(topic_id, user_id)
        return ServiceResult(
            ok=True, op="unsubscribe", data={"topic_id": topic_id, "user_id": user_id}
        )

    @traced
    def notify_subscribers(
        self,
        topic: Topic,
        user: User,
        topic_link: str,
        unsubscribe_link_generator: Callable[[User], str],
    ) -> ServiceResult:
        """Send one ``notify_subscriber`` event per subscriber except *user*."""
        warnings: list[str] = []
        with self._store.connect() as txn:
            subscribers = txn.subscriptions.get_subscribed_users(topic.topic_id)

        topic_payload = topic.model_dump(mode="json")
        notified: list[int] = []
        for subscriber in subscribers:
            if subscriber.user_id == user.user_id:
                continue
            self._dispatch_event(
                "notify_subscriber",
                {
                    "topic": topic_payload,
                    "subscriber": subscriber.model_dump(mode="json"),
                    "topic_link": topic_link,
                    "unsubscribe_link": unsubscribe_link_generator(subscriber),
                },
                warnings,
            )
            notified.append(subscriber.user_id)

        logger.debug("Notified %d subscribers of topic %s", len(notified), topic.topic_id)
        return ServiceResult(
            ok=True,
            op="notify_subscribers",
            data={"topic_id": topic.topic_id, "notified": notified},
            warnings=warnings,
        )
