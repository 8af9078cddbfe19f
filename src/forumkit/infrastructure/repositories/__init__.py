"""Repositories: SQL for each aggregate, mapped to domain models.

Every repository takes a ``Connection``; the caller owns the transaction.
"""

from forumkit.infrastructure.repositories.forums import CategoryRepository, ForumRepository
from forumkit.infrastructure.repositories.queues import (
    ModerationLogRepository,
    SearchQueueRepository,
)
from forumkit.infrastructure.repositories.topics import PostRepository, TopicRepository
from forumkit.infrastructure.repositories.users import (
    ProfileRepository,
    SubscriptionRepository,
    UserRepository,
)

__all__ = [
    "CategoryRepository",
    "ForumRepository",
    "ModerationLogRepository",
    "PostRepository",
    "ProfileRepository",
    "SearchQueueRepository",
    "SubscriptionRepository",
    "TopicRepository",
    "UserRepository",
]
