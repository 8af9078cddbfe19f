"""Store: the single dependency injected into every service.

The Store owns the database engine, the background runner, and the
plugin event bus. :meth:`Store.transaction` yields a
:class:`StoreTransaction` whose repositories share one connection, so a
service's writes commit or roll back together.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from forumkit.infrastructure.background import BackgroundRunner
from forumkit.infrastructure.database.engine import DATA_DIRNAME, init_database
from forumkit.infrastructure.repositories import (
    CategoryRepository,
    ForumRepository,
    ModerationLogRepository,
    PostRepository,
    ProfileRepository,
    SearchQueueRepository,
    SubscriptionRepository,
    TopicRepository,
    UserRepository,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine

    from forumkit.config.settings import ForumSettings
    from forumkit.plugins.event_bus import EventBus

logger = logging.getLogger(__name__)


@dataclass
class StoreTransaction:
    """Active connection with one repository per aggregate."""

    conn: Connection

    @property
    def categories(self) -> CategoryRepository:
        return CategoryRepository(self.conn)

    @property
    def forums(self) -> ForumRepository:
        return ForumRepository(self.conn)

    @property
    def topics(self) -> TopicRepository:
        return TopicRepository(self.conn)

    @property
    def posts(self) -> PostRepository:
        return PostRepository(self.conn)

    @property
    def users(self) -> UserRepository:
        return UserRepository(self.conn)

    @property
    def profiles(self) -> ProfileRepository:
        return ProfileRepository(self.conn)

    @property
    def subscriptions(self) -> SubscriptionRepository:
        return SubscriptionRepository(self.conn)

    @property
    def search_queue(self) -> SearchQueueRepository:
        return SearchQueueRepository(self.conn)

    @property
    def moderation_log(self) -> ModerationLogRepository:
        return ModerationLogRepository(self.conn)


class Store:
    """Repository access, background work, and event dispatch for one forum.

    Constructed once from :class:`ForumSettings`. Services receive the
    Store via their :class:`BaseService` constructor.
    """

    def __init__(self, settings: ForumSettings) -> None:
        self._settings = settings
        self._engine: Engine = init_database(self.root)
        self._background = BackgroundRunner(
            sync=settings.sync,
            max_workers=settings.background.max_workers,
        )
        self._event_bus: EventBus | None = None

    @property
    def root(self) -> Path:
        """The data root directory (parent of ``.forumkit/``)."""
        return self._settings.data_root

    @property
    def engine(self) -> Engine:
        """The underlying SQLAlchemy engine (for direct access when needed)."""
        return self._engine

    @property
    def settings(self) -> ForumSettings:
        return self._settings

    @property
    def background(self) -> BackgroundRunner:
        return self._background

    @property
    def event_bus(self) -> EventBus | None:
        """The plugin event bus (None if not initialized)."""
        return self._event_bus

    def init_event_bus(self, *, sync: bool = False, plugins: list[object] | None = None) -> None:
        """Initialize the plugin event bus.

        Creates a PluginManager, discovers entry-point and local plugins,
        registers the built-in activity feed plugin plus any *plugins*
        given, and wires up the EventBus.
        """
        from forumkit.plugins.builtins.feed import ActivityFeedPlugin
        from forumkit.plugins.event_bus import EventBus
        from forumkit.plugins.manager import PluginManager

        pm = PluginManager()
        pm.discover_and_load(local_dir=self.root / DATA_DIRNAME / "plugins")
        pm.register_plugin(ActivityFeedPlugin(self._engine), name="feed-builtin")
        for plugin in plugins or []:
            pm.register_plugin(plugin)
        for channel, names in pm.channel_summary().items():
            if not names:
                logger.debug("No %s listeners registered; events stay in the WAL", channel)

        self._event_bus = EventBus(
            self._engine,
            pm,
            sync=sync,
            max_retries=self._settings.events.max_retries,
            max_workers=self._settings.events.max_workers,
        )

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """Commit on success, roll back on any exception.

        Usage::

            with store.transaction() as txn:
                topic_id = txn.topics.create(...)
                txn.posts.create(topic_id=topic_id, ...)
        """
        with self._engine.begin() as conn:
            yield StoreTransaction(conn=conn)

    @contextmanager
    def connect(self) -> Iterator[StoreTransaction]:
        """Read-only access; nothing is committed on exit."""
        with self._engine.connect() as conn:
            yield StoreTransaction(conn=conn)

    def close(self) -> None:
        """Drain background work and events, then release the engine."""
        self._background.shutdown()
        if self._event_bus is not None:
            self._event_bus.shutdown()
        self._engine.dispose()
