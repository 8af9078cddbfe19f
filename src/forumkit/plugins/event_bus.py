"""Forum event delivery through a write-ahead log.

Every hook call is first recorded in ``event_wal`` with the forum and
topic it concerns, then handed to pluggy. Live-update broadcasts are
attempted once: a viewer who misses one is caught up by the next. Feed
events and subscriber mail are retried by :meth:`EventBus.drain` until
``max_retries`` attempts have failed, then parked as ``dead_letter``.

INVARIANT: Plugin failures are warnings, never errors.
"""

from __future__ import annotations

import json
import logging
from enum import StrEnum
from functools import partial
from typing import TYPE_CHECKING, Any

from sqlalchemy import insert, select, update

from forumkit.infrastructure.background import BackgroundRunner
from forumkit.infrastructure.database.schema import event_wal
from forumkit.plugins.hookspecs import LIVE_UPDATE_HOOKS
from forumkit.services._helpers import now_iso

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from forumkit.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


class EventStatus(StrEnum):
    PENDING = "pending"
    FAILED = "failed"
    COMPLETED = "completed"
    DEAD_LETTER = "dead_letter"


RETRYABLE = (EventStatus.PENDING, EventStatus.FAILED)


def wal_keys(payload: dict[str, Any]) -> tuple[int | None, int | None]:
    """The (forum_id, topic_id) an event payload concerns, where it names them.

    Examples:
        >>> wal_keys({"topic": {"topic_id": 7, "forum_id": 2}, "post_id": 9})
        (2, 7)
        >>> wal_keys({"forum": {"forum_id": 3}})
        (3, None)
        >>> wal_keys({"message": "hi", "user": {"user_id": 1}})
        (None, None)
    """
    topic = payload.get("topic") or {}
    forum = payload.get("forum") or {}
    return forum.get("forum_id", topic.get("forum_id")), topic.get("topic_id")


class EventBus:
    """Dispatches forum hooks, inline or on a background runner.

    Parameters:
        engine: Engine holding the ``event_wal`` table.
        plugin_manager: Loaded PluginManager for hook dispatch.
        sync: Deliver inline on dispatch (tests / ``--sync``).
        max_retries: Delivery attempts for retryable hooks.
        max_workers: Worker threads for asynchronous delivery.
    """

    def __init__(
        self,
        engine: Engine,
        plugin_manager: PluginManager,
        *,
        sync: bool = False,
        max_retries: int = 3,
        max_workers: int = 2,
    ) -> None:
        self._engine = engine
        self._pm = plugin_manager
        self._max_retries = max_retries
        self._runner: BackgroundRunner | None = (
            None if sync else BackgroundRunner(max_workers=max_workers)
        )

    @property
    def plugin_manager(self) -> PluginManager:
        return self._pm

    def max_attempts(self, hook_name: str) -> int:
        """Delivery attempts allowed for *hook_name* before it is dead-lettered."""
        return 1 if hook_name in LIVE_UPDATE_HOOKS else self._max_retries

    def dispatch(self, hook_name: str, payload: dict[str, Any]) -> int:
        """Log the event, then deliver it. Returns the WAL row id."""
        event_id = self._write_wal(hook_name, payload)
        if self._runner is None:
            self._deliver(event_id, hook_name, payload)
        else:
            self._runner.submit(
                f"event:{hook_name}:{event_id}",
                partial(self._deliver, event_id, hook_name, payload),
            )
        return event_id

    def drain(
        self, *, forum_id: int | None = None, topic_id: int | None = None
    ) -> list[dict[str, Any]]:
        """Redeliver undelivered events, optionally only those of one forum or topic.

        Returns ``{id, hook_name, topic_id, status}`` for each event retried.
        """
        if self._runner is not None:
            self._runner.wait()

        stmt = (
            select(event_wal.c.id, event_wal.c.hook_name, event_wal.c.payload)
            .where(event_wal.c.status.in_(RETRYABLE))
            .order_by(event_wal.c.id)
        )
        if forum_id is not None:
            stmt = stmt.where(event_wal.c.forum_id == forum_id)
        if topic_id is not None:
            stmt = stmt.where(event_wal.c.topic_id == topic_id)
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()

        summary: list[dict[str, Any]] = []
        for row in rows:
            payload = json.loads(row.payload)
            status = self._deliver(row.id, row.hook_name, payload)
            _, row_topic = wal_keys(payload)
            summary.append(
                {"id": row.id, "hook_name": row.hook_name, "topic_id": row_topic, "status": status}
            )
        if summary:
            logger.info("Drained %d forum events", len(summary))
        return summary

    def shutdown(self) -> None:
        """Wait for in-flight deliveries and stop the worker threads."""
        if self._runner is not None:
            self._runner.shutdown()
            self._runner = None

    def _write_wal(self, hook_name: str, payload: dict[str, Any]) -> int:
        forum_id, topic_id = wal_keys(payload)
        with self._engine.begin() as conn:
            result = conn.execute(
                insert(event_wal).values(
                    hook_name=hook_name,
                    forum_id=forum_id,
                    topic_id=topic_id,
                    payload=json.dumps(payload),
                    status=EventStatus.PENDING,
                    retries=0,
                    created=now_iso(),
                )
            )
            return int(result.inserted_primary_key[0])

    def _deliver(self, event_id: int, hook_name: str, payload: dict[str, Any]) -> EventStatus:
        # Unknown hooks have no listeners to wait for.
        hook_fn = getattr(self._pm.hook, hook_name, None)
        try:
            if hook_fn is not None:
                hook_fn(**payload)
        except Exception as exc:
            logger.debug("Hook %s failed for event %s: %s", hook_name, event_id, exc)
            return self._record_failure(event_id, hook_name, str(exc))
        self._set_status(event_id, EventStatus.COMPLETED, completed=now_iso())
        return EventStatus.COMPLETED

    def _record_failure(self, event_id: int, hook_name: str, error: str) -> EventStatus:
        with self._engine.begin() as conn:
            retries = conn.execute(
                select(event_wal.c.retries).where(event_wal.c.id == event_id)
            ).scalar_one() + 1
        if retries >= self.max_attempts(hook_name):
            logger.warning("Event %s (%s) dead-lettered: %s", event_id, hook_name, error)
            status = EventStatus.DEAD_LETTER
            self._set_status(event_id, status, error=error, retries=retries, completed=now_iso())
        else:
            status = EventStatus.FAILED
            self._set_status(event_id, status, error=error, retries=retries)
        return status

    def _set_status(self, event_id: int, status: EventStatus, **values: Any) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                update(event_wal).where(event_wal.c.id == event_id).values(status=status, **values)
            )
