"""BaseService: abstract foundation for all forumkit services.

Every service receives a :class:`Store` at construction time. The Store
provides transactional access to the repositories, the background runner,
and the plugin event bus. Services own their transaction boundaries via
``self._store.transaction()``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from forumkit.services.telemetry import trace_span

if TYPE_CHECKING:
    from forumkit.infrastructure.store import Store

logger = logging.getLogger(__name__)

# A named post-commit step: (label used in warnings, zero-arg callable).
Effect = tuple[str, Callable[[], object]]


class BaseService:
    """Abstract base for all service-layer classes.

    Usage::

        class PostingService(BaseService):
            def post_reply(self, topic: Topic, ...) -> ServiceResult:
                with self._store.transaction() as txn:
                    ...
    """

    def __init__(self, store: Store) -> None:
        self._store = store

    def _dispatch_event(
        self,
        hook_name: str,
        payload: dict[str, Any],
        warnings: list[str],
    ) -> None:
        """Dispatch a plugin hook. No-op if event bus not initialized.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        bus = self._store.event_bus
        if bus is None:
            return
        try:
            bus.dispatch(hook_name, payload)
        except Exception:
            logger.debug("Event dispatch failed for %s", hook_name, exc_info=True)
            warnings.append(f"Event dispatch failed for {hook_name}")

    def _run_effects(self, effects: Sequence[Effect], warnings: list[str]) -> list[str]:
        """Run post-commit *effects* in order.

        A failing effect is logged and recorded as a warning; the
        remaining effects still run. Returns the labels that completed.
        """
        completed: list[str] = []
        for label, effect in effects:
            with trace_span(f"effect:{label}") as span:
                try:
                    effect()
                except Exception:
                    logger.warning("Post-commit effect %s failed", label, exc_info=True)
                    warnings.append(f"Post-commit effect failed: {label}")
                    if span is not None:
                        span.annotate("failed", True)
                else:
                    completed.append(label)
        return completed
