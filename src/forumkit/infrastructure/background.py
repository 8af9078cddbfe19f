"""Detached background work on a ThreadPoolExecutor.

Used for advisory recomputations (forum counters) that must not block
the request that triggered them. A submitted job has no result channel:
failures are logged and counted here and never reach the submitter.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor

logger = logging.getLogger(__name__)


class BackgroundRunner:
    """Fire-and-forget job runner.

    Parameters:
        sync: Run jobs inline on submit (tests / ``--sync``).
        max_workers: ThreadPoolExecutor worker count.
    """

    def __init__(self, *, sync: bool = False, max_workers: int = 2) -> None:
        self._sync = sync
        self._executor: ThreadPoolExecutor | None = (
            None
            if sync
            else ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="forumkit-bg")
        )
        self._pending: set[Future[None]] = set()
        self._lock = threading.Lock()
        self._failures = 0

    @property
    def failures(self) -> int:
        """Number of jobs that raised since construction."""
        with self._lock:
            return self._failures

    def submit(self, name: str, job: Callable[[], None]) -> None:
        """Schedule *job*. Returns immediately; nothing is reported back."""
        if self._executor is None:
            self._run(name, job)
            return
        future = self._executor.submit(self._run, name, job)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    @property
    def pending(self) -> int:
        """Number of submitted jobs that have not finished yet."""
        with self._lock:
            return len(self._pending)

    def wait(self, timeout: float = 30) -> None:
        """Block until every submitted job has finished (test/shutdown barrier)."""
        with self._lock:
            futures = list(self._pending)
        for future in futures:
            future.result(timeout=timeout)
            self._forget(future)

    def shutdown(self) -> None:
        """Wait for pending jobs, then stop the executor."""
        self.wait()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _forget(self, future: Future[None]) -> None:
        with self._lock:
            self._pending.discard(future)

    def _run(self, name: str, job: Callable[[], None]) -> None:
        try:
            job()
        except Exception:
            with self._lock:
                self._failures += 1
            logger.warning("Background job %s failed", name, exc_info=True)
        else:
            logger.debug("Background job %s completed", name)
