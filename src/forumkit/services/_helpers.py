"""Shared service-layer helper functions."""

from __future__ import annotations

from datetime import UTC, datetime


def now_utc() -> datetime:
    """Current UTC time (post times, edit stamps, queue entries)."""
    return datetime.now(UTC)


def now_iso() -> str:
    """Current UTC time as standard ISO 8601 (for WAL rows and feed entries)."""
    return now_utc().isoformat()


def page_count(total: int, page_size: int) -> int:
    """Number of pages needed for *total* rows.

    Examples:
        >>> page_count(0, 20)
        1
        >>> page_count(41, 20)
        3
    """
    if total <= 0:
        return 1
    return (total + page_size - 1) // page_size
