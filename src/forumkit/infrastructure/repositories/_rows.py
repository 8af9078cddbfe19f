"""Row conversion helpers shared by the repositories."""

from __future__ import annotations

from datetime import datetime

from forumkit.domain.models import as_utc


def iso(value: datetime | None) -> str | None:
    """Store a timestamp as fixed-width UTC ISO 8601 text.

    Every stored stamp has the same offset and precision, so SQL ordering
    on the text column matches ordering by instant.
    """
    if value is None:
        return None
    return as_utc(value).isoformat(timespec="microseconds")
