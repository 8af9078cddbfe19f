"""ServiceResult and ServiceError: what every forumkit operation returns.

INVARIANT: All service-layer methods return ServiceResult.
Expected failures (a missing forum, a denied post) travel as a result
with an :class:`ErrorCode`; exceptions are reserved for defects.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ErrorCode(StrEnum):
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    INVALID_ROLE_CHANGE = "INVALID_ROLE_CHANGE"
    # Stored rows contradict each other, e.g. a topic with two first posts.
    DATA_INTEGRITY = "DATA_INTEGRITY"


class ServiceError(BaseModel):
    model_config = {"frozen": True}

    code: ErrorCode
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Outcome of one operation.

    Attributes:
        ok: Whether the operation succeeded.
        op: Operation name, e.g. ``"post_reply"``.
        data: Payload on success.
        warnings: Post-commit effects or plugin dispatches that failed
            without undoing the operation.
        error: Set when ``ok`` is False.
        meta: Span timings in verbose runs.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def failure(
        cls,
        op: str,
        code: ErrorCode,
        message: str,
        *,
        detail: dict[str, Any] | None = None,
    ) -> ServiceResult:
        """A failed result carrying one error."""
        error = ServiceError(code=code, message=message, detail=detail or {})
        return cls(ok=False, op=op, error=error)
