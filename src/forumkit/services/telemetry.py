"""Timing spans for verbose runs.

``@traced`` opens a root span around a service operation and ``trace_span``
nests named steps under it: post-commit effects, forum resequencing. With
``--verbose`` the span tree is copied into ``ServiceResult.meta["telemetry"]``
and each finished operation is logged through structlog. Otherwise both
cost one ContextVar lookup.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from forumkit.services.result import ServiceResult

_enabled: ContextVar[bool] = ContextVar("_enabled", default=False)
_current_span: ContextVar[Span | None] = ContextVar("_current_span", default=None)

logger = structlog.get_logger("forumkit.telemetry")


@dataclass
class Span:
    """One timed step. ``duration_ms`` stays 0 until :meth:`end`."""

    name: str
    annotations: dict[str, Any] = field(default_factory=dict)
    children: list[Span] = field(default_factory=list)
    started: float = field(default_factory=time.perf_counter)
    duration_ms: float = 0.0

    def end(self) -> None:
        self.duration_ms = (time.perf_counter() - self.started) * 1000

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.annotations:
            data["annotations"] = self.annotations
        if self.children:
            data["children"] = [c.to_dict() for c in self.children]
        return data


@contextmanager
def trace_span(name: str, **annotations: Any) -> Generator[Span | None]:
    """Time a step under the running operation. Yields None outside one."""
    parent = _current_span.get() if _enabled.get() else None
    if parent is None:
        yield None
        return

    child = Span(name=name, annotations=dict(annotations))
    parent.children.append(child)
    token = _current_span.set(child)
    try:
        yield child
    finally:
        child.end()
        _current_span.reset(token)


_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Time a service operation and attach its span tree to the result."""

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _enabled.get():
            return func(*args, **kwargs)

        span = Span(name=func.__qualname__)
        token = _current_span.set(span)
        try:
            result = func(*args, **kwargs)
        finally:
            span.end()
            _current_span.reset(token)

        if isinstance(result, ServiceResult):
            if result.error is not None:
                span.annotate("error", result.error.code)
            meta = {**(result.meta or {}), "telemetry": span.to_dict()}
            result = result.model_copy(update={"meta": meta})  # type: ignore[assignment]
        logger.debug(
            "operation.timed",
            operation=span.name,
            duration_ms=round(span.duration_ms, 2),
            steps=len(span.children),
            **span.annotations,
        )
        return result

    return wrapper


def enable_telemetry() -> None:
    """Turn span collection on (``--verbose``)."""
    _enabled.set(True)


def disable_telemetry() -> None:
    _enabled.set(False)
