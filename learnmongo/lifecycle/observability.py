from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable

logger = logging.getLogger("learnmongo")


@dataclass(frozen=True)
class QueryEvent:
    """A single timed database operation."""

    operation: str
    collection: str
    filter: dict[str, Any] | None = None
    update: dict[str, Any] | None = None
    duration_ms: float = 0.0
    result_count: int | None = None
    document_class: str = ""
    failed: bool = False


class _TracingState:
    """Process-wide tracing switches and collected events."""

    def __init__(self) -> None:
        self.enabled: bool = False
        self.slow_query_threshold_ms: float = 100.0
        self.listeners: list[Callable[[QueryEvent], Any]] = []
        self.events: list[QueryEvent] = []
        self.capture_events: bool = False


_state = _TracingState()


def enable_tracing(slow_query_ms: float = 100.0, capture_events: bool = False) -> None:
    """Enable query tracing."""
    _state.enabled = True
    _state.slow_query_threshold_ms = slow_query_ms
    _state.capture_events = capture_events


def disable_tracing() -> None:
    """Disable tracing and clear listeners and captured events."""
    _state.enabled = False
    _state.slow_query_threshold_ms = 100.0
    _state.listeners.clear()
    _state.events.clear()
    _state.capture_events = False


def get_events() -> list[QueryEvent]:
    return list(_state.events)


def clear_events() -> None:
    _state.events.clear()


def add_listener(callback: Callable[[QueryEvent], Any]) -> None:
    """Register a listener that receives a QueryEvent for each operation."""
    _state.listeners.append(callback)


def remove_listener(callback: Callable[[QueryEvent], Any]) -> None:
    _state.listeners.remove(callback)


def emit_event(event: QueryEvent) -> None:
    """Store the event, log it if slow, and notify listeners."""
    if not _state.enabled:
        return

    if _state.capture_events:
        _state.events.append(event)

    if event.duration_ms > _state.slow_query_threshold_ms:
        logger.warning(
            "Slow query: %s on %s took %.1fms (threshold: %.1fms)",
            event.operation,
            event.collection,
            event.duration_ms,
            _state.slow_query_threshold_ms,
        )
    else:
        logger.debug(
            "%s on %s took %.1fms (%s results)",
            event.operation,
            event.collection,
            event.duration_ms,
            event.result_count,
        )

    for listener in _state.listeners:
        listener(event)


@asynccontextmanager
async def track_query(
    operation: str,
    collection: str,
    document_class: str = "",
    filter: dict | None = None,
    update: dict | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """Time an operation and emit a QueryEvent when it finishes.

    The body may set ``ctx["result_count"]``. Exceptions are re-raised after
    the event is emitted with ``failed=True``.
    """
    if not _state.enabled:
        yield {"result_count": None}
        return

    start = time.perf_counter()
    ctx: dict[str, Any] = {"result_count": None}
    failed = False
    try:
        yield ctx
    except BaseException:
        failed = True
        raise
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        emit_event(
            QueryEvent(
                operation=operation,
                collection=collection,
                filter=filter,
                update=update,
                duration_ms=duration_ms,
                result_count=ctx.get("result_count"),
                document_class=document_class,
                failed=failed,
            )
        )
