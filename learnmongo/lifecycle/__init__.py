from learnmongo.lifecycle.observability import (
    QueryEvent,
    add_listener,
    clear_events,
    disable_tracing,
    enable_tracing,
    get_events,
    remove_listener,
    track_query,
)

__all__ = [
    "QueryEvent",
    "add_listener",
    "clear_events",
    "disable_tracing",
    "enable_tracing",
    "get_events",
    "remove_listener",
    "track_query",
]
