"""Chat command handling built on top of the chat gateway client."""

from .triggers import (  # noqa: F401
    TriggerDispatcher,
    build_triggers,
    is_trigger,
    parse_custom_triggers,
)

__all__ = [
    "TriggerDispatcher",
    "build_triggers",
    "is_trigger",
    "parse_custom_triggers",
]
