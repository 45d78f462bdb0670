"""
Event system: instance-based async EventBus and its types.
"""

from campusconnect.core.event.bus import EventBus, EventMetrics
from campusconnect.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)

__all__ = [
    "EventBus",
    "EventMetrics",
    "EventListener",
    "EventPayload",
    "CallbackType",
    "ListenerPriority",
]
