"""
CampusConnect EventBus: async pub/sub with priority tiers.

Purpose
-------
Decouple the progression services from whatever reacts to their outcomes
(level-up notifications, analytics, audit sinks). Services publish after
their transaction commits; listeners never participate in the transaction.

Responsibilities
----------------
- Register/unregister listeners with priorities, wildcards and once-only
- Publish events to all matching listeners (exact + wildcard)
- Execute listeners per tier:
  * CRITICAL / HIGH: sequential, ordered, awaited with timeout
  * NORMAL: concurrent (gather), awaited
  * LOW: fire-and-forget background tasks
- Isolate listener errors (a failing listener never blocks others)
- Count publishes and listener errors

Design Decisions
----------------
- **Instance-based**: each ServiceContainer (and each test) owns its bus.
- **Wildcards**: `"progress.*"` matches `progress.xp_changed`; `"*"`
  matches everything.
- **Sync callbacks** run in the default executor.
"""

from __future__ import annotations

import asyncio
import fnmatch
import inspect
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from campusconnect.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)
from campusconnect.core.logging.logger import LogContext, get_logger

logger = get_logger(__name__)


@dataclass
class EventMetrics:
    events_published: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    listener_errors: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    listener_timeouts: int = 0

    def record_publish(self, event_name: str) -> None:
        self.events_published[event_name] += 1

    def record_error(self, event_name: str) -> None:
        self.listener_errors[event_name] += 1

    def get_summary(self) -> Dict[str, Any]:
        published = sum(self.events_published.values())
        errors = sum(self.listener_errors.values())
        return {
            "total_events_published": published,
            "events_by_type": dict(self.events_published),
            "total_errors": errors,
            "errors_by_event": dict(self.listener_errors),
            "listener_timeouts": self.listener_timeouts,
            "error_rate": errors / max(1, published) * 100,
        }


class EventBus:
    """
    Async pub/sub event bus.

    Examples
    --------
    >>> bus = EventBus()
    >>> bus.subscribe("progress.leveled_up", on_level_up, priority=ListenerPriority.HIGH)
    >>> await bus.publish("progress.leveled_up", {"user_id": "u-1", "new_level": 3})
    """

    def __init__(
        self,
        *,
        enable_metrics: bool = True,
        listener_timeout_seconds: float = 5.0,
    ) -> None:
        self._listeners: Dict[str, List[EventListener]] = {}
        self._metrics: Optional[EventMetrics] = EventMetrics() if enable_metrics else None
        self._listener_timeout = listener_timeout_seconds
        self._background_tasks: Set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
        allow_duplicates: bool = False,
    ) -> str:
        """
        Subscribe a callback to an event name or wildcard pattern.

        Returns the listener identifier for `unsubscribe()`.
        """
        listener = EventListener.from_callback(callback, priority, identifier, once)
        existing = self._listeners.setdefault(event_name, [])

        if not allow_duplicates and any(l.identifier == listener.identifier for l in existing):
            logger.warning(
                "Duplicate listener prevented",
                extra={"event_name": event_name, "listener_id": listener.identifier},
            )
            return listener.identifier

        existing.append(listener)
        existing.sort(key=lambda l: l.priority.value)

        logger.debug(
            "Listener subscribed",
            extra={
                "event_name": event_name,
                "listener_id": listener.identifier,
                "priority": priority.name,
            },
        )
        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        listeners = self._listeners.get(event_name)
        if not listeners:
            return False

        remaining = [l for l in listeners if l.identifier != identifier]
        if len(remaining) == len(listeners):
            return False

        if remaining:
            self._listeners[event_name] = remaining
        else:
            del self._listeners[event_name]
        logger.debug(
            "Listener unsubscribed",
            extra={"event_name": event_name, "listener_id": identifier},
        )
        return True

    def clear(self) -> None:
        self._listeners.clear()
        logger.info("EventBus cleared; all listeners removed")

    # ------------------------------------------------------------------ #
    # Publishing
    # ------------------------------------------------------------------ #

    def _collect_listeners(self, event_name: str) -> List[EventListener]:
        matched: List[EventListener] = []
        for pattern, listeners in list(self._listeners.items()):
            if pattern == event_name or ("*" in pattern and fnmatch.fnmatchcase(event_name, pattern)):
                for listener in listeners:
                    matched.append(listener)
                    if listener.once:
                        self.unsubscribe(pattern, listener.identifier)
        matched.sort(key=lambda l: l.priority.value)
        return matched

    async def publish(self, event_name: str, data: EventPayload) -> List[Any]:
        """
        Publish an event to all matching listeners.

        Returns results from CRITICAL/HIGH/NORMAL listeners in priority
        order; a listener that raised or timed out contributes ``None``.
        LOW listeners are scheduled in the background.
        """
        if self._metrics is not None:
            self._metrics.record_publish(event_name)

        listeners = self._collect_listeners(event_name)
        if not listeners:
            logger.debug("No listeners for event", extra={"event_name": event_name})
            return []

        results: List[Any] = []
        with LogContext(event_name=event_name):
            sequential = [
                l for l in listeners
                if l.priority in (ListenerPriority.CRITICAL, ListenerPriority.HIGH)
            ]
            concurrent = [l for l in listeners if l.priority is ListenerPriority.NORMAL]
            background = [l for l in listeners if l.priority is ListenerPriority.LOW]

            for listener in sequential:
                results.append(
                    await self._run_listener(event_name, data, listener, self._listener_timeout)
                )

            if concurrent:
                results.extend(
                    await asyncio.gather(
                        *(self._run_listener(event_name, data, l, None) for l in concurrent)
                    )
                )

            for listener in background:
                task = asyncio.create_task(self._run_listener(event_name, data, listener, None))
                self._background_tasks.add(task)
                task.add_done_callback(self._background_tasks.discard)

        return results

    async def _run_listener(
        self,
        event_name: str,
        data: EventPayload,
        listener: EventListener,
        timeout: Optional[float],
    ) -> Any:
        try:
            if inspect.iscoroutinefunction(listener.callback):
                coro = listener.callback(data)
            else:
                loop = asyncio.get_running_loop()
                coro = loop.run_in_executor(None, listener.callback, data)

            if timeout is not None:
                return await asyncio.wait_for(coro, timeout=timeout)
            return await coro

        except asyncio.TimeoutError:
            if self._metrics is not None:
                self._metrics.listener_timeouts += 1
                self._metrics.record_error(event_name)
            logger.error(
                "Event listener timed out",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "timeout_seconds": timeout,
                },
            )
            return None

        except Exception as exc:
            if self._metrics is not None:
                self._metrics.record_error(event_name)
            logger.error(
                "Error in event listener",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
                exc_info=True,
            )
            return None

    async def drain(self) -> None:
        """Wait for outstanding LOW-priority listeners."""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def get_metrics_summary(self) -> Dict[str, Any]:
        return self._metrics.get_summary() if self._metrics is not None else {}

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name is None:
            return sum(len(v) for v in self._listeners.values())
        return len(self._listeners.get(event_name, []))
