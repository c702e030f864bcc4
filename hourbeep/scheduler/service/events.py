"""Event system for the scheduler.

Emits events for schedule lifecycle changes and fires.
"""
from typing import Any, Callable

from loguru import logger

from ..schedule import now_ms
from ..types import ScheduleKind, SchedulerEvent

logger = logger.bind(module="scheduler.events")


# Type alias for event handlers
EventHandler = Callable[[SchedulerEvent], None]


class EventEmitter:
    """Event emitter for scheduler events."""

    def __init__(self):
        self._handlers: list[EventHandler] = []

    def add_handler(self, handler: EventHandler) -> None:
        """Add an event handler."""
        self._handlers.append(handler)

    def remove_handler(self, handler: EventHandler) -> None:
        """Remove an event handler."""
        if handler in self._handlers:
            self._handlers.remove(handler)

    def emit(self, event: SchedulerEvent) -> None:
        """Emit an event to all handlers."""
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Event handler error: {e}")


def emit_schedule_event(
    emitter: EventEmitter,
    event_type: str,
    kind: ScheduleKind | None = None,
    value: int | None = None,
    payload: dict[str, Any] | None = None,
    timestamp_ms: int | None = None,
) -> None:
    """Emit a schedule-related event.

    Args:
        emitter: Event emitter instance
        event_type: Type of event (e.g., "timer.fired", "alarm.enabled")
        kind: Schedule kind the event refers to, if any
        value: Period or offset of the schedule, if any
        payload: Additional event payload
        timestamp_ms: Event time, defaults to now
    """
    event = SchedulerEvent(
        type=event_type,
        kind=kind,
        value=value,
        timestamp_ms=timestamp_ms if timestamp_ms is not None else now_ms(),
        payload=payload or {},
    )
    emitter.emit(event)


# Event type constants
class EventTypes:
    """Constants for event types."""

    # Scheduler lifecycle
    SCHEDULER_STARTED = "scheduler.started"
    SCHEDULER_STOPPED = "scheduler.stopped"

    # Interval timers
    TIMER_ENABLED = "timer.enabled"
    TIMER_DISABLED = "timer.disabled"
    TIMER_FIRED = "timer.fired"

    # Hourly alarms
    ALARM_ENABLED = "alarm.enabled"
    ALARM_DISABLED = "alarm.disabled"
    ALARM_FIRED = "alarm.fired"

    # Manual beep
    BEEP_MANUAL = "beep.manual"
