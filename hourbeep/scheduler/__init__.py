"""Scheduler module for interval timers and hourly alarms.

This module provides:
- Interval timers that re-anchor on every fire
- Hourly alarms recomputed from wall-clock rules (DST safe)
- Side-effect free countdown queries with optional live updates
- asyncio-based timer loop with a fire-and-forget notifier
"""
# Core types
from .types import (
    ScheduleKind,
    IntervalSchedule,
    AlarmSchedule,
    Countdown,
    DisplayState,
    SchedulerEvent,
)

# Schedule utilities
from .schedule import (
    compute_next_alarm_at_ms,
    compute_next_interval_at_ms,
    format_alarm_remaining,
    format_clock_time,
    format_minutes_seconds,
    interval_to_human,
    alarm_to_human,
    is_valid_offset,
    is_valid_period,
    resolve_timezone,
    now_ms,
)

# Schedulers
from .intervals import IntervalScheduler
from .alarms import AlarmScheduler
from .countdown import CountdownProjector

# Collaborators
from .clock import Clock, AsyncioClock
from .notifier import Notifier, SoundNotifier

# Service
from .service import SchedulerService, ScheduleSet
from .service.events import EventTypes

__all__ = [
    # Core types
    "ScheduleKind",
    "IntervalSchedule",
    "AlarmSchedule",
    "Countdown",
    "DisplayState",
    "SchedulerEvent",
    # Schedule utilities
    "compute_next_alarm_at_ms",
    "compute_next_interval_at_ms",
    "format_alarm_remaining",
    "format_clock_time",
    "format_minutes_seconds",
    "interval_to_human",
    "alarm_to_human",
    "is_valid_offset",
    "is_valid_period",
    "resolve_timezone",
    "now_ms",
    # Schedulers
    "IntervalScheduler",
    "AlarmScheduler",
    "CountdownProjector",
    # Collaborators
    "Clock",
    "AsyncioClock",
    "Notifier",
    "SoundNotifier",
    # Service
    "SchedulerService",
    "ScheduleSet",
    "EventTypes",
]
