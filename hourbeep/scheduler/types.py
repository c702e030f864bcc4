"""Core type definitions for the beep scheduler.

This module defines:
- Schedule kinds (interval timers / hourly alarms)
- Live schedule state for both kinds
- Countdown and display-state query results
- Event type for the event system
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE


# ============== Schedule Types ==============

class ScheduleKind(str, Enum):
    """Kind of schedule."""
    TIMER = "timer"     # Interval: fire every N minutes from a moving anchor
    ALARM = "alarm"     # Minute mark: fire at minute M of every hour


@dataclass
class IntervalSchedule:
    """Repeating timer measured from an anchor instant."""
    period_minutes: int
    anchor_ms: int
    armed: bool = True

    @property
    def period_ms(self) -> int:
        return self.period_minutes * MS_PER_MINUTE

    @property
    def next_fire_at_ms(self) -> int:
        return self.anchor_ms + self.period_ms

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": ScheduleKind.TIMER.value,
            "period_minutes": self.period_minutes,
            "anchor_ms": self.anchor_ms,
            "next_fire_at_ms": self.next_fire_at_ms,
            "armed": self.armed,
        }


@dataclass
class AlarmSchedule:
    """Hourly alarm at a fixed minute of the hour."""
    offset_minutes: int
    next_fire_at_ms: int
    # Instant the due time was computed from; used to spot clock changes
    computed_at_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": ScheduleKind.ALARM.value,
            "offset_minutes": self.offset_minutes,
            "next_fire_at_ms": self.next_fire_at_ms,
            "computed_at_ms": self.computed_at_ms,
        }


# ============== Query Types ==============

@dataclass
class Countdown:
    """Nearest upcoming event of one kind."""
    kind: ScheduleKind
    value: int  # period in minutes for timers, minute of hour for alarms
    remaining_ms: int
    fire_at_ms: int
    remaining_text: str
    fire_at_text: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "value": self.value,
            "remaining_ms": self.remaining_ms,
            "fire_at_ms": self.fire_at_ms,
            "remaining": self.remaining_text,
            "fire_at": self.fire_at_text,
        }


@dataclass
class DisplayState:
    """Snapshot handed to the presentation layer."""
    interval_line: str
    alarm_line: str
    checked_intervals: list[int] = field(default_factory=list)
    checked_alarm_offsets: list[int] = field(default_factory=list)
    next_interval: Countdown | None = None
    next_alarm: Countdown | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "interval_line": self.interval_line,
            "alarm_line": self.alarm_line,
            "checked_intervals": self.checked_intervals,
            "checked_alarm_offsets": self.checked_alarm_offsets,
            "next_interval": self.next_interval.to_dict() if self.next_interval else None,
            "next_alarm": self.next_alarm.to_dict() if self.next_alarm else None,
        }


# ============== Event Types ==============

@dataclass
class SchedulerEvent:
    """Event emitted by the scheduler."""
    type: str
    kind: ScheduleKind | None
    value: int | None
    timestamp_ms: int
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "kind": self.kind.value if self.kind else None,
            "value": self.value,
            "timestamp_ms": self.timestamp_ms,
            "payload": self.payload,
        }
