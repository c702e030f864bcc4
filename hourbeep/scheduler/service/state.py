"""State management for the scheduler service.

Contains the owned schedule aggregate and runtime state.
"""
import asyncio
import threading
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Any

from ..alarms import AlarmScheduler
from ..intervals import IntervalScheduler


@dataclass
class ScheduleSet:
    """All live schedules, owned by one SchedulerService.

    Every mutation and every multi-step read happens under ``lock``.
    """
    intervals: IntervalScheduler = field(default_factory=IntervalScheduler)
    alarms: AlarmScheduler = field(default_factory=AlarmScheduler)
    lock: threading.RLock = field(default_factory=threading.RLock)

    @classmethod
    def create(cls, tz: tzinfo | None = None) -> "ScheduleSet":
        return cls(alarms=AlarmScheduler(tz=tz))

    @property
    def tz(self) -> tzinfo | None:
        return self.alarms.tz

    def next_due_at_ms(self) -> int | None:
        """Earliest due instant across both kinds."""
        with self.lock:
            candidates = [
                t for t in (self.intervals.next_due_at_ms(), self.alarms.next_due_at_ms())
                if t is not None
            ]
        return min(candidates) if candidates else None

    def reconcile(self, current_ms: int) -> None:
        """Repair due instants after the wall clock moved backward."""
        with self.lock:
            self.intervals.reconcile(current_ms)
            self.alarms.reconcile(current_ms)


@dataclass
class SchedulerServiceState:
    """Runtime state of the scheduler service."""
    running: bool = False
    stopping: bool = False
    timer_task: asyncio.Task | None = None
    next_wake_at_ms: int | None = None
    wake_handle: Any = None
    wake_event: asyncio.Event = field(default_factory=asyncio.Event)

    def reset(self) -> None:
        """Reset state to initial values."""
        self.running = False
        self.stopping = False
        self.timer_task = None
        self.next_wake_at_ms = None
        self.wake_handle = None
        self.wake_event.clear()
