"""Interval timers.

Each enabled period fires every N minutes measured from an anchor. The
anchor moves to the firing instant, so intervals missed while the machine
slept collapse into a single fire instead of being replayed.
"""
from loguru import logger

from .schedule import compute_next_interval_at_ms, is_valid_period
from .types import IntervalSchedule

logger = logger.bind(module="scheduler.intervals")


class IntervalScheduler:
    """Set of enabled interval timers keyed by period in minutes.

    Not thread-safe on its own; the owning ScheduleSet serializes access.
    """

    def __init__(self):
        self._schedules: dict[int, IntervalSchedule] = {}

    @property
    def enabled(self) -> frozenset[int]:
        return frozenset(self._schedules)

    def get(self, period_minutes: int) -> IntervalSchedule | None:
        return self._schedules.get(period_minutes)

    def schedules(self) -> list[IntervalSchedule]:
        return [self._schedules[p] for p in sorted(self._schedules)]

    def enable(self, period_minutes: int, current_ms: int) -> bool:
        """Enable a timer anchored at current_ms.

        Returns:
            True if the timer was created, False if it was already enabled
            or the period is invalid
        """
        if not is_valid_period(period_minutes):
            logger.warning(f"Rejected interval period {period_minutes!r}")
            return False
        if period_minutes in self._schedules:
            return False

        self._schedules[period_minutes] = IntervalSchedule(
            period_minutes=period_minutes,
            anchor_ms=current_ms,
        )
        logger.info(f"Timer every {period_minutes} min enabled")
        return True

    def disable(self, period_minutes: int) -> bool:
        """Disable a timer and forget its anchor."""
        schedule = self._schedules.pop(period_minutes, None)
        if schedule is None:
            return False
        schedule.armed = False
        logger.info(f"Timer every {period_minutes} min disabled")
        return True

    def on_fire(self, period_minutes: int, current_ms: int) -> IntervalSchedule | None:
        """Re-arm a timer that just fired.

        Returns:
            The re-armed schedule, or None if the timer is no longer enabled
        """
        schedule = self._schedules.get(period_minutes)
        if schedule is None:
            return None
        schedule.anchor_ms = current_ms
        return schedule

    def due(self, current_ms: int) -> list[int]:
        """Periods whose due instant has been reached."""
        return [
            s.period_minutes for s in self.schedules()
            if current_ms >= s.next_fire_at_ms
        ]

    def reconcile(self, current_ms: int) -> None:
        """Re-anchor timers whose anchor is ahead of a clock set backward."""
        for schedule in self._schedules.values():
            if schedule.anchor_ms > current_ms:
                logger.warning(
                    f"Clock moved backward, re-anchoring {schedule.period_minutes} min timer"
                )
                schedule.anchor_ms = current_ms

    def time_to_next_fire_ms(self, period_minutes: int, current_ms: int) -> int | None:
        """Time left until the timer fires, clamped to [0, period]."""
        schedule = self._schedules.get(period_minutes)
        if schedule is None:
            return None
        remaining = compute_next_interval_at_ms(schedule.period_minutes, schedule.anchor_ms) - current_ms
        return min(max(0, remaining), schedule.period_ms)

    def nearest(self, current_ms: int) -> tuple[int, int] | None:
        """The timer firing soonest as (period_minutes, remaining_ms).

        Ties go to the smaller period.
        """
        best: tuple[int, int] | None = None
        for period in sorted(self._schedules):
            remaining = self.time_to_next_fire_ms(period, current_ms)
            if best is None or remaining < best[1]:
                best = (period, remaining)
        return best

    def next_due_at_ms(self) -> int | None:
        if not self._schedules:
            return None
        return min(s.next_fire_at_ms for s in self._schedules.values())
