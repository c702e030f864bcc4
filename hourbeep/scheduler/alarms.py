"""Hourly alarms at fixed minutes of the hour."""
from datetime import tzinfo

from loguru import logger

from .schedule import compute_next_alarm_at_ms, is_valid_offset
from .types import AlarmSchedule

logger = logger.bind(module="scheduler.alarms")


class AlarmScheduler:
    """Set of enabled hourly alarms keyed by minute of the hour.

    Every due instant is recomputed from wall-clock rules after a fire,
    never by adding a fixed hour. Not thread-safe on its own; the owning
    ScheduleSet serializes access.
    """

    def __init__(self, tz: tzinfo | None = None):
        self.tz = tz
        self._schedules: dict[int, AlarmSchedule] = {}
        self._last_seen_ms: int | None = None

    @property
    def enabled(self) -> frozenset[int]:
        return frozenset(self._schedules)

    def get(self, offset_minutes: int) -> AlarmSchedule | None:
        return self._schedules.get(offset_minutes)

    def schedules(self) -> list[AlarmSchedule]:
        return [self._schedules[o] for o in sorted(self._schedules)]

    def _arm(self, offset_minutes: int, after_ms: int) -> AlarmSchedule:
        schedule = AlarmSchedule(
            offset_minutes=offset_minutes,
            next_fire_at_ms=compute_next_alarm_at_ms(offset_minutes, after_ms, self.tz),
            computed_at_ms=after_ms,
        )
        self._schedules[offset_minutes] = schedule
        return schedule

    def _observe(self, current_ms: int) -> None:
        if self._last_seen_ms is None or current_ms > self._last_seen_ms:
            self._last_seen_ms = current_ms

    def enable(self, offset_minutes: int, current_ms: int) -> bool:
        """Enable an alarm; its first fire is strictly after current_ms.

        Re-enabling an armed alarm leaves its due instant untouched.

        Returns:
            True if the alarm was created, False if it was already enabled
            or the offset is invalid
        """
        if not is_valid_offset(offset_minutes):
            logger.warning(f"Rejected alarm offset {offset_minutes!r}")
            return False
        if offset_minutes in self._schedules:
            return False

        schedule = self._arm(offset_minutes, current_ms)
        self._observe(current_ms)
        logger.info(f"Alarm at X:{offset_minutes:02d} enabled, next fire at {schedule.next_fire_at_ms}")
        return True

    def disable(self, offset_minutes: int) -> bool:
        """Disable an alarm and discard its due instant."""
        if self._schedules.pop(offset_minutes, None) is None:
            return False
        logger.info(f"Alarm at X:{offset_minutes:02d} disabled")
        return True

    def on_fire(self, offset_minutes: int, current_ms: int) -> AlarmSchedule | None:
        """Re-arm an alarm that just fired.

        The next occurrence is strictly after both the fired instant and
        current_ms, so an overshooting clock still yields one fire.

        Returns:
            The re-armed schedule, or None if the alarm is no longer enabled
        """
        schedule = self._schedules.get(offset_minutes)
        if schedule is None:
            return None
        self._observe(current_ms)
        return self._arm(offset_minutes, max(schedule.next_fire_at_ms, current_ms))

    def due(self, current_ms: int) -> list[int]:
        """Offsets whose due instant has been reached."""
        return [
            s.offset_minutes for s in self.schedules()
            if current_ms >= s.next_fire_at_ms
        ]

    def reconcile(self, current_ms: int) -> None:
        """Recompute every due instant if the clock moved backward."""
        if self._last_seen_ms is not None and current_ms < self._last_seen_ms:
            logger.warning(
                f"Clock moved backward by {self._last_seen_ms - current_ms} ms, recomputing alarms"
            )
            self._last_seen_ms = None
            for offset in list(self._schedules):
                self._arm(offset, current_ms)
        self._observe(current_ms)

    def time_to_next_fire_ms(self, offset_minutes: int, current_ms: int) -> int | None:
        schedule = self._schedules.get(offset_minutes)
        if schedule is None:
            return None
        return max(0, schedule.next_fire_at_ms - current_ms)

    def nearest(self, current_ms: int) -> tuple[int, int] | None:  # noqa: ARG002
        """The alarm firing soonest as (offset_minutes, next_fire_at_ms).

        Ties go to the smaller offset.
        """
        best: AlarmSchedule | None = None
        for schedule in self.schedules():
            if best is None or schedule.next_fire_at_ms < best.next_fire_at_ms:
                best = schedule
        if best is None:
            return None
        return best.offset_minutes, best.next_fire_at_ms

    def next_due_at_ms(self) -> int | None:
        if not self._schedules:
            return None
        return min(s.next_fire_at_ms for s in self._schedules.values())
