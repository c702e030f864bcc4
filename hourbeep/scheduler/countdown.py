"""Countdown queries over the live schedules.

Everything here reads schedule state under the ScheduleSet lock and never
mutates it, so it is safe to poll at any frequency from any thread.
"""
from typing import TYPE_CHECKING, Any, Callable

from loguru import logger

from .clock import Clock
from .schedule import (
    format_alarm_remaining,
    format_clock_time,
    format_minutes_seconds,
)
from .types import Countdown, DisplayState, ScheduleKind

if TYPE_CHECKING:
    from .service.state import ScheduleSet

logger = logger.bind(module="scheduler.countdown")

# Type alias for presentation sinks
DisplaySink = Callable[[DisplayState], Any]


class CountdownProjector:
    """Formats the nearest timer and alarm for display."""

    def __init__(
        self,
        schedules: "ScheduleSet",
        clock: Clock,
        live_update_interval_ms: int = 500,
    ):
        self.schedules = schedules
        self.clock = clock
        self.live_update_interval_ms = live_update_interval_ms
        self._sinks: list[DisplaySink] = []
        self._live_handle: Any = None

    def next_interval_countdown(self, current_ms: int | None = None) -> Countdown | None:
        if current_ms is None:
            current_ms = self.clock.now_ms()

        with self.schedules.lock:
            nearest = self.schedules.intervals.nearest(current_ms)
        if nearest is None:
            return None

        period, remaining_ms = nearest
        fire_at_ms = current_ms + remaining_ms
        return Countdown(
            kind=ScheduleKind.TIMER,
            value=period,
            remaining_ms=remaining_ms,
            fire_at_ms=fire_at_ms,
            remaining_text=format_minutes_seconds(remaining_ms),
            fire_at_text=format_clock_time(fire_at_ms, self.schedules.tz),
        )

    def next_alarm_countdown(self, current_ms: int | None = None) -> Countdown | None:
        if current_ms is None:
            current_ms = self.clock.now_ms()

        with self.schedules.lock:
            nearest = self.schedules.alarms.nearest(current_ms)
        if nearest is None:
            return None

        offset, fire_at_ms = nearest
        remaining_ms = max(0, fire_at_ms - current_ms)
        return Countdown(
            kind=ScheduleKind.ALARM,
            value=offset,
            remaining_ms=remaining_ms,
            fire_at_ms=fire_at_ms,
            remaining_text=format_alarm_remaining(remaining_ms),
            fire_at_text=format_clock_time(fire_at_ms, self.schedules.tz),
        )

    def current_display_state(self, current_ms: int | None = None) -> DisplayState:
        """Everything the presentation layer needs, from one snapshot."""
        if current_ms is None:
            current_ms = self.clock.now_ms()

        with self.schedules.lock:
            next_interval = self.next_interval_countdown(current_ms)
            next_alarm = self.next_alarm_countdown(current_ms)
            checked_intervals = sorted(self.schedules.intervals.enabled)
            checked_alarms = sorted(self.schedules.alarms.enabled)

        if next_interval:
            interval_line = f"Timer in {next_interval.remaining_text} ({next_interval.fire_at_text})"
        else:
            interval_line = "No timer"
        if next_alarm:
            alarm_line = f"Alarm in {next_alarm.remaining_text} ({next_alarm.fire_at_text})"
        else:
            alarm_line = "No alarm"

        return DisplayState(
            interval_line=interval_line,
            alarm_line=alarm_line,
            checked_intervals=checked_intervals,
            checked_alarm_offsets=checked_alarms,
            next_interval=next_interval,
            next_alarm=next_alarm,
        )

    # ============== Live Updates ==============

    @property
    def live(self) -> bool:
        return self._live_handle is not None

    def begin_live_updates(self, sink: DisplaySink) -> None:
        """Push the display state to sink until end_live_updates(sink).

        The repeating clock schedule only exists while a sink is registered.
        """
        if sink in self._sinks:
            return
        self._sinks.append(sink)
        if self._live_handle is None:
            self._live_handle = self.clock.schedule_repeating(
                self.live_update_interval_ms, self._push
            )
            logger.debug(f"Live updates started every {self.live_update_interval_ms} ms")
        self._deliver(sink, self.current_display_state())

    def end_live_updates(self, sink: DisplaySink | None = None) -> None:
        """Unregister sink, or every sink when None."""
        if sink is None:
            self._sinks.clear()
        elif sink in self._sinks:
            self._sinks.remove(sink)

        if not self._sinks and self._live_handle is not None:
            self.clock.cancel(self._live_handle)
            self._live_handle = None
            logger.debug("Live updates stopped")

    def _push(self) -> None:
        state = self.current_display_state()
        for sink in list(self._sinks):
            self._deliver(sink, state)

    def _deliver(self, sink: DisplaySink, state: DisplayState) -> None:
        try:
            sink(state)
        except Exception as e:
            logger.error(f"Display sink error: {e}")
