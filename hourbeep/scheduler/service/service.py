"""Main Scheduler Service class.

This is the unified entry point for all scheduler operations:
- Enabling, disabling and toggling interval timers and hourly alarms
- Running the timer loop that fires due schedules
- Dispatching the notifier without waiting on it
- Countdown queries and live updates for the presentation layer
"""
from __future__ import annotations

import asyncio
from datetime import tzinfo
from typing import Any, Callable, Iterable

from loguru import logger

from ..clock import AsyncioClock, Clock
from ..countdown import CountdownProjector, DisplaySink
from ..notifier import Notifier, SoundNotifier
from ..types import Countdown, DisplayState, ScheduleKind
from .events import EventEmitter, EventTypes, emit_schedule_event
from .state import ScheduleSet, SchedulerServiceState
from . import timer

logger = logger.bind(module="scheduler.service")


class SchedulerService:
    """Owns every schedule and fires the notifier when they come due.

    All mutations go through the ScheduleSet lock, so the countdown queries
    can be called from any thread and always see a consistent snapshot.
    """

    def __init__(
        self,
        notifier: Notifier | None = None,
        clock: Clock | None = None,
        tz: tzinfo | None = None,
        default_intervals: Iterable[int] = (),
        default_alarm_offsets: Iterable[int] = (0,),
        live_update_interval_ms: int = 500,
        max_sleep_seconds: float = 60.0,
    ):
        """Initialize scheduler service.

        Args:
            notifier: Alert side effect (implements notify())
            clock: Time source and timed callbacks
            tz: Time zone for alarm minute marks (None = host local time)
            default_intervals: Timer periods enabled at construction
            default_alarm_offsets: Alarm offsets enabled at construction
            live_update_interval_ms: Cadence of live display updates
            max_sleep_seconds: Longest the timer loop sleeps without
                re-reading the wall clock
        """
        self.notifier = notifier or SoundNotifier()
        self.clock = clock or AsyncioClock()
        self.schedules = ScheduleSet.create(tz=tz)
        self.events = EventEmitter()
        self.state = SchedulerServiceState()
        self.projector = CountdownProjector(
            self.schedules,
            self.clock,
            live_update_interval_ms=live_update_interval_ms,
        )
        self.max_sleep_seconds = max_sleep_seconds

        current_ms = self.clock.now_ms()
        with self.schedules.lock:
            for period in default_intervals:
                self.schedules.intervals.enable(period, current_ms)
            for offset in default_alarm_offsets:
                self.schedules.alarms.enable(offset, current_ms)

    async def start(self) -> None:
        """Start the scheduler service."""
        if self.state.running:
            logger.warning("Scheduler already running")
            return

        self.state.running = True
        self.state.timer_task = asyncio.create_task(timer.timer_loop(self))

        # Arm timer for first wake
        await timer.arm_timer(self)

        emit_schedule_event(self.events, EventTypes.SCHEDULER_STARTED)
        logger.info("Scheduler service started")

    async def stop(self) -> None:
        """Stop the scheduler service; nothing fires once this begins."""
        if not self.state.running:
            return

        with self.schedules.lock:
            self.state.stopping = True

        # Cancel pending timed work
        await timer.arm_timer(self)
        self.projector.end_live_updates()

        if self.state.timer_task:
            self.state.timer_task.cancel()
            try:
                await self.state.timer_task
            except asyncio.CancelledError:
                pass

        self.state.reset()

        emit_schedule_event(self.events, EventTypes.SCHEDULER_STOPPED)
        logger.info("Scheduler service stopped")

    @property
    def running(self) -> bool:
        return self.state.running and not self.state.stopping

    # ============== Interval Timers ==============

    async def enable_timer(self, period_minutes: int) -> bool:
        """Enable an interval timer.

        Args:
            period_minutes: Repeat period in minutes

        Returns:
            True if the timer was newly enabled
        """
        with self.schedules.lock:
            changed = self.schedules.intervals.enable(period_minutes, self.clock.now_ms())
        if changed:
            await self._after_change(EventTypes.TIMER_ENABLED, ScheduleKind.TIMER, period_minutes)
        return changed

    async def disable_timer(self, period_minutes: int) -> bool:
        """Disable an interval timer.

        Returns:
            True if the timer was enabled before
        """
        with self.schedules.lock:
            changed = self.schedules.intervals.disable(period_minutes)
        if changed:
            await self._after_change(EventTypes.TIMER_DISABLED, ScheduleKind.TIMER, period_minutes)
        return changed

    async def toggle_timer(self, period_minutes: int) -> bool:
        """Flip an interval timer.

        Returns:
            Whether the timer is enabled afterwards
        """
        with self.schedules.lock:
            enabled = period_minutes in self.schedules.intervals.enabled
        if enabled:
            await self.disable_timer(period_minutes)
        else:
            await self.enable_timer(period_minutes)
        return self.is_timer_enabled(period_minutes)

    def is_timer_enabled(self, period_minutes: int) -> bool:
        with self.schedules.lock:
            return period_minutes in self.schedules.intervals.enabled

    # ============== Hourly Alarms ==============

    async def enable_alarm(self, offset_minutes: int) -> bool:
        """Enable an hourly alarm.

        Args:
            offset_minutes: Minute of the hour (0-59)

        Returns:
            True if the alarm was newly enabled
        """
        with self.schedules.lock:
            changed = self.schedules.alarms.enable(offset_minutes, self.clock.now_ms())
        if changed:
            await self._after_change(EventTypes.ALARM_ENABLED, ScheduleKind.ALARM, offset_minutes)
        return changed

    async def disable_alarm(self, offset_minutes: int) -> bool:
        """Disable an hourly alarm.

        Returns:
            True if the alarm was enabled before
        """
        with self.schedules.lock:
            changed = self.schedules.alarms.disable(offset_minutes)
        if changed:
            await self._after_change(EventTypes.ALARM_DISABLED, ScheduleKind.ALARM, offset_minutes)
        return changed

    async def toggle_alarm(self, offset_minutes: int) -> bool:
        """Flip an hourly alarm.

        Returns:
            Whether the alarm is enabled afterwards
        """
        with self.schedules.lock:
            enabled = offset_minutes in self.schedules.alarms.enabled
        if enabled:
            await self.disable_alarm(offset_minutes)
        else:
            await self.enable_alarm(offset_minutes)
        return self.is_alarm_enabled(offset_minutes)

    def is_alarm_enabled(self, offset_minutes: int) -> bool:
        with self.schedules.lock:
            return offset_minutes in self.schedules.alarms.enabled

    # ============== Notification ==============

    async def beep(self) -> None:
        """Play the alert right away without touching any schedule."""
        self.dispatch_notification()
        emit_schedule_event(self.events, EventTypes.BEEP_MANUAL)

    def dispatch_notification(self) -> None:
        """Run the notifier in the default executor without awaiting it."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._notify()
            return
        loop.run_in_executor(None, self._notify)

    def _notify(self) -> None:
        try:
            self.notifier.notify()
        except Exception as e:
            logger.error(f"Notifier error: {e}")

    # ============== Queries ==============

    def next_interval_countdown(self, current_ms: int | None = None) -> Countdown | None:
        return self.projector.next_interval_countdown(current_ms)

    def next_alarm_countdown(self, current_ms: int | None = None) -> Countdown | None:
        return self.projector.next_alarm_countdown(current_ms)

    def current_display_state(self, current_ms: int | None = None) -> DisplayState:
        return self.projector.current_display_state(current_ms)

    def begin_live_updates(self, sink: DisplaySink) -> None:
        self.projector.begin_live_updates(sink)

    def end_live_updates(self, sink: DisplaySink | None = None) -> None:
        self.projector.end_live_updates(sink)

    # ============== Event Handling ==============

    def on_event(self, handler: Callable[[Any], None]) -> None:
        """Register an event handler.

        Args:
            handler: Function to call when events are emitted
        """
        self.events.add_handler(handler)

    def off_event(self, handler: Callable[[Any], None]) -> None:
        """Unregister an event handler.

        Args:
            handler: Handler to remove
        """
        self.events.remove_handler(handler)

    # ============== Internal ==============

    async def _after_change(self, event_type: str, kind: ScheduleKind, value: int) -> None:
        if self.state.running:
            await timer.arm_timer(self)
        emit_schedule_event(self.events, event_type, kind, value)
