"""Timer management for the scheduler.

Handles scheduling wake-ups and firing due timers and alarms.
"""
import asyncio
from typing import TYPE_CHECKING

from loguru import logger

from ..types import ScheduleKind, SchedulerEvent
from .events import EventTypes

if TYPE_CHECKING:
    from .service import SchedulerService

logger = logger.bind(module="scheduler.timer")


async def arm_timer(service: "SchedulerService") -> None:
    """Arm the timer to wake up at the next due instant.

    Replaces any pending clock wake-up and signals the timer loop so it
    recalculates its sleep.
    """
    state = service.state
    if state.wake_handle is not None:
        service.clock.cancel(state.wake_handle)
        state.wake_handle = None

    if not state.running or state.stopping:
        state.next_wake_at_ms = None
        return

    next_wake_ms = service.schedules.next_due_at_ms()
    state.next_wake_at_ms = next_wake_ms

    if next_wake_ms is None:
        logger.debug("Nothing enabled, timer not armed")
    else:
        state.wake_handle = service.clock.schedule_at(next_wake_ms, state.wake_event.set)
        logger.debug(f"Timer armed for {next_wake_ms}")

    # Signal the timer loop to check for new wake time
    state.wake_event.set()


async def timer_loop(service: "SchedulerService") -> None:
    """Main timer loop that fires due schedules.

    This loop runs continuously and:
    1. Calculates sleep time until the next due instant
    2. Sleeps until then, until woken early, or for at most
       max_sleep_seconds so wall-clock jumps are noticed
    3. Fires everything that is due
    4. Re-arms
    """
    logger.info("Timer loop started")
    state = service.state

    while state.running and not state.stopping:
        try:
            current_ms = service.clock.now_ms()
            next_wake_ms = state.next_wake_at_ms

            if next_wake_ms is None:
                # Nothing scheduled, wait for a toggle
                state.wake_event.clear()
                try:
                    await asyncio.wait_for(
                        state.wake_event.wait(),
                        timeout=service.max_sleep_seconds,
                    )
                except asyncio.TimeoutError:
                    pass
                continue

            sleep_seconds = max(0, next_wake_ms - current_ms) / 1000.0

            if sleep_seconds > 0:
                state.wake_event.clear()
                try:
                    await asyncio.wait_for(
                        state.wake_event.wait(),
                        timeout=min(sleep_seconds, service.max_sleep_seconds),
                    )
                    # Woken by a toggle or the clock, re-calculate
                    continue
                except asyncio.TimeoutError:
                    pass

            run_due_events(service)
            await arm_timer(service)

        except asyncio.CancelledError:
            logger.info("Timer loop cancelled")
            break
        except Exception as e:
            logger.error(f"Timer loop error: {e}")
            await asyncio.sleep(1)  # Avoid tight loop on errors

    logger.info("Timer loop stopped")


def run_due_events(service: "SchedulerService") -> list[SchedulerEvent]:
    """Fire every schedule whose due instant has been reached.

    Each schedule is re-armed under the ScheduleSet lock before the notifier
    is dispatched, and at most one beep is played per pass however many
    schedules were due.

    Args:
        service: The scheduler service

    Returns:
        One fired event per schedule that fired
    """
    schedules = service.schedules
    fired: list[SchedulerEvent] = []

    with schedules.lock:
        if not service.state.running or service.state.stopping:
            return fired

        current_ms = service.clock.now_ms()
        schedules.reconcile(current_ms)

        for period in schedules.intervals.due(current_ms):
            interval = schedules.intervals.on_fire(period, current_ms)
            if interval is None:
                continue
            fired.append(SchedulerEvent(
                type=EventTypes.TIMER_FIRED,
                kind=ScheduleKind.TIMER,
                value=period,
                timestamp_ms=current_ms,
                payload={"next_fire_at_ms": interval.next_fire_at_ms},
            ))

        for offset in schedules.alarms.due(current_ms):
            alarm = schedules.alarms.on_fire(offset, current_ms)
            if alarm is None:
                continue
            fired.append(SchedulerEvent(
                type=EventTypes.ALARM_FIRED,
                kind=ScheduleKind.ALARM,
                value=offset,
                timestamp_ms=current_ms,
                payload={"next_fire_at_ms": alarm.next_fire_at_ms},
            ))

    if not fired:
        return fired

    logger.info(
        "Fired: " + ", ".join(f"{e.kind.value} {e.value}" for e in fired)
    )
    service.dispatch_notification()
    for event in fired:
        service.events.emit(event)

    return fired
