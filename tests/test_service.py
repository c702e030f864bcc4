"""Tests for the scheduler service and its timer."""
import asyncio

import pytest

from hourbeep.scheduler import EventTypes, SchedulerService
from hourbeep.scheduler.clock import AsyncioClock
from hourbeep.scheduler.service import timer
from hourbeep.scheduler.types import MS_PER_MINUTE, ScheduleKind

from conftest import UTC, RecordingNotifier, utc_ms

FIFTEEN_MIN = 15 * MS_PER_MINUTE


def make_service(clock, notifier, **kwargs) -> SchedulerService:
    kwargs.setdefault("default_alarm_offsets", ())
    return SchedulerService(notifier=notifier, clock=clock, tz=UTC, **kwargs)


async def wait_for_notify(notifier: RecordingNotifier) -> bool:
    return await asyncio.to_thread(notifier.called.wait, 2.0)


def test_default_alarm_is_top_of_hour(clock, notifier):
    service = SchedulerService(notifier=notifier, clock=clock, tz=UTC)
    assert service.is_alarm_enabled(0)
    assert service.current_display_state().checked_alarm_offsets == [0]
    assert service.next_alarm_countdown().remaining_text == "23:00"


def test_invalid_defaults_are_skipped(clock, notifier):
    service = make_service(clock, notifier, default_intervals=(15, 0), default_alarm_offsets=(99, 30))
    state = service.current_display_state()
    assert state.checked_intervals == [15]
    assert state.checked_alarm_offsets == [30]


@pytest.mark.asyncio
async def test_timer_fires_and_rearms(clock, notifier):
    service = make_service(clock, notifier)
    await service.start()
    try:
        assert await service.enable_timer(15)
        assert service.state.next_wake_at_ms == utc_ms(14, 52)
        assert clock.pending()[-1].when == utc_ms(14, 52)

        clock.advance(FIFTEEN_MIN)
        fired = timer.run_due_events(service)

        assert [(e.kind, e.value) for e in fired] == [(ScheduleKind.TIMER, 15)]
        assert fired[0].payload["next_fire_at_ms"] == utc_ms(15, 7)
        assert service.schedules.intervals.time_to_next_fire_ms(15, clock.now_ms()) == FIFTEEN_MIN
        assert await wait_for_notify(notifier)
        assert timer.run_due_events(service) == []
    finally:
        await service.stop()


@pytest.mark.asyncio
async def test_alarm_fires_once_after_long_overshoot(clock, notifier):
    service = make_service(clock, notifier, default_alarm_offsets=(0,))
    await service.start()
    try:
        clock.advance(4 * 60 * MS_PER_MINUTE)
        fired = timer.run_due_events(service)
        assert [(e.kind, e.value) for e in fired] == [(ScheduleKind.ALARM, 0)]
        assert service.schedules.alarms.get(0).next_fire_at_ms == utc_ms(19, 0)
        assert timer.run_due_events(service) == []
    finally:
        await service.stop()


@pytest.mark.asyncio
async def test_coinciding_events_beep_once(clock, notifier):
    service = make_service(clock, notifier, default_alarm_offsets=(0,))
    await service.start()
    try:
        clock.current_ms = utc_ms(14, 45)
        await service.enable_timer(15)
        clock.current_ms = utc_ms(15, 0)

        fired = timer.run_due_events(service)
        assert {(e.kind, e.value) for e in fired} == {
            (ScheduleKind.TIMER, 15),
            (ScheduleKind.ALARM, 0),
        }
        assert await wait_for_notify(notifier)
        await asyncio.sleep(0.05)
        assert notifier.calls == 1
    finally:
        await service.stop()


@pytest.mark.asyncio
async def test_disable_cancels_pending_fire(clock, notifier):
    service = make_service(clock, notifier)
    await service.start()
    try:
        await service.enable_timer(15)
        await service.enable_timer(60)
        clock.advance(FIFTEEN_MIN)

        assert await service.disable_timer(15)
        assert timer.run_due_events(service) == []
        assert notifier.calls == 0
        assert service.schedules.intervals.get(60).anchor_ms == utc_ms(14, 37)
        assert service.state.next_wake_at_ms == utc_ms(15, 37)
    finally:
        await service.stop()


@pytest.mark.asyncio
async def test_nothing_fires_after_stop(clock, notifier):
    service = make_service(clock, notifier)
    await service.start()
    await service.enable_timer(15)
    clock.advance(FIFTEEN_MIN)

    await service.stop()

    assert timer.run_due_events(service) == []
    assert notifier.calls == 0
    assert all(h.cancelled for h in clock.scheduled)
    assert not service.running


@pytest.mark.asyncio
async def test_stop_ends_live_updates(clock, notifier):
    service = make_service(clock, notifier)
    await service.start()
    service.begin_live_updates(lambda state: None)
    assert clock.active_repeating()

    await service.stop()
    assert clock.active_repeating() == []


@pytest.mark.asyncio
async def test_notifier_failure_still_rearms(clock):
    failing = RecordingNotifier(error=RuntimeError("no sound device"))
    service = make_service(clock, failing)
    await service.start()
    try:
        await service.enable_timer(30)
        clock.advance(30 * MS_PER_MINUTE)
        fired = timer.run_due_events(service)

        assert len(fired) == 1
        assert await wait_for_notify(failing)
        assert service.schedules.intervals.get(30).anchor_ms == clock.now_ms()
    finally:
        await service.stop()


@pytest.mark.asyncio
async def test_toggles_and_events(clock, notifier):
    service = make_service(clock, notifier)
    events = []
    service.on_event(events.append)

    assert await service.toggle_timer(30) is True
    assert await service.toggle_alarm(45) is True
    assert await service.toggle_timer(30) is False
    assert await service.toggle_alarm(45) is False

    assert [e.type for e in events] == [
        EventTypes.TIMER_ENABLED,
        EventTypes.ALARM_ENABLED,
        EventTypes.TIMER_DISABLED,
        EventTypes.ALARM_DISABLED,
    ]
    assert events[1].value == 45

    service.off_event(events.append)
    await service.enable_timer(15)
    assert len(events) == 4


@pytest.mark.asyncio
async def test_repeated_enable_does_not_reset(clock, notifier):
    service = make_service(clock, notifier, default_alarm_offsets=(0,))
    before = service.schedules.alarms.get(0)

    clock.advance(5 * MS_PER_MINUTE)
    assert not await service.enable_alarm(0)
    assert service.schedules.alarms.get(0) == before

    await service.enable_timer(15)
    anchor = service.schedules.intervals.get(15).anchor_ms
    clock.advance(MS_PER_MINUTE)
    assert not await service.enable_timer(15)
    assert service.schedules.intervals.get(15).anchor_ms == anchor


@pytest.mark.asyncio
async def test_invalid_values_are_rejected(clock, notifier):
    service = make_service(clock, notifier)
    assert not await service.enable_timer(0)
    assert not await service.enable_alarm(60)
    state = service.current_display_state()
    assert state.checked_intervals == []
    assert state.checked_alarm_offsets == []


@pytest.mark.asyncio
async def test_manual_beep(clock, notifier):
    service = make_service(clock, notifier)
    events = []
    service.on_event(events.append)

    await service.beep()

    assert await wait_for_notify(notifier)
    assert events[-1].type == EventTypes.BEEP_MANUAL


@pytest.mark.asyncio
async def test_start_and_stop_events(clock, notifier):
    service = make_service(clock, notifier)
    events = []
    service.on_event(events.append)

    await service.start()
    await service.start()
    assert service.running
    await service.stop()
    await service.stop()

    assert [e.type for e in events] == [EventTypes.SCHEDULER_STARTED, EventTypes.SCHEDULER_STOPPED]


@pytest.mark.asyncio
async def test_clock_moving_back_recomputes_alarms(clock, notifier):
    service = make_service(clock, notifier, default_alarm_offsets=(0,))
    await service.start()
    try:
        clock.current_ms = utc_ms(11, 20)
        assert timer.run_due_events(service) == []
        assert service.schedules.alarms.get(0).next_fire_at_ms == utc_ms(12, 0)
    finally:
        await service.stop()


class TestAsyncioClock:

    @pytest.mark.asyncio
    async def test_schedule_at_runs_callback(self):
        clock = AsyncioClock()
        fired = asyncio.Event()
        clock.schedule_at(clock.now_ms() + 20, fired.set)
        await asyncio.wait_for(fired.wait(), timeout=2)

    @pytest.mark.asyncio
    async def test_cancelled_handle_never_runs(self):
        clock = AsyncioClock()
        calls = []
        handle = clock.schedule_at(clock.now_ms() + 20, lambda: calls.append(1))
        clock.cancel(handle)
        await asyncio.sleep(0.1)
        assert calls == []

    @pytest.mark.asyncio
    async def test_schedule_repeating(self):
        clock = AsyncioClock()
        calls = []
        handle = clock.schedule_repeating(10, lambda: calls.append(1))
        await asyncio.sleep(0.2)
        clock.cancel(handle)
        count = len(calls)
        assert count >= 2
        await asyncio.sleep(0.05)
        assert len(calls) == count


class ShiftedClock(AsyncioClock):
    """Real asyncio timers with wall-clock time moved to a chosen instant."""

    def __init__(self, start_ms: int):
        self.offset_ms = start_ms - super().now_ms()

    def now_ms(self) -> int:
        return super().now_ms() + self.offset_ms


async def wait_for_events(events, event_type, timeout=2.0) -> list:
    deadline = asyncio.get_running_loop().time() + timeout
    while asyncio.get_running_loop().time() < deadline:
        matching = [e for e in events if e.type == event_type]
        if matching:
            return matching
        await asyncio.sleep(0.02)
    return []


class TestTimerLoop:

    @pytest.mark.asyncio
    async def test_alarm_fires_once_when_due(self, notifier):
        clock = ShiftedClock(utc_ms(15, 0) - 300)
        service = make_service(clock, notifier, default_alarm_offsets=(0,), max_sleep_seconds=0.1)
        events = []
        service.on_event(events.append)
        await service.start()
        try:
            fired = await wait_for_events(events, EventTypes.ALARM_FIRED)
            assert len(fired) == 1
            assert fired[0].value == 0
            assert fired[0].payload["next_fire_at_ms"] == utc_ms(16, 0)
            assert await wait_for_notify(notifier)

            await asyncio.sleep(0.3)
            assert len([e for e in events if e.type == EventTypes.ALARM_FIRED]) == 1
            assert notifier.calls == 1
            assert service.state.next_wake_at_ms == utc_ms(16, 0)
        finally:
            await service.stop()

    @pytest.mark.asyncio
    async def test_disabled_mid_wait_never_fires(self, notifier):
        clock = ShiftedClock(utc_ms(15, 0) - 300)
        service = make_service(clock, notifier, default_alarm_offsets=(0,), max_sleep_seconds=0.1)
        events = []
        service.on_event(events.append)
        await service.start()
        try:
            await asyncio.sleep(0.05)
            assert await service.toggle_alarm(0) is False

            await asyncio.sleep(0.6)
            assert [e for e in events if e.type == EventTypes.ALARM_FIRED] == []
            assert notifier.calls == 0
            assert service.state.next_wake_at_ms is None
        finally:
            await service.stop()

    @pytest.mark.asyncio
    async def test_enable_while_idle_wakes_loop(self, notifier):
        clock = ShiftedClock(utc_ms(15, 0) - 300)
        # A long idle poll so only the toggle can wake the loop in time
        service = make_service(clock, notifier, max_sleep_seconds=30.0)
        events = []
        service.on_event(events.append)
        await service.start()
        try:
            await asyncio.sleep(0.05)
            assert await service.enable_alarm(0)

            fired = await wait_for_events(events, EventTypes.ALARM_FIRED)
            assert [e.value for e in fired] == [0]
            assert await wait_for_notify(notifier)
        finally:
            await service.stop()
