"""Shared fakes for scheduler tests."""
import threading
from datetime import datetime, timezone
from typing import Any, Callable

import pytest

UTC = timezone.utc


def ms(dt: datetime) -> int:
    """Millisecond timestamp of an aware datetime."""
    return int(dt.timestamp() * 1000)


def utc_ms(hour: int, minute: int = 0, second: int = 0) -> int:
    return ms(datetime(2026, 3, 2, hour, minute, second, tzinfo=UTC))


class FakeHandle:
    def __init__(self, when: int, callback: Callable[[], Any]):
        self.when = when
        self.callback = callback
        self.cancelled = False


class FakeClock:
    """Clock whose time only moves when a test says so."""

    def __init__(self, start_ms: int):
        self.current_ms = start_ms
        self.scheduled: list[FakeHandle] = []
        self.repeating: list[FakeHandle] = []

    def now_ms(self) -> int:
        return self.current_ms

    def advance(self, delta_ms: int) -> None:
        self.current_ms += delta_ms

    def schedule_at(self, at_ms: int, callback: Callable[[], Any]) -> FakeHandle:
        handle = FakeHandle(at_ms, callback)
        self.scheduled.append(handle)
        return handle

    def schedule_repeating(self, interval_ms: int, callback: Callable[[], Any]) -> FakeHandle:
        handle = FakeHandle(interval_ms, callback)
        self.repeating.append(handle)
        return handle

    def cancel(self, handle: FakeHandle) -> None:
        handle.cancelled = True

    def pending(self) -> list[FakeHandle]:
        return [h for h in self.scheduled if not h.cancelled]

    def active_repeating(self) -> list[FakeHandle]:
        return [h for h in self.repeating if not h.cancelled]

    def tick_repeating(self) -> None:
        for handle in self.active_repeating():
            handle.callback()


class RecordingNotifier:
    """Notifier that counts calls and can be made to fail."""

    def __init__(self, error: Exception | None = None):
        self.calls = 0
        self.error = error
        self.called = threading.Event()
        self._lock = threading.Lock()

    def notify(self) -> None:
        with self._lock:
            self.calls += 1
        self.called.set()
        if self.error:
            raise self.error


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(utc_ms(14, 37))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
