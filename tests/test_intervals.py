"""Tests for interval timers."""
from hourbeep.scheduler.intervals import IntervalScheduler
from hourbeep.scheduler.types import MS_PER_HOUR, MS_PER_MINUTE

FIFTEEN_MIN = 15 * MS_PER_MINUTE


def test_fires_once_at_period_and_rearms():
    intervals = IntervalScheduler()
    assert intervals.enable(15, 0)
    assert intervals.get(15).anchor_ms == 0

    assert intervals.due(FIFTEEN_MIN - 1) == []
    assert intervals.due(FIFTEEN_MIN) == [15]

    schedule = intervals.on_fire(15, FIFTEEN_MIN)
    assert schedule.anchor_ms == FIFTEEN_MIN
    assert intervals.due(FIFTEEN_MIN) == []
    assert intervals.time_to_next_fire_ms(15, FIFTEEN_MIN) == FIFTEEN_MIN


def test_enable_is_idempotent():
    intervals = IntervalScheduler()
    intervals.enable(30, 1_000)
    assert not intervals.enable(30, 500_000)
    assert intervals.get(30).anchor_ms == 1_000
    assert intervals.enabled == frozenset({30})


def test_disable_is_idempotent():
    intervals = IntervalScheduler()
    assert not intervals.disable(15)
    intervals.enable(15, 0)
    assert intervals.disable(15)
    assert not intervals.disable(15)
    assert intervals.get(15) is None
    assert intervals.nearest(0) is None


def test_disable_leaves_other_anchors_alone():
    intervals = IntervalScheduler()
    intervals.enable(30, 0)
    intervals.enable(60, 0)
    intervals.on_fire(30, 30 * MS_PER_MINUTE)

    intervals.disable(30)

    assert intervals.get(60).anchor_ms == 0
    assert intervals.get(60).next_fire_at_ms == MS_PER_HOUR
    assert intervals.nearest(40 * MS_PER_MINUTE) == (60, 20 * MS_PER_MINUTE)


def test_reenable_gets_fresh_anchor():
    intervals = IntervalScheduler()
    intervals.enable(15, 0)
    intervals.disable(15)
    intervals.enable(15, 7_000)

    fresh = IntervalScheduler()
    fresh.enable(15, 7_000)
    assert intervals.get(15) == fresh.get(15)


def test_rejects_invalid_period():
    intervals = IntervalScheduler()
    assert not intervals.enable(0, 0)
    assert not intervals.enable(-5, 0)
    assert intervals.enabled == frozenset()


def test_missed_intervals_coalesce():
    intervals = IntervalScheduler()
    intervals.enable(15, 0)
    late = 10 * MS_PER_HOUR

    assert intervals.due(late) == [15]
    intervals.on_fire(15, late)
    assert intervals.due(late) == []
    assert intervals.get(15).next_fire_at_ms == late + FIFTEEN_MIN


def test_nearest_picks_soonest_and_breaks_ties_by_period():
    intervals = IntervalScheduler()
    assert intervals.nearest(0) is None

    intervals.enable(30, 0)
    intervals.enable(15, 15 * MS_PER_MINUTE)
    # Both due at minute 30
    assert intervals.nearest(20 * MS_PER_MINUTE) == (15, 10 * MS_PER_MINUTE)

    intervals.enable(60, 0)
    assert intervals.nearest(20 * MS_PER_MINUTE)[0] == 15


def test_time_to_next_fire_is_clamped():
    intervals = IntervalScheduler()
    intervals.enable(15, MS_PER_HOUR)

    # Overshoot past the due instant
    assert intervals.time_to_next_fire_ms(15, MS_PER_HOUR + 20 * MS_PER_MINUTE) == 0
    # Clock set back before the anchor
    assert intervals.time_to_next_fire_ms(15, 0) == FIFTEEN_MIN
    assert intervals.time_to_next_fire_ms(99, 0) is None


def test_reconcile_reanchors_after_clock_moves_back():
    intervals = IntervalScheduler()
    intervals.enable(15, MS_PER_HOUR)
    intervals.reconcile(MS_PER_HOUR - 5_000)
    assert intervals.get(15).anchor_ms == MS_PER_HOUR - 5_000

    intervals.reconcile(MS_PER_HOUR + 5_000)
    assert intervals.get(15).anchor_ms == MS_PER_HOUR - 5_000


def test_on_fire_after_disable_is_ignored():
    intervals = IntervalScheduler()
    intervals.enable(15, 0)
    intervals.disable(15)
    assert intervals.on_fire(15, FIFTEEN_MIN) is None
    assert intervals.enabled == frozenset()


def test_next_due_across_all():
    intervals = IntervalScheduler()
    assert intervals.next_due_at_ms() is None
    intervals.enable(60, 0)
    intervals.enable(15, 0)
    assert intervals.next_due_at_ms() == FIFTEEN_MIN
