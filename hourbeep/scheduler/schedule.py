"""Schedule calculation utilities.

Computes due instants for interval timers and hourly alarms, and formats
countdowns for display. Alarm instants are derived from wall-clock rules in
the configured time zone so hour boundaries shifted by DST stay correct.
"""
import time
from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo

from .types import MS_PER_HOUR, MS_PER_MINUTE, MS_PER_SECOND

MIN_ALARM_OFFSET = 0
MAX_ALARM_OFFSET = 59
# One week; keeps every due instant representable as a datetime
MAX_INTERVAL_PERIOD = 7 * 24 * 60


def now_ms() -> int:
    """Get current timestamp in milliseconds."""
    return int(time.time() * 1000)


def resolve_timezone(name: str | None) -> tzinfo | None:
    """Resolve a zone name; None keeps the host local time."""
    if not name:
        return None
    return ZoneInfo(name)


def to_local_datetime(at_ms: int, tz: tzinfo | None = None) -> datetime:
    """Convert a millisecond timestamp to a wall-clock datetime."""
    return datetime.fromtimestamp(at_ms / 1000, tz=tz)


def _to_ms(dt: datetime) -> int:
    return int(round(dt.timestamp() * 1000))


# ============== Validation ==============

def is_valid_period(period_minutes: object) -> bool:
    """Interval periods are whole minutes, from 1 up to one week."""
    return (
        isinstance(period_minutes, int)
        and not isinstance(period_minutes, bool)
        and 0 < period_minutes <= MAX_INTERVAL_PERIOD
    )


def is_valid_offset(offset_minutes: object) -> bool:
    """Alarm offsets are a minute of the hour, 0-59."""
    return (
        isinstance(offset_minutes, int)
        and not isinstance(offset_minutes, bool)
        and MIN_ALARM_OFFSET <= offset_minutes <= MAX_ALARM_OFFSET
    )


# ============== Due Time Computation ==============

def compute_next_interval_at_ms(period_minutes: int, anchor_ms: int) -> int:
    """Next fire of an interval timer measured from its anchor."""
    return anchor_ms + period_minutes * MS_PER_MINUTE


def compute_next_alarm_at_ms(
    offset_minutes: int,
    current_ms: int,
    tz: tzinfo | None = None,
) -> int:
    """Compute the next alarm instant strictly after current_ms.

    The result is the earliest instant whose local minute equals
    ``offset_minutes`` and whose second is 0. Each hour is probed on the
    real timeline, so the repeated hour after a fall-back transition
    produces its own occurrence and a skipped hour produces none.

    Args:
        offset_minutes: Minute of the hour (0-59)
        current_ms: Reference timestamp in ms
        tz: Time zone for wall-clock rules (None = host local time)

    Returns:
        Next alarm timestamp in milliseconds
    """
    probe = to_local_datetime(current_ms, tz)
    while True:
        candidate = probe.replace(minute=offset_minutes, second=0, microsecond=0)
        candidate_ms = _to_ms(candidate)
        if candidate_ms > current_ms and to_local_datetime(candidate_ms, tz).minute == offset_minutes:
            return candidate_ms
        probe = to_local_datetime(_to_ms(probe) + MS_PER_HOUR, tz)


# ============== Formatting ==============

def _ceil_seconds(duration_ms: int) -> int:
    return -(-max(0, duration_ms) // MS_PER_SECOND)


def format_minutes_seconds(duration_ms: int) -> str:
    """Format a duration as M:SS, rounding partial seconds up."""
    total = _ceil_seconds(duration_ms)
    return f"{total // 60}:{total % 60:02d}"


def format_hours_minutes(duration_ms: int) -> str:
    """Format a duration as H:MM."""
    total_minutes = _ceil_seconds(duration_ms) // 60
    return f"{total_minutes // 60}:{total_minutes % 60:02d}"


def format_alarm_remaining(duration_ms: int) -> str:
    """H:MM when at least an hour remains, M:SS otherwise."""
    if duration_ms >= MS_PER_HOUR:
        return format_hours_minutes(duration_ms)
    return format_minutes_seconds(duration_ms)


def format_clock_time(at_ms: int, tz: tzinfo | None = None) -> str:
    """Format an instant as local HH:MM."""
    return to_local_datetime(at_ms, tz).strftime("%H:%M")


def interval_to_human(period_minutes: int) -> str:
    """Menu label for an interval timer."""
    if period_minutes % 60 == 0:
        hours = period_minutes // 60
        return f"Every {hours} hour" if hours == 1 else f"Every {hours} hours"
    if period_minutes == 1:
        return "Every 1 minute"
    return f"Every {period_minutes} minutes"


def alarm_to_human(offset_minutes: int) -> str:
    """Menu label for an hourly alarm."""
    return f"At X:{offset_minutes:02d}"
