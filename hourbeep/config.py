"""Configuration management for the HourBeep service."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List

from dotenv import load_dotenv
load_dotenv()


def _int_list(raw: str) -> List[int]:
    """Parse a comma separated list of integers, skipping blanks."""
    return [int(v.strip()) for v in raw.split(",") if v.strip()]


@dataclass
class Settings:
    """Service settings."""

    # Server
    host: str = "127.0.0.1"
    port: int = 8790
    debug: bool = False

    # Sound
    sound_path: Optional[Path] = None
    volume: float = 0.8

    # Time zone used for alarm minute marks and displayed clock times.
    # None means the host local time.
    timezone: Optional[str] = None

    # Schedules enabled at startup
    default_intervals: List[int] = field(default_factory=list)
    default_alarm_offsets: List[int] = field(default_factory=lambda: [0])

    # Menu presets
    interval_presets: List[int] = field(default_factory=lambda: [15, 30, 60])
    alarm_presets: List[int] = field(default_factory=lambda: [15, 30, 45, 0])

    # Timing
    live_update_interval_ms: int = 500
    max_sleep_seconds: float = 60.0

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        sound = os.getenv("HOURBEEP_SOUND", "").strip()

        return cls(
            host=os.getenv("HOST", "127.0.0.1"),
            port=int(os.getenv("PORT", "8790")),
            debug=os.getenv("DEBUG", "").lower() in ("1", "true"),

            sound_path=Path(sound).expanduser() if sound else None,
            volume=float(os.getenv("HOURBEEP_VOLUME", "0.8")),

            timezone=os.getenv("HOURBEEP_TIMEZONE") or None,

            default_intervals=_int_list(os.getenv("HOURBEEP_TIMERS", "")),
            default_alarm_offsets=_int_list(os.getenv("HOURBEEP_ALARMS", "0")),

            live_update_interval_ms=int(os.getenv("HOURBEEP_LIVE_UPDATE_MS", "500")),
            max_sleep_seconds=float(os.getenv("HOURBEEP_MAX_SLEEP_SECONDS", "60")),
        )


# Global settings instance
settings = Settings.from_env()
