"""Audible notification for fired schedules.

The notifier is best-effort: it starts an external audio player and returns
without waiting, and any failure falls back to the system alert sound.
"""
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Protocol

from loguru import logger

logger = logger.bind(module="scheduler.notifier")

MACOS_ALERT_SOUND = Path("/System/Library/Sounds/Basso.aiff")


class Notifier(Protocol):
    """Protocol for the alert side effect."""

    def notify(self) -> None:
        """Play an alert. Must not raise."""
        ...


class SoundNotifier:
    """Plays a sound file through the platform's command line player."""

    def __init__(
        self,
        sound_path: str | Path | None = None,
        volume: float = 0.8,
    ):
        """Initialize notifier.

        Args:
            sound_path: Audio file to play; None uses the system alert
            volume: Playback volume between 0.0 and 1.0
        """
        self.sound_path = Path(sound_path).expanduser() if sound_path else None
        self.volume = min(max(volume, 0.0), 1.0)

    def notify(self) -> None:
        try:
            if self.sound_path and self._play(self.sound_path):
                return
        except Exception as e:
            logger.warning(f"Failed to play {self.sound_path}: {e}")
        self.fallback_beep()

    def fallback_beep(self) -> None:
        """Play the system default alert tone."""
        try:
            if MACOS_ALERT_SOUND.exists() and self._play(MACOS_ALERT_SOUND):
                return
            sys.stdout.write("\a")
            sys.stdout.flush()
        except Exception as e:
            logger.error(f"Fallback beep failed: {e}")

    def _play(self, path: Path) -> bool:
        if not path.exists():
            logger.warning(f"Sound file not found: {path}")
            return False
        command = self._player_command(path)
        if command is None:
            logger.warning("No audio player found")
            return False
        subprocess.Popen(
            command,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        logger.debug(f"Playing {path} with {command[0]}")
        return True

    def _player_command(self, path: Path) -> list[str] | None:
        if shutil.which("afplay"):
            return ["afplay", "-v", f"{self.volume:.2f}", str(path)]
        if shutil.which("paplay"):
            return ["paplay", f"--volume={int(self.volume * 65536)}", str(path)]
        if shutil.which("ffplay"):
            return [
                "ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet",
                "-volume", str(int(self.volume * 100)), str(path),
            ]
        if shutil.which("aplay"):
            return ["aplay", "-q", str(path)]
        return None
