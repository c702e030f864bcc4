"""Scheduler service package.

This package contains the core scheduler service components:
- state.py: Owned schedule aggregate and runtime state
- timer.py: Timer loop and firing of due schedules
- events.py: Event system
"""
from .service import SchedulerService
from .state import ScheduleSet

__all__ = ["SchedulerService", "ScheduleSet"]
