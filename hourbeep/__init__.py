"""HourBeep - hourly and interval beep scheduler."""
__version__ = "0.1.0"
