"""Pomodoro timer with real-time group sessions."""

__version__ = "0.3.0"
