"""Reminder scheduling: eligibility bands, dispatch guard and the sweep."""

from booking_notifications.scheduler.guard import DispatchGuard
from booking_notifications.scheduler.reminders import (
    REMINDER_BANDS,
    ReminderBand,
    ReminderScheduler,
    ReminderSweepReport,
)

__all__ = [
    "REMINDER_BANDS",
    "DispatchGuard",
    "ReminderBand",
    "ReminderScheduler",
    "ReminderSweepReport",
]
