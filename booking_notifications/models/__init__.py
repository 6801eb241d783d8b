"""Models module for the notification pipeline.

Defines Pydantic v2 data models for notification jobs, appointments,
businesses, outgoing messages and SMTP configuration.

Author: Odiseo
Created: 2026-03-02
Version: 1.0.0
"""

from booking_notifications.models.appointment import (
    Appointment,
    AppointmentStatus,
    Business,
    ReminderSettings,
    ReminderWindow,
)
from booking_notifications.models.context import AppointmentContext
from booking_notifications.models.message import OutgoingMessage, RenderedContent
from booking_notifications.models.notification import (
    NotificationJob,
    NotificationKind,
    NotificationStatus,
)
from booking_notifications.models.smtp_config import SMTPConfig, SMTPCredentials
from booking_notifications.models.stats import QueueStats

__all__ = [
    # Enums
    "AppointmentStatus",
    "NotificationKind",
    "NotificationStatus",
    "ReminderWindow",
    # Models
    "Appointment",
    "AppointmentContext",
    "Business",
    "NotificationJob",
    "OutgoingMessage",
    "QueueStats",
    "ReminderSettings",
    "RenderedContent",
    "SMTPConfig",
    "SMTPCredentials",
]
