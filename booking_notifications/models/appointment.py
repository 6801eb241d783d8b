"""Appointment and business models consumed by the notification pipeline.

Only the fields the pipeline reads or writes are modelled here: appointment
timing and contact data, the embedded reminder-sent flags, and the business
reminder settings and outgoing identity.

Author: Odiseo
Created: 2026-03-02
Version: 1.0.0
"""

from __future__ import annotations

from datetime import date as date_type
from datetime import datetime
from datetime import time as time_type
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from booking_notifications.models.smtp_config import SMTPCredentials


class AppointmentStatus(str, Enum):
    """Appointment lifecycle status."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class ReminderWindow(str, Enum):
    """Reminder window classes tracked per appointment."""

    DAY_BEFORE = "24h"
    HOUR_BEFORE = "1h"


class Appointment(BaseModel):
    """Appointment record as seen by the reminder scheduler.

    The appointment moment is stored as separate local ``date`` (YYYY-MM-DD)
    and ``time`` (HH:MM) strings; there is no combined timestamp column.
    """

    id: str = Field(..., description="Appointment ID")
    customer_name: str = Field(default="", description="Customer name")
    customer_email: str = Field(..., description="Customer email address")
    customer_phone: str | None = Field(default=None, description="Customer phone")
    customer_ref: str | None = Field(default=None, description="Registered customer ID")
    business_email: str = Field(..., description="Owning business email (lookup key)")
    business_name: str | None = Field(default=None, description="Business name snapshot")
    business_address: str | None = Field(default=None, description="Business address")
    service: str = Field(default="", description="Booked service name")
    date: str = Field(..., description="Local date, YYYY-MM-DD")
    time: str = Field(..., description="Local time, HH:MM")
    notes: str | None = Field(default=None, description="Customer notes")
    status: AppointmentStatus = Field(
        default=AppointmentStatus.PENDING, description="Lifecycle status"
    )
    reminder_24h_sent: bool = Field(default=False)
    reminder_24h_sent_at: datetime | None = Field(default=None)
    reminder_1h_sent: bool = Field(default=False)
    reminder_1h_sent_at: datetime | None = Field(default=None)

    model_config = {"from_attributes": True}

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, v: Any) -> Any:
        """Accept DATE columns as well as YYYY-MM-DD strings."""
        if isinstance(v, date_type):
            return v.strftime("%Y-%m-%d")
        return v

    @field_validator("time", mode="before")
    @classmethod
    def normalize_time(cls, v: Any) -> Any:
        """Accept TIME columns and HH:MM:SS strings, keeping HH:MM."""
        if isinstance(v, time_type):
            return v.strftime("%H:%M")
        if isinstance(v, str) and v.count(":") == 2:
            hours, minutes, _ = v.split(":")
            return f"{hours.zfill(2)}:{minutes}"
        return v

    @property
    def scheduled_at(self) -> datetime:
        """Local appointment moment built from the date and time fields.

        Raises:
            ValueError: If date or time is malformed.
        """
        return datetime.strptime(f"{self.date} {self.time}", "%Y-%m-%d %H:%M")

    def minutes_until(self, now: datetime) -> float:
        """Minutes from ``now`` until the appointment (negative once passed)."""
        return (self.scheduled_at - now).total_seconds() / 60

    def reminder_sent(self, window: ReminderWindow) -> bool:
        if window == ReminderWindow.DAY_BEFORE:
            return self.reminder_24h_sent
        return self.reminder_1h_sent


class ReminderSettings(BaseModel):
    """Per-business reminder switches."""

    enable_email_reminder: bool = Field(default=False)
    reminder_before_24h: bool = Field(default=True)
    reminder_before_1h: bool = Field(default=True)

    def allows(self, window: ReminderWindow) -> bool:
        """Whether reminders of ``window`` class are enabled."""
        if not self.enable_email_reminder:
            return False
        if window == ReminderWindow.DAY_BEFORE:
            return self.reminder_before_24h
        return self.reminder_before_1h


class Business(BaseModel):
    """Business record: contact data, reminder settings, sender identity."""

    id: str | None = Field(default=None, description="Business ID")
    name: str = Field(..., description="Business display name")
    email: str = Field(..., description="Business contact email")
    phone: str | None = Field(default=None)
    address: str | None = Field(default=None)
    reminder_settings: ReminderSettings = Field(default_factory=ReminderSettings)
    smtp_email: str | None = Field(
        default=None, description="Business mailbox used to send reminders"
    )
    smtp_password: str | None = Field(default=None, description="Mailbox password")

    model_config = {"from_attributes": True}

    @property
    def smtp_credentials(self) -> SMTPCredentials | None:
        """Own outgoing mailbox credentials, if fully configured."""
        if self.smtp_email and self.smtp_password:
            return SMTPCredentials(username=self.smtp_email, password=self.smtp_password)
        return None
