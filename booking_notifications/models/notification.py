"""Notification job models.

Defines notification kinds, job status, and the notification job record with
its state transition rules.

Author: Odiseo
Created: 2026-03-02
Version: 1.0.0
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from booking_notifications.core.exceptions import UnknownNotificationKind


class NotificationStatus(str, Enum):
    """Notification job status enumeration.

    Attributes:
        PENDING: Waiting for scheduled_for to pass (or for a retry).
        SENT: Delivered to the transport successfully.
        FAILED: Retry budget exhausted; terminal.
    """

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class NotificationKind(str, Enum):
    """Notification kind enumeration.

    Each kind maps to exactly one template.

    Attributes:
        BOOKING_CONFIRMATION: Sent to the customer when a booking is created.
        REMINDER_24H: Customer reminder one day before the appointment.
        REMINDER_1H: Customer reminder one hour before the appointment.
        STATUS_UPDATE: Appointment accepted, rejected, cancelled or completed.
        RATING_REQUEST: Feedback request after a completed appointment.
        NEW_BOOKING_ALERT: Sent to the business manager for a new booking.
    """

    BOOKING_CONFIRMATION = "booking_confirmation"
    REMINDER_24H = "reminder_24h"
    REMINDER_1H = "reminder_1h"
    STATUS_UPDATE = "status_update"
    RATING_REQUEST = "rating_request"
    NEW_BOOKING_ALERT = "new_booking_alert"

    @classmethod
    def parse(cls, value: NotificationKind | str) -> NotificationKind:
        """Coerce a raw value into a kind.

        Raises:
            UnknownNotificationKind: If value is not a known kind.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownNotificationKind(value) from None


class NotificationJob(BaseModel):
    """Notification queue record model.

    Represents a single row of the notification_jobs table. Content
    (subject and bodies) is a snapshot taken at enqueue time.

    Attributes:
        id: Unique job ID assigned by the database.
        kind: Notification kind.
        recipient_address: Destination email address.
        recipient_name: Destination display name (optional).
        appointment_ref: Related appointment (optional).
        business_ref: Related business (optional).
        customer_ref: Related customer; absent for unregistered customers.
        subject: Rendered subject line.
        body_html: Rendered HTML body.
        body_text: Rendered plain-text body (optional).
        variables: Template variables used for rendering.
        status: Current status (pending, sent, failed).
        retry_count: Failed delivery attempts so far.
        max_retries: Attempts allowed before the job is failed.
        scheduled_for: Earliest delivery time.
        sent_at: Delivery timestamp.
        failure_reason: Error from the last failed attempt.
        created_at: Enqueue timestamp.
        updated_at: Last update timestamp.
    """

    id: int = Field(..., description="Unique job ID")
    kind: NotificationKind = Field(..., description="Notification kind")
    recipient_address: str = Field(..., description="Recipient email address")
    recipient_name: str | None = Field(default=None, description="Recipient name")
    appointment_ref: str | None = Field(default=None, description="Appointment ID")
    business_ref: str | None = Field(default=None, description="Business ID")
    customer_ref: str | None = Field(default=None, description="Customer ID")
    subject: str = Field(..., max_length=500, description="Subject line")
    body_html: str = Field(..., description="HTML body")
    body_text: str | None = Field(default=None, description="Plain-text body")
    variables: dict[str, Any] = Field(
        default_factory=dict, description="Template variables snapshot"
    )
    status: NotificationStatus = Field(
        default=NotificationStatus.PENDING, description="Current status"
    )
    retry_count: int = Field(default=0, ge=0, description="Failed attempts")
    max_retries: int = Field(default=3, ge=1, le=10, description="Attempt budget")
    scheduled_for: datetime = Field(..., description="Earliest delivery time")
    sent_at: datetime | None = Field(default=None, description="Delivery time")
    failure_reason: str | None = Field(default=None, description="Last error")
    created_at: datetime = Field(..., description="Enqueue timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    model_config = {
        "from_attributes": True,
        "use_enum_values": False,
    }

    @property
    def is_terminal(self) -> bool:
        return self.status != NotificationStatus.PENDING

    def is_due(self, now: datetime) -> bool:
        """Whether the job may be handed to the delivery worker at ``now``."""
        return (
            self.status == NotificationStatus.PENDING
            and self.scheduled_for <= now
            and self.retry_count < self.max_retries
        )

    def register_delivery(self, now: datetime) -> NotificationJob:
        """Return the job after a successful delivery.

        Calling this on a job that is no longer pending returns it unchanged,
        so marking a job as sent twice is a no-op.
        """
        if self.is_terminal:
            return self
        return self.model_copy(
            update={
                "status": NotificationStatus.SENT,
                "sent_at": now,
                "updated_at": now,
            }
        )

    def register_failure(
        self, reason: str, now: datetime, retry_delay: timedelta
    ) -> NotificationJob:
        """Return the job after a failed delivery attempt.

        The retry counter grows by one. Reaching ``max_retries`` makes the job
        terminally failed; otherwise it stays pending and becomes due again
        after ``retry_delay``. Terminal jobs are returned unchanged.
        """
        if self.is_terminal:
            return self

        retry_count = self.retry_count + 1
        update: dict[str, Any] = {
            "retry_count": retry_count,
            "failure_reason": reason,
            "updated_at": now,
        }
        if retry_count >= self.max_retries:
            update["status"] = NotificationStatus.FAILED
        else:
            update["scheduled_for"] = now + retry_delay
        return self.model_copy(update=update)
