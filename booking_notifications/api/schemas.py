"""API request and response schemas.

Pydantic models for API validation and serialization.

Version: 1.1.0
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, EmailStr, Field

from booking_notifications.models.notification import NotificationJob


class NotificationRequest(BaseModel):
    """Request model for POST /notifications endpoint."""

    kind: str = Field(
        ...,
        min_length=1,
        description="Notification kind (booking_confirmation, reminder_24h, ...)",
    )
    recipient_address: EmailStr = Field(..., description="Recipient email address")
    recipient_name: str | None = Field(default=None, description="Recipient name")
    variables: dict[str, Any] = Field(
        default_factory=dict,
        description="Variables for template rendering",
    )
    appointment_ref: str | None = Field(default=None, description="Related appointment ID")
    business_ref: str | None = Field(default=None, description="Related business ID")
    customer_ref: str | None = Field(default=None, description="Related customer ID")
    delay_minutes: float = Field(
        default=0,
        ge=0,
        le=60 * 24 * 30,
        description="Minutes to wait before the notification becomes due",
    )


class NotificationResponse(BaseModel):
    """A stored notification job, without its rendered bodies."""

    id: int
    kind: str
    recipient_address: str
    recipient_name: str | None = None
    appointment_ref: str | None = None
    subject: str
    status: str
    retry_count: int
    max_retries: int
    scheduled_for: datetime
    sent_at: datetime | None = None
    failure_reason: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_job(cls, job: NotificationJob) -> NotificationResponse:
        return cls(
            **job.model_dump(
                include=set(cls.model_fields),
                exclude={"kind", "status"},
            ),
            kind=job.kind.value,
            status=job.status.value,
        )


class EnqueueResponse(BaseModel):
    """Response model for POST /notifications endpoint."""

    status: str = Field(description="Request status (accepted)")
    queued: bool = Field(description="Whether the notification was queued")
    job_id: int = Field(description="Notification job ID")
    scheduled_for: datetime = Field(description="When the job becomes due")
    detail: str = Field(description="Status message")
    timestamp: datetime = Field(default_factory=lambda: datetime.now())


class AppointmentNotificationsResponse(BaseModel):
    """Response model for GET /appointments/{ref}/notifications endpoint."""

    appointment_ref: str
    notifications: list[NotificationResponse] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=lambda: datetime.now())


class QueueStatusResponse(BaseModel):
    """Response model for GET /queue/status endpoint."""

    pending: int = Field(description="Jobs waiting for delivery or retry")
    sent: int = Field(description="Successfully delivered jobs")
    failed: int = Field(description="Permanently failed jobs")
    total: int = Field(description="All jobs")
    success_rate: float = Field(description="Sent share of finished jobs, in percent")
    timestamp: datetime = Field(default_factory=lambda: datetime.now())


class HealthResponse(BaseModel):
    """Response model for GET /health endpoint."""

    status: str = Field(description="Overall service status")
    db: str = Field(description="Database connection status")
    email_provider: str = Field(description="Transport configuration status")
    version: str = Field(description="Service version")
    timestamp: datetime = Field(default_factory=lambda: datetime.now())


class ProcessQueueResponse(BaseModel):
    """Response model for POST /queue/process endpoint."""

    sent: int = Field(description="Jobs delivered")
    retried: int = Field(description="Jobs scheduled for retry")
    failed: int = Field(description="Jobs that exhausted their retries")
    skipped: int = Field(description="Jobs whose outcome could not be recorded")
    detail: str = Field(description="Processing summary")
    timestamp: datetime = Field(default_factory=lambda: datetime.now())


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str = Field(description="Error type")
    message: str = Field(description="Error description")
    code: str = Field(description="Error code")
    timestamp: datetime = Field(default_factory=lambda: datetime.now())
