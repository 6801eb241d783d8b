"""Appointment lifecycle hooks that enqueue notifications.

Called by the booking system when an appointment is created or changes
status. Enqueue failures are logged and swallowed: a broken notification
must never fail the booking operation that triggered it.

Author: Odiseo
Created: 2026-03-02
Version: 1.0.0
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any

from booking_notifications.config import NotificationConfig
from booking_notifications.core.logger import get_logger
from booking_notifications.database.queue import NotificationQueue
from booking_notifications.models.appointment import Appointment, AppointmentStatus, Business
from booking_notifications.models.context import AppointmentContext
from booking_notifications.models.notification import NotificationJob, NotificationKind
from booking_notifications.scheduler.reminders import REMINDER_BANDS

logger = get_logger(__name__)


class AppointmentNotifier:
    """Enqueues the notifications belonging to appointment lifecycle events."""

    def __init__(
        self,
        queue: NotificationQueue,
        config: NotificationConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.queue = queue
        self.config = config or NotificationConfig()
        self.clock = clock

    def appointment_created(
        self, appointment: Appointment, business: Business | None = None
    ) -> list[NotificationJob]:
        """Confirmation to the customer and a new-booking alert to the business.

        With QUEUE_REMINDERS_ON_CREATE enabled, delayed reminder jobs are
        enqueued too; reminders whose send time has already passed are skipped.
        """
        variables = AppointmentContext.from_appointment(appointment, business).to_variables()
        jobs = [
            self._safe_enqueue(
                NotificationKind.BOOKING_CONFIRMATION,
                appointment.customer_email,
                appointment.customer_name,
                variables,
                appointment.id,
            ),
            self._safe_enqueue(
                NotificationKind.NEW_BOOKING_ALERT,
                variables["business_email"],
                variables.get("business_name"),
                variables,
                appointment.id,
            ),
        ]

        if self.config.QUEUE_REMINDERS_ON_CREATE:
            jobs.extend(self._queue_reminders(appointment, variables))

        return [job for job in jobs if job is not None]

    def _queue_reminders(
        self, appointment: Appointment, variables: dict[str, Any]
    ) -> list[NotificationJob | None]:
        try:
            minutes_until = appointment.minutes_until(self.clock())
        except ValueError as e:
            logger.warning(f"Cannot queue reminders for appointment {appointment.id}: {e}")
            return []

        jobs = []
        for band in REMINDER_BANDS:
            delay = minutes_until - band.upper
            if delay <= 0:
                logger.debug(
                    f"Skipping {band.kind.value} for appointment {appointment.id}: "
                    f"send time already passed"
                )
                continue
            jobs.append(
                self._safe_enqueue(
                    band.kind,
                    appointment.customer_email,
                    appointment.customer_name,
                    variables,
                    appointment.id,
                    delay_minutes=delay,
                )
            )
        return jobs

    def status_changed(
        self,
        appointment: Appointment,
        status: AppointmentStatus | str,
        business: Business | None = None,
        rating_url: str | None = None,
    ) -> list[NotificationJob]:
        """Status update to the customer, plus a delayed rating request on completion."""
        status = AppointmentStatus(status)
        context = AppointmentContext.from_appointment(
            appointment, business, status=status.value, rating_url=rating_url
        )
        variables = context.to_variables()

        jobs = [
            self._safe_enqueue(
                NotificationKind.STATUS_UPDATE,
                appointment.customer_email,
                appointment.customer_name,
                variables,
                appointment.id,
            )
        ]

        if status == AppointmentStatus.COMPLETED:
            jobs.append(
                self._safe_enqueue(
                    NotificationKind.RATING_REQUEST,
                    appointment.customer_email,
                    appointment.customer_name,
                    variables,
                    appointment.id,
                    delay_minutes=self.config.RATING_REQUEST_DELAY_MINUTES,
                )
            )

        return [job for job in jobs if job is not None]

    def _safe_enqueue(
        self,
        kind: NotificationKind,
        recipient_address: str,
        recipient_name: str | None,
        variables: dict[str, Any],
        appointment_ref: str,
        delay_minutes: float = 0,
    ) -> NotificationJob | None:
        try:
            return self.queue.enqueue(
                kind,
                recipient_address,
                recipient_name or None,
                variables,
                appointment_ref=appointment_ref,
                delay_minutes=delay_minutes,
            )
        except Exception as e:
            logger.error(
                f"Failed to enqueue {kind.value} for appointment {appointment_ref}: {e}",
                exc_info=True,
            )
            return None
