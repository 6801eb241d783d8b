"""Read/flag access to the booking system's appointments and businesses.

The pipeline never creates appointments; it reads pending ones for the
reminder sweep and persists the per-window reminder-sent flags.

Version: 1.0.0
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import ValidationError

from booking_notifications.config import NotificationConfig
from booking_notifications.core.exceptions import AppointmentStoreError
from booking_notifications.core.logger import get_logger
from booking_notifications.database.connection import Database, with_db_retry
from booking_notifications.models.appointment import (
    Appointment,
    AppointmentStatus,
    Business,
    ReminderSettings,
    ReminderWindow,
)

logger = get_logger(__name__)

_REMINDER_COLUMNS = {
    ReminderWindow.DAY_BEFORE: ("reminder_24h_sent", "reminder_24h_sent_at"),
    ReminderWindow.HOUR_BEFORE: ("reminder_1h_sent", "reminder_1h_sent_at"),
}


def _row_to_business(row: dict[str, Any]) -> Business:
    row_dict = dict(row)
    settings = ReminderSettings(
        enable_email_reminder=bool(row_dict.pop("enable_email_reminder", False)),
        reminder_before_24h=bool(row_dict.pop("reminder_before_24h", True)),
        reminder_before_1h=bool(row_dict.pop("reminder_before_1h", True)),
    )
    return Business(**row_dict, reminder_settings=settings)


class AppointmentStore:
    """PostgreSQL access to appointments and their owning businesses."""

    def __init__(self, db: Database, config: NotificationConfig | None = None) -> None:
        self.db = db
        self.config = config or db.config
        self.appointments_table = f"{self.db.schema}.appointments"
        self.businesses_table = f"{self.db.schema}.businesses"

    @with_db_retry(
        error_message="Failed to list pending appointments",
        error_class=AppointmentStoreError,
    )
    def list_pending_appointments(self, conn) -> list[Appointment]:
        """All appointments still in ``pending`` status with a date and time."""
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT id::text AS id, customer_name, customer_email, customer_phone,
                       customer_id::text AS customer_ref, business_email, business_name,
                       business_address, service, date, time, notes, status,
                       reminder_24h_sent, reminder_24h_sent_at,
                       reminder_1h_sent, reminder_1h_sent_at
                FROM {self.appointments_table}
                WHERE status = %s
                  AND date IS NOT NULL
                  AND time IS NOT NULL
                """,
                (AppointmentStatus.PENDING.value,),
            )
            rows = cur.fetchall()
        conn.commit()

        appointments = []
        for row in rows:
            try:
                appointments.append(Appointment(**dict(row)))
            except ValidationError as e:
                logger.error(f"Skipping unreadable appointment {row.get('id')}: {e}")
        logger.debug(f"Found {len(appointments)} pending appointments")
        return appointments

    @with_db_retry(
        error_message="Failed to load business",
        error_class=AppointmentStoreError,
    )
    def get_business(self, conn, business_email: str) -> Business | None:
        """Look up the business owning an appointment by its contact email.

        Returns:
            The business, or None when no business has that email.
        """
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT id::text AS id, name, email, phone, address,
                       enable_email_reminder, reminder_before_24h, reminder_before_1h,
                       smtp_email, smtp_password
                FROM {self.businesses_table}
                WHERE email = %s
                LIMIT 1
                """,
                (business_email,),
            )
            row = cur.fetchone()
        conn.commit()

        if not row:
            return None
        return _row_to_business(row)

    @with_db_retry(
        error_message="Failed to persist reminder flag",
        error_class=AppointmentStoreError,
    )
    def mark_reminder_sent(
        self, conn, appointment_id: str, window: ReminderWindow, sent_at: datetime
    ) -> bool:
        """Set the reminder-sent flag for one window.

        The update only applies while the flag is still unset.

        Returns:
            True if this call set the flag, False if it was already set.
        """
        flag_column, at_column = _REMINDER_COLUMNS[window]
        with conn.cursor() as cur:
            cur.execute(
                f"""
                UPDATE {self.appointments_table}
                SET {flag_column} = TRUE, {at_column} = %s
                WHERE id = %s AND {flag_column} = FALSE
                """,
                (sent_at, appointment_id),
            )
            updated = cur.rowcount == 1
        conn.commit()

        if not updated:
            logger.warning(
                f"Reminder {window.value} flag already set for appointment {appointment_id}"
            )
        return updated
