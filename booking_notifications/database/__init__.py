"""Database layer: connection pool, notification queue, appointment store."""

from booking_notifications.database.appointments import AppointmentStore
from booking_notifications.database.connection import Database, with_db_retry
from booking_notifications.database.queue import NotificationQueue
from booking_notifications.database.schema import SchemaManager

__all__ = [
    "AppointmentStore",
    "Database",
    "NotificationQueue",
    "SchemaManager",
    "with_db_retry",
]
