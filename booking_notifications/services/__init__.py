"""Entry points used by the booking system to trigger notifications."""

from booking_notifications.services.notifier import AppointmentNotifier

__all__ = ["AppointmentNotifier"]
