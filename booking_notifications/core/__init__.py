"""Core module for the notification pipeline.

Provides the exception hierarchy and logging configuration.

Author: Odiseo
Created: 2026-03-02
Version: 1.0.0
"""

from booking_notifications.core.exceptions import (
    AppointmentStoreError,
    JobNotFound,
    NotificationConfigError,
    NotificationQueueError,
    NotificationServiceError,
    TemplateRenderError,
    TransportError,
    TransportTimeout,
    UnknownNotificationKind,
)
from booking_notifications.core.logger import (
    get_logger,
    get_logs_directory,
    log_context,
    setup_logging,
    setup_logging_from_config,
)

__all__ = [
    # Exceptions
    "NotificationServiceError",
    "NotificationConfigError",
    "NotificationQueueError",
    "JobNotFound",
    "UnknownNotificationKind",
    "AppointmentStoreError",
    "TransportError",
    "TransportTimeout",
    "TemplateRenderError",
    # Logging
    "get_logger",
    "setup_logging",
    "setup_logging_from_config",
    "get_logs_directory",
    "log_context",
]
