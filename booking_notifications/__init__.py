"""Booking Notifications - Asynchronous appointment notification pipeline.

Provides the notification side of an appointment booking platform:
- Durable notification queue with fixed-delay retry
- Delivery worker draining due jobs through SMTP
- Reminder scheduler sending 24h and 1h reminders exactly once
- Template-based rendering (Jinja2)
- Status tracking (pending → sent/failed)

Architecture:
    - PostgreSQL queue table (notification_jobs)
    - Delivery worker (polls queue every N seconds)
    - Reminder scheduler (sweeps pending appointments every N seconds)
    - SMTP and debug transports
    - Connection pooling with psycopg2

Modules:
    - core: Exceptions, logger
    - config: Pydantic v2 settings
    - models: Data models (NotificationJob, Appointment, Business, messages)
    - clients: Transports (SMTP, debug)
    - database: Queue and appointment store (PostgreSQL)
    - templates: Notification template rendering (Jinja2)
    - scheduler: Reminder sweep and dispatch guard
    - services: Appointment lifecycle hooks
    - worker: Delivery worker and pipeline runner

Usage:
    # Enqueue notifications from the booking system
    from booking_notifications import (
        AppointmentNotifier, Database, NotificationQueue, TemplateRenderer,
    )

    queue = NotificationQueue(Database(), TemplateRenderer())
    notifier = AppointmentNotifier(queue)
    notifier.appointment_created(appointment, business)

    # Run both periodic loops
    python -m booking_notifications.worker

Author: Odiseo
Created: 2025-10-18
Version: 1.0.0
"""

__version__ = "1.0.0"

# Clients
from booking_notifications.clients import DebugTransport, SMTPTransport, build_transport

# Configuration
from booking_notifications.config import NotificationConfig

# Core utilities
from booking_notifications.core import (
    AppointmentStoreError,
    JobNotFound,
    NotificationConfigError,
    NotificationQueueError,
    NotificationServiceError,
    TemplateRenderError,
    TransportError,
    TransportTimeout,
    UnknownNotificationKind,
    get_logger,
)

# Database
from booking_notifications.database import AppointmentStore, Database, NotificationQueue

# Models
from booking_notifications.models import (
    Appointment,
    AppointmentContext,
    AppointmentStatus,
    Business,
    NotificationJob,
    NotificationKind,
    NotificationStatus,
    OutgoingMessage,
    QueueStats,
    ReminderWindow,
    SMTPConfig,
)

# Scheduler
from booking_notifications.scheduler import DispatchGuard, ReminderScheduler

# Services
from booking_notifications.services import AppointmentNotifier

# Templates
from booking_notifications.templates import TemplateRenderer

# Worker
from booking_notifications.worker import DeliveryWorker, PipelineRunner

__all__ = [
    # Version
    "__version__",
    # Core exceptions
    "NotificationServiceError",
    "NotificationConfigError",
    "NotificationQueueError",
    "JobNotFound",
    "UnknownNotificationKind",
    "AppointmentStoreError",
    "TransportError",
    "TransportTimeout",
    "TemplateRenderError",
    "get_logger",
    # Configuration
    "NotificationConfig",
    # Models - Enums
    "AppointmentStatus",
    "NotificationKind",
    "NotificationStatus",
    "ReminderWindow",
    # Models - Core
    "Appointment",
    "AppointmentContext",
    "Business",
    "NotificationJob",
    "OutgoingMessage",
    "QueueStats",
    "SMTPConfig",
    # Clients
    "DebugTransport",
    "SMTPTransport",
    "build_transport",
    # Database
    "AppointmentStore",
    "Database",
    "NotificationQueue",
    # Scheduler
    "DispatchGuard",
    "ReminderScheduler",
    # Services
    "AppointmentNotifier",
    # Templates
    "TemplateRenderer",
    # Worker
    "DeliveryWorker",
    "PipelineRunner",
]
