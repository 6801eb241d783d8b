"""Custom exceptions for the notification pipeline.

Defines specific exception types for queue, store, transport and template
failures so callers can tell programmer errors (raised, never retried) from
transient delivery errors (converted into retry bookkeeping).

Author: Odiseo
Created: 2026-03-02
Version: 1.0.0
"""


class NotificationServiceError(Exception):
    """Base exception for all notification pipeline errors.

    Allows call sites (appointment handlers, periodic loops) to catch every
    pipeline error with a single except block.

    Example:
        try:
            queue.enqueue(...)
        except NotificationServiceError as e:
            logger.error(f"Notification error: {e}")
    """

    pass


class NotificationConfigError(NotificationServiceError):
    """Exception raised for configuration errors.

    Indicates invalid or missing settings in NotificationConfig, for example
    SMTP credentials missing while debug mode is off.

    Example:
        raise NotificationConfigError("SMTP_USER environment variable not set")
    """

    pass


class UnknownNotificationKind(NotificationServiceError):
    """Exception raised when a notification kind has no template.

    Programmer error: raised immediately to the caller and never retried.
    No job is persisted when this is raised from ``enqueue``.

    Attributes:
        kind (str): The rejected kind value.
    """

    def __init__(self, kind: object):
        """Initialize unknown kind error.

        Args:
            kind: The value that is not a known notification kind.
        """
        super().__init__(f"Unknown notification kind: {kind!r}")
        self.kind = kind


class NotificationQueueError(NotificationServiceError):
    """Exception raised for notification queue database operations.

    Indicates failures during enqueueing, status transitions or retrieval
    from PostgreSQL.

    Attributes:
        message (str): Description of the database error.
        job_id (int, optional): ID of the affected notification job.

    Example:
        raise NotificationQueueError("Failed to mark job as sent", job_id=42)
    """

    def __init__(self, message: str, job_id: int | None = None):
        """Initialize queue error.

        Args:
            message: Error description.
            job_id: Optional ID of affected notification job.
        """
        super().__init__(message)
        self.job_id = job_id


class JobNotFound(NotificationQueueError):
    """Exception raised when a notification job id does not exist."""

    def __init__(self, job_id: int):
        super().__init__(f"Notification job #{job_id} not found", job_id=job_id)


class AppointmentStoreError(NotificationServiceError):
    """Exception raised for appointment/business lookups and updates."""

    pass


class TransportError(NotificationServiceError):
    """Exception raised for mail transport connection/delivery failures.

    Attributes:
        message (str): Description of the transport error.
        is_transient (bool): Whether error is temporary (retry recommended).

    Example:
        raise TransportError(
            "Connection timeout to smtp.gmail.com:587",
            is_transient=True
        )
    """

    def __init__(self, message: str, is_transient: bool = False):
        """Initialize transport error.

        Args:
            message: Error description.
            is_transient: Whether error is temporary and retryable.
        """
        super().__init__(message)
        self.is_transient = is_transient


class TransportTimeout(TransportError):
    """Exception raised when a transport call exceeds its deadline."""

    def __init__(self, timeout: float):
        super().__init__(
            f"Transport call exceeded deadline of {timeout:g}s", is_transient=True
        )
        self.timeout = timeout


class TemplateRenderError(NotificationServiceError):
    """Exception raised for template rendering failures.

    Attributes:
        message (str): Description of the template error.
        template_name (str, optional): Name of the template that failed.

    Example:
        raise TemplateRenderError(
            "Missing variable: customer_name",
            template_name="booking_confirmation.html"
        )
    """

    def __init__(self, message: str, template_name: str | None = None):
        """Initialize template render error.

        Args:
            message: Error description.
            template_name: Optional name of the template that failed.
        """
        super().__init__(message)
        self.template_name = template_name
