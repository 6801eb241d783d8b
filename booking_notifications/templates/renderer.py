"""Jinja2 template renderer for notification content.

Renders the subject line, HTML body and plain-text body for every
notification kind. Rendering is a pure function of (kind, variables).

Version: 1.0.0
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateNotFound

from booking_notifications.config import NotificationConfig
from booking_notifications.core.exceptions import TemplateRenderError
from booking_notifications.core.logger import get_logger
from booking_notifications.models.message import RenderedContent
from booking_notifications.models.notification import NotificationKind

logger = get_logger(__name__)

SUBJECT_TEMPLATES: dict[NotificationKind, str] = {
    NotificationKind.BOOKING_CONFIRMATION: "Appointment Confirmed - {{ business_name }}",
    NotificationKind.REMINDER_24H: (
        "Reminder: Your appointment with {{ business_name }} is tomorrow!"
    ),
    NotificationKind.REMINDER_1H: "Last Reminder: Your appointment starts in 1 hour!",
    NotificationKind.STATUS_UPDATE: "Appointment Status Update - {{ status }}",
    NotificationKind.RATING_REQUEST: "Please share your feedback from {{ business_name }}",
    NotificationKind.NEW_BOOKING_ALERT: (
        "New Booking - {{ customer_name }} has booked an appointment"
    ),
}


class TemplateRenderer:
    """Jinja2 renderer for notification templates.

    HTML bodies come from ``<kind>.html`` files; a ``<kind>.txt`` file is
    optional and a plain-text fallback is generated when it is missing.
    Subjects are rendered from SUBJECT_TEMPLATES without HTML escaping.
    """

    def __init__(self, template_dir: str | None = None, app_url: str | None = None) -> None:
        """Initialize template renderer.

        Args:
            template_dir: Path to templates directory (uses config if None).
            app_url: Front-end base URL exposed to templates as ``app_url``.

        Raises:
            TemplateRenderError: If the template directory does not exist.
        """
        config = None if template_dir and app_url else NotificationConfig()
        self.template_dir = Path(template_dir or config.TEMPLATE_DIR)
        self.app_url = app_url or config.APP_URL

        if not self.template_dir.is_dir():
            raise TemplateRenderError(f"Template directory not found: {self.template_dir}")

        self.env = Environment(
            loader=FileSystemLoader(self.template_dir),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["format_date"] = self._format_date
        self._subject_env = Environment(autoescape=False)

        logger.info(f"Template renderer initialized: {self.template_dir}")

    def render(
        self, kind: NotificationKind | str, variables: dict[str, Any]
    ) -> RenderedContent:
        """Render subject and bodies for a notification kind.

        Args:
            kind: Notification kind (enum or raw value).
            variables: Template variables.

        Returns:
            Rendered subject, HTML body and plain-text body.

        Raises:
            UnknownNotificationKind: If kind is not a known notification kind.
            TemplateRenderError: If the template is missing or fails to render.
        """
        kind = NotificationKind.parse(kind)
        context = {"app_url": self.app_url, **variables}

        subject = self.render_subject(kind, context)
        body_html = self.render_html(kind, context)
        body_text = self.render_text(kind, context)
        return RenderedContent(subject=subject, body_html=body_html, body_text=body_text)

    def render_subject(self, kind: NotificationKind, context: dict[str, Any]) -> str:
        try:
            template = self._subject_env.from_string(SUBJECT_TEMPLATES[kind])
            # Subjects are single-line headers
            return " ".join(template.render(**context).split())
        except Exception as e:
            raise TemplateRenderError(f"Failed to render subject for {kind.value}: {e}") from e

    def render_html(self, kind: NotificationKind, context: dict[str, Any]) -> str:
        """Render the HTML body.

        Raises:
            TemplateRenderError: If template not found or rendering fails.
        """
        template_name = f"{kind.value}.html"

        try:
            template = self.env.get_template(template_name)
            rendered = template.render(**context)
            logger.debug(f"HTML template rendered: {template_name} ({len(rendered)} bytes)")
            return rendered

        except TemplateNotFound:
            logger.error(f"HTML template not found: {template_name}")
            raise TemplateRenderError(
                f"Template not found: {template_name}",
                template_name=template_name,
            ) from None

        except Exception as e:
            logger.error(f"Failed to render HTML template: {e}")
            raise TemplateRenderError(
                f"Failed to render {template_name}: {e}",
                template_name=template_name,
            ) from e

    def render_text(self, kind: NotificationKind, context: dict[str, Any]) -> str:
        """Render the plain-text body, falling back to a generated one."""
        template_name = f"{kind.value}.txt"

        try:
            return self.env.get_template(template_name).render(**context)
        except TemplateNotFound:
            logger.debug(f"Text template not found: {template_name}, using fallback")
            return self._generate_fallback_text(kind, context)
        except Exception as e:
            logger.error(f"Failed to render text template: {e}")
            raise TemplateRenderError(
                f"Failed to render {template_name}: {e}",
                template_name=template_name,
            ) from e

    def _generate_fallback_text(self, kind: NotificationKind, context: dict[str, Any]) -> str:
        """Plain-text alternative when no .txt template exists."""
        customer_name = context.get("customer_name") or "there"
        business_name = context.get("business_name", "")
        details = (
            f"Service: {context.get('service_name', 'N/A')}\n"
            f"Date: {self._format_date(context.get('appointment_date', 'N/A'))}\n"
            f"Time: {context.get('appointment_time', 'N/A')}"
        )

        if kind == NotificationKind.BOOKING_CONFIRMATION:
            lines = [f"Hi {customer_name},", "", f"Your appointment with {business_name} is confirmed.", "", details]
        elif kind == NotificationKind.REMINDER_24H:
            lines = [f"Hi {customer_name},", "", f"Reminder: your appointment with {business_name} is tomorrow.", "", details]
        elif kind == NotificationKind.REMINDER_1H:
            lines = [f"Hi {customer_name},", "", f"Your appointment with {business_name} starts in 1 hour.", "", details]
        elif kind == NotificationKind.STATUS_UPDATE:
            status = str(context.get("status", "")).upper()
            lines = [f"Hi {customer_name},", "", f"Your appointment status is now: {status}", "", details]
        elif kind == NotificationKind.RATING_REQUEST:
            lines = [f"Hi {customer_name},", "", f"Thank you for visiting {business_name}! We'd love your feedback.", "", details]
        else:
            lines = [
                "You have a new appointment booking!",
                "",
                f"Customer: {context.get('customer_name', 'N/A')} <{context.get('customer_email', 'N/A')}>",
                details,
            ]

        return "\n".join(lines).strip()

    @staticmethod
    def _format_date(value: Any) -> str:
        """Jinja2 filter: 2025-01-15 -> Wednesday, January 15, 2025."""
        try:
            return datetime.strptime(str(value), "%Y-%m-%d").strftime("%A, %B %d, %Y")
        except ValueError:
            return str(value)

    def template_exists(self, kind: NotificationKind, format_type: str = "html") -> bool:
        """Check if a template file exists for a kind."""
        ext = "html" if format_type == "html" else "txt"
        return (self.template_dir / f"{kind.value}.{ext}").exists()
