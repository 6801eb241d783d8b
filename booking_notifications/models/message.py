"""Outgoing message models.

Defines the rendered content returned by the template renderer and the
message handed to a transport.

Author: Odiseo
Created: 2026-03-02
Version: 1.0.0
"""

from pydantic import BaseModel, Field

from booking_notifications.models.smtp_config import SMTPCredentials


class RenderedContent(BaseModel):
    """Subject and bodies produced for one notification kind."""

    subject: str = Field(..., min_length=1, max_length=500)
    body_html: str = Field(...)
    body_text: str | None = Field(default=None)


class OutgoingMessage(BaseModel):
    """A single email ready for a transport.

    Transports must treat the same message sent twice as two independent
    sends; delivery retries resend identical content.

    Attributes:
        to: Recipient email address.
        recipient_name: Recipient display name (optional).
        subject: Subject line.
        body_html: HTML body.
        body_text: Plain-text alternative (optional).
        reply_to: Reply-To address (optional).
        from_email: Sender address override (optional).
        from_name: Sender display name override (optional).
        credentials: Mailbox login override (optional).
    """

    to: str = Field(..., min_length=3)
    recipient_name: str | None = Field(default=None)
    subject: str = Field(..., min_length=1)
    body_html: str = Field(...)
    body_text: str | None = Field(default=None)
    reply_to: str | None = Field(default=None)
    from_email: str | None = Field(default=None)
    from_name: str | None = Field(default=None)
    credentials: SMTPCredentials | None = Field(default=None)
