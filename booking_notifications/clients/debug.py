"""Debug transport: logs messages instead of sending them.

Enabled with EMAIL_DEBUG_MODE=true for local development.
"""

from __future__ import annotations

from datetime import datetime

from booking_notifications.core.logger import get_logger
from booking_notifications.models.message import OutgoingMessage

logger = get_logger(__name__)


class DebugTransport:
    """Transport that records every message in the log and in ``sent``."""

    def __init__(self) -> None:
        self.sent: list[OutgoingMessage] = []

    def send(self, message: OutgoingMessage) -> str:
        message_id = f"debug-{datetime.now().strftime('%Y%m%d%H%M%S%f')}"
        sender = message.credentials.username if message.credentials else message.from_email
        logger.info(
            f"[DEBUG MODE] Email not sent: to={message.to} subject={message.subject!r} "
            f"reply_to={message.reply_to or '-'} from={sender or '(default)'}"
        )
        logger.debug(f"[DEBUG MODE] Body ({message_id}):\n{message.body_text or message.body_html}")
        self.sent.append(message)
        return message_id

    def validate_connection(self) -> bool:
        return True

    def close(self) -> None:
        pass
