"""Delivery transports.

Any object with ``send(message: OutgoingMessage) -> str`` raising
TransportError on failure can be used by the worker and the scheduler.

Author: Odiseo
Created: 2025-10-18
Version: 1.1.0
"""

from __future__ import annotations

import asyncio
from typing import Protocol

from booking_notifications.clients.debug import DebugTransport
from booking_notifications.clients.smtp import SMTPTransport
from booking_notifications.config import NotificationConfig
from booking_notifications.core.exceptions import TransportTimeout
from booking_notifications.core.logger import get_logger
from booking_notifications.models.message import OutgoingMessage

logger = get_logger(__name__)


class Transport(Protocol):
    def send(self, message: OutgoingMessage) -> str: ...

    def close(self) -> None: ...


def build_transport(config: NotificationConfig) -> Transport:
    """Create the transport selected by configuration.

    Raises:
        NotificationConfigError: If SMTP credentials are missing outside debug mode.
    """
    if config.EMAIL_DEBUG_MODE:
        logger.warning("EMAIL_DEBUG_MODE enabled: emails are logged, not sent")
        return DebugTransport()

    config.validate_smtp_config()
    return SMTPTransport(config.get_smtp_config())


async def send_with_deadline(transport: Transport, message: OutgoingMessage, timeout: float) -> str:
    """Run a blocking ``transport.send`` in a worker thread under a deadline.

    The thread itself cannot be interrupted; on timeout the caller stops
    waiting and the attempt counts as failed.

    Raises:
        TransportTimeout: If the send does not finish within ``timeout`` seconds.
        TransportError: If the transport reports a failure.
    """
    try:
        return await asyncio.wait_for(asyncio.to_thread(transport.send, message), timeout)
    except asyncio.TimeoutError:
        raise TransportTimeout(timeout) from None


__all__ = [
    "DebugTransport",
    "SMTPTransport",
    "Transport",
    "build_transport",
    "send_with_deadline",
]
