"""SMTP transport for notification delivery.

Sends rendered notifications via SMTP (Gmail, SendGrid, AWS SES and
compatible servers). The platform connection is reused between sends;
messages carrying their own mailbox credentials get a one-off connection.

Features:
- Connection reuse with automatic refresh
- TLS encryption
- Multipart emails (HTML + plaintext) with Reply-To and sender overrides
- Transient error detection

Author: Odiseo
Version: 2.2.0
"""

from __future__ import annotations

import smtplib
import threading
import time
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid

from booking_notifications.core.exceptions import TransportError
from booking_notifications.core.logger import get_logger
from booking_notifications.models.message import OutgoingMessage
from booking_notifications.models.smtp_config import SMTPConfig, SMTPCredentials

logger = get_logger(__name__)


class SMTPTransport:
    """SMTP delivery transport with connection reuse.

    ``send`` may be called from worker threads; the shared connection is
    guarded by a lock.

    Attributes:
        config: SMTP configuration.
    """

    # Connection timeout in seconds (refresh after this time)
    CONNECTION_TIMEOUT = 60

    def __init__(self, smtp_config: SMTPConfig) -> None:
        self.config = smtp_config

        self._connection: smtplib.SMTP | None = None
        self._last_used: float = 0
        self._lock = threading.Lock()

        logger.info(f"SMTP transport initialized: {self.config.host}:{self.config.port}")

    def _get_connection(self) -> smtplib.SMTP:
        """Get or create the shared SMTP connection. Caller holds the lock.

        Raises:
            TransportError: If connection cannot be established.
        """
        now = time.time()

        if self._connection and (now - self._last_used) < self.CONNECTION_TIMEOUT:
            try:
                status = self._connection.noop()[0]
                if status == 250:
                    self._last_used = now
                    return self._connection
            except (smtplib.SMTPException, OSError):
                logger.debug("Stale SMTP connection detected, reconnecting...")
            self._close_connection()

        self._connection = self._create_connection(self.config.username, self.config.password)
        self._last_used = time.time()
        return self._connection

    def _create_connection(self, username: str, password: str) -> smtplib.SMTP:
        """Open and authenticate a new SMTP connection.

        Raises:
            TransportError: If connection fails.
        """
        try:
            logger.debug(f"Connecting to SMTP: {self.config.host}:{self.config.port}")
            smtp = smtplib.SMTP(
                self.config.host,
                self.config.port,
                timeout=self.config.timeout,
            )

            if self.config.use_tls:
                smtp.starttls()

            if username:
                smtp.login(username, password)

            logger.debug(f"SMTP connection established as {username or '(anonymous)'}")
            return smtp

        except Exception as e:
            logger.error(f"Failed to establish SMTP connection: {e}")
            raise TransportError(
                f"Failed to connect to SMTP server: {e}",
                is_transient=self._is_transient_error(e),
            ) from e

    def _close_connection(self) -> None:
        if self._connection:
            try:
                self._connection.quit()
            except Exception as e:
                logger.debug(f"Error closing SMTP connection (non-critical): {e}")
            finally:
                self._connection = None
                self._last_used = 0

    def _build_mime(self, message: OutgoingMessage, from_email: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = formataddr((message.from_name or self.config.from_name, from_email))
        msg["To"] = (
            formataddr((message.recipient_name, message.to))
            if message.recipient_name
            else message.to
        )
        msg["Subject"] = message.subject
        msg["Message-ID"] = make_msgid(domain=from_email.rpartition("@")[2] or None)
        if message.reply_to:
            msg["Reply-To"] = message.reply_to

        if message.body_text:
            msg.attach(MIMEText(message.body_text, "plain", "utf-8"))
        msg.attach(MIMEText(message.body_html, "html", "utf-8"))
        return msg

    def send(self, message: OutgoingMessage) -> str:
        """Send one message.

        Args:
            message: Rendered message to deliver.

        Returns:
            The Message-ID header of the sent email.

        Raises:
            TransportError: If sending fails.
        """
        credentials = message.credentials
        from_email = message.from_email or (
            credentials.username if credentials else str(self.config.from_email)
        )

        try:
            mime = self._build_mime(message, from_email)
            if credentials:
                self._send_with_credentials(mime, from_email, message.to, credentials)
            else:
                self._send_shared(mime, from_email, message.to)

            logger.info(f"Email sent to {message.to} - Subject: {message.subject[:50]}")
            return mime["Message-ID"]

        except TransportError:
            raise
        except Exception as e:
            logger.error(f"Failed to send email to {message.to}: {e}", exc_info=True)
            raise TransportError(
                f"Failed to send email to {message.to}: {e}",
                is_transient=self._is_transient_error(e),
            ) from e

    def _send_shared(self, mime: MIMEMultipart, from_email: str, to: str) -> None:
        """Send over the shared connection, reconnecting once if it went stale."""
        max_attempts = 2

        with self._lock:
            for attempt in range(max_attempts):
                try:
                    smtp = self._get_connection()
                    smtp.send_message(mime, from_addr=from_email, to_addrs=[to])
                    return
                except (smtplib.SMTPException, OSError) as e:
                    logger.warning(f"SMTP send failed (attempt {attempt + 1}/{max_attempts}): {e}")
                    self._close_connection()
                    if attempt == max_attempts - 1:
                        raise TransportError(
                            f"Failed to send email after {max_attempts} attempts: {e}",
                            is_transient=True,
                        ) from e

    def _send_with_credentials(
        self,
        mime: MIMEMultipart,
        from_email: str,
        to: str,
        credentials: SMTPCredentials,
    ) -> None:
        smtp = self._create_connection(credentials.username, credentials.password)
        try:
            smtp.send_message(mime, from_addr=from_email, to_addrs=[to])
        except (smtplib.SMTPException, OSError) as e:
            raise TransportError(
                f"Failed to send email as {credentials.username}: {e}",
                is_transient=self._is_transient_error(e),
            ) from e
        finally:
            try:
                smtp.quit()
            except Exception as e:
                logger.debug(f"Error closing SMTP connection (non-critical): {e}")

    def validate_connection(self) -> bool:
        """Test SMTP connection and authentication."""
        try:
            logger.info("Testing SMTP connection...")
            with self._lock:
                self._get_connection()
            logger.info("SMTP connection test successful")
            return True

        except Exception as e:
            logger.error(f"SMTP connection test failed: {e}")
            return False

    def close(self) -> None:
        with self._lock:
            self._close_connection()
            logger.debug("SMTP transport closed")

    @staticmethod
    def _is_transient_error(error: Exception) -> bool:
        """Determine if error is temporary (retryable)."""
        error_str = str(error).lower()
        transient_keywords = [
            "timeout",
            "timed out",
            "connection",
            "temporarily",
            "try again",
            "unavailable",
            "refused",
            "reset",
            "broken pipe",
        ]
        return any(keyword in error_str for keyword in transient_keywords)

    def __enter__(self) -> SMTPTransport:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
