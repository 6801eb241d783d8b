"""Reminder scheduler: sends 24h and 1h appointment reminders.

Each tick scans pending appointments and, for every reminder window whose
band contains the time left before the appointment, sends the reminder
directly through the transport (the queue is bypassed) and persists the
window's sent flag.

A reminder is sent at most once per (appointment, window):
- the persisted flag is authoritative and is set with a conditional update;
- a process-local DispatchGuard is claimed before sending, so two
  evaluations in one process cannot both dispatch, and released on failure
  so the next tick can retry while still inside the band.

Author: Odiseo
Created: 2026-03-02
Version: 1.0.0
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from booking_notifications.clients import Transport, send_with_deadline
from booking_notifications.config import NotificationConfig
from booking_notifications.core.logger import get_logger, log_context
from booking_notifications.database.appointments import AppointmentStore
from booking_notifications.models.appointment import Appointment, Business, ReminderWindow
from booking_notifications.models.context import AppointmentContext
from booking_notifications.models.message import OutgoingMessage
from booking_notifications.models.notification import NotificationKind
from booking_notifications.scheduler.guard import DispatchGuard
from booking_notifications.templates.renderer import TemplateRenderer

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReminderBand:
    """Eligibility band for one reminder window.

    A reminder is due when ``lower < minutes_until <= upper``. The band is
    wider than the reminder tick interval so that every appointment falls
    inside it on at least one tick.
    """

    window: ReminderWindow
    kind: NotificationKind
    lower: float
    upper: float

    def contains(self, minutes_until: float) -> bool:
        return self.lower < minutes_until <= self.upper


REMINDER_BANDS: tuple[ReminderBand, ...] = (
    ReminderBand(ReminderWindow.DAY_BEFORE, NotificationKind.REMINDER_24H, 1420, 1440),
    ReminderBand(ReminderWindow.HOUR_BEFORE, NotificationKind.REMINDER_1H, 50, 60),
)


@dataclass
class ReminderSweepReport:
    """Outcome of one reminder tick."""

    checked: int = 0
    sent: int = 0
    failed: int = 0
    errors: int = 0
    skipped: bool = False


class ReminderScheduler:
    """Periodic reminder sweep over pending appointments."""

    def __init__(
        self,
        store: AppointmentStore,
        renderer: TemplateRenderer,
        transport: Transport,
        config: NotificationConfig | None = None,
        guard: DispatchGuard | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.renderer = renderer
        self.transport = transport
        self.config = config or NotificationConfig()
        self.guard = guard or DispatchGuard(
            ttl_seconds=self.config.REMINDER_GUARD_TTL_SECONDS,
            max_entries=self.config.REMINDER_GUARD_MAX_ENTRIES,
        )
        self.clock = clock
        self._tick_lock = asyncio.Lock()

    async def run_once(self, now: datetime | None = None) -> ReminderSweepReport:
        """Run one sweep; skipped if a previous sweep is still running."""
        if self._tick_lock.locked():
            logger.warning("Reminder sweep still in progress, skipping this tick")
            return ReminderSweepReport(skipped=True)

        async with self._tick_lock:
            return await self._sweep(now or self.clock())

    async def _sweep(self, now: datetime) -> ReminderSweepReport:
        report = ReminderSweepReport()
        appointments = self.store.list_pending_appointments()
        logger.info(f"Checking {len(appointments)} pending appointments for reminders")

        for appointment in appointments:
            report.checked += 1
            try:
                await self._check_appointment(appointment, now, report)
            except Exception as e:
                report.errors += 1
                logger.error(
                    f"Reminder check failed for appointment {appointment.id}: {e}",
                    exc_info=True,
                )

        if report.sent or report.failed:
            logger.info(
                f"Reminder sweep done: {report.sent} sent, {report.failed} failed "
                f"({report.checked} checked)"
            )
        return report

    async def _check_appointment(
        self, appointment: Appointment, now: datetime, report: ReminderSweepReport
    ) -> None:
        business = self.store.get_business(appointment.business_email)
        if business is None:
            logger.debug(f"Business not found for appointment {appointment.id}")
            return
        if not business.reminder_settings.enable_email_reminder:
            return

        minutes_until = appointment.minutes_until(now)

        for band in REMINDER_BANDS:
            if not business.reminder_settings.allows(band.window):
                continue
            if not band.contains(minutes_until):
                continue
            if appointment.reminder_sent(band.window):
                continue

            key = DispatchGuard.key(appointment.id, band.window.value)
            if not self.guard.claim(key, now):
                logger.debug(f"Reminder {key} already dispatched by this process")
                continue

            try:
                sent = await self._dispatch(appointment, business, band)
            except Exception:
                self.guard.release(key)
                raise

            if not sent:
                self.guard.release(key)
                report.failed += 1
                continue

            report.sent += 1
            # Flag write failures keep the guard claimed so this process won't resend
            self.store.mark_reminder_sent(appointment.id, band.window, now)

    async def _dispatch(
        self, appointment: Appointment, business: Business, band: ReminderBand
    ) -> bool:
        """Render and send one reminder. Returns False on a send failure."""
        variables = AppointmentContext.from_appointment(appointment, business).to_variables()
        content = self.renderer.render(band.kind, variables)

        credentials = business.smtp_credentials
        message = OutgoingMessage(
            to=appointment.customer_email,
            recipient_name=appointment.customer_name or None,
            subject=content.subject,
            body_html=content.body_html,
            body_text=content.body_text,
            reply_to=business.email,
            from_email=business.email if credentials else None,
            from_name=business.name,
            credentials=credentials,
        )

        context = log_context(
            band.kind.value, recipient=appointment.customer_email, appointment=appointment.id
        )
        try:
            await send_with_deadline(
                self.transport, message, self.config.TRANSPORT_TIMEOUT_SECONDS
            )
        except Exception as e:
            logger.warning(f"{context} | send failed, will retry next tick: {e}")
            return False

        logger.info(f"{context} | reminder sent")
        return True
