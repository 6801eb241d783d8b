"""Delivery worker - drains due notification jobs through the transport.

Each tick reads the queue statistics, fetches a batch of due jobs and sends
them one after another. Outcomes are written back to the queue: delivered
jobs are marked sent, failed attempts go through the retry bookkeeping.

Version: 2.1.0
"""

from __future__ import annotations

from dataclasses import dataclass

from booking_notifications.clients import Transport, send_with_deadline
from booking_notifications.config import NotificationConfig
from booking_notifications.core.logger import get_logger, log_context
from booking_notifications.database.queue import NotificationQueue
from booking_notifications.models.message import OutgoingMessage
from booking_notifications.models.notification import NotificationJob, NotificationStatus

logger = get_logger(__name__)


@dataclass
class DeliveryReport:
    """Outcome of one delivery tick.

    Attributes:
        sent: Jobs delivered and marked sent.
        retried: Failed attempts rescheduled for a retry.
        failed: Jobs that exhausted their retry budget in this tick.
        skipped: Jobs whose outcome could not be recorded.
    """

    sent: int = 0
    retried: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def processed(self) -> int:
        return self.sent + self.retried + self.failed + self.skipped


class DeliveryWorker:
    """Notification queue processor.

    One job is in flight at a time. A single worker instance per queue is
    assumed: due jobs are not claimed before sending.
    """

    def __init__(
        self,
        queue: NotificationQueue,
        transport: Transport,
        config: NotificationConfig | None = None,
    ) -> None:
        self.queue = queue
        self.transport = transport
        self.config = config or NotificationConfig()

        self.processed_count = 0
        self.retry_count = 0
        self.failed_count = 0

    async def run_once(self) -> DeliveryReport:
        """Process one batch of due jobs.

        Store errors while reading the queue propagate to the caller;
        per-job errors never do.
        """
        report = DeliveryReport()

        stats = self.queue.stats()
        if stats.pending == 0:
            logger.debug("No pending notifications in queue")
            return report

        jobs = self.queue.fetch_due(self.config.WORKER_BATCH_SIZE)
        if not jobs:
            logger.debug(f"{stats.pending} pending notifications, none due yet")
            return report

        logger.info(f"Processing {len(jobs)} due notifications ({stats.pending} pending)")
        for job in jobs:
            await self._process_job(job, report)

        self.processed_count += report.sent
        self.retry_count += report.retried
        self.failed_count += report.failed

        logger.info(
            f"Batch done: {report.sent} sent, {report.retried} retried, "
            f"{report.failed} failed, {report.skipped} skipped"
        )
        return report

    def build_message(self, job: NotificationJob) -> OutgoingMessage:
        """Turn a stored job into a transport message.

        Replies go to the business when the job knows its email.
        """
        reply_to = job.variables.get("business_email") or self.config.DEFAULT_REPLY_TO or None
        return OutgoingMessage(
            to=job.recipient_address,
            recipient_name=job.recipient_name,
            subject=job.subject,
            body_html=job.body_html,
            body_text=job.body_text,
            reply_to=reply_to,
        )

    async def _process_job(self, job: NotificationJob, report: DeliveryReport) -> None:
        ctx = log_context(
            "deliver",
            job_id=job.id,
            recipient=job.recipient_address,
            kind=job.kind.value,
            attempt=f"{job.retry_count + 1}/{job.max_retries}",
        )

        try:
            message = self.build_message(job)
            await send_with_deadline(
                self.transport, message, self.config.TRANSPORT_TIMEOUT_SECONDS
            )
        except Exception as e:
            reason = str(e) or type(e).__name__
            logger.error(f"FAILED: {ctx} | Error: {reason}")
            self._record_failure(job, reason, report)
            return

        try:
            self.queue.mark_as_sent(job.id)
        except Exception as e:
            # Delivered but still pending: the job will be sent again
            report.skipped += 1
            logger.error(f"Delivered but not marked as sent: {ctx} | {e}", exc_info=True)
            return

        report.sent += 1
        logger.info(f"COMPLETED: {ctx}")

    def _record_failure(self, job: NotificationJob, reason: str, report: DeliveryReport) -> None:
        try:
            updated = self.queue.mark_as_failed(job.id, reason)
        except Exception as e:
            report.skipped += 1
            logger.error(f"Could not record failure for job #{job.id}: {e}", exc_info=True)
            return

        if updated.status == NotificationStatus.FAILED:
            report.failed += 1
        else:
            report.retried += 1

    def print_stats(self) -> None:
        """Log worker statistics (called on shutdown)."""
        total_attempts = self.processed_count + self.failed_count + self.retry_count
        total_jobs = self.processed_count + self.failed_count
        success_rate = (self.processed_count / total_jobs * 100) if total_jobs > 0 else 0

        logger.info("Delivery Worker Statistics:")
        logger.info(f"   Total attempts: {total_attempts}")
        logger.info(f"   Successfully sent: {self.processed_count}")
        logger.info(f"   Scheduled for retry: {self.retry_count}")
        logger.info(f"   Permanently failed: {self.failed_count}")
        logger.info(f"   Success rate: {success_rate:.1f}%")
