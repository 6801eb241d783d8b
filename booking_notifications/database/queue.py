"""Notification queue backed by PostgreSQL.

Handles all persistence of notification jobs: enqueueing rendered content,
retrieving due jobs, and the sent/failed bookkeeping with fixed-delay retry.

Features:
- Content snapshot rendered once at enqueue time
- Row lock (FOR UPDATE) around every status transition
- Monotonic status: terminal jobs are never modified again

Author: Odiseo
Version: 2.2.0
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from psycopg2.extras import Json

from booking_notifications.config import NotificationConfig
from booking_notifications.core.exceptions import JobNotFound
from booking_notifications.core.logger import get_logger, log_context
from booking_notifications.database.connection import Database, with_db_retry
from booking_notifications.database.schema import SchemaManager
from booking_notifications.models.notification import (
    NotificationJob,
    NotificationKind,
    NotificationStatus,
)
from booking_notifications.models.stats import QueueStats
from booking_notifications.templates.renderer import TemplateRenderer

logger = get_logger(__name__)

_JOB_COLUMNS = """
    id, kind, recipient_address, recipient_name, appointment_ref,
    business_ref, customer_ref, subject, body_html, body_text, variables,
    status, retry_count, max_retries, scheduled_for, sent_at,
    failure_reason, created_at, updated_at
"""


def _json_default(value: Any) -> str:
    # Template variables may carry dates; store them as their string form
    return str(value)


def _row_to_job(row: dict[str, Any]) -> NotificationJob:
    row_dict = dict(row)
    variables = row_dict.get("variables")
    if isinstance(variables, str):
        row_dict["variables"] = json.loads(variables)
    elif variables is None:
        row_dict["variables"] = {}
    return NotificationJob(**row_dict)


class NotificationQueue:
    """Durable queue of notification jobs.

    Enqueue is called from request handlers and only writes a row; delivery
    happens later in the DeliveryWorker. Single consumer assumed: due jobs
    are read without claiming them.
    """

    def __init__(
        self,
        db: Database,
        renderer: TemplateRenderer,
        config: NotificationConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the queue.

        Args:
            db: Shared connection pool.
            renderer: Renders subject and bodies at enqueue time.
            config: Service configuration (uses db.config if None).
            clock: Source of the current local time.
        """
        self.db = db
        self.renderer = renderer
        self.config = config or db.config
        self.clock = clock
        self.table = f"{self.db.schema}.notification_jobs"
        self.retry_delay = timedelta(minutes=self.config.NOTIFICATION_RETRY_DELAY_MINUTES)

    def enqueue(
        self,
        kind: NotificationKind | str,
        recipient_address: str,
        recipient_name: str | None,
        variables: dict[str, Any],
        appointment_ref: str | None = None,
        delay_minutes: float = 0,
        business_ref: str | None = None,
        customer_ref: str | None = None,
    ) -> NotificationJob:
        """Render and persist a notification for later delivery.

        Args:
            kind: Notification kind (enum or raw value).
            recipient_address: Destination email address.
            recipient_name: Destination display name.
            variables: Template variables.
            appointment_ref: Related appointment (optional).
            delay_minutes: Minutes from now before the job becomes due.
            business_ref: Related business (defaults to variables["business_ref"]).
            customer_ref: Related customer (defaults to variables["customer_ref"]).

        Returns:
            The created pending job.

        Raises:
            UnknownNotificationKind: If kind is not recognised (nothing persisted).
            TemplateRenderError: If the template fails to render.
            NotificationQueueError: If the database write fails.
        """
        kind = NotificationKind.parse(kind)
        content = self.renderer.render(kind, variables)

        now = self.clock()
        job_values = {
            "kind": kind.value,
            "recipient_address": recipient_address,
            "recipient_name": recipient_name,
            "appointment_ref": appointment_ref,
            "business_ref": business_ref or variables.get("business_ref"),
            "customer_ref": customer_ref or variables.get("customer_ref"),
            "subject": content.subject,
            "body_html": content.body_html,
            "body_text": content.body_text,
            "variables": variables,
            "max_retries": self.config.NOTIFICATION_MAX_RETRIES,
            "scheduled_for": now + timedelta(minutes=delay_minutes),
            "now": now,
        }
        job = self._insert_job(job_values)

        logger.info(
            log_context(
                "enqueue",
                job_id=job.id,
                recipient=recipient_address,
                kind=kind.value,
                scheduled_for=job.scheduled_for.isoformat(timespec="minutes"),
            )
        )
        return job

    @with_db_retry(error_message="Failed to enqueue notification")
    def _insert_job(self, conn, values: dict[str, Any]) -> NotificationJob:
        with conn.cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO {self.table} (
                    kind, recipient_address, recipient_name, appointment_ref,
                    business_ref, customer_ref, subject, body_html, body_text,
                    variables, status, retry_count, max_retries, scheduled_for,
                    created_at, updated_at
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, 0, %s, %s, %s, %s)
                RETURNING {_JOB_COLUMNS}
                """,
                (
                    values["kind"],
                    values["recipient_address"],
                    values["recipient_name"],
                    values["appointment_ref"],
                    values["business_ref"],
                    values["customer_ref"],
                    values["subject"],
                    values["body_html"],
                    values["body_text"],
                    Json(values["variables"], dumps=lambda v: json.dumps(v, default=_json_default)),
                    NotificationStatus.PENDING.value,
                    values["max_retries"],
                    values["scheduled_for"],
                    values["now"],
                    values["now"],
                ),
            )
            row = cur.fetchone()
        conn.commit()
        return _row_to_job(row)

    @with_db_retry(error_message="Failed to fetch due notifications")
    def fetch_due(self, conn, limit: int = 10) -> list[NotificationJob]:
        """Get pending jobs whose scheduled time has passed, oldest first.

        Args:
            limit: Max jobs to retrieve (capped at 1000; nothing is fetched for 0).

        Returns:
            Due jobs ordered by creation time.
        """
        if limit <= 0:
            return []
        limit = min(limit, 1000)
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT {_JOB_COLUMNS}
                FROM {self.table}
                WHERE status = %s
                  AND scheduled_for <= %s
                  AND retry_count < max_retries
                ORDER BY created_at ASC, id ASC
                LIMIT %s
                """,
                (NotificationStatus.PENDING.value, self.clock(), limit),
            )
            rows = cur.fetchall()
        conn.commit()

        if not rows:
            logger.debug("No due notifications in queue")
            return []

        jobs = [_row_to_job(row) for row in rows]
        logger.info(f"Retrieved {len(jobs)} due notifications")
        return jobs

    @with_db_retry(error_message="Failed to mark notification as sent")
    def mark_as_sent(self, conn, job_id: int) -> NotificationJob:
        """Mark a job as delivered.

        Marking an already-terminal job is a no-op that returns the stored job.

        Raises:
            JobNotFound: If the job does not exist.
        """
        with conn.cursor() as cur:
            job = self._lock_job(cur, job_id)
            updated = job.register_delivery(self.clock())
            if updated is not job:
                cur.execute(
                    f"""
                    UPDATE {self.table}
                    SET status = %s, sent_at = %s, updated_at = %s
                    WHERE id = %s
                    """,
                    (updated.status.value, updated.sent_at, updated.updated_at, job_id),
                )
        conn.commit()

        if updated is job:
            logger.debug(f"Job #{job_id} already {job.status.value}, not marking as sent")
        else:
            logger.info(log_context("sent", job_id=job_id, recipient=job.recipient_address))
        return updated

    @with_db_retry(error_message="Failed to mark notification as failed")
    def mark_as_failed(self, conn, job_id: int, reason: str) -> NotificationJob:
        """Record a failed delivery attempt.

        The job is rescheduled after the fixed retry delay, or becomes
        terminally failed once its retry budget is spent.

        Raises:
            JobNotFound: If the job does not exist.
        """
        with conn.cursor() as cur:
            job = self._lock_job(cur, job_id)
            updated = job.register_failure(reason, self.clock(), self.retry_delay)
            if updated is not job:
                cur.execute(
                    f"""
                    UPDATE {self.table}
                    SET status = %s, retry_count = %s, scheduled_for = %s,
                        failure_reason = %s, updated_at = %s
                    WHERE id = %s
                    """,
                    (
                        updated.status.value,
                        updated.retry_count,
                        updated.scheduled_for,
                        updated.failure_reason,
                        updated.updated_at,
                        job_id,
                    ),
                )
        conn.commit()

        if updated is job:
            logger.debug(f"Job #{job_id} already {job.status.value}, ignoring failure")
        elif updated.status == NotificationStatus.FAILED:
            logger.critical(
                f"Job #{job_id} permanently failed after {updated.retry_count} attempts: {reason}"
            )
        else:
            logger.warning(
                f"Job #{job_id} attempt {updated.retry_count}/{updated.max_retries} failed, "
                f"retry at {updated.scheduled_for.isoformat(timespec='minutes')}: {reason}"
            )
        return updated

    def _lock_job(self, cur, job_id: int) -> NotificationJob:
        cur.execute(
            f"SELECT {_JOB_COLUMNS} FROM {self.table} WHERE id = %s FOR UPDATE",
            (job_id,),
        )
        row = cur.fetchone()
        if not row:
            raise JobNotFound(job_id)
        return _row_to_job(row)

    @with_db_retry(error_message="Failed to retrieve notification")
    def get_job(self, conn, job_id: int) -> NotificationJob:
        """Get a job by ID.

        Raises:
            JobNotFound: If the job does not exist.
        """
        with conn.cursor() as cur:
            cur.execute(f"SELECT {_JOB_COLUMNS} FROM {self.table} WHERE id = %s", (job_id,))
            row = cur.fetchone()
        conn.commit()

        if not row:
            raise JobNotFound(job_id)
        return _row_to_job(row)

    @with_db_retry(error_message="Failed to retrieve appointment notifications")
    def jobs_for_appointment(self, conn, appointment_ref: str) -> list[NotificationJob]:
        """All jobs ever enqueued for an appointment, oldest first."""
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT {_JOB_COLUMNS}
                FROM {self.table}
                WHERE appointment_ref = %s
                ORDER BY created_at ASC, id ASC
                """,
                (appointment_ref,),
            )
            rows = cur.fetchall()
        conn.commit()
        return [_row_to_job(row) for row in rows]

    @with_db_retry(error_message="Failed to get queue stats")
    def stats(self, conn) -> QueueStats:
        """Count jobs per status."""
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT status, COUNT(*) AS count
                FROM {self.table}
                GROUP BY status
                """
            )
            rows = cur.fetchall()
        conn.commit()

        counts = {row["status"]: int(row["count"]) for row in rows}
        return QueueStats(
            pending=counts.get(NotificationStatus.PENDING.value, 0),
            sent=counts.get(NotificationStatus.SENT.value, 0),
            failed=counts.get(NotificationStatus.FAILED.value, 0),
        )

    def ensure_schema(self) -> None:
        """Create the notification_jobs table and indexes if missing."""
        SchemaManager(self.db).ensure_schema(include_appointments=False)

    def health_check(self) -> bool:
        return self.db.health_check()

    def close(self) -> None:
        self.db.close()
