"""DDL for the notification job table and the appointment reminder columns.

The notification_jobs table is append-mostly: rows are never deleted and
serve as the audit trail of every notification.

Version: 1.0.0
"""

from __future__ import annotations

from booking_notifications.core.logger import get_logger
from booking_notifications.database.connection import Database, with_db_retry

logger = get_logger(__name__)


NOTIFICATION_JOBS_DDL = """
CREATE TABLE IF NOT EXISTS {schema}.notification_jobs (
    id                BIGSERIAL PRIMARY KEY,
    kind              VARCHAR(32)  NOT NULL,
    recipient_address VARCHAR(320) NOT NULL,
    recipient_name    VARCHAR(255),
    appointment_ref   VARCHAR(64),
    business_ref      VARCHAR(64),
    customer_ref      VARCHAR(64),
    subject           VARCHAR(500) NOT NULL,
    body_html         TEXT         NOT NULL,
    body_text         TEXT,
    variables         JSONB        NOT NULL DEFAULT '{{}}'::jsonb,
    status            VARCHAR(16)  NOT NULL DEFAULT 'pending'
                      CHECK (status IN ('pending', 'sent', 'failed')),
    retry_count       INTEGER      NOT NULL DEFAULT 0 CHECK (retry_count >= 0),
    max_retries       INTEGER      NOT NULL DEFAULT 3 CHECK (max_retries >= 1),
    scheduled_for     TIMESTAMP    NOT NULL,
    sent_at           TIMESTAMP,
    failure_reason    TEXT,
    created_at        TIMESTAMP    NOT NULL,
    updated_at        TIMESTAMP    NOT NULL,
    CHECK (retry_count <= max_retries)
);

CREATE INDEX IF NOT EXISTS idx_notification_jobs_status_scheduled
    ON {schema}.notification_jobs (status, scheduled_for);
CREATE INDEX IF NOT EXISTS idx_notification_jobs_appointment
    ON {schema}.notification_jobs (appointment_ref);
CREATE INDEX IF NOT EXISTS idx_notification_jobs_created
    ON {schema}.notification_jobs (created_at);
"""

APPOINTMENT_REMINDER_DDL = """
ALTER TABLE {schema}.appointments
    ADD COLUMN IF NOT EXISTS reminder_24h_sent BOOLEAN NOT NULL DEFAULT FALSE,
    ADD COLUMN IF NOT EXISTS reminder_24h_sent_at TIMESTAMP,
    ADD COLUMN IF NOT EXISTS reminder_1h_sent BOOLEAN NOT NULL DEFAULT FALSE,
    ADD COLUMN IF NOT EXISTS reminder_1h_sent_at TIMESTAMP;
"""


class SchemaManager:
    """Creates the pipeline tables and columns if they are missing."""

    def __init__(self, db: Database) -> None:
        self.db = db

    @with_db_retry(error_message="Failed to create notification schema")
    def ensure_schema(self, conn, include_appointments: bool = True) -> None:
        schema = self.db.schema
        with conn.cursor() as cur:
            cur.execute(f"CREATE SCHEMA IF NOT EXISTS {schema}")
            cur.execute(NOTIFICATION_JOBS_DDL.format(schema=schema))
            if include_appointments:
                cur.execute(APPOINTMENT_REMINDER_DDL.format(schema=schema))
        conn.commit()
        logger.info(f"Notification schema ready in '{schema}'")
