"""Create the notification_jobs table and the appointment reminder columns.

Usage:
    python -m booking_notifications.scripts.init_db [--jobs-only]

Author: Odiseo
Created: 2026-03-02
"""

import argparse
import sys

from booking_notifications.config import NotificationConfig
from booking_notifications.core.exceptions import NotificationServiceError
from booking_notifications.core.logger import setup_logging
from booking_notifications.database import Database, SchemaManager


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Initialize the notification schema")
    parser.add_argument(
        "--jobs-only",
        action="store_true",
        help="Only create notification_jobs; leave the appointments table untouched",
    )
    args = parser.parse_args(argv)

    config = NotificationConfig()
    setup_logging(log_level=config.LOG_LEVEL, enable_file=False)

    try:
        db = Database(config)
    except NotificationServiceError as e:
        print(f"❌ Cannot connect to database: {e}")
        return 1

    try:
        SchemaManager(db).ensure_schema(include_appointments=not args.jobs_only)
    except NotificationServiceError as e:
        print(f"❌ Schema initialization failed: {e}")
        return 1
    finally:
        db.close()

    print(f"✅ Notification schema ready in '{config.SCHEMA_NAME}'")
    return 0


if __name__ == "__main__":
    sys.exit(main())
