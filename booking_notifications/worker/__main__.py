"""Pipeline runner entry point.

Allows execution via: python -m booking_notifications.worker
"""

from booking_notifications.worker.runner import cli

if __name__ == "__main__":
    cli()
