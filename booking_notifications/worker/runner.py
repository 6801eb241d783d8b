"""Pipeline runner - hosts the delivery loop and the reminder loop.

Both loops run in one asyncio process, independent of any request
handling. Each runs once at startup and then on its own interval; an
error inside a tick is logged and the loop carries on.

Version: 1.0.0
"""

from __future__ import annotations

import asyncio
import signal
import sys
from collections.abc import Awaitable, Callable

from booking_notifications.clients import build_transport
from booking_notifications.config import NotificationConfig
from booking_notifications.core.exceptions import NotificationServiceError
from booking_notifications.core.logger import get_logger, setup_logging_from_config
from booking_notifications.database import AppointmentStore, Database, NotificationQueue
from booking_notifications.scheduler import ReminderScheduler
from booking_notifications.templates import TemplateRenderer
from booking_notifications.worker.processor import DeliveryWorker

logger = get_logger(__name__)


class PipelineRunner:
    """Runs the DeliveryWorker and the ReminderScheduler until stopped.

    Handles graceful shutdown on SIGTERM/SIGINT with proper cleanup.
    """

    def __init__(self, config: NotificationConfig | None = None) -> None:
        """Initialize pipeline components.

        Raises:
            NotificationServiceError: If initialization fails.
        """
        self.config = config or NotificationConfig()
        setup_logging_from_config(self.config)

        try:
            self.db = Database(self.config)
            self.renderer = TemplateRenderer(self.config.TEMPLATE_DIR, self.config.APP_URL)
            self.transport = build_transport(self.config)

            self.queue = NotificationQueue(self.db, self.renderer, self.config)
            self.store = AppointmentStore(self.db, self.config)

            self.worker = DeliveryWorker(self.queue, self.transport, self.config)
            self.scheduler = ReminderScheduler(
                self.store, self.renderer, self.transport, self.config
            )
        except NotificationServiceError:
            raise
        except Exception as e:
            logger.error(f"Failed to initialize pipeline: {e}", exc_info=True)
            raise NotificationServiceError(f"Pipeline initialization failed: {e}") from e

        self.reminders_sent = 0
        self._stop = asyncio.Event()
        logger.info("Pipeline runner initialized")

    def _handle_shutdown(self, signum: int) -> None:
        logger.info(f"Received shutdown signal ({signum}). Stopping gracefully...")
        self._stop.set()

    def stop(self) -> None:
        self._stop.set()

    async def _reminder_tick(self) -> None:
        report = await self.scheduler.run_once()
        self.reminders_sent += report.sent

    async def _loop(
        self, name: str, interval: float, tick: Callable[[], Awaitable[object]]
    ) -> None:
        cycle_count = 0
        while not self._stop.is_set():
            cycle_count += 1
            try:
                await tick()
            except Exception:
                logger.error(f"{name} cycle #{cycle_count}: unexpected error", exc_info=True)

            try:
                await asyncio.wait_for(self._stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

    async def run(self) -> None:
        """Main loop - runs until a shutdown signal or stop()."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._handle_shutdown, sig)

        logger.info(
            f"Starting pipeline: delivery every {self.config.WORKER_POLL_INTERVAL}s "
            f"(batch={self.config.WORKER_BATCH_SIZE}), "
            f"reminders every {self.config.REMINDER_POLL_INTERVAL}s"
        )

        try:
            await asyncio.gather(
                self._loop("Delivery", self.config.WORKER_POLL_INTERVAL, self.worker.run_once),
                self._loop("Reminder", self.config.REMINDER_POLL_INTERVAL, self._reminder_tick),
            )
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        logger.info("Shutting down pipeline...")
        logger.info("=" * 80)
        self.worker.print_stats()
        logger.info(f"   Reminders sent: {self.reminders_sent}")
        self.transport.close()
        self.db.close()
        logger.info("Pipeline stopped cleanly")


async def main() -> None:
    """Main entry point for the runner process."""
    try:
        runner = PipelineRunner()
        await runner.run()
    except NotificationServiceError as e:
        logger.error(f"Notification Service Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        sys.exit(1)


def cli() -> None:
    """Console script entry point."""
    asyncio.run(main())
