"""Unit tests for the delivery worker.

Tests cover:
- Empty and not-yet-due queues
- Successful delivery and Reply-To selection
- Retry bookkeeping until the budget is spent
- Transport deadlines
- Bookkeeping errors not aborting a batch
"""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest

from booking_notifications.core.exceptions import NotificationQueueError
from booking_notifications.models.notification import NotificationStatus
from booking_notifications.worker.processor import DeliveryWorker

BUSINESS_VARS = {"business_email": "owner@glow.test", "customer_name": "Jane Doe"}


@pytest.fixture
def worker(memory_queue, transport, mock_config):
    return DeliveryWorker(memory_queue, transport, mock_config)


def enqueue(queue, delay_minutes=0, variables=None):
    return queue.enqueue(
        "booking_confirmation",
        "jane@example.com",
        "Jane Doe",
        BUSINESS_VARS if variables is None else variables,
        appointment_ref="apt-1",
        delay_minutes=delay_minutes,
    )


class TestRunOnce:
    """Tests for DeliveryWorker.run_once."""

    def test_empty_queue_skips_fetch(self, worker, memory_queue, transport):
        report = asyncio.run(worker.run_once())

        assert report.processed == 0
        assert memory_queue.fetch_calls == 0
        assert transport.attempts == 0

    def test_future_job_not_sent(self, worker, memory_queue, transport):
        enqueue(memory_queue, delay_minutes=30)

        report = asyncio.run(worker.run_once())

        assert report.processed == 0
        assert memory_queue.fetch_calls == 1
        assert transport.attempts == 0

    def test_due_job_delivered(self, worker, memory_queue, transport, clock):
        job = enqueue(memory_queue)

        report = asyncio.run(worker.run_once())

        assert report.sent == 1
        stored = memory_queue.jobs[job.id]
        assert stored.status == NotificationStatus.SENT
        assert stored.sent_at == clock.now
        message = transport.sent[0]
        assert message.to == "jane@example.com"
        assert message.subject == job.subject
        assert message.reply_to == "owner@glow.test"

    def test_delayed_job_sent_once_due(self, worker, memory_queue, transport, clock):
        enqueue(memory_queue, delay_minutes=120)

        asyncio.run(worker.run_once())
        clock.advance(120)
        report = asyncio.run(worker.run_once())

        assert report.sent == 1
        assert len(transport.sent) == 1

    def test_reply_to_falls_back_to_default(self, worker, memory_queue, transport, mock_config):
        mock_config.DEFAULT_REPLY_TO = "support@platform.test"
        enqueue(memory_queue, variables={"customer_name": "Jane"})

        asyncio.run(worker.run_once())

        assert transport.sent[0].reply_to == "support@platform.test"

    def test_no_reply_to_without_business_or_default(self, worker, memory_queue, transport):
        enqueue(memory_queue, variables={})

        asyncio.run(worker.run_once())

        assert transport.sent[0].reply_to is None

    def test_batch_size_and_order(self, worker, memory_queue, transport, mock_config):
        mock_config.WORKER_BATCH_SIZE = 2
        first = enqueue(memory_queue)
        second = enqueue(memory_queue)
        third = enqueue(memory_queue)

        report = asyncio.run(worker.run_once())

        assert report.sent == 2
        assert memory_queue.jobs[first.id].status == NotificationStatus.SENT
        assert memory_queue.jobs[second.id].status == NotificationStatus.SENT
        assert memory_queue.jobs[third.id].status == NotificationStatus.PENDING

    def test_sent_job_not_sent_again(self, worker, memory_queue, transport):
        enqueue(memory_queue)

        asyncio.run(worker.run_once())
        asyncio.run(worker.run_once())

        assert transport.attempts == 1


class TestRetries:
    """Tests for failure bookkeeping."""

    def test_failure_reschedules(self, worker, memory_queue, transport, clock):
        transport.fail_next = 1
        job = enqueue(memory_queue)

        report = asyncio.run(worker.run_once())

        stored = memory_queue.jobs[job.id]
        assert report.retried == 1
        assert stored.status == NotificationStatus.PENDING
        assert stored.retry_count == 1
        assert stored.failure_reason == "SMTP server unavailable"
        assert stored.scheduled_for == clock.now + memory_queue.retry_delay

    def test_retry_not_attempted_before_delay(self, worker, memory_queue, transport, clock):
        transport.fail_next = 1
        enqueue(memory_queue)

        asyncio.run(worker.run_once())
        clock.advance(4)
        asyncio.run(worker.run_once())

        assert transport.attempts == 1

    def test_success_after_failure(self, worker, memory_queue, transport, clock):
        transport.fail_next = 1
        job = enqueue(memory_queue)

        asyncio.run(worker.run_once())
        clock.advance(5)
        report = asyncio.run(worker.run_once())

        stored = memory_queue.jobs[job.id]
        assert report.sent == 1
        assert stored.status == NotificationStatus.SENT
        assert stored.retry_count == 1

    def test_budget_exhausted_marks_failed(self, worker, memory_queue, transport, clock):
        transport.always_fail = True
        job = enqueue(memory_queue)

        reports = []
        for _ in range(4):
            reports.append(asyncio.run(worker.run_once()))
            clock.advance(5)

        stored = memory_queue.jobs[job.id]
        assert [r.retried for r in reports] == [1, 1, 0, 0]
        assert reports[2].failed == 1
        assert stored.status == NotificationStatus.FAILED
        assert stored.retry_count == 3
        assert transport.attempts == 3
        assert worker.failed_count == 1
        assert worker.retry_count == 2

    def test_timeout_counts_as_failure(self, worker, memory_queue, transport, mock_config):
        mock_config.TRANSPORT_TIMEOUT_SECONDS = 0.05
        transport.delay = 0.3
        job = enqueue(memory_queue)

        report = asyncio.run(worker.run_once())

        stored = memory_queue.jobs[job.id]
        assert report.retried == 1
        assert stored.retry_count == 1
        assert "deadline" in stored.failure_reason


class TestBookkeepingErrors:
    """Per-job errors never abort the batch."""

    def test_mark_as_sent_error_skipped(self, worker, memory_queue, transport):
        memory_queue.fail_mark_as_sent = True
        enqueue(memory_queue)
        enqueue(memory_queue)

        report = asyncio.run(worker.run_once())

        assert report.skipped == 2
        assert len(transport.sent) == 2
        assert all(job.status == NotificationStatus.PENDING for job in memory_queue.jobs.values())

    def test_mark_as_failed_error_skipped(self, worker, memory_queue, transport):
        transport.fail_next = 1
        enqueue(memory_queue)
        enqueue(memory_queue)

        with patch.object(
            memory_queue, "mark_as_failed", side_effect=NotificationQueueError("db down")
        ):
            report = asyncio.run(worker.run_once())

        assert report.skipped == 1
        assert report.sent == 1

    def test_stats_error_propagates(self, worker, memory_queue):
        with patch.object(memory_queue, "stats", side_effect=NotificationQueueError("db down")):
            with pytest.raises(NotificationQueueError):
                asyncio.run(worker.run_once())


class TestStatistics:
    """Tests for worker counters."""

    def test_counters_accumulate(self, worker, memory_queue, transport):
        enqueue(memory_queue)
        asyncio.run(worker.run_once())
        enqueue(memory_queue)
        asyncio.run(worker.run_once())

        assert worker.processed_count == 2
        worker.print_stats()
