"""Notification queue statistics model.

Author: Odiseo
Created: 2026-03-02
Version: 1.0.0
"""

from pydantic import BaseModel, Field


class QueueStats(BaseModel):
    """Notification job counts by status.

    Attributes:
        pending: Jobs waiting for delivery or retry.
        sent: Delivered jobs.
        failed: Jobs whose retry budget is exhausted.
    """

    pending: int = Field(default=0, ge=0, description="Pending jobs")
    sent: int = Field(default=0, ge=0, description="Sent jobs")
    failed: int = Field(default=0, ge=0, description="Permanently failed jobs")

    @property
    def total(self) -> int:
        return self.pending + self.sent + self.failed

    @property
    def success_rate(self) -> float:
        """Percentage of sent jobs among terminal ones."""
        total_processed = self.sent + self.failed
        if total_processed > 0:
            return (self.sent / total_processed) * 100
        return 0.0
