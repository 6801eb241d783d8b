"""Worker module for the notification pipeline.

Contains the delivery worker and the runner hosting both periodic loops.

Author: Odiseo
Created: 2025-10-18
Version: 1.1.0
"""

from booking_notifications.worker.processor import DeliveryReport, DeliveryWorker
from booking_notifications.worker.runner import PipelineRunner

__all__ = ["DeliveryReport", "DeliveryWorker", "PipelineRunner"]
