"""Configuration module for the notification pipeline.

Loads and validates settings from environment variables or .env file.

Author: Odiseo
Created: 2026-03-02
Version: 1.0.0
"""

from booking_notifications.config.settings import NotificationConfig

__all__ = ["NotificationConfig"]
