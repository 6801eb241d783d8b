"""Templates module for the notification pipeline.

Contains the Jinja2 renderer and one HTML template per notification kind.

Author: Odiseo
Created: 2026-03-02
Version: 1.0.0
"""

from booking_notifications.templates.renderer import SUBJECT_TEMPLATES, TemplateRenderer

__all__ = ["SUBJECT_TEMPLATES", "TemplateRenderer"]
