"""Unit tests for template renderer.

Tests Jinja2 template loading, rendering, and fallback generation.

Author: Odiseo
Version: 1.0.0
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from booking_notifications.core.exceptions import TemplateRenderError, UnknownNotificationKind
from booking_notifications.models.notification import NotificationKind
from booking_notifications.templates.renderer import TemplateRenderer


class TestTemplateRendererInit:
    """Tests for TemplateRenderer initialization."""

    def test_init_with_custom_dir(self, tmp_path):
        """Test initialization with custom template directory."""
        renderer = TemplateRenderer(template_dir=str(tmp_path), app_url="https://app.test")

        assert renderer.template_dir == Path(tmp_path)
        assert "format_date" in renderer.env.filters

    def test_init_missing_dir_raises(self, tmp_path):
        with pytest.raises(TemplateRenderError, match="Template directory not found"):
            TemplateRenderer(template_dir=str(tmp_path / "nope"), app_url="https://app.test")

    def test_init_with_default_config(self, mock_config, tmp_path):
        """Test initialization loads template dir and app URL from config."""
        mock_config.TEMPLATE_DIR = str(tmp_path)

        with patch(
            "booking_notifications.templates.renderer.NotificationConfig",
            return_value=mock_config,
        ):
            renderer = TemplateRenderer()

        assert renderer.template_dir == Path(tmp_path)
        assert renderer.app_url == "https://app.test"

    def test_every_kind_has_html_template(self, renderer):
        for kind in NotificationKind:
            assert renderer.template_exists(kind), kind


class TestRender:
    """Tests for rendering each notification kind."""

    @pytest.mark.parametrize("kind", list(NotificationKind))
    def test_every_kind_renders(self, renderer, sample_variables, kind):
        content = renderer.render(kind, {**sample_variables, "status": "accepted"})

        assert content.subject
        assert content.body_html
        assert content.body_text

    def test_booking_confirmation(self, renderer, sample_variables):
        content = renderer.render(NotificationKind.BOOKING_CONFIRMATION, sample_variables)

        assert content.subject == "Appointment Confirmed - Glow Salon"
        assert "Jane Doe" in content.body_html
        assert "Haircut" in content.body_html
        assert "Wednesday, March 11, 2026" in content.body_html

    def test_raw_kind_value_accepted(self, renderer, sample_variables):
        content = renderer.render("reminder_24h", sample_variables)
        assert content.subject == "Reminder: Your appointment with Glow Salon is tomorrow!"

    def test_unknown_kind_raises(self, renderer, sample_variables):
        with pytest.raises(UnknownNotificationKind):
            renderer.render("birthday_greeting", sample_variables)

    def test_status_update_subject(self, renderer, sample_variables):
        content = renderer.render(
            NotificationKind.STATUS_UPDATE, {**sample_variables, "status": "cancelled"}
        )

        assert content.subject == "Appointment Status Update - cancelled"
        assert "CANCELLED" in content.body_html

    def test_html_is_escaped(self, renderer, sample_variables):
        content = renderer.render(
            NotificationKind.BOOKING_CONFIRMATION,
            {**sample_variables, "customer_name": "<script>x</script>"},
        )

        assert "<script>x</script>" not in content.body_html
        assert "&lt;script&gt;" in content.body_html

    def test_subject_not_escaped(self, renderer, sample_variables):
        content = renderer.render(
            NotificationKind.BOOKING_CONFIRMATION, {**sample_variables, "business_name": "Tom & Jerry"}
        )
        assert content.subject == "Appointment Confirmed - Tom & Jerry"

    def test_rendering_is_deterministic(self, renderer, sample_variables):
        first = renderer.render(NotificationKind.REMINDER_1H, sample_variables)
        second = renderer.render(NotificationKind.REMINDER_1H, sample_variables)

        assert first == second

    def test_new_booking_alert_links_app(self, renderer, sample_variables):
        content = renderer.render(NotificationKind.NEW_BOOKING_ALERT, sample_variables)

        assert "https://app.test" in content.body_html
        assert content.subject == "New Booking - Jane Doe has booked an appointment"


class TestFallbacks:
    """Tests for missing templates and plain-text fallback."""

    def test_missing_html_template_raises(self, tmp_path):
        renderer = TemplateRenderer(template_dir=str(tmp_path), app_url="https://app.test")

        with pytest.raises(TemplateRenderError) as exc_info:
            renderer.render(NotificationKind.REMINDER_1H, {})

        assert exc_info.value.template_name == "reminder_1h.html"

    def test_text_template_preferred(self, tmp_path):
        (tmp_path / "reminder_1h.html").write_text("<p>{{ customer_name }}</p>")
        (tmp_path / "reminder_1h.txt").write_text("See you soon, {{ customer_name }}")
        renderer = TemplateRenderer(template_dir=str(tmp_path), app_url="https://app.test")

        content = renderer.render(NotificationKind.REMINDER_1H, {"customer_name": "Jane"})

        assert content.body_text == "See you soon, Jane"

    def test_fallback_text_generated(self, renderer, sample_variables):
        content = renderer.render(NotificationKind.REMINDER_1H, sample_variables)

        assert "Hi Jane Doe" in content.body_text
        assert "starts in 1 hour" in content.body_text
        assert "Service: Haircut" in content.body_text

    def test_template_syntax_error(self, tmp_path):
        (tmp_path / "rating_request.html").write_text("{% if %}")
        renderer = TemplateRenderer(template_dir=str(tmp_path), app_url="https://app.test")

        with pytest.raises(TemplateRenderError, match="rating_request.html"):
            renderer.render(NotificationKind.RATING_REQUEST, {})


class TestFormatDate:
    """Tests for the format_date filter."""

    def test_iso_date(self):
        assert TemplateRenderer._format_date("2025-01-15") == "Wednesday, January 15, 2025"

    def test_unparseable_passthrough(self):
        assert TemplateRenderer._format_date("tomorrow") == "tomorrow"
