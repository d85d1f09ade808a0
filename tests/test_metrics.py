"""Tests for the Prometheus metrics collector."""

from __future__ import annotations

from weapp_notify.observability import MetricsCollector


class TestMetricsCollector:
    def test_record_notification(self) -> None:
        m = MetricsCollector()
        m.record_notification("text", handled=True)
        m.record_notification("text", handled=True)
        m.record_notification("event/get_quota", handled=False)
        snapshot = m.snapshot()
        assert snapshot["notifications"] == {"text|true": 2, "event/get_quota|false": 1}

    def test_record_errors_and_replies(self) -> None:
        m = MetricsCollector()
        m.record_error("INVALID_SIGNATURE")
        m.record_reply("event/get_quota")
        snapshot = m.snapshot()
        assert snapshot["errors"] == {"INVALID_SIGNATURE": 1}
        assert snapshot["replies"] == {"event/get_quota": 1}

    def test_render_prometheus_format(self) -> None:
        m = MetricsCollector()
        m.record_notification("image", handled=False)
        m.record_handshake(False)
        text = m.render()
        assert "# TYPE weapp_notifications_total counter" in text
        assert 'weapp_notifications_total{kind="image",handled="false"} 1' in text
        assert 'weapp_handshakes_total{result="rejected"} 1' in text
        assert text.endswith("\n")
