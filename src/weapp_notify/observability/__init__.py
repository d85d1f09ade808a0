"""Prometheus-compatible metrics for the notification gateway.

Exposes gateway counters in Prometheus text format at /metrics.

Metrics exposed:
  weapp_notifications_total{kind,handled} — Counter of dispatched notifications
  weapp_replies_total{kind} — Counter of replies written back
  weapp_errors_total{code} — Counter of failed requests by error code
  weapp_handshakes_total{result} — Counter of GET verification handshakes
  weapp_uptime_seconds — Server uptime gauge
"""

from __future__ import annotations

import threading
import time
from typing import Any


class MetricsCollector:
    """Thread-safe Prometheus metrics collector.

    Uses simple counters and gauges — no external dependency needed.
    Output format: Prometheus text exposition format (v0.0.4).
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._start_time = time.time()

        self._notifications: dict[str, int] = {}
        self._replies: dict[str, int] = {}
        self._errors: dict[str, int] = {}
        self._handshakes: dict[str, int] = {"ok": 0, "rejected": 0}

    # ================================================================
    # Record Methods
    # ================================================================

    def record_notification(self, kind: str, handled: bool) -> None:
        """Record a dispatched notification."""
        with self._lock:
            key = f"{kind}|{'true' if handled else 'false'}"
            self._notifications[key] = self._notifications.get(key, 0) + 1

    def record_reply(self, kind: str) -> None:
        with self._lock:
            self._replies[kind] = self._replies.get(kind, 0) + 1

    def record_error(self, code: str) -> None:
        with self._lock:
            self._errors[code] = self._errors.get(code, 0) + 1

    def record_handshake(self, ok: bool) -> None:
        with self._lock:
            self._handshakes["ok" if ok else "rejected"] += 1

    # ================================================================
    # Prometheus Text Format Output
    # ================================================================

    def render(self) -> str:
        """Render all metrics in Prometheus text exposition format."""
        with self._lock:
            lines: list[str] = []

            lines.append("# HELP weapp_notifications_total Notifications dispatched")
            lines.append("# TYPE weapp_notifications_total counter")
            for key, count in sorted(self._notifications.items()):
                kind, handled = key.split("|", 1)
                lines.append(f'weapp_notifications_total{{kind="{kind}",handled="{handled}"}} {count}')

            lines.append("# HELP weapp_replies_total Replies written to the platform")
            lines.append("# TYPE weapp_replies_total counter")
            for kind, count in sorted(self._replies.items()):
                lines.append(f'weapp_replies_total{{kind="{kind}"}} {count}')

            lines.append("# HELP weapp_errors_total Failed requests by error code")
            lines.append("# TYPE weapp_errors_total counter")
            for code, count in sorted(self._errors.items()):
                lines.append(f'weapp_errors_total{{code="{code}"}} {count}')

            lines.append("# HELP weapp_handshakes_total Endpoint verification handshakes")
            lines.append("# TYPE weapp_handshakes_total counter")
            for result, count in sorted(self._handshakes.items()):
                lines.append(f'weapp_handshakes_total{{result="{result}"}} {count}')

            lines.append("# HELP weapp_uptime_seconds Server uptime in seconds")
            lines.append("# TYPE weapp_uptime_seconds gauge")
            lines.append(f"weapp_uptime_seconds {int(time.time() - self._start_time)}")

            return "\n".join(lines) + "\n"

    def snapshot(self) -> dict[str, Any]:
        """Return metrics as a dict (for JSON API)."""
        with self._lock:
            return {
                "notifications": dict(self._notifications),
                "replies": dict(self._replies),
                "errors": dict(self._errors),
                "handshakes": dict(self._handshakes),
                "uptime_seconds": int(time.time() - self._start_time),
            }


# Global singleton
metrics = MetricsCollector()
