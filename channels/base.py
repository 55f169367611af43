"""
Channel infrastructure shared by the outbound email path.

Provides:
- ChannelError: structured error hierarchy
- ChannelMetrics: per-channel send/fail/latency tracking
"""
from __future__ import annotations

from collections import deque
from typing import Any


# ══════════════════════════════════════════════════════════════
#  ERRORS
# ══════════════════════════════════════════════════════════════

class ChannelError(Exception):
    """Base exception for all channel operations."""

    def __init__(self, message: str, channel: str = "", retryable: bool = False):
        self.channel = channel
        self.retryable = retryable
        super().__init__(message)


class EmailProviderError(ChannelError):
    """The email provider refused or failed the send."""

    def __init__(self, message: str, status_code: int = 0, retryable: bool = True):
        self.status_code = status_code
        super().__init__(message, "email", retryable=retryable)


class NotificationValidationError(ChannelError):
    """The notification request is missing required fields."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message, "email", retryable=False)


class NotificationDeliveryError(ChannelError):
    """The notification could not be delivered."""

    status_code = 500

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message, "email", retryable=retryable)


# ══════════════════════════════════════════════════════════════
#  CHANNEL METRICS
# ══════════════════════════════════════════════════════════════

class ChannelMetrics:
    """Tracks per-channel send, failure, and latency metrics."""

    def __init__(self, channel: str):
        self.channel = channel
        self.messages_sent: int = 0
        self.messages_failed: int = 0
        self._latencies: deque[float] = deque(maxlen=1000)
        self._errors: deque[str] = deque(maxlen=10)

    def record_send(self, latency_ms: float = 0.0):
        self.messages_sent += 1
        if latency_ms > 0:
            self._latencies.append(latency_ms)

    def record_failure(self, error: str = ""):
        self.messages_failed += 1
        if error:
            self._errors.append(error)

    @property
    def avg_latency_ms(self) -> float:
        return sum(self._latencies) / len(self._latencies) if self._latencies else 0.0

    @property
    def failure_rate(self) -> float:
        total = self.messages_sent + self.messages_failed
        return self.messages_failed / total if total > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "channel": self.channel,
            "sent": self.messages_sent,
            "failed": self.messages_failed,
            "avg_latency_ms": round(self.avg_latency_ms, 1),
            "failure_rate": round(self.failure_rate, 4),
            "recent_errors": list(self._errors),
        }
