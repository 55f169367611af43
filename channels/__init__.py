"""Channel adapters for outbound notifications."""
from channels.base import (
    ChannelError,
    ChannelMetrics,
    EmailProviderError,
    NotificationDeliveryError,
    NotificationValidationError,
)
from channels.email_adapter import EmailAdapter

__all__ = [
    "ChannelError", "ChannelMetrics", "EmailProviderError",
    "NotificationDeliveryError", "NotificationValidationError",
    "EmailAdapter",
]
