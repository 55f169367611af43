"""Outbound claim notifications: endpoint service, HTTP client, and batch fan-out."""
from notifications.client import NotificationEndpointClient
from notifications.dispatcher import BatchNotifier, NotificationSender
from notifications.service import NotificationService, validate_request
from notifications.subjects import SUBJECTS, subject_for

__all__ = [
    "NotificationEndpointClient", "BatchNotifier", "NotificationSender",
    "NotificationService", "validate_request", "SUBJECTS", "subject_for",
]
