"""
Notification Service — Server side of POST /api/send-notification.

Flow for one request:
1. Validate required fields for the notification type
2. Derive the subject line from the type tag
3. Send the pre-rendered HTML through the email adapter
4. Write one delivery record per claim (sent or failed)
"""
from __future__ import annotations

import structlog

from channels.base import EmailProviderError, NotificationDeliveryError, NotificationValidationError
from channels.email_adapter import EmailAdapter
from database.store_base import BaseDeliveryStore
from models.schemas import (
    DeliveryRecord, DeliveryStatus, EmailNotificationResult, NotificationRequest,
)
from notifications.subjects import subject_for

logger = structlog.get_logger()


def validate_request(request: NotificationRequest):
    """Raise NotificationValidationError when required fields are missing."""
    if not request.recipient_email:
        raise NotificationValidationError("Recipient email is required")

    if request.notification_type.is_consolidated:
        if not request.claim_ids or not request.html_content:
            raise NotificationValidationError(
                "Required fields for consolidated notification are missing"
            )
    elif not request.claim_id or not request.html_content:
        raise NotificationValidationError(
            "Required fields for single claim notification are missing"
        )


class NotificationService:

    def __init__(self, email: EmailAdapter, store: BaseDeliveryStore):
        self.email = email
        self.store = store

    async def send(self, request: NotificationRequest) -> EmailNotificationResult:
        validate_request(request)
        subject = subject_for(request.notification_type)

        try:
            message_id = await self.email.send(
                to=request.recipient_email,
                subject=subject,
                html=request.html_content,
            )
        except EmailProviderError as e:
            await self._record(request, DeliveryStatus.FAILED, error_message=str(e))
            raise NotificationDeliveryError(
                f"Failed to send notification: {e}", retryable=e.retryable
            ) from e

        await self._record(request, DeliveryStatus.SENT, message_id=message_id)
        logger.info("notification_sent",
                    notification_type=request.notification_type.value,
                    recipient=request.recipient_email,
                    claims=len(request.claim_ids_for_record()),
                    message_id=message_id)
        return EmailNotificationResult(
            success=True,
            recipient_email=request.recipient_email,
            notification_type=request.notification_type,
            message_id=message_id,
        )

    async def _record(self, request: NotificationRequest, status: DeliveryStatus,
                      message_id: str = None, error_message: str = None):
        """Write delivery records; the email is already out, so store errors are only logged."""
        for claim_id in request.claim_ids_for_record():
            record = DeliveryRecord(
                claim_id=claim_id,
                recipient_email=request.recipient_email,
                notification_type=request.notification_type,
                sent_by=request.rejected_by,
                status=status,
                message_id=message_id,
                error_message=error_message,
            )
            try:
                await self.store.record(record)
            except Exception as e:
                logger.error("delivery_record_failed",
                             claim_id=claim_id,
                             status=status.value,
                             error=str(e))
