"""
Batch Notifier — Fans notifications out through the rate-limited queue.

Workflow handlers (claim submitted, verified, approved, rejected, processed)
build one NotificationRequest per recipient and hand the list here. Each send
becomes its own queue task, so one recipient's terminal failure never aborts
the rest of the batch; the caller gets a partial-success summary instead.
"""
from __future__ import annotations

import asyncio
import structlog
from typing import Any, Awaitable, Protocol

from channels.base import NotificationValidationError
from job_queue.rate_limiter import RateLimitedRetryQueue
from models.schemas import EmailNotificationResult, NotificationBatchResult, NotificationRequest
from notifications.service import validate_request

logger = structlog.get_logger()


class NotificationSender(Protocol):
    def send(self, request: NotificationRequest) -> Awaitable[EmailNotificationResult]:
        ...


class BatchNotifier:
    """
    Usage:
        notifier = BatchNotifier(queue, NotificationEndpointClient())
        result = await notifier.notify_many([req_admin_1, req_admin_2])
        result.message   # "Sent 2 of 2 notifications"
    """

    def __init__(self, queue: RateLimitedRetryQueue, sender: NotificationSender):
        self.queue = queue
        self.sender = sender

    async def notify(self, request: NotificationRequest, retry_limit: int = None) -> EmailNotificationResult:
        """Send one notification through the queue; terminal failures become a failed result."""
        try:
            validate_request(request)
        except NotificationValidationError as e:
            return self._failed(request, e)

        try:
            return await self.queue.submit(
                lambda: self.sender.send(request),
                retry_limit=retry_limit,
                label=request.notification_type.value,
            )
        except Exception as e:
            logger.error("notification_failed",
                         notification_type=request.notification_type.value,
                         recipient=request.recipient_email,
                         error=str(e))
            return self._failed(request, e)

    async def notify_many(self, requests: list[NotificationRequest],
                          retry_limit: int = None) -> NotificationBatchResult:
        """Queue every request at once and wait for all outcomes."""
        results = await asyncio.gather(
            *(self.notify(r, retry_limit=retry_limit) for r in requests)
        )
        batch = NotificationBatchResult(results=list(results))
        logger.info("notification_batch_complete",
                    total=len(batch.results),
                    sent=len(batch.successes),
                    failed=len(batch.failures))
        return batch

    def _failed(self, request: NotificationRequest, error: Any) -> EmailNotificationResult:
        return EmailNotificationResult(
            success=False,
            recipient_email=request.recipient_email,
            notification_type=request.notification_type,
            error=str(error),
        )
