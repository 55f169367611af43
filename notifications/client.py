"""
Notification Endpoint Client — Calls POST /api/send-notification over HTTP.

This is the operation workflow handlers hand to the RateLimitedRetryQueue:
one call per recipient, camelCase JSON body, provider message id back.
"""
from __future__ import annotations

import structlog
from typing import Optional

import httpx

from channels.base import NotificationDeliveryError
from config.settings import EndpointConfig, get_settings
from models.schemas import EmailNotificationResult, NotificationRequest

logger = structlog.get_logger()


class NotificationEndpointClient:

    def __init__(self, config: EndpointConfig = None, transport: httpx.AsyncBaseTransport = None):
        self.config = config or get_settings().endpoint
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout_seconds, connect=10.0),
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def send(self, request: NotificationRequest) -> EmailNotificationResult:
        client = await self._get_client()
        try:
            resp = await client.post(self.config.url, json=request.to_payload())
        except httpx.HTTPError as e:
            raise NotificationDeliveryError(f"Notification endpoint unreachable: {e}") from e

        if resp.status_code >= 400:
            detail = resp.text[:500]
            logger.warning("notification_endpoint_error",
                           status=resp.status_code,
                           notification_type=request.notification_type.value,
                           recipient=request.recipient_email,
                           detail=detail)
            raise NotificationDeliveryError(
                f"Notification endpoint returned {resp.status_code}: {detail}",
                retryable=resp.status_code != 400,
            )

        body = resp.json() if resp.content else {}
        return EmailNotificationResult(
            success=True,
            recipient_email=request.recipient_email,
            notification_type=request.notification_type,
            message_id=body.get("messageId"),
        )

    async def close(self):
        if self._client:
            await self._client.aclose()
