"""
Email Channel Adapter — Transactional email through the Resend HTTP API.

Provides:
- HTML send with a display-name sender ("Name <address>")
- Retryable vs. permanent failure classification for the dispatcher
- Send/failure/latency metrics for the health endpoint
- Dry-run mode when no API key is configured
"""
from __future__ import annotations

import time
import uuid
import structlog
from typing import Any, Optional

import httpx

from channels.base import ChannelMetrics, EmailProviderError
from config.settings import EmailConfig, get_settings, is_configured

logger = structlog.get_logger()


class EmailAdapter:
    """
    Resend email adapter.

    Retries are not done here: every send is already paced and retried by
    the RateLimitedRetryQueue, so a second retry layer would break the quota.
    """

    def __init__(self, config: EmailConfig = None, transport: httpx.AsyncBaseTransport = None):
        self.config = config or get_settings().email
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self.metrics = ChannelMetrics("email")

    @property
    def dry_run(self) -> bool:
        return not is_configured(self.config.api_key)

    @property
    def sender(self) -> str:
        return f"{self.config.from_name} <{self.config.from_email}>"

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                headers={
                    "Authorization": f"Bearer {self.config.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=httpx.Timeout(self.config.timeout_seconds, connect=10.0),
                transport=self._transport,
            )
        return self._client

    # ── Send ──────────────────────────────────────────────────

    async def send(self, to: str, subject: str, html: str) -> str:
        """Send one email and return the provider message id."""
        if self.dry_run:
            message_id = f"dry_run_{uuid.uuid4().hex[:12]}"
            logger.info("email_dry_run", to=to, subject=subject, message_id=message_id)
            self.metrics.record_send()
            return message_id

        payload = {"from": self.sender, "to": [to], "subject": subject, "html": html}
        start = time.monotonic()
        client = await self._get_client()
        try:
            resp = await client.post("/emails", json=payload)
        except httpx.HTTPError as e:
            self.metrics.record_failure(str(e))
            logger.warning("email_transport_error", to=to, error=str(e))
            raise EmailProviderError(f"Email transport error: {e}") from e

        if resp.status_code >= 400:
            error = self._error_message(resp)
            self.metrics.record_failure(error)
            logger.error("email_api_error", status=resp.status_code, to=to, error=error)
            raise EmailProviderError(
                error,
                status_code=resp.status_code,
                retryable=resp.status_code == 429 or resp.status_code >= 500,
            )

        latency = (time.monotonic() - start) * 1000
        self.metrics.record_send(latency)
        message_id = resp.json().get("id", "")
        logger.info("email_sent", to=to, subject=subject, message_id=message_id)
        return message_id

    def _error_message(self, resp: httpx.Response) -> str:
        try:
            body = resp.json()
        except ValueError:
            return resp.text[:500] or f"HTTP {resp.status_code}"
        return body.get("message") or body.get("name") or f"HTTP {resp.status_code}"

    # ── Health ────────────────────────────────────────────────

    async def health_check(self) -> dict[str, Any]:
        return {
            "provider": self.config.provider,
            "dry_run": self.dry_run,
            "metrics": self.metrics.to_dict(),
        }

    async def close(self):
        if self._client:
            await self._client.aclose()
