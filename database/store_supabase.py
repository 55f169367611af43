"""
SupabaseDeliveryStore — email_notifications table through the Supabase REST API.

Talks to PostgREST directly with httpx: a service key in the `apikey` and
`Authorization` headers, JSON rows in and out.
"""
from __future__ import annotations

import structlog
from typing import Any, Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential

from config.settings import StoreConfig
from database.store_base import BaseDeliveryStore
from models.schemas import DeliveryRecord

logger = structlog.get_logger()


def _to_record(row: dict[str, Any]) -> DeliveryRecord:
    row = dict(row)
    if "id" in row:
        row["id"] = str(row["id"])
    return DeliveryRecord(**row)


class SupabaseDeliveryStore(BaseDeliveryStore):

    def __init__(self, config: StoreConfig, transport: httpx.AsyncBaseTransport = None):
        if not config.supabase_url:
            raise ValueError("supabase_url is required for the supabase store")
        self.config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            key = self.config.supabase_key
            self._client = httpx.AsyncClient(
                base_url=f"{self.config.supabase_url.rstrip('/')}/rest/v1",
                headers={
                    "apikey": key,
                    "Authorization": f"Bearer {key}",
                    "Content-Type": "application/json",
                },
                timeout=httpx.Timeout(30.0, connect=10.0),
                transport=self._transport,
            )
        return self._client

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=0.5, max=5), reraise=True)
    async def _request(self, method: str, **kwargs) -> Any:
        client = await self._get_client()
        resp = await client.request(method, f"/{self.config.table}", **kwargs)
        if resp.status_code >= 400:
            logger.error("supabase_api_error", status=resp.status_code, body=resp.text[:500])
            resp.raise_for_status()
        return resp.json() if resp.content else None

    async def record(self, record: DeliveryRecord) -> DeliveryRecord:
        await self._request(
            "POST",
            json=record.to_row(),
            headers={"Prefer": "return=minimal"},
        )
        return record

    async def list_for_claim(self, claim_id: str) -> list[DeliveryRecord]:
        rows = await self._request(
            "GET",
            params={"claim_id": f"eq.{claim_id}", "order": "sent_at.asc"},
        )
        return [_to_record(row) for row in rows or []]

    async def list_recent(self, limit: int = 50) -> list[DeliveryRecord]:
        rows = await self._request(
            "GET",
            params={"order": "sent_at.desc", "limit": str(limit)},
        )
        return [_to_record(row) for row in rows or []]

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
