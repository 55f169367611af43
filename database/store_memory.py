"""
InMemoryDeliveryStore — Dict-backed store for development and testing.

Features:
  - Zero dependencies (no database)
  - Same interface as SupabaseDeliveryStore
  - All data lost on process restart
"""
from __future__ import annotations

import structlog
from collections import defaultdict

from database.store_base import BaseDeliveryStore
from models.schemas import DeliveryRecord

logger = structlog.get_logger()


class InMemoryDeliveryStore(BaseDeliveryStore):

    def __init__(self):
        self._records: list[DeliveryRecord] = []
        self._claim_index: dict[str, list[DeliveryRecord]] = defaultdict(list)
        logger.info("inmemory_delivery_store_initialized")

    async def record(self, record: DeliveryRecord) -> DeliveryRecord:
        self._records.append(record)
        self._claim_index[record.claim_id].append(record)
        return record

    async def list_for_claim(self, claim_id: str) -> list[DeliveryRecord]:
        return list(self._claim_index.get(claim_id, []))

    async def list_recent(self, limit: int = 50) -> list[DeliveryRecord]:
        return list(reversed(self._records[-limit:])) if limit > 0 else []
