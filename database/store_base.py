"""
Abstract Delivery Store — Interface for all delivery-record backends.

Implementations:
  - InMemoryDeliveryStore (dict-based, single-process, no persistence)
  - SupabaseDeliveryStore (email_notifications table via the Supabase REST API)
"""
from __future__ import annotations

from abc import ABC, abstractmethod

from models.schemas import DeliveryRecord


class BaseDeliveryStore(ABC):
    """Interface that all delivery store backends must implement."""

    @abstractmethod
    async def record(self, record: DeliveryRecord) -> DeliveryRecord:
        """Persist one delivery record."""
        ...

    @abstractmethod
    async def list_for_claim(self, claim_id: str) -> list[DeliveryRecord]:
        """All records for a claim, oldest first."""
        ...

    @abstractmethod
    async def list_recent(self, limit: int = 50) -> list[DeliveryRecord]:
        """Most recent records, newest first."""
        ...

    async def close(self) -> None:
        pass
