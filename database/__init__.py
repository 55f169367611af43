"""
Database layer — Delivery-record persistence.

Backends:
  - In-memory (list-based, for development/testing)
  - Supabase (email_notifications table over PostgREST)

Quick start:
  from database import create_delivery_store
  store = create_delivery_store(StoreConfig(backend="memory"))
  records = await store.list_for_claim("claim-1")
"""
from database.store_base import BaseDeliveryStore
from database.store_memory import InMemoryDeliveryStore
from database.store_supabase import SupabaseDeliveryStore
from database.store_factory import create_delivery_store

__all__ = [
    "BaseDeliveryStore",
    "InMemoryDeliveryStore", "SupabaseDeliveryStore",
    "create_delivery_store",
]
