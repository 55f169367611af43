"""
Store Factory — Create the right delivery store backend from configuration.

Configuration in settings.yaml:
    store:
      # Where delivery records live
      #   "memory"   — In-memory list (development, testing)
      #   "supabase" — email_notifications table via Supabase REST
      backend: "memory"
      supabase_url: "${SUPABASE_URL}"
      supabase_key: "${SUPABASE_SERVICE_KEY}"
      table: "email_notifications"

Usage:
    from database.store_factory import create_delivery_store
    store = create_delivery_store(get_settings().store)
"""
from __future__ import annotations

import structlog

from config.settings import StoreConfig, is_configured
from database.store_base import BaseDeliveryStore

logger = structlog.get_logger()


def create_delivery_store(config: StoreConfig = None) -> BaseDeliveryStore:
    """Factory: create the configured delivery store backend."""
    config = config or StoreConfig()

    if config.backend == "supabase":
        if not is_configured(config.supabase_url):
            raise ValueError("store.backend is 'supabase' but supabase_url is not set")
        from database.store_supabase import SupabaseDeliveryStore
        logger.info("delivery_store_created", backend="supabase", table=config.table)
        return SupabaseDeliveryStore(config)

    if config.backend != "memory":
        raise ValueError(f"Unknown store backend: {config.backend}")

    from database.store_memory import InMemoryDeliveryStore
    logger.info("delivery_store_created", backend="memory")
    return InMemoryDeliveryStore()
