"""
FastAPI Application — Notification endpoint for the reimbursement workflow.

Provides:
- POST /api/send-notification: validate, subject, send, record one email
- POST /api/notifications/batch: fan a list of notifications out through
  the rate-limited queue and return a partial-success summary
- GET  /api/notifications/{claim_id}: delivery records for a claim
- GET  /health: queue depth and email channel metrics
"""
from __future__ import annotations

import structlog
from datetime import datetime, timezone
from contextlib import asynccontextmanager
from typing import Optional

# Load .env before any config is read
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from config.settings import get_settings
from channels.base import NotificationDeliveryError, NotificationValidationError
from channels.email_adapter import EmailAdapter
from database.store_factory import create_delivery_store
from job_queue.rate_limiter import RateLimitedRetryQueue
from models.schemas import NotificationRequest
from notifications.dispatcher import BatchNotifier
from notifications.service import NotificationService

logger = structlog.get_logger()

# ──────────────────────────────────────────────────────────────
#  Bootstrap
# ──────────────────────────────────────────────────────────────

_settings_boot = get_settings()

email_adapter = EmailAdapter(_settings_boot.email)
delivery_store = create_delivery_store(_settings_boot.store)
notification_service = NotificationService(email_adapter, delivery_store)

email_queue = RateLimitedRetryQueue(
    requests_per_second=_settings_boot.dispatcher.requests_per_second,
    max_retries=_settings_boot.dispatcher.max_retries,
    retry_delay=_settings_boot.dispatcher.retry_delay_seconds,
)
batch_notifier = BatchNotifier(email_queue, notification_service)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info("claim_notifier_started",
                email_provider=settings.email.provider,
                dry_run=email_adapter.dry_run,
                store_backend=settings.store.backend,
                requests_per_second=settings.dispatcher.requests_per_second)
    yield

    await email_queue.join()
    await email_adapter.close()
    await delivery_store.close()
    logger.info("claim_notifier_stopped")


# ──────────────────────────────────────────────────────────────
#  App
# ──────────────────────────────────────────────────────────────

app = FastAPI(
    title="Claim Notifier API",
    description="Rate-limited email notifications for reimbursement claims",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ──────────────────────────────────────────────────────────────
#  Request Models
# ──────────────────────────────────────────────────────────────

class BatchNotificationRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    notifications: list[NotificationRequest]
    retry_limit: Optional[int] = Field(None, ge=0)


# ══════════════════════════════════════════════════════════════
#  HEALTH
# ══════════════════════════════════════════════════════════════

@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "queue": {
            "length": email_queue.queue_length,
            "processing": email_queue.is_processing,
            "pending_retries": email_queue.pending_retries,
        },
        "email": await email_adapter.health_check(),
    }


# ══════════════════════════════════════════════════════════════
#  NOTIFICATIONS
# ══════════════════════════════════════════════════════════════

@app.post("/api/send-notification")
async def send_notification(req: NotificationRequest):
    try:
        result = await notification_service.send(req)
    except NotificationValidationError as e:
        raise HTTPException(400, str(e))
    except NotificationDeliveryError as e:
        logger.error("send_notification_failed",
                     notification_type=req.notification_type.value,
                     recipient=req.recipient_email,
                     error=str(e))
        raise HTTPException(500, "Failed to send notification")
    return {"success": True, "messageId": result.message_id}


@app.post("/api/notifications/batch")
async def send_notification_batch(req: BatchNotificationRequest):
    batch = await batch_notifier.notify_many(req.notifications, retry_limit=req.retry_limit)
    return {
        "success": batch.success,
        "message": batch.message,
        "results": [r.model_dump(mode="json") for r in batch.results],
    }


@app.get("/api/notifications/{claim_id}")
async def list_claim_notifications(claim_id: str):
    records = await delivery_store.list_for_claim(claim_id)
    return [r.model_dump(mode="json") for r in records]


@app.get("/api/notifications")
async def list_recent_notifications(limit: int = Query(50, ge=1, le=200)):
    records = await delivery_store.list_recent(limit)
    return [r.model_dump(mode="json") for r in records]


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
