"""
Core data models for the Claim Notifier service.
These are the universal types shared across all modules.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ──────────────────────────────────────────────────────────────
#  Enums
# ──────────────────────────────────────────────────────────────

class NotificationType(str, Enum):
    SUBMISSION = "submission"
    EMPLOYEE_SUBMISSION_CONFIRMATION = "employee_submission_confirmation"
    ADMIN_VERIFICATION = "admin_verification"
    EMPLOYEE_VERIFICATION = "employee_verification"
    MANAGER_APPROVAL = "manager_approval"
    EMPLOYEE_APPROVAL = "employee_approval"
    REJECTION = "rejection"
    PROCESSED = "processed"
    ADMIN_REJECTION_NOTICE = "admin_rejection_notice"
    MANAGER_REJECTION_NOTICE = "manager_rejection_notice"
    ACCOUNTING_REJECTION_NOTICE = "accounting_rejection_notice"
    CONSOLIDATED_SUBMISSION = "consolidated_submission"
    CONSOLIDATED_EMPLOYEE_SUBMISSION_CONFIRMATION = "consolidated_employee_submission_confirmation"
    CONSOLIDATED_ADMIN_VERIFICATION = "consolidated_admin_verification"
    CONSOLIDATED_EMPLOYEE_VERIFICATION = "consolidated_employee_verification"
    CONSOLIDATED_MANAGER_APPROVAL = "consolidated_manager_approval"
    CONSOLIDATED_EMPLOYEE_APPROVAL = "consolidated_employee_approval"
    CONSOLIDATED_REJECTION = "consolidated_rejection"
    CONSOLIDATED_PROCESSED = "consolidated_processed"

    @property
    def is_consolidated(self) -> bool:
        return self.value.startswith("consolidated_")


class DeliveryStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ──────────────────────────────────────────────────────────────
#  NotificationRequest — body of POST /api/send-notification
# ──────────────────────────────────────────────────────────────

class NotificationRequest(BaseModel):
    """
    One email to one recipient about one or more claims.

    The HTML body is rendered by the workflow handler before the request is
    built; this service only attaches a subject and delivers it.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    recipient_email: str = ""
    recipient_name: str = ""
    notification_type: NotificationType
    claim_id: Optional[str] = None
    claim_ids: list[str] = []                 # consolidated variants only
    html_content: str = ""
    employee_name: str = ""
    rejected_by: Optional[str] = None         # user id of the rejector
    rejector_name: str = ""
    rejection_reason: str = ""
    total_amount: Optional[float] = None

    def claim_ids_for_record(self) -> list[str]:
        """Claim ids a delivery record is written for."""
        if self.notification_type.is_consolidated:
            return list(self.claim_ids)
        return [self.claim_id] if self.claim_id else []

    def to_payload(self) -> dict[str, Any]:
        """JSON body in the endpoint's camelCase wire format."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ──────────────────────────────────────────────────────────────
#  Results
# ──────────────────────────────────────────────────────────────

class EmailNotificationResult(BaseModel):
    success: bool
    recipient_email: str
    notification_type: NotificationType
    message_id: Optional[str] = None
    error: Optional[str] = None


class NotificationBatchResult(BaseModel):
    """Partial-success summary for a fan-out to many recipients."""
    results: list[EmailNotificationResult] = []

    @property
    def successes(self) -> list[EmailNotificationResult]:
        return [r for r in self.results if r.success]

    @property
    def failures(self) -> list[EmailNotificationResult]:
        return [r for r in self.results if not r.success]

    @property
    def success(self) -> bool:
        return len(self.successes) > 0

    @property
    def message(self) -> str:
        return f"Sent {len(self.successes)} of {len(self.results)} notifications"


# ──────────────────────────────────────────────────────────────
#  DeliveryRecord — one row of the email_notifications table
# ──────────────────────────────────────────────────────────────

class DeliveryRecord(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:16])
    claim_id: str
    recipient_email: str
    notification_type: NotificationType
    sent_at: datetime = Field(default_factory=_utcnow)
    sent_by: Optional[str] = None
    status: DeliveryStatus = DeliveryStatus.SENT
    message_id: Optional[str] = None
    error_message: Optional[str] = None

    def to_row(self) -> dict[str, Any]:
        """Row shape expected by the email_notifications table."""
        row = self.model_dump(mode="json", exclude={"id", "message_id"})
        return {k: v for k, v in row.items() if v is not None}
