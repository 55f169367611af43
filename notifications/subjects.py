"""Subject lines for every notification type."""
from __future__ import annotations

from models.schemas import NotificationType

SUBJECTS: dict[NotificationType, str] = {
    NotificationType.SUBMISSION: "New Reimbursement Claim Submitted",
    NotificationType.EMPLOYEE_SUBMISSION_CONFIRMATION: "Your Reimbursement Claim Has Been Submitted",
    NotificationType.ADMIN_VERIFICATION: "Reimbursement Claim Verified by Admin",
    NotificationType.EMPLOYEE_VERIFICATION: "Your Reimbursement Claim Has Been Verified",
    NotificationType.MANAGER_APPROVAL: "Reimbursement Claim Approved by Manager",
    NotificationType.EMPLOYEE_APPROVAL: "Your Reimbursement Claim Has Been Approved",
    NotificationType.REJECTION: "Your Reimbursement Claim Has Been Rejected",
    NotificationType.PROCESSED: "Your Reimbursement Claim Has Been Processed",
    NotificationType.ADMIN_REJECTION_NOTICE: "Reimbursement Claim Rejected by Admin",
    NotificationType.MANAGER_REJECTION_NOTICE: "Reimbursement Claim Rejected by Manager",
    NotificationType.ACCOUNTING_REJECTION_NOTICE: "Reimbursement Claim Rejected by Accounting",
    NotificationType.CONSOLIDATED_SUBMISSION: "New Reimbursement Claims Submitted",
    NotificationType.CONSOLIDATED_EMPLOYEE_SUBMISSION_CONFIRMATION: "Your Reimbursement Claims Have Been Submitted",
    NotificationType.CONSOLIDATED_ADMIN_VERIFICATION: "Reimbursement Claims Verified by Admin",
    NotificationType.CONSOLIDATED_EMPLOYEE_VERIFICATION: "Your Reimbursement Claims Have Been Verified",
    NotificationType.CONSOLIDATED_MANAGER_APPROVAL: "Reimbursement Claims Approved by Manager",
    NotificationType.CONSOLIDATED_EMPLOYEE_APPROVAL: "Your Reimbursement Claims Have Been Approved",
    NotificationType.CONSOLIDATED_REJECTION: "Your Reimbursement Claims Have Been Rejected",
    NotificationType.CONSOLIDATED_PROCESSED: "Your Reimbursement Claims Have Been Processed",
}


def subject_for(notification_type: NotificationType | str) -> str:
    """Subject line for a notification type; raises ValueError on unknown tags."""
    return SUBJECTS[NotificationType(notification_type)]
