"""Shared test fixtures for Claim Notifier."""
import asyncio

import pytest

from models.schemas import NotificationRequest, NotificationType


class FakeClock:
    """Virtual monotonic clock; `sleep` advances time instead of waiting."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds

    async def sleep(self, delay: float):
        self.sleeps.append(delay)
        self.now += delay
        await asyncio.sleep(0)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


def make_request(
    email="admin@gibraltar.ca",
    notification_type=NotificationType.SUBMISSION,
    claim_id="claim-001",
    claim_ids=None,
    html="<p>New claim</p>",
    **kwargs,
) -> NotificationRequest:
    return NotificationRequest(
        recipient_email=email,
        recipient_name=kwargs.pop("name", "Alex Admin"),
        notification_type=notification_type,
        claim_id=claim_id,
        claim_ids=claim_ids or [],
        html_content=html,
        **kwargs,
    )


@pytest.fixture
def submission_request() -> NotificationRequest:
    return make_request()


@pytest.fixture
def consolidated_request() -> NotificationRequest:
    return make_request(
        notification_type=NotificationType.CONSOLIDATED_SUBMISSION,
        claim_id=None,
        claim_ids=["claim-001", "claim-002", "claim-003"],
        html="<table>3 claims</table>",
        total_amount=412.5,
    )


@pytest.fixture
def make_notification():
    return make_request
