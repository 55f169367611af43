#!/usr/bin/env python3
"""
Notify Recipients — Send one notification to many recipients through the queue.

Goes through the same path the workflow handlers use: one
NotificationEndpointClient call per recipient, paced and retried by a
RateLimitedRetryQueue built from the dispatcher settings.

Usage:
    python scripts/notify_recipients.py --type submission --claim c-1 \
        --html body.html a@example.com b@example.com

    # Consolidated notification covering several claims:
    python scripts/notify_recipients.py --type consolidated_submission \
        --claim c-1 --claim c-2 --html body.html admin@example.com
"""
import asyncio
import os
import sys
import argparse
from pathlib import Path

# Ensure app root is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


async def run(args) -> int:
    from config.settings import load_settings
    from job_queue.rate_limiter import RateLimitedRetryQueue
    from models.schemas import NotificationRequest, NotificationType
    from notifications.client import NotificationEndpointClient
    from notifications.dispatcher import BatchNotifier

    settings = load_settings(args.config)
    if args.endpoint:
        settings.endpoint.url = args.endpoint

    notification_type = NotificationType(args.type)
    html = Path(args.html).read_text()
    requests = [
        NotificationRequest(
            recipient_email=email,
            notification_type=notification_type,
            claim_id=None if notification_type.is_consolidated else args.claim[0],
            claim_ids=args.claim if notification_type.is_consolidated else [],
            html_content=html,
        )
        for email in args.recipients
    ]

    queue = RateLimitedRetryQueue(
        requests_per_second=settings.dispatcher.requests_per_second,
        max_retries=settings.dispatcher.max_retries,
        retry_delay=settings.dispatcher.retry_delay_seconds,
    )
    client = NotificationEndpointClient(settings.endpoint)
    try:
        batch = await BatchNotifier(queue, client).notify_many(requests, retry_limit=args.retries)
    finally:
        await client.close()

    print(batch.message)
    for failure in batch.failures:
        print(f"  FAILED {failure.recipient_email}: {failure.error}")
    return 0 if batch.success else 1


def main():
    parser = argparse.ArgumentParser(description="Send a claim notification to many recipients")
    parser.add_argument("recipients", nargs="+", help="Recipient email addresses")
    parser.add_argument("--type", required=True, help="Notification type tag")
    parser.add_argument("--claim", action="append", required=True, help="Claim id (repeat for consolidated)")
    parser.add_argument("--html", required=True, help="Path to the rendered HTML body")
    parser.add_argument("--retries", type=int, default=None, help="Override retry limit per send")
    parser.add_argument("--endpoint", default="", help="Override the send-notification URL")
    parser.add_argument("--config", default=None, help="Path to settings.yaml")
    args = parser.parse_args()

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
