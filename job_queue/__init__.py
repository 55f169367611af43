"""
Job Queue — Paces outbound notification sends through the email provider quota.

- RateLimitedRetryQueue: in-memory, single-flight drain loop with fixed
  start-to-start spacing and front-of-queue retries after a cooldown
"""
from job_queue.rate_limiter import QueueTask, RateLimitedRetryQueue, TaskState

__all__ = ["QueueTask", "RateLimitedRetryQueue", "TaskState"]
