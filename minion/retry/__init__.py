"""Retry policies for remote calls.

Public API:
    RetryPolicy(max_attempts, initial_delay_ms, scale_factor).attempt(operation)
"""

from minion.retry.policy import RetriesExhaustedError, RetryPolicy

__all__ = ["RetryPolicy", "RetriesExhaustedError"]
