"""
retry.py — Exponential backoff shared by outbound AI provider calls.

Schedule for base_delay_ms=1000, max_attempts=3:
  attempt 1 fails → wait 1.0 s
  attempt 2 fails → wait 2.0 s
  attempt 3 fails → last error re-raised (no wait)
"""

import time
import logging

from tenacity import Retrying, before_sleep_log, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)


def backoff_retrying(max_attempts: int = 3, base_delay_ms: int = 1000, sleep=time.sleep, log=None) -> Retrying:
    """
    Build a tenacity Retrying controller that retries any exception.

    Args:
        max_attempts:  Total attempts, including the first one
        base_delay_ms: Delay before the second attempt; doubles each time
        sleep:         Sleep function (seconds); injectable for tests
        log:           Logger used for the per-retry warning

    The last exception is re-raised unchanged once attempts are exhausted.
    """
    return Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=base_delay_ms / 1000.0, exp_base=2, min=0),
        before_sleep=before_sleep_log(log or logger, logging.WARNING),
        sleep=sleep,
        reraise=True,
    )


def call_with_backoff(func, *args, max_attempts: int = 3, base_delay_ms: int = 1000, sleep=time.sleep, log=None, **kwargs):
    """Call func(*args, **kwargs) under backoff_retrying() and return its result."""
    retrying = backoff_retrying(max_attempts, base_delay_ms, sleep=sleep, log=log)
    return retrying(func, *args, **kwargs)
