"""
Bounded retry loop with pluggable backoff.

A worker does one unit of work and returns True when finished, False to be
called again. It raises to abort. A sleeper is handed the number of attempts
made so far and returns (keep_going, seconds_to_sleep).
"""

import logging
import time
from typing import Callable, Tuple

logger = logging.getLogger(__name__)

RetryWorker = Callable[[], bool]
RetrySleeper = Callable[[int], Tuple[bool, float]]


class RetriesExhausted(Exception):
    """Raised when the sleeper refuses another attempt."""

    def __init__(self, attempts: int, description: str = "operation"):
        self.attempts = attempts
        self.description = description
        super().__init__(f"{description} giving up after {attempts} attempts")


def retry_loop(worker: RetryWorker, sleeper: RetrySleeper,
               sleep: Callable[[float], None] = time.sleep,
               description: str = "RetryLoop"):
    """
    Call worker until it returns True.

    Exceptions raised by the worker propagate immediately, without consulting
    the sleeper. When the sleeper returns keep_going=False, RetriesExhausted is
    raised. Only the calling thread sleeps.
    """
    attempts = 1

    while True:
        if worker():
            return

        keep_going, seconds = sleeper(attempts)
        if not keep_going:
            raise RetriesExhausted(attempts, description)

        logger.info(f"{description}: attempt {attempts} not done, sleeping {seconds}s")
        sleep(seconds)

        attempts += 1


def fixed_sleeper(max_attempts: int, seconds: float) -> RetrySleeper:
    """Same sleep after every attempt, stop once max_attempts have run."""
    def sleeper(attempts: int) -> Tuple[bool, float]:
        if attempts >= max_attempts:
            return False, 0
        return True, seconds
    return sleeper


def linear_sleeper(max_attempts: int, step: float) -> RetrySleeper:
    """Sleep step * attempts, stop once max_attempts have run."""
    def sleeper(attempts: int) -> Tuple[bool, float]:
        if attempts >= max_attempts:
            return False, 0
        return True, step * attempts
    return sleeper
