"""Retry attempt entity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryAttempt:
    """A failed, rate-limited attempt that is about to be retried.

    Attributes:
        attempt: Zero-based index of the attempt that failed
        delay: Seconds to wait before the next attempt
    """

    attempt: int
    delay: float
