"""Retry with exponential backoff for rate-limited calls.

Only RateLimitedError is retried. Every other exception is fatal to the
invocation and propagates at once, without sleeping.

Delay before retry ``n`` (0-based attempt that just failed):

    2**n * base_delay + uniform(0, max_jitter)

so with the defaults the waits are about 1s, 2s, 4s, 8s plus up to 1s of
jitter each. A provider Retry-After hint may lengthen a wait, but never
beyond ``max_delay``.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from mindmend_relay.entities import RetryAttempt
from mindmend_relay.errors import RateLimitedError

LOGGER = logging.getLogger("mindmend.backoff")

T = TypeVar("T")


class BackoffInvoker:
    """Bounded retry loop around an async operation.

    Example:
        ```python
        invoker = BackoffInvoker(max_attempts=3)
        text = await invoker.invoke(lambda: model.generate(contents))
        ```
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_jitter: float = 1.0,
        max_delay: float = 8.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the invoker.

        Args:
            max_attempts: Default attempt bound, overridable per call.
            base_delay: Delay unit in seconds for the first retry.
            max_jitter: Upper bound of the random extra delay in seconds.
            max_delay: Cap in seconds on waits stretched by a Retry-After hint.
            sleep: Coroutine used to wait (injectable for tests).
            rng: Random source for jitter (injectable for tests).
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._max_jitter = max_jitter
        self._max_delay = max_delay
        self._sleep = sleep
        self._rng = rng or random.Random()

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def compute_delay(self, attempt: int, retry_after: float | None = None) -> float:
        """Delay to wait after the given 0-based attempt failed.

        A provider ``retry_after`` hint wins when it asks for a longer wait,
        up to ``max_delay``.
        """
        delay = (2**attempt) * self._base_delay + self._rng.uniform(0, self._max_jitter)
        if retry_after is not None and retry_after > delay:
            return max(delay, min(retry_after, self._max_delay))
        return delay

    async def invoke(
        self,
        operation: Callable[[], Awaitable[T]],
        max_attempts: int | None = None,
        on_retry: Callable[[RetryAttempt], None] | None = None,
    ) -> T:
        """Run ``operation`` until it succeeds or the attempt bound is hit.

        Args:
            operation: Zero-argument callable returning an awaitable
            max_attempts: Attempt bound for this call (defaults to the invoker's)
            on_retry: Called with each RetryAttempt before sleeping

        Returns:
            The operation's result

        Raises:
            RateLimitedError: The last rate-limit error, once attempts run out
            Exception: Any other error from the operation, unchanged
        """
        attempts = self._max_attempts if max_attempts is None else max_attempts
        if attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        for attempt in range(attempts):
            try:
                return await operation()
            except RateLimitedError as e:
                if attempt == attempts - 1:
                    LOGGER.warning("Rate limited, giving up after %s attempts", attempts)
                    raise
                retry = RetryAttempt(attempt=attempt, delay=self.compute_delay(attempt, e.retry_after))
                LOGGER.warning(
                    "Attempt %s/%s rate limited. Retrying in %.2fs",
                    attempt + 1,
                    attempts,
                    retry.delay,
                )
                if on_retry is not None:
                    on_retry(retry)
                await self._sleep(retry.delay)

        # Unreachable: the loop either returns or raises.
        raise RuntimeError("BackoffInvoker exhausted without a result")
