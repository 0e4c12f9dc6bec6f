"""Response cache protocol.

Defines the interface of the soft cache placed in front of the chat
model. Implementations are accelerators only: a cache that never hits
must not change any response, just its latency and cost.
"""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from mindmend_relay.entities import ChatMessage


@runtime_checkable
class ResponseCache(Protocol):
    """Protocol for response cache backends.

    Example:
        ```python
        cache: ResponseCache = InMemoryResponseCache(ttl_seconds=300, max_entries=100)
        key = cache.compute_key(messages)
        if key and (hit := cache.get(key)):
            ...
        ```
    """

    def compute_key(self, messages: Sequence[ChatMessage]) -> str | None:
        """Derive the fingerprint for a conversation.

        Args:
            messages: The conversation, oldest first

        Returns:
            The cache key, or None when there is no user message
        """
        ...

    def get(self, key: str) -> str | None:
        """Return the cached value if present and fresh.

        Args:
            key: The cache key

        Returns:
            The cached response, or None
        """
        ...

    def put(self, key: str, value: str) -> None:
        """Insert or overwrite an entry.

        Args:
            key: The cache key
            value: The response text to cache
        """
        ...

    def clear(self) -> int:
        """Drop all entries.

        Returns:
            Number of entries dropped
        """
        ...

    def get_stats(self) -> dict:
        """Get cache statistics.

        Returns:
            Dictionary with stats (implementation-specific)
        """
        ...
