"""In-memory implementation of ResponseCache.

A bounded, process-lifetime map with lazy TTL expiry and insertion-order
eviction. It satisfies the ResponseCache protocol.
"""

import logging
import re
import threading
import time
from collections.abc import Callable, Sequence

from mindmend_relay.config import Settings, settings
from mindmend_relay.entities import CacheEntryEntity, ChatMessage, Role

LOGGER = logging.getLogger("mindmend.cache")

_WHITESPACE = re.compile(r"\s+")


class InMemoryResponseCache:
    """Bounded TTL cache keyed by the latest user message.

    This class satisfies the ResponseCache protocol through structural
    typing - no explicit inheritance needed.

    Behaviour:
    - Keys are approximate: all conversations whose latest user message
      shares the same prefix map to the same entry
    - Expired entries are removed when read (no background sweep)
    - Once the map holds more than ``max_entries`` items, the entry that
      was inserted first is dropped (not the least recently read one)
    - Overwriting a key keeps its original insertion position

    Example:
        ```python
        cache = InMemoryResponseCache.create()
        key = cache.compute_key(messages)
        cache.put(key, "Hello")
        cache.get(key)  # "Hello" for the next 5 minutes
        ```
    """

    KEY_TAG = "chat_"

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_entries: int = 100,
        key_length: int = 50,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            ttl_seconds: Time-to-live of an entry in seconds.
            max_entries: Capacity; the oldest insert is evicted beyond it.
            key_length: Characters of the user message used for the key.
            clock: Monotonic clock returning seconds (injectable for tests).
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._key_length = key_length
        self._clock = clock
        self._entries: dict[str, CacheEntryEntity] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @classmethod
    def create(
        cls,
        config: Settings | None = None,
        ttl_seconds: float | None = None,
        max_entries: int | None = None,
        key_length: int | None = None,
    ) -> "InMemoryResponseCache":
        """Factory method to create the cache from settings.

        Args:
            config: Settings instance. If None, uses the global settings.
            ttl_seconds: Entry TTL in seconds. If None, uses settings.
            max_entries: Capacity. If None, uses settings.
            key_length: Key prefix length. If None, uses settings.

        Returns:
            Configured InMemoryResponseCache
        """
        config = config or settings
        return cls(
            ttl_seconds=ttl_seconds or config.cache_ttl_seconds,
            max_entries=max_entries or config.cache_max_entries,
            key_length=key_length or config.cache_key_length,
        )

    def compute_key(self, messages: Sequence[ChatMessage]) -> str | None:
        """Derive the fingerprint for a conversation.

        Args:
            messages: The conversation, oldest first

        Returns:
            ``chat_`` + the first ``key_length`` characters of the last user
            message with whitespace runs replaced by ``_``, or None when the
            conversation has no user message
        """
        for message in reversed(messages):
            if message.role == Role.USER:
                prefix = message.content[: self._key_length]
                return self.KEY_TAG + _WHITESPACE.sub("_", prefix)
        return None

    def get(self, key: str) -> str | None:
        """Return the cached value if present and fresh.

        Args:
            key: The cache key

        Returns:
            The cached response, or None (expired entries are removed)
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if not entry.is_fresh(self._clock(), self._ttl):
                del self._entries[key]
                self._misses += 1
                LOGGER.debug("Cache entry expired: %s", key)
                return None
            self._hits += 1
            return entry.value

    def put(self, key: str, value: str) -> None:
        """Insert or overwrite an entry, evicting the oldest insert if full.

        Args:
            key: The cache key
            value: The response text to cache
        """
        with self._lock:
            self._entries[key] = CacheEntryEntity(key=key, value=value, created_at=self._clock())
            if len(self._entries) > self._max_entries:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                self._evictions += 1
                LOGGER.debug("Cache full, evicted oldest entry: %s", oldest)

    def clear(self) -> int:
        """Drop all entries.

        Returns:
            Number of entries dropped
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def keys(self) -> list[str]:
        """Keys in insertion order (oldest first)."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get_stats(self) -> dict:
        """Get cache statistics.

        Returns:
            Dictionary with stats
        """
        with self._lock:
            return {
                "total_entries": len(self._entries),
                "max_entries": self._max_entries,
                "ttl_seconds": self._ttl,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }
