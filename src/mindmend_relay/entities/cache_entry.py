"""Cache entry domain entity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CacheEntryEntity:
    """Domain entity for a cached response.

    Attributes:
        key: Fingerprint derived from the latest user message
        value: The cached response text
        created_at: Clock reading when the entry was stored (seconds)
    """

    key: str
    value: str
    created_at: float

    def is_fresh(self, now: float, ttl: float) -> bool:
        """Check whether the entry is still inside its TTL window."""
        return now - self.created_at < ttl
