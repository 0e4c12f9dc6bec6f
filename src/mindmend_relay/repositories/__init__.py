"""Repository layer for data access.

This layer wraps the external collaborators (the model API, the process
memory used for caching) behind protocol-based interfaces. The
repositories are protocol-based (structural typing), not inheritance-based.
"""

from mindmend_relay.protocols import GenerativeModel, ResponseCache, TextStream

from .gemini_client import GeminiClient, GeminiTextStream
from .memory_cache import InMemoryResponseCache

__all__ = [
    "GenerativeModel",
    "ResponseCache",
    "TextStream",
    "GeminiClient",
    "GeminiTextStream",
    "InMemoryResponseCache",
]
