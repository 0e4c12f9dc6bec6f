"""Service layer for business logic.

This layer contains the resilience pipeline and its orchestration.
Services depend on protocols (interfaces), not concrete implementations,
making them testable with fake models.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access / External API)

Usage:
    ```python
    from mindmend_relay.services import ChatService

    chat = ChatService.create(model=GeminiClient.create(), cache=InMemoryResponseCache.create())
    reply = await chat.reply(messages)
    ```
"""

from .backoff import BackoffInvoker
from .chat_service import ChatService
from .fallback import FallbackGenerator
from .normalizer import RequestNormalizer
from .speech_service import SpeechService
from .stream_relay import StreamRelay, format_sse

__all__ = [
    "BackoffInvoker",
    "ChatService",
    "FallbackGenerator",
    "RequestNormalizer",
    "SpeechService",
    "StreamRelay",
    "format_sse",
]
