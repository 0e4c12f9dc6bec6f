"""MindMend Relay - resilient proxy for the MindMend wellness coach.

This package wraps a generative model (chat, streaming chat and speech)
in a caching and resilience layer:

Layers:
    - protocols: Interface contracts (ResponseCache, GenerativeModel)
    - repositories: In-memory response cache, Gemini REST client
    - services: Backoff, normalization, streaming relay, fallbacks, orchestration
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from mindmend_relay.repositories import GeminiClient, InMemoryResponseCache
    from mindmend_relay.services import ChatService

    chat = ChatService.create(model=GeminiClient.create(), cache=InMemoryResponseCache.create())
    ```

For HTTP API:
    ```python
    from mindmend_relay.api.app import app
    ```
"""

from mindmend_relay.config import Settings, get_settings, settings
from mindmend_relay.dto import ChatRequest, SpeechRequest, StreamChatRequest
from mindmend_relay.entities import ChatMessage, ChatReply, Role, SpeechResult, StreamChunk, UserProfile
from mindmend_relay.errors import MissingCredentialsError, RateLimitedError, UpstreamError
from mindmend_relay.handlers import ChatHandler, SpeechHandler
from mindmend_relay.protocols import GenerativeModel, ResponseCache, TextStream
from mindmend_relay.repositories import GeminiClient, InMemoryResponseCache
from mindmend_relay.services import (
    BackoffInvoker,
    ChatService,
    FallbackGenerator,
    RequestNormalizer,
    SpeechService,
    StreamRelay,
)

__all__ = [
    # Configuration
    "Settings",
    "settings",
    "get_settings",
    # Errors
    "UpstreamError",
    "RateLimitedError",
    "MissingCredentialsError",
    # Protocols (interfaces)
    "GenerativeModel",
    "ResponseCache",
    "TextStream",
    # Services (business logic)
    "BackoffInvoker",
    "ChatService",
    "FallbackGenerator",
    "RequestNormalizer",
    "SpeechService",
    "StreamRelay",
    # Handlers (HTTP)
    "ChatHandler",
    "SpeechHandler",
    # Repositories (data access / external API)
    "GeminiClient",
    "InMemoryResponseCache",
    # Entities (domain models)
    "ChatMessage",
    "ChatReply",
    "Role",
    "SpeechResult",
    "StreamChunk",
    "UserProfile",
    # DTOs (API contracts)
    "ChatRequest",
    "StreamChatRequest",
    "SpeechRequest",
]
