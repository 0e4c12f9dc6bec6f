"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import (
    ChatMessageIn,
    ChatRequest,
    SimpleChatRequest,
    SpeechRequest,
    StreamChatRequest,
    UserContextIn,
    UserProgressIn,
)
from .responses import (
    CacheStatsResponse,
    ChatResponse,
    ErrorResponse,
    HealthCheckResponse,
    SpeechResponse,
)

__all__ = [
    "ChatMessageIn",
    "UserContextIn",
    "UserProgressIn",
    "ChatRequest",
    "SimpleChatRequest",
    "StreamChatRequest",
    "SpeechRequest",
    "ChatResponse",
    "SpeechResponse",
    "HealthCheckResponse",
    "CacheStatsResponse",
    "ErrorResponse",
]
