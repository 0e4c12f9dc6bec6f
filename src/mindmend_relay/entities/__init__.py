"""Domain entities for internal representation.

These are pure dataclasses (frozen) used internally by services
and repositories. They are NOT used for API contracts - use DTOs
from the dto package for that.
"""

from .cache_entry import CacheEntryEntity
from .chat_message import ChatMessage, Role, UserProfile
from .replies import ChatReply, SpeechResult
from .retry_attempt import RetryAttempt
from .stream_chunk import StreamChunk

__all__ = [
    "CacheEntryEntity",
    "ChatMessage",
    "ChatReply",
    "RetryAttempt",
    "Role",
    "SpeechResult",
    "StreamChunk",
    "UserProfile",
]
