"""Handler layer for HTTP endpoints.

This layer contains the HTTP request/response handlers.
Handlers depend on services (business logic), not directly on repositories.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access / External API)
"""

from .chat_handler import ChatHandler
from .speech_handler import SpeechHandler

__all__ = [
    "ChatHandler",
    "SpeechHandler",
]
