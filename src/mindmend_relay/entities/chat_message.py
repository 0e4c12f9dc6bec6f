"""Chat message and user profile entities."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Conversation roles accepted from callers."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    """A single turn of a conversation.

    Attributes:
        role: Who produced the message
        content: The message text
    """

    role: Role
    content: str


@dataclass(frozen=True)
class UserProfile:
    """Context about the person chatting, used for personalization and fallbacks.

    Attributes:
        user_id: Opaque identifier from the client, only logged
        user_name: Display name, if known
        mood_history: Mood labels, oldest first
        progress: Free-form progress counters (streak, completedExercises, ...)
    """

    user_id: str | None = None
    user_name: str | None = None
    mood_history: tuple[str, ...] = ()
    progress: dict[str, Any] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        """Name to address the user by."""
        return (self.user_name or "").strip() or "friend"

    @property
    def latest_mood(self) -> str | None:
        """Most recent mood label, if any."""
        for mood in reversed(self.mood_history):
            if mood and mood.strip():
                return mood.strip()
        return None
