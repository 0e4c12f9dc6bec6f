"""Request DTOs for API endpoints.

Field names follow the JSON the mobile and web clients already send
(camelCase), exposed as snake_case attributes through aliases.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ChatMessageIn(BaseModel):
    """One conversation turn."""

    role: Literal["system", "user", "assistant"] = Field(..., description="Who wrote the turn")
    content: str = Field(..., description="Turn text")


class UserContextIn(BaseModel):
    """Optional user context used to personalize replies and fallbacks."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(None, alias="userId")
    user_name: str | None = Field(None, alias="userName", description="Name to address the user by")
    mood_history: list[str] = Field(
        default_factory=list,
        alias="moodHistory",
        description="Mood labels, oldest first",
    )
    progress: dict[str, Any] = Field(
        default_factory=dict,
        description="Exercise progress, e.g. {'completedExercises': 3, 'streak': 2}",
    )


class ChatRequest(BaseModel):
    """Request DTO for POST /api/chat."""

    model_config = ConfigDict(populate_by_name=True)

    messages: list[ChatMessageIn] = Field(..., min_length=1, description="Conversation, oldest first")
    user_context: UserContextIn | None = Field(None, alias="userContext")


class UserProgressIn(BaseModel):
    """Progress counters sent with simple chat."""

    model_config = ConfigDict(populate_by_name=True)

    completed_exercises: int = Field(0, alias="completedExercises", ge=0)
    streak: int = Field(0, ge=0)


class SimpleChatRequest(BaseModel):
    """Request DTO for POST /api/chat/simple."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., min_length=1)
    mood_history: list[str] = Field(default_factory=list, alias="moodHistory")
    user_progress: UserProgressIn = Field(default_factory=UserProgressIn, alias="userProgress")


class StreamChatRequest(BaseModel):
    """Request DTO for POST /api/chat/stream."""

    message: str = Field(..., min_length=1, description="New user message")
    history: list[ChatMessageIn] = Field(default_factory=list, description="Earlier turns")


class SpeechRequest(BaseModel):
    """Request DTO for POST /api/tts."""

    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(..., min_length=1, description="Text to speak")
    prompt: str | None = Field(None, description="Custom delivery instruction")
    emotion: str | None = Field("supportive", description="Emotion preset")
    language_code: str | None = Field("en-US", alias="languageCode")
    speaking_rate: float = Field(1.0, alias="speakingRate", gt=0.0, le=4.0)
