"""Response DTOs for API endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChatResponse(BaseModel):
    """Response DTO for the chat endpoints.

    ``cached`` and ``fallback`` are only present when true.
    """

    response: str = Field(..., description="Reply text")
    timestamp: datetime = Field(..., description="When the reply was produced")
    model: str = Field(..., description="Model name (also set for fallbacks)")
    personalized: bool = Field(False, description="Whether user context shaped the request")
    cached: bool | None = Field(None, description="Served from the response cache")
    fallback: bool | None = Field(None, description="Produced by the fallback generator")


class SpeechResponse(BaseModel):
    """Response DTO for POST /api/tts."""

    model_config = ConfigDict(populate_by_name=True)

    audio_base64: str = Field(..., alias="audioBase64", description="Base64 PCM audio")
    content_type: str = Field(..., alias="contentType")
    sample_rate: int = Field(..., alias="sampleRate", ge=0)
    encoding: str = Field(..., description="Audio encoding, e.g. LINEAR16")
    duration: float = Field(..., description="Audio length in seconds", ge=0.0)
    model: str
    voice: str
    timestamp: datetime
    fallback: bool | None = Field(None, description="Synthesis failed; speak ``text`` locally")
    text: str | None = Field(None, description="Text to speak locally on fallback")


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'degraded'")
    gemini_configured: bool = Field(..., description="Whether a chat model key is configured")
    tts_configured: bool = Field(..., description="Whether a speech model key is configured")
    database_configured: bool = Field(..., description="Whether the database collaborator is configured")
    cache_entries: int = Field(0, ge=0, description="Entries currently in the response cache")
    timestamp: datetime


class CacheStatsResponse(BaseModel):
    """Response DTO for cache statistics."""

    enabled: bool = Field(..., description="Whether response caching is on")
    total_entries: int = Field(0, ge=0)
    max_entries: int = Field(0, ge=0)
    ttl_seconds: float = Field(0.0, ge=0.0)
    hits: int = Field(0, ge=0)
    misses: int = Field(0, ge=0)
    evictions: int = Field(0, ge=0)


class ErrorResponse(BaseModel):
    """Response DTO for rejected requests."""

    error: str
    details: list[Any] = Field(default_factory=list)
