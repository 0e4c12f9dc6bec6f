"""HTTP handlers for chat operations.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like response framing and SSE headers.
"""

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import aclosing

from fastapi.responses import StreamingResponse

from mindmend_relay.dto import (
    CacheStatsResponse,
    ChatMessageIn,
    ChatRequest,
    ChatResponse,
    SimpleChatRequest,
    StreamChatRequest,
    UserContextIn,
)
from mindmend_relay.entities import ChatMessage, ChatReply, Role, UserProfile
from mindmend_relay.services import ChatService, format_sse

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def to_messages(items: list[ChatMessageIn]) -> list[ChatMessage]:
    return [ChatMessage(role=Role(item.role), content=item.content) for item in items]


def to_profile(context: UserContextIn | None) -> UserProfile | None:
    if context is None:
        return None
    return UserProfile(
        user_id=context.user_id,
        user_name=context.user_name,
        mood_history=tuple(context.mood_history),
        progress=dict(context.progress),
    )


def to_response(reply: ChatReply) -> ChatResponse:
    return ChatResponse(
        response=reply.text,
        timestamp=reply.timestamp,
        model=reply.model,
        personalized=reply.personalized,
        cached=True if reply.cached else None,
        fallback=True if reply.fallback else None,
    )


class ChatHandler:
    """HTTP handlers for chat operations.

    This handler delegates business logic to ChatService and handles
    HTTP-specific concerns like:
    - Converting DTOs to entities and replies back to DTOs
    - Framing streamed chunks as Server-Sent Events

    Example:
        ```python
        handler = ChatHandler(chat_service=ChatService.create(model, cache))

        @app.post("/api/chat", response_model=ChatResponse)
        async def chat(request: ChatRequest):
            return await handler.chat(request)
        ```
    """

    def __init__(self, chat_service: ChatService) -> None:
        """Initialize the chat handler.

        Args:
            chat_service: The chat service for business logic (required).
        """
        self._chat = chat_service

    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Handle POST /api/chat requests.

        Always answers: upstream failures come back as fallback replies.
        """
        reply = await self._chat.reply(
            messages=to_messages(request.messages),
            profile=to_profile(request.user_context),
        )
        return to_response(reply)

    async def simple_chat(self, request: SimpleChatRequest) -> ChatResponse:
        """Handle POST /api/chat/simple requests."""
        reply = await self._chat.simple_reply(
            message=request.message,
            mood_history=request.mood_history,
            progress={
                "completedExercises": request.user_progress.completed_exercises,
                "streak": request.user_progress.streak,
            },
        )
        return to_response(reply)

    async def stream_chat(
        self,
        request: StreamChatRequest,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> StreamingResponse:
        """Handle POST /api/chat/stream requests.

        Args:
            request: The stream chat request DTO
            is_disconnected: Client disconnect check (``Request.is_disconnected``)

        Returns:
            ``text/event-stream`` response of ``data: {...}`` events
        """
        chunks = self._chat.stream_reply(
            message=request.message,
            history=to_messages(request.history),
            is_disconnected=is_disconnected,
        )

        async def events() -> AsyncIterator[str]:
            async with aclosing(chunks):
                async for chunk in chunks:
                    yield format_sse(chunk)

        return StreamingResponse(events(), media_type="text/event-stream", headers=SSE_HEADERS)

    async def get_stats(self) -> CacheStatsResponse:
        """Handle GET /api/cache/stats requests."""
        return CacheStatsResponse(**self._chat.cache_stats())

    async def clear_cache(self) -> dict:
        """Handle DELETE /api/cache requests.

        Returns:
            Dict with clear operation result
        """
        count = self._chat.clear_cache()
        return {
            "success": True,
            "deleted_count": count,
            "message": "Cache cleared successfully",
        }
