"""Chat service for the chat proxy pipeline.

Each call runs the same pipeline:

    normalize -> cache lookup (hit: return) -> backoff invoke -> cache store

and the fallback generator takes over at any failure point, so callers
always get a reply.
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from typing import Any

from mindmend_relay.config import Settings, settings
from mindmend_relay.entities import ChatMessage, ChatReply, Role, StreamChunk, UserProfile
from mindmend_relay.errors import UpstreamError
from mindmend_relay.protocols import GenerativeModel, ResponseCache

from .backoff import BackoffInvoker
from .fallback import FallbackGenerator
from .normalizer import (
    CHAT_GENERATION_CONFIG,
    SIMPLE_GENERATION_CONFIG,
    STREAM_GENERATION_CONFIG,
    RequestNormalizer,
)
from .stream_relay import StreamRelay

LOGGER = logging.getLogger("mindmend.chat")

EMPTY_REPLY = (
    "Thank you for sharing, {name}. I'm here to support you. "
    "What would feel most helpful right now?"
)


def context_scope(mood_history: Sequence[str], progress: dict[str, Any]) -> str:
    """Cache scope for the mood and progress details a prompt is built from."""
    moods = ",".join(m for m in list(mood_history)[-5:] if m)
    completed = progress.get("completedExercises", 0) or 0
    streak = progress.get("streak", 0) or 0
    return f"{moods}|{completed}|{streak}"


def profile_scope(profile: UserProfile) -> str:
    """Cache scope for a personalized request.

    Replies written for one person must never be served to another, so the
    scope covers the identity and every detail the persona prompt uses.
    """
    context = context_scope(profile.mood_history, profile.progress)
    return f"{profile.user_id or ''}|{profile.display_name}|{context}"


class ChatService:
    """Core chat orchestration service.

    This service depends on PROTOCOLS, not concrete implementations:
    - GenerativeModel: Gemini REST client, or a fake in tests
    - ResponseCache: in-memory TTL cache, or None to disable caching

    Example:
        ```python
        service = ChatService.create(model=GeminiClient.create(), cache=InMemoryResponseCache.create())
        reply = await service.reply([ChatMessage(Role.USER, "I feel anxious")])
        ```
    """

    def __init__(
        self,
        model: GenerativeModel,
        cache: ResponseCache | None,
        invoker: BackoffInvoker,
        fallback: FallbackGenerator,
        normalizer: RequestNormalizer | None = None,
        relay: StreamRelay | None = None,
        chat_max_attempts: int = 3,
        stream_max_attempts: int = 3,
    ) -> None:
        """Initialize the chat service.

        Args:
            model: External model (required).
            cache: Response cache; None disables caching.
            invoker: Retry loop used for every outbound call.
            fallback: Canned reply generator.
            normalizer: Request normalizer. Defaults to a new one.
            relay: Stream relay. Defaults to a new one.
            chat_max_attempts: Attempt bound for buffered replies.
            stream_max_attempts: Attempt bound for opening a stream.
        """
        self._model = model
        self._cache = cache
        self._invoker = invoker
        self._fallback = fallback
        self._normalizer = normalizer or RequestNormalizer()
        self._relay = relay or StreamRelay()
        self._chat_max_attempts = chat_max_attempts
        self._stream_max_attempts = stream_max_attempts

    @classmethod
    def create(
        cls,
        model: GenerativeModel,
        cache: ResponseCache | None,
        config: Settings | None = None,
        invoker: BackoffInvoker | None = None,
    ) -> "ChatService":
        """Factory method to create ChatService from settings.

        Args:
            model: External model (required).
            cache: Response cache (required; pass None to disable caching).
            config: Settings. If None, uses the global settings.
            invoker: Retry loop. If None, one is built from settings.

        Returns:
            Configured ChatService instance
        """
        config = config or settings
        return cls(
            model=model,
            cache=cache if config.cache_enabled else None,
            invoker=invoker
            or BackoffInvoker(
                max_attempts=config.chat_max_attempts,
                base_delay=config.retry_base_delay,
                max_jitter=config.retry_max_jitter,
                max_delay=config.retry_max_delay,
            ),
            fallback=FallbackGenerator.create(seed=config.fallback_seed),
            chat_max_attempts=config.chat_max_attempts,
            stream_max_attempts=config.stream_max_attempts,
        )

    @property
    def model_name(self) -> str:
        return self._model.model_name

    @property
    def cache(self) -> ResponseCache | None:
        """Get the underlying cache (for testing and stats)."""
        return self._cache

    async def reply(
        self,
        messages: Sequence[ChatMessage],
        profile: UserProfile | None = None,
    ) -> ChatReply:
        """Answer a conversation.

        Args:
            messages: Conversation, oldest first
            profile: Optional user context for personalization and fallbacks

        Returns:
            ChatReply, flagged ``cached`` or ``fallback`` when applicable
        """
        contents = self._normalizer.to_contents(self._normalizer.personalize(messages, profile))
        return await self._cached_generate(
            key_messages=messages,
            contents=contents,
            generation_config=CHAT_GENERATION_CONFIG,
            profile=profile,
            personalized=profile is not None,
            scope=profile_scope(profile) if profile is not None else None,
        )

    async def simple_reply(
        self,
        message: str,
        mood_history: Sequence[str] = (),
        progress: dict[str, Any] | None = None,
    ) -> ChatReply:
        """Answer a single message with the templated coach prompt.

        The cache key comes from the raw message, not the template, so
        different messages do not collide on the shared prompt prefix.
        """
        progress = progress or {}
        prompt = self._normalizer.simple_prompt(message, mood_history, progress)
        user_message = ChatMessage(role=Role.USER, content=message)
        return await self._cached_generate(
            key_messages=[user_message],
            contents=self._normalizer.to_contents([ChatMessage(role=Role.USER, content=prompt)]),
            generation_config=SIMPLE_GENERATION_CONFIG,
            profile=UserProfile(mood_history=tuple(mood_history), progress=progress),
            personalized=False,
            scope=context_scope(mood_history, progress),
            postprocess=self._normalizer.clean_reply,
        )

    async def _cached_generate(
        self,
        key_messages: Sequence[ChatMessage],
        contents: list[dict[str, Any]],
        generation_config: dict[str, Any],
        profile: UserProfile | None,
        personalized: bool,
        scope: str | None = None,
        postprocess: Callable[[str], str] | None = None,
    ) -> ChatReply:
        key = self._cache.compute_key(key_messages) if self._cache is not None else None
        if key is not None and scope:
            key = f"{key}|{scope}"
        if key is not None:
            hit = self._cache.get(key)
            if hit is not None:
                LOGGER.info("Cache hit: %s", key)
                return ChatReply(
                    text=hit, model=self.model_name, personalized=personalized, cached=True
                )

        try:
            text = await self._invoker.invoke(
                lambda: self._model.generate(contents, generation_config),
                max_attempts=self._chat_max_attempts,
            )
        except UpstreamError as e:
            LOGGER.warning("Chat upstream failed, using fallback: %s", e)
            return self._fallback_reply(key_messages, profile, personalized)
        except Exception:
            LOGGER.exception("Unexpected chat failure, using fallback")
            return self._fallback_reply(key_messages, profile, personalized)

        if postprocess is not None:
            text = postprocess(text)

        if not text:
            name = profile.display_name if profile else "friend"
            return ChatReply(
                text=EMPTY_REPLY.format(name=name), model=self.model_name, personalized=personalized
            )

        if key is not None:
            self._cache.put(key, text)
        return ChatReply(text=text, model=self.model_name, personalized=personalized)

    def _fallback_reply(
        self,
        messages: Sequence[ChatMessage],
        profile: UserProfile | None,
        personalized: bool,
    ) -> ChatReply:
        return ChatReply(
            text=self._fallback.chat_reply(messages, profile),
            model=self.model_name,
            personalized=personalized,
            fallback=True,
        )

    async def stream_reply(
        self,
        message: str,
        history: Sequence[ChatMessage] = (),
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Stream a reply chunk by chunk.

        Opening the stream goes through the backoff invoker. If it cannot be
        opened, the fallback message is relayed as a single chunk and the
        final chunk is flagged ``fallback``.

        Args:
            message: New user message
            history: Earlier turns, oldest first
            is_disconnected: Client disconnect check, polled per chunk

        Yields:
            StreamChunk items, the last one final
        """
        contents = self._normalizer.stream_contents(message, history)
        try:
            stream = await self._invoker.invoke(
                lambda: self._model.open_stream(contents, STREAM_GENERATION_CONFIG),
                max_attempts=self._stream_max_attempts,
            )
        except Exception as e:
            LOGGER.warning("Could not open chat stream, using fallback: %s", e)
            conversation = [*history, ChatMessage(role=Role.USER, content=message)]
            async for chunk in self._relay.single(
                self._fallback.chat_reply(conversation), fallback=True
            ):
                yield chunk
            return

        chunks = self._relay.relay(stream, is_disconnected)
        try:
            async for chunk in chunks:
                yield chunk
        finally:
            await chunks.aclose()

    def clear_cache(self) -> int:
        """Drop all cached replies.

        Returns:
            Number of entries dropped (0 when caching is disabled)
        """
        return self._cache.clear() if self._cache is not None else 0

    def cache_stats(self) -> dict:
        """Get cache statistics (``enabled: False`` when caching is off)."""
        if self._cache is None:
            return {"enabled": False}
        return {"enabled": True, **self._cache.get_stats()}
