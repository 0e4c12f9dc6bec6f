"""Generative model protocol.

Defines the interface to the external text and speech models. The
concrete implementation talks to the Gemini REST API; tests use fakes.

Implementations signal failures with the exceptions in
``mindmend_relay.errors``: ``RateLimitedError`` for rate limits,
``UpstreamError`` for everything else.
"""

from collections.abc import AsyncIterator
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class TextStream(Protocol):
    """An opened, non-restartable stream of text chunks."""

    def __aiter__(self) -> AsyncIterator[str]:
        ...

    async def aclose(self) -> None:
        """Release the underlying connection."""
        ...


@runtime_checkable
class GenerativeModel(Protocol):
    """Protocol for the external generative and speech models."""

    @property
    def model_name(self) -> str:
        """Name of the chat model."""
        ...

    @property
    def tts_model_name(self) -> str:
        """Name of the speech model."""
        ...

    async def generate(
        self,
        contents: list[dict[str, Any]],
        generation_config: dict[str, Any] | None = None,
    ) -> str:
        """Generate a complete reply.

        Args:
            contents: Conversation in the provider's wire shape
            generation_config: Sampling parameters

        Returns:
            The reply text (may be empty)
        """
        ...

    async def open_stream(
        self,
        contents: list[dict[str, Any]],
        generation_config: dict[str, Any] | None = None,
    ) -> TextStream:
        """Open a streaming reply.

        Rate limits and request errors are raised here, before any chunk
        is produced, so opening a stream can be retried.

        Args:
            contents: Conversation in the provider's wire shape
            generation_config: Sampling parameters

        Returns:
            The opened text stream
        """
        ...

    async def synthesize(
        self,
        text: str,
        voice: str,
        style_prompt: str = "",
        language_code: str | None = None,
    ) -> tuple[bytes, str]:
        """Synthesize speech.

        Args:
            text: Text to speak
            voice: Prebuilt voice name
            style_prompt: Delivery instruction prepended to the text
            language_code: BCP-47 language code

        Returns:
            Tuple (pcm_audio, mime_type)
        """
        ...
