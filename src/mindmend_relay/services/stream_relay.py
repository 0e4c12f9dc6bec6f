"""Relay of streamed model output to the caller.

Chunks are forwarded one at a time, in upstream order, as soon as they
arrive; only the running full text is kept, for the final event. The
upstream handle is closed on every exit path: normal end, upstream error,
client disconnect and cancellation of the relay itself.
"""

import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable

from mindmend_relay.entities import StreamChunk
from mindmend_relay.protocols import TextStream

LOGGER = logging.getLogger("mindmend.stream")

STREAM_ERROR_MESSAGE = "The response was interrupted. Please try again."


def format_sse(chunk: StreamChunk) -> str:
    """Frame a chunk as a Server-Sent Events ``data:`` line."""
    return f"data: {json.dumps(chunk.to_event(), ensure_ascii=False)}\n\n"


class StreamRelay:
    """Turn an upstream text stream into an ordered run of StreamChunks.

    Example:
        ```python
        relay = StreamRelay()
        async for chunk in relay.relay(stream, request.is_disconnected):
            yield format_sse(chunk)
        ```
    """

    async def relay(
        self,
        upstream: TextStream,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Forward upstream chunks, then a terminal chunk.

        Args:
            upstream: The opened text stream (closed by this method)
            is_disconnected: Checked before each forward; when it returns
                True the relay stops without a terminal event

        Yields:
            Non-final chunks in upstream order, then one final chunk with
            the full text, or one final error chunk
        """
        parts: list[str] = []
        index = 0
        try:
            try:
                async for text in upstream:
                    if is_disconnected is not None and await is_disconnected():
                        LOGGER.info("Client disconnected after %s chunks", index)
                        return
                    parts.append(text)
                    yield StreamChunk(text=text, sequence_index=index)
                    index += 1
            except Exception as e:
                LOGGER.error("Upstream stream failed after %s chunks: %s", index, e, exc_info=True)
                yield StreamChunk(
                    text="",
                    sequence_index=index,
                    is_final=True,
                    error=STREAM_ERROR_MESSAGE,
                )
                return

            yield StreamChunk(
                text="",
                sequence_index=index,
                is_final=True,
                full_text="".join(parts),
            )
            LOGGER.info("Stream complete: %s chunks", index)
        finally:
            await upstream.aclose()

    async def single(self, text: str, fallback: bool = False) -> AsyncIterator[StreamChunk]:
        """Relay an already complete text as one chunk plus the final chunk."""
        yield StreamChunk(text=text, sequence_index=0)
        yield StreamChunk(
            text="",
            sequence_index=1,
            is_final=True,
            full_text=text,
            fallback=fallback,
        )
