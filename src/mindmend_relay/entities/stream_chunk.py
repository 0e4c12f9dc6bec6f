"""Stream chunk entity."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class StreamChunk:
    """Unit of output forwarded to the caller while streaming.

    A stream is a run of non-final chunks followed by exactly one final
    chunk, which either carries the full text or an error message.

    Attributes:
        text: Text of this chunk (empty for the final chunk)
        sequence_index: Position in the stream, starting at 0
        is_final: Whether this chunk ends the stream
        full_text: Concatenation of all chunk texts (final chunk only)
        error: Error message when the stream ended abnormally
        fallback: Whether the text came from the fallback generator
    """

    text: str
    sequence_index: int
    is_final: bool = False
    full_text: str | None = None
    error: str | None = None
    fallback: bool = False

    def to_event(self) -> dict[str, Any]:
        """Convert to the JSON payload of an SSE event."""
        if self.error is not None:
            return {"error": self.error, "done": True}
        if not self.is_final:
            return {"chunk": self.text, "done": False}
        event: dict[str, Any] = {"chunk": "", "done": True, "fullText": self.full_text or ""}
        if self.fallback:
            event["fallback"] = True
        return event
