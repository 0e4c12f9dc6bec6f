"""HTTP handler for text-to-speech."""

import base64

from mindmend_relay.dto import SpeechRequest, SpeechResponse
from mindmend_relay.services import SpeechService


class SpeechHandler:
    """Convert speech requests to service calls and audio to base64 JSON."""

    def __init__(self, speech_service: SpeechService) -> None:
        self._speech = speech_service

    async def synthesize(self, request: SpeechRequest) -> SpeechResponse:
        """Handle POST /api/tts requests.

        Synthesis failures still answer 200, with empty audio, ``fallback``
        set and the text for the client's local speech engine.
        """
        result = await self._speech.synthesize(
            text=request.text,
            prompt=request.prompt,
            emotion=request.emotion,
            language_code=request.language_code,
            speaking_rate=request.speaking_rate,
        )
        return SpeechResponse(
            audio_base64=base64.b64encode(result.audio).decode("ascii"),
            content_type=result.content_type,
            sample_rate=result.sample_rate,
            encoding=result.encoding,
            duration=result.duration_seconds,
            model=result.model,
            voice=result.voice,
            timestamp=result.timestamp,
            fallback=True if result.fallback else None,
            text=result.text,
        )
