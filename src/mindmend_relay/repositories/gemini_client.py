"""Gemini REST implementation of GenerativeModel.

Talks to the Generative Language API over plain HTTP so the service does
not depend on an SDK's release cadence:

- ``:generateContent`` for buffered chat replies and speech synthesis
- ``:streamGenerateContent?alt=sse`` for streamed chat replies

Failures are translated into the error taxonomy in ``mindmend_relay.errors``:
HTTP 429 becomes RateLimitedError, any other failure (HTTP status,
transport error, malformed payload, missing key) becomes UpstreamError.
"""

import base64
import binascii
import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from mindmend_relay.config import settings
from mindmend_relay.errors import MissingCredentialsError, RateLimitedError, UpstreamError

LOGGER = logging.getLogger("mindmend.gemini")

RESOURCE_EXHAUSTED = "RESOURCE_EXHAUSTED"

# Mental health conversations need room to talk about hard topics.
DEFAULT_SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_NONE"},
]


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def _candidate_text(payload: Any, separator: str) -> str:
    """Join the text parts of the first candidate."""
    if not isinstance(payload, dict):
        raise UpstreamError(f"Unexpected response format: {type(payload).__name__}")
    if "error" in payload:
        error = payload["error"] or {}
        if error.get("code") == 429 or error.get("status") == RESOURCE_EXHAUSTED:
            raise RateLimitedError(f"Gemini rate limit: {error.get('message', error)}")
        raise UpstreamError(f"Gemini error: {error.get('message', error)}", error.get("code"))

    candidates = payload.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return separator.join(part["text"] for part in parts if part.get("text"))


class GeminiTextStream:
    """Text chunks of an open ``streamGenerateContent`` response.

    Satisfies the TextStream protocol. Iterate once; call ``aclose()`` on
    every exit path to release the connection.
    """

    def __init__(self, response: httpx.Response) -> None:
        self._response = response
        self._closed = False

    def __aiter__(self) -> AsyncIterator[str]:
        return self._iter_text()

    async def _iter_text(self) -> AsyncIterator[str]:
        try:
            async for line in self._response.aiter_lines():
                if not line.startswith("data:"):
                    continue
                data = line[len("data:"):].strip()
                if not data:
                    continue
                try:
                    payload = json.loads(data)
                except json.JSONDecodeError as e:
                    raise UpstreamError(f"Malformed stream event: {data[:80]}") from e
                text = _candidate_text(payload, separator="")
                if text:
                    yield text
        except httpx.HTTPError as e:
            raise UpstreamError(f"Gemini stream interrupted: {e}") from e

    async def aclose(self) -> None:
        """Close the HTTP response (idempotent)."""
        if not self._closed:
            self._closed = True
            await self._response.aclose()

    @property
    def closed(self) -> bool:
        return self._closed


class GeminiClient:
    """Gemini REST client satisfying the GenerativeModel protocol.

    Example:
        ```python
        client = GeminiClient.create()
        text = await client.generate([{"role": "user", "parts": [{"text": "Hi"}]}])

        stream = await client.open_stream(contents)
        try:
            async for chunk in stream:
                print(chunk, end="")
        finally:
            await stream.aclose()
        ```
    """

    def __init__(
        self,
        api_key: str | None = None,
        tts_api_key: str | None = None,
        base_url: str | None = None,
        model_name: str | None = None,
        tts_model_name: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Key for the chat model. Defaults to settings.
            tts_api_key: Key for the speech model. Defaults to settings.
            base_url: API base URL. Defaults to settings.
            model_name: Chat model. Defaults to settings.
            tts_model_name: Speech model. Defaults to settings.
            timeout: Request timeout in seconds. Defaults to settings.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        self._api_key = settings.gemini_api_key if api_key is None else api_key
        self._tts_api_key = settings.gemini_tts_api_key if tts_api_key is None else tts_api_key
        self._base_url = (base_url or settings.gemini_api_base_url).rstrip("/")
        self._model_name = model_name or settings.gemini_model
        self._tts_model_name = tts_model_name or settings.gemini_tts_model
        self._timeout = timeout or settings.upstream_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def create(cls, config=None) -> "GeminiClient":
        """Factory method to create GeminiClient from a Settings object.

        Args:
            config: Settings instance. If None, uses the global settings.

        Returns:
            Configured GeminiClient
        """
        config = config or settings
        return cls(
            api_key=config.gemini_api_key,
            tts_api_key=config.gemini_tts_api_key,
            base_url=config.gemini_api_base_url,
            model_name=config.gemini_model,
            tts_model_name=config.gemini_tts_model,
            timeout=config.upstream_timeout,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                transport=self._transport,
            )
        return self._client

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def tts_model_name(self) -> str:
        return self._tts_model_name

    def _url(self, model: str, method: str) -> str:
        return f"{self._base_url}/v1beta/models/{model}:{method}"

    @staticmethod
    def _headers(api_key: str, variable: str) -> dict[str, str]:
        if not api_key:
            raise MissingCredentialsError(variable)
        return {"x-goog-api-key": api_key, "Content-Type": "application/json"}

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        """Translate an HTTP error status into the error taxonomy."""
        if not response.is_error:
            return
        body = response.text[:300]
        if response.status_code == 429 or RESOURCE_EXHAUSTED in body:
            raise RateLimitedError(
                f"Gemini rate limit: {body}",
                retry_after=_parse_retry_after(response.headers.get("retry-after")),
            )
        raise UpstreamError(f"Gemini HTTP {response.status_code}: {body}", response.status_code)

    async def _post_json(self, url: str, headers: dict[str, str], payload: dict[str, Any]) -> Any:
        try:
            response = await self.client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Gemini request failed: {e}") from e

        self._raise_for_status(response)
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError("Gemini returned a non-JSON body") from e

    async def generate(
        self,
        contents: list[dict[str, Any]],
        generation_config: dict[str, Any] | None = None,
    ) -> str:
        """Generate a complete reply.

        Args:
            contents: Conversation in Gemini's ``contents`` shape
            generation_config: Sampling parameters

        Returns:
            Text of the first candidate, parts joined by newlines (may be empty)

        Raises:
            RateLimitedError: On HTTP 429
            UpstreamError: On any other failure
        """
        headers = self._headers(self._api_key, "GEMINI_API_KEY")
        payload = {
            "contents": contents,
            "generationConfig": generation_config or {},
            "safetySettings": DEFAULT_SAFETY_SETTINGS,
        }
        data = await self._post_json(self._url(self._model_name, "generateContent"), headers, payload)
        return _candidate_text(data, separator="\n").strip()

    async def open_stream(
        self,
        contents: list[dict[str, Any]],
        generation_config: dict[str, Any] | None = None,
    ) -> GeminiTextStream:
        """Open a streamed reply.

        The status code is checked before returning, so rate limits surface
        here and the call can be retried.

        Raises:
            RateLimitedError: On HTTP 429
            UpstreamError: On any other failure
        """
        headers = self._headers(self._api_key, "GEMINI_API_KEY")
        payload = {
            "contents": contents,
            "generationConfig": generation_config or {},
            "safetySettings": DEFAULT_SAFETY_SETTINGS,
        }
        request = self.client.build_request(
            "POST",
            self._url(self._model_name, "streamGenerateContent"),
            params={"alt": "sse"},
            headers=headers,
            json=payload,
        )
        try:
            response = await self.client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Gemini stream request failed: {e}") from e

        if response.is_error:
            try:
                await response.aread()
            finally:
                await response.aclose()
            self._raise_for_status(response)

        return GeminiTextStream(response)

    async def synthesize(
        self,
        text: str,
        voice: str,
        style_prompt: str = "",
        language_code: str | None = None,
    ) -> tuple[bytes, str]:
        """Synthesize speech with the TTS model.

        Args:
            text: Text to speak
            voice: Prebuilt voice name (e.g. "Aoede")
            style_prompt: Delivery instruction, sent as "<style>: <text>"
            language_code: Optional BCP-47 language code

        Returns:
            Tuple (pcm_audio, mime_type)

        Raises:
            RateLimitedError: On HTTP 429
            UpstreamError: On any other failure or when no audio is returned
        """
        headers = self._headers(self._tts_api_key, "GEMINI_TTS_API_KEY")
        final_text = f"{style_prompt}: {text}" if style_prompt else text

        speech_config: dict[str, Any] = {
            "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice}},
        }
        if language_code:
            speech_config["languageCode"] = language_code

        payload = {
            "contents": [{"parts": [{"text": final_text}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": speech_config,
            },
        }
        data = await self._post_json(
            self._url(self._tts_model_name, "generateContent"), headers, payload
        )

        try:
            inline = data["candidates"][0]["content"]["parts"][0]["inlineData"]
            audio = base64.b64decode(inline["data"], validate=True)
        except (KeyError, IndexError, TypeError) as e:
            raise UpstreamError("No audio data in response") from e
        except binascii.Error as e:
            raise UpstreamError("Audio data is not valid base64") from e

        return audio, inline.get("mimeType", "audio/L16")

    async def close(self) -> None:
        """Close the async HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
