"""
Tests for the Gemini REST client, driven through httpx.MockTransport.
"""

import asyncio
import base64
import json

import httpx
import pytest

from mindmend_relay.errors import MissingCredentialsError, RateLimitedError, UpstreamError
from mindmend_relay.repositories import GeminiClient
from mindmend_relay.services import BackoffInvoker

CONTENTS = [{"role": "user", "parts": [{"text": "Hi"}]}]


def make_client(handler, api_key="test-key", tts_api_key="test-key"):
    return GeminiClient(
        api_key=api_key,
        tts_api_key=tts_api_key,
        base_url="https://gemini.test",
        model_name="chat-model",
        tts_model_name="tts-model",
        timeout=5.0,
        transport=httpx.MockTransport(handler),
    )


def candidate(*texts):
    return {"candidates": [{"content": {"parts": [{"text": t} for t in texts]}}]}


def run(client, coro_factory):
    async def main():
        try:
            return await coro_factory(client)
        finally:
            await client.close()

    return asyncio.run(main())


def test_generate_posts_contents_and_joins_parts():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json=candidate("Hello", "there "))

    client = make_client(handler)
    text = run(client, lambda c: c.generate(CONTENTS, {"temperature": 0.5}))

    assert text == "Hello\nthere"
    request = requests[0]
    assert request.url.path == "/v1beta/models/chat-model:generateContent"
    assert request.headers["x-goog-api-key"] == "test-key"
    body = json.loads(request.content)
    assert body["contents"] == CONTENTS
    assert body["generationConfig"] == {"temperature": 0.5}
    assert body["safetySettings"]


def test_generate_without_candidates_returns_empty_text():
    client = make_client(lambda request: httpx.Response(200, json={"candidates": []}))

    assert run(client, lambda c: c.generate(CONTENTS)) == ""


def test_http_429_is_rate_limited_with_retry_after():
    def handler(request):
        return httpx.Response(429, headers={"Retry-After": "7"}, json={"error": {"code": 429}})

    client = make_client(handler)
    with pytest.raises(RateLimitedError) as exc_info:
        run(client, lambda c: c.generate(CONTENTS))

    assert exc_info.value.retry_after == 7.0


def test_resource_exhausted_is_rate_limited():
    def handler(request):
        return httpx.Response(
            503, json={"error": {"code": 503, "status": "RESOURCE_EXHAUSTED", "message": "quota"}}
        )

    client = make_client(handler)
    with pytest.raises(RateLimitedError):
        run(client, lambda c: c.generate(CONTENTS))


def test_server_error_is_upstream_error():
    client = make_client(lambda request: httpx.Response(500, text="internal"))

    with pytest.raises(UpstreamError) as exc_info:
        run(client, lambda c: c.generate(CONTENTS))

    assert not isinstance(exc_info.value, RateLimitedError)
    assert exc_info.value.status_code == 500


def test_transport_error_is_upstream_error():
    def handler(request):
        raise httpx.ConnectError("no route", request=request)

    client = make_client(handler)
    with pytest.raises(UpstreamError):
        run(client, lambda c: c.generate(CONTENTS))


def test_missing_key_fails_at_call_time_without_request():
    requests = []
    client = make_client(lambda request: requests.append(request), api_key="")

    with pytest.raises(MissingCredentialsError) as exc_info:
        run(client, lambda c: c.generate(CONTENTS))

    assert exc_info.value.variable == "GEMINI_API_KEY"
    assert requests == []


def sse_body(*events):
    return "".join(f"data: {json.dumps(event)}\r\n\r\n" for event in events).encode()


def test_open_stream_yields_text_chunks():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(
            200,
            headers={"Content-Type": "text/event-stream"},
            content=sse_body(candidate("Hel"), candidate("lo"), {"candidates": []}),
        )

    async def read(client):
        stream = await client.open_stream(CONTENTS)
        try:
            return [chunk async for chunk in stream]
        finally:
            await stream.aclose()
            await stream.aclose()

    chunks = run(make_client(handler), read)

    assert chunks == ["Hel", "lo"]
    assert requests[0].url.path == "/v1beta/models/chat-model:streamGenerateContent"
    assert requests[0].url.params["alt"] == "sse"


def test_open_stream_rate_limit_raises_before_iteration():
    client = make_client(lambda request: httpx.Response(429, text="slow down"))

    with pytest.raises(RateLimitedError):
        run(client, lambda c: c.open_stream(CONTENTS))


def test_malformed_stream_event_is_upstream_error():
    def handler(request):
        return httpx.Response(200, content=b"data: {not json\n\n")

    async def read(client):
        stream = await client.open_stream(CONTENTS)
        try:
            return [chunk async for chunk in stream]
        finally:
            await stream.aclose()

    with pytest.raises(UpstreamError):
        run(make_client(handler), read)


def test_synthesize_decodes_inline_audio():
    pcm = b"\x00\x01" * 100
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "candidates": [
                    {
                        "content": {
                            "parts": [
                                {
                                    "inlineData": {
                                        "mimeType": "audio/L16;codec=pcm;rate=24000",
                                        "data": base64.b64encode(pcm).decode(),
                                    }
                                }
                            ]
                        }
                    }
                ]
            },
        )

    client = make_client(handler, tts_api_key="tts-key")
    audio, mime_type = run(
        client, lambda c: c.synthesize("Breathe", "Aoede", "Say it softly", "en-US")
    )

    assert audio == pcm
    assert mime_type == "audio/L16;codec=pcm;rate=24000"
    request = requests[0]
    assert request.url.path == "/v1beta/models/tts-model:generateContent"
    assert request.headers["x-goog-api-key"] == "tts-key"
    body = json.loads(request.content)
    assert body["contents"][0]["parts"][0]["text"] == "Say it softly: Breathe"
    speech = body["generationConfig"]["speechConfig"]
    assert body["generationConfig"]["responseModalities"] == ["AUDIO"]
    assert speech["voiceConfig"]["prebuiltVoiceConfig"]["voiceName"] == "Aoede"
    assert speech["languageCode"] == "en-US"


def test_synthesize_without_audio_is_upstream_error():
    client = make_client(lambda request: httpx.Response(200, json=candidate("no audio")))

    with pytest.raises(UpstreamError):
        run(client, lambda c: c.synthesize("Breathe", "Aoede"))


def test_long_retry_after_header_is_capped_by_backoff():
    delays = []

    async def sleep(delay):
        delays.append(delay)

    def handler(request):
        return httpx.Response(429, headers={"Retry-After": "3600"}, text="quota exceeded")

    invoker = BackoffInvoker(max_attempts=3, base_delay=1.0, max_jitter=1.0, max_delay=8.0, sleep=sleep)
    client = make_client(handler)

    with pytest.raises(RateLimitedError):
        run(client, lambda c: invoker.invoke(lambda: c.generate(CONTENTS)))

    assert delays == [8.0, 8.0]
