"""Shared fakes and fixtures for the test suite."""

import pytest
from fastapi.testclient import TestClient

from mindmend_relay.api.app import create_app
from mindmend_relay.config import Settings


class FakeStream:
    """TextStream that yields fixed chunks, optionally failing afterwards."""

    def __init__(self, chunks, error=None):
        self._chunks = list(chunks)
        self._error = error
        self.close_count = 0

    async def _iter(self):
        for chunk in self._chunks:
            yield chunk
        if self._error is not None:
            raise self._error

    def __aiter__(self):
        return self._iter()

    async def aclose(self):
        self.close_count += 1

    @property
    def closed(self):
        return self.close_count > 0


class FakeModel:
    """GenerativeModel fake.

    ``*_errors`` lists are consumed one per call before any success;
    ``fail_with`` makes every call raise.
    """

    model_name = "fake-chat"
    tts_model_name = "fake-tts"

    def __init__(self):
        self.reply = "Let's take a slow breath together."
        self.generate_errors = []
        self.generate_calls = []

        self.stream_chunks = ["Let's ", "breathe ", "together."]
        self.stream_error = None
        self.open_errors = []
        self.streams = []

        self.audio = b"\x01\x00" * 24000
        self.mime_type = "audio/L16;codec=pcm;rate=24000"
        self.synth_errors = []
        self.synth_calls = []

        self.fail_with = None

    async def generate(self, contents, generation_config=None):
        self.generate_calls.append(contents)
        if self.fail_with is not None:
            raise self.fail_with
        if self.generate_errors:
            raise self.generate_errors.pop(0)
        return self.reply

    async def open_stream(self, contents, generation_config=None):
        if self.fail_with is not None:
            raise self.fail_with
        if self.open_errors:
            raise self.open_errors.pop(0)
        stream = FakeStream(self.stream_chunks, self.stream_error)
        self.streams.append(stream)
        return stream

    async def synthesize(self, text, voice, style_prompt="", language_code=None):
        self.synth_calls.append(
            {"text": text, "voice": voice, "style": style_prompt, "language": language_code}
        )
        if self.fail_with is not None:
            raise self.fail_with
        if self.synth_errors:
            raise self.synth_errors.pop(0)
        return self.audio, self.mime_type


@pytest.fixture
def test_settings():
    """Settings with instant retries and a fixed fallback seed."""
    return Settings(
        gemini_api_key="test-key",
        gemini_tts_api_key="test-key",
        cache_enabled=True,
        cache_ttl_seconds=300.0,
        cache_max_entries=100,
        cache_key_length=50,
        chat_max_attempts=3,
        stream_max_attempts=3,
        tts_max_attempts=5,
        retry_base_delay=0.0,
        retry_max_jitter=0.0,
        fallback_seed=7,
        log_level="WARNING",
    )


@pytest.fixture
def fake_model():
    return FakeModel()


@pytest.fixture
def client(test_settings, fake_model):
    """Test client running the app lifespan against the fake model."""
    app = create_app(config=test_settings, model=fake_model)
    with TestClient(app) as test_client:
        yield test_client
