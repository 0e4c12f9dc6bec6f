"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state

``create_app`` may pre-seed ``app.state.settings`` and ``app.state.model``;
the lifespan uses them instead of the environment and the Gemini client.
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from mindmend_relay.config import Settings, get_settings
from mindmend_relay.handlers import ChatHandler, SpeechHandler
from mindmend_relay.repositories import GeminiClient, InMemoryResponseCache
from mindmend_relay.services import ChatService, SpeechService
from mindmend_relay.utils import setup_logging

LOGGER = logging.getLogger("mindmend.api")


def get_app_settings(request: Request) -> Settings:
    """Settings the app was started with."""
    return getattr(request.app.state, "settings", None) or get_settings()


def get_chat_service(request: Request) -> ChatService:
    """Dependency injection for ChatService from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The ChatService instance from app.state

    Raises:
        RuntimeError: If service is not initialized
    """
    service = getattr(request.app.state, "chat_service", None)
    if service is None:
        raise RuntimeError("ChatService not initialized. Check lifespan setup.")
    return service


def get_chat_handler(request: Request) -> ChatHandler:
    """Dependency injection for ChatHandler from app.state.

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "chat_handler", None)
    if handler is None:
        raise RuntimeError("ChatHandler not initialized. Check lifespan setup.")
    return handler


def get_speech_handler(request: Request) -> SpeechHandler:
    """Dependency injection for SpeechHandler from app.state.

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "speech_handler", None)
    if handler is None:
        raise RuntimeError("SpeechHandler not initialized. Check lifespan setup.")
    return handler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Initializes all layers and stores them in app.state:
    1. Model client and response cache (external API / data access)
    2. Services (business logic) - app.state.chat_service, app.state.speech_service
    3. Handlers (HTTP endpoints) - app.state.chat_handler, app.state.speech_handler

    Missing API keys do not stop startup; requests then fall back.

    Args:
        app: The FastAPI application instance

    Yields:
        None

    Cleanup:
        Closes the model client it created and removes services from app.state
    """
    config = getattr(app.state, "settings", None) or get_settings()
    setup_logging(config.log_level)

    model = getattr(app.state, "model", None)
    owns_model = model is None
    if owns_model:
        model = GeminiClient.create(config)

    cache = InMemoryResponseCache.create(config)
    chat_service = ChatService.create(model=model, cache=cache, config=config)
    speech_service = SpeechService.create(model=model, config=config)

    app.state.chat_service = chat_service
    app.state.speech_service = speech_service
    app.state.chat_handler = ChatHandler(chat_service=chat_service)
    app.state.speech_handler = SpeechHandler(speech_service=speech_service)

    LOGGER.info("Chat model: %s", model.model_name)
    LOGGER.info("Speech model: %s (voice %s)", model.tts_model_name, speech_service.voice)
    LOGGER.info(
        "Response cache: %s (ttl %ss, max %s entries)",
        "enabled" if config.cache_enabled else "disabled",
        config.cache_ttl_seconds,
        config.cache_max_entries,
    )
    if not config.has_gemini_key:
        LOGGER.warning("GEMINI_API_KEY is not set; chat requests will use fallback replies")

    yield

    if owns_model:
        await model.close()

    del app.state.speech_handler
    del app.state.chat_handler
    del app.state.speech_service
    del app.state.chat_service
    LOGGER.info("MindMend relay shut down")


# Type aliases for cleaner dependency injection
ChatHandlerDep = Annotated[ChatHandler, Depends(get_chat_handler)]
SpeechHandlerDep = Annotated[SpeechHandler, Depends(get_speech_handler)]
ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
SettingsDep = Annotated[Settings, Depends(get_app_settings)]
