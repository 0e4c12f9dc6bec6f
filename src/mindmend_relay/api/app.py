from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.datastructures import Headers

from mindmend_relay.api.dependencies import (
    ChatHandlerDep,
    ChatServiceDep,
    SettingsDep,
    SpeechHandlerDep,
    lifespan,
)
from mindmend_relay.config import Settings, settings
from mindmend_relay.dto import (
    CacheStatsResponse,
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    HealthCheckResponse,
    SimpleChatRequest,
    SpeechRequest,
    SpeechResponse,
    StreamChatRequest,
)
from mindmend_relay.protocols import GenerativeModel

API_TITLE = "MindMend Relay"
API_VERSION = "0.1.0"
API_DESCRIPTION = "Resilient chat, streaming chat and text-to-speech proxy for the MindMend app"


class PreflightCORSMiddleware(CORSMiddleware):
    """CORSMiddleware that answers accepted preflight requests with 204."""

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != status.HTTP_200_OK:
            return response
        headers = {
            key: value
            for key, value in response.headers.items()
            if key not in ("content-length", "content-type")
        }
        return Response(status_code=status.HTTP_204_NO_CONTENT, headers=headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Reject malformed bodies with 400 instead of FastAPI's default 422."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(
            error="Invalid request", details=jsonable_encoder(exc.errors())
        ).model_dump(),
    )


def create_app(config: Settings | None = None, model: GenerativeModel | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Settings to run with. If None, read from the environment.
        model: Generative model to use. If None, a GeminiClient is created
            at startup and closed at shutdown.

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = config
    app.state.model = model

    app.add_middleware(
        PreflightCORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": API_TITLE,
            "version": API_VERSION,
            "description": API_DESCRIPTION,
            "endpoints": {
                "chat": "/api/chat",
                "simple_chat": "/api/chat/simple",
                "stream": "/api/chat/stream",
                "tts": "/api/tts",
                "cache": "/api/cache",
                "health": "/health",
                "docs": "/docs",
            },
        }

    @app.get("/health", response_model=HealthCheckResponse)
    async def health(app_settings: SettingsDep, service: ChatServiceDep) -> HealthCheckResponse:
        """Health check endpoint. Reports configuration, never secrets."""
        stats = service.cache_stats()
        return HealthCheckResponse(
            status="healthy" if app_settings.has_gemini_key else "degraded",
            gemini_configured=app_settings.has_gemini_key,
            tts_configured=app_settings.has_tts_key,
            database_configured=app_settings.has_database,
            cache_entries=stats.get("total_entries", 0),
            timestamp=datetime.now(timezone.utc),
        )

    @app.options("/{path:path}", status_code=status.HTTP_204_NO_CONTENT)
    async def options(path: str) -> Response:
        """Answer bare OPTIONS requests on any path."""
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post("/api/chat", response_model=ChatResponse, response_model_exclude_none=True)
    async def chat(request: ChatRequest, handler: ChatHandlerDep) -> ChatResponse:
        """Reply to a conversation, optionally personalized with user context."""
        return await handler.chat(request)

    @app.post("/api/chat/simple", response_model=ChatResponse, response_model_exclude_none=True)
    async def simple_chat(request: SimpleChatRequest, handler: ChatHandlerDep) -> ChatResponse:
        """Reply to a single message, as plain text without markdown."""
        return await handler.simple_chat(request)

    @app.post("/api/chat/stream", response_class=StreamingResponse)
    async def stream_chat(
        request: StreamChatRequest, http_request: Request, handler: ChatHandlerDep
    ) -> StreamingResponse:
        """Stream a reply as Server-Sent Events."""
        return await handler.stream_chat(request, is_disconnected=http_request.is_disconnected)

    @app.post("/api/tts", response_model=SpeechResponse, response_model_exclude_none=True)
    async def text_to_speech(request: SpeechRequest, handler: SpeechHandlerDep) -> SpeechResponse:
        """Synthesize speech, returned as base64 PCM."""
        return await handler.synthesize(request)

    @app.get("/api/cache/stats", response_model=CacheStatsResponse)
    async def cache_stats(handler: ChatHandlerDep) -> CacheStatsResponse:
        """Get response cache statistics."""
        return await handler.get_stats()

    @app.delete("/api/cache", response_model=dict[str, Any])
    async def clear_cache(handler: ChatHandlerDep) -> dict[str, Any]:
        """Clear all entries from the response cache."""
        return await handler.clear_cache()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mindmend_relay.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
