from __future__ import annotations

from typing import List, Literal, Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
import logging
from pydantic import BaseModel, Field, field_validator

from config.settings import get_settings
from relay.core.errors import (
    ProviderConfigError,
    ProviderError,
    ProviderTimeoutError,
    public_message,
)
from relay.provider import ChatProvider, get_provider
from relay.relay import build_messages, open_stream, run_buffered


logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s - %(message)s")
logger = logging.getLogger("devassist")

app = FastAPI(title="AI Dev Assistant Relay", version="1.0.0")

# CORS: allow local frontend during development
settings = get_settings()
if settings.is_dev:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"] = Field(..., description="'user' or 'assistant'")
    content: str


class QueryRequest(BaseModel):
    history: List[ChatTurn] = Field(
        default_factory=list,
        description="Prior turns, oldest first (frontend-managed, welcome turn excluded)",
    )
    query: str = Field(..., description="User's latest question")

    @field_validator("query")
    @classmethod
    def _query_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query must not be blank")
        return value


def provider_dependency() -> ChatProvider:
    try:
        return get_provider()
    except RuntimeError as exc:
        raise ProviderConfigError(str(exc)) from exc


def _error_response(exc: ProviderError) -> JSONResponse:
    status = 504 if isinstance(exc, ProviderTimeoutError) else 500
    return JSONResponse(status_code=status, content={"error": public_message(exc)})


@app.exception_handler(ProviderError)
async def provider_error_handler(_request, exc: ProviderError) -> JSONResponse:
    logger.error("Provider unavailable: %s", exc)
    return _error_response(exc)


@app.post("/api/query")
async def query(
    req: QueryRequest,
    stream: Optional[bool] = None,
    provider: ChatProvider = Depends(provider_dependency),
):
    settings = get_settings()
    streaming = settings.stream_by_default if stream is None else stream
    logger.info(
        "Incoming query: mode=%s history_turns=%s query_len=%s key_set=%s",
        "stream" if streaming else "buffered",
        len(req.history),
        len(req.query),
        bool(settings.google_api_key),
    )
    messages = build_messages(
        [t.model_dump() for t in req.history],
        req.query,
        limit=settings.history_max_turns,
    )

    if not streaming:
        try:
            text = await run_buffered(provider, messages, settings.provider_timeout_seconds)
        except ProviderError as exc:
            logger.exception("Buffered query failed: %s", exc)
            return _error_response(exc)
        logger.info("Model responded: %s chars", len(text))
        return {"response": text}

    try:
        fragments = await open_stream(provider, messages, settings.provider_timeout_seconds)
    except ProviderError as exc:
        logger.exception("Stream could not be opened: %s", exc)
        return _error_response(exc)

    return StreamingResponse(
        fragments,
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )


@app.get("/health")
def health():
    return {"status": "ok"}


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run("app.main:app", host=settings.relay_host, port=settings.relay_port)


if __name__ == "__main__":
    run()
