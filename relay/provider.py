from __future__ import annotations

from functools import lru_cache
from typing import Any, AsyncIterator, List, Protocol

from langchain_core.messages import BaseMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from config.settings import get_settings


class ChatProvider(Protocol):
    # Returns the complete reply text
    async def ainvoke(self, messages: List[BaseMessage]) -> str:
        ...

    # Yields reply text fragments in generation order
    def astream(self, messages: List[BaseMessage]) -> AsyncIterator[str]:
        ...


def _content_text(content: Any) -> str:
    # Gemini may return either a plain string or a list of content parts
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type", "text") == "text":
                parts.append(part.get("text") or "")
        return "".join(parts)
    return ""


class GeminiProvider:
    def __init__(self, llm: ChatGoogleGenerativeAI) -> None:
        self._llm = llm

    async def ainvoke(self, messages: List[BaseMessage]) -> str:
        result = await self._llm.ainvoke(messages)
        return _content_text(result.content)

    async def astream(self, messages: List[BaseMessage]) -> AsyncIterator[str]:
        async for chunk in self._llm.astream(messages):
            text = _content_text(chunk.content)
            if text:
                yield text


def build_provider() -> GeminiProvider:
    settings = get_settings()
    if not settings.google_api_key:
        raise RuntimeError(
            "Missing GOOGLE_API_KEY in environment or .env"
        )

    llm = ChatGoogleGenerativeAI(
        model=settings.gemini_model,
        google_api_key=settings.google_api_key,
        temperature=settings.temperature,
        top_p=settings.top_p,
        timeout=settings.provider_timeout_seconds,
        max_retries=0,
    )
    return GeminiProvider(llm)


@lru_cache(maxsize=1)
def get_provider() -> ChatProvider:
    return build_provider()
