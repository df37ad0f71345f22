from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Dict, List, Optional, Sequence

from langchain_core.messages import BaseMessage

from relay.core.errors import (
    ProviderError,
    ProviderTimeoutError,
    encode_stream_error,
    scrub_fragment,
)
from relay.core.messages import Role, to_lc_message, to_lc_messages
from relay.core.prompt import SYSTEM_PROMPT
from relay.provider import ChatProvider


logger = logging.getLogger("devassist.relay")


def build_messages(
    history: Sequence[Dict[str, str]],
    query: str,
    limit: Optional[int] = None,
) -> List[BaseMessage]:
    messages = [to_lc_message(Role.SYSTEM, SYSTEM_PROMPT)]
    messages.extend(to_lc_messages(history, limit=limit))
    messages.append(to_lc_message(Role.USER, query))
    return messages


async def run_buffered(provider: ChatProvider, messages: List[BaseMessage], timeout: float) -> str:
    try:
        return await asyncio.wait_for(provider.ainvoke(messages), timeout)
    except asyncio.TimeoutError as exc:
        raise ProviderTimeoutError(f"provider did not answer within {timeout}s") from exc
    except Exception as exc:
        raise ProviderError(str(exc)) from exc


async def _next_fragment(source: AsyncIterator[str]) -> Optional[str]:
    try:
        return await source.__anext__()
    except StopAsyncIteration:
        return None


async def _pull(source: AsyncIterator[str], timeout: float) -> Optional[str]:
    try:
        return await asyncio.wait_for(_next_fragment(source), timeout)
    except asyncio.TimeoutError as exc:
        raise ProviderTimeoutError(f"no fragment within {timeout}s") from exc
    except Exception as exc:
        raise ProviderError(str(exc)) from exc


async def _close(source: AsyncIterator[str]) -> None:
    aclose = getattr(source, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception:
        logger.debug("Provider stream did not close cleanly", exc_info=True)


async def open_stream(
    provider: ChatProvider,
    messages: List[BaseMessage],
    timeout: float,
) -> AsyncIterator[str]:
    """Start a provider stream and return its fragments.

    The first fragment is pulled here, before the caller writes any bytes, so
    a provider that fails up front raises ``ProviderError`` and the caller can
    still answer with a JSON error. Failures after that point are reported
    in-band by a single trailing ``STREAM_ERROR_MARKER`` record.
    """
    source = provider.astream(messages).__aiter__()
    try:
        first = await _pull(source, timeout)
    except ProviderError:
        await _close(source)
        raise
    return _relay_fragments(first, source, timeout)


async def _relay_fragments(
    first: Optional[str],
    source: AsyncIterator[str],
    timeout: float,
) -> AsyncIterator[str]:
    fragments = 0
    chars = 0
    try:
        fragment = first
        while fragment is not None:
            if fragment:
                fragments += 1
                chars += len(fragment)
                yield scrub_fragment(fragment)
            fragment = await _pull(source, timeout)
        logger.info("Provider stream completed: fragments=%s chars=%s", fragments, chars)
    except ProviderError as exc:
        logger.error(
            "Provider stream failed after %s fragments: %s", fragments, exc.__cause__ or exc
        )
        yield encode_stream_error(exc)
    finally:
        await _close(source)
