from __future__ import annotations

import json
import logging
from contextlib import nullcontext
from typing import AsyncIterator, Dict, List, Optional

import httpx

from config.settings import get_settings
from relay.core.errors import STREAM_ERROR_MARKER
from ui.errors import (
    RelayClientError,
    RelayConnectionError,
    RelayHTTPError,
    RelayTimeoutError,
    StreamInterruptedError,
)


logger = logging.getLogger("devassist.ui")


def _error_detail(body: str) -> Optional[str]:
    body = body.strip()
    if not body:
        return None
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError:
        return body
    if isinstance(parsed, dict) and parsed.get("error"):
        return str(parsed["error"])
    return json.dumps(parsed)


class RelayClient:
    """Talks to ``POST /api/query`` and yields the reply as text fragments."""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        settings = get_settings()
        self.url = url or settings.relay_url
        self.timeout = settings.relay_timeout_seconds if timeout is None else timeout
        self._http_client = http_client

    def _client(self):
        if self._http_client is not None:
            return nullcontext(self._http_client)
        return httpx.AsyncClient(timeout=self.timeout)

    async def stream_reply(self, history: List[Dict[str, str]], query: str) -> AsyncIterator[str]:
        """Yield reply fragments in the order the relay sends them.

        Raises a ``RelayClientError`` subclass on any failure. A relay-side
        failure after streaming started arrives as a trailing error record and
        is raised as ``StreamInterruptedError`` once the body has been read.
        """
        payload = {"history": history, "query": query}
        try:
            async with self._client() as client:
                async with client.stream(
                    "POST", self.url, json=payload, params={"stream": "true"}
                ) as response:
                    if not response.is_success:
                        body = (await response.aread()).decode("utf-8", errors="replace")
                        raise RelayHTTPError(
                            response.status_code, response.reason_phrase, _error_detail(body)
                        )

                    trailer: Optional[str] = None
                    async for chunk in response.aiter_text():
                        if trailer is not None:
                            trailer += chunk
                            continue
                        text, marker, rest = chunk.partition(STREAM_ERROR_MARKER)
                        if text:
                            yield text
                        if marker:
                            trailer = rest

                    if trailer is not None:
                        raise StreamInterruptedError(_error_detail(trailer) or "unknown error")
        except httpx.TimeoutException as exc:
            logger.warning("Relay request timed out: %s", exc)
            raise RelayTimeoutError(str(exc) or "timed out") from exc
        except httpx.ConnectError as exc:
            logger.warning("Relay unreachable at %s: %s", self.url, exc)
            raise RelayConnectionError(str(exc)) from exc
        except httpx.TransportError as exc:
            raise RelayClientError(f"Connection to the relay was lost: {exc}") from exc

    async def ask(self, history: List[Dict[str, str]], query: str) -> str:
        """Buffered variant: returns the complete reply in one piece."""
        payload = {"history": history, "query": query}
        try:
            async with self._client() as client:
                response = await client.post(self.url, json=payload, params={"stream": "false"})
        except httpx.TimeoutException as exc:
            raise RelayTimeoutError(str(exc) or "timed out") from exc
        except httpx.ConnectError as exc:
            raise RelayConnectionError(str(exc)) from exc
        except httpx.TransportError as exc:
            raise RelayClientError(f"Connection to the relay was lost: {exc}") from exc

        if not response.is_success:
            raise RelayHTTPError(
                response.status_code, response.reason_phrase, _error_detail(response.text)
            )
        return response.json()["response"]
