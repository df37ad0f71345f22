from __future__ import annotations

from typing import Optional


CONNECT_MESSAGE = (
    "Could not connect to the AI assistant. Please ensure the backend server "
    "is running or try again later."
)
TIMEOUT_MESSAGE = "The AI assistant took too long to respond. Please try again later."


class RelayClientError(Exception):
    """Base class for failures talking to the relay."""


class RelayConnectionError(RelayClientError):
    pass


class RelayTimeoutError(RelayClientError):
    pass


class RelayHTTPError(RelayClientError):
    def __init__(self, status_code: int, reason: str = "", detail: Optional[str] = None) -> None:
        self.status_code = status_code
        self.reason = reason
        self.detail = detail
        summary = f"Status: {status_code} {reason}".rstrip()
        if detail:
            summary += f" - {detail}"
        super().__init__(f"Server responded with an error: {summary}")


class EmptyStreamError(RelayClientError):
    def __init__(self) -> None:
        super().__init__("Received an empty response stream.")


class StreamInterruptedError(RelayClientError):
    """The relay reported a failure after the reply had started streaming."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"The response stream was interrupted: {detail}")


def user_message(exc: BaseException) -> str:
    if isinstance(exc, RelayConnectionError):
        return CONNECT_MESSAGE
    if isinstance(exc, RelayTimeoutError):
        return TIMEOUT_MESSAGE
    if isinstance(exc, RelayHTTPError):
        return str(exc)
    return f"Request failed: {exc}"
