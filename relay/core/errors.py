from __future__ import annotations

import json


# Written once, after the last fragment, when a stream fails after bytes were
# already sent. Provider text has it replaced by the visible SYMBOL FOR RECORD
# SEPARATOR, so a successful stream never contains it.
STREAM_ERROR_MARKER = "\x1e"
MARKER_REPLACEMENT = "\u241e"

GENERIC_ERROR = "Something went wrong!"
TIMEOUT_ERROR = "The language model took too long to respond."


class ProviderError(RuntimeError):
    """The external model call failed."""


class ProviderTimeoutError(ProviderError):
    """The external model call exceeded the configured timeout."""


class ProviderConfigError(ProviderError):
    """The provider cannot be built from the current settings; the message is safe to show."""


def public_message(exc: BaseException) -> str:
    if isinstance(exc, ProviderTimeoutError):
        return TIMEOUT_ERROR
    if isinstance(exc, ProviderConfigError):
        return str(exc)
    return GENERIC_ERROR


def scrub_fragment(text: str) -> str:
    return text.replace(STREAM_ERROR_MARKER, MARKER_REPLACEMENT)


def encode_stream_error(exc: BaseException) -> str:
    return STREAM_ERROR_MARKER + json.dumps({"error": public_message(exc)})
