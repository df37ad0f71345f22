from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Callable, Dict, List, Optional, Protocol

from ui import state as transitions
from ui.errors import EmptyStreamError, user_message
from ui.state import ChatState


logger = logging.getLogger("devassist.ui")

Listener = Callable[[ChatState], None]


class FragmentSource(Protocol):
    def stream_reply(self, history: List[Dict[str, str]], query: str) -> AsyncIterator[str]:
        ...


class ChatSession:
    """One conversation: owns the transcript and reconciles streamed replies into it.

    Listeners receive every published ``ChatState``; the session never
    mutates a published state.
    """

    def __init__(
        self,
        client: FragmentSource,
        state: Optional[ChatState] = None,
        reveal_delay: float = 0.0,
    ) -> None:
        self._client = client
        self._state = state if state is not None else transitions.initial_state()
        self._reveal_delay = reveal_delay
        self._listeners: List[Listener] = []

    @property
    def state(self) -> ChatState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _publish(self, new_state: ChatState) -> None:
        self._state = new_state
        for listener in list(self._listeners):
            listener(new_state)

    def set_draft(self, text: str) -> None:
        self._publish(transitions.set_draft(self._state, text))

    def queue(self, question: str) -> None:
        """Hold a question as the draft until the next ``submit``."""
        if question.strip() and not self._state.pending:
            self.set_draft(question)

    @property
    def busy(self) -> bool:
        # Input stays disabled from queueing until the reply settles
        return self._state.pending or bool(self._state.draft.strip())

    async def submit(self, question: str) -> None:
        if not question or not question.strip() or self._state.pending:
            return

        history = transitions.history_for_relay(self._state)
        error: Optional[str] = None
        try:
            self._publish(transitions.append_exchange(self._state, question))
            fragments = 0
            async for fragment in self._client.stream_reply(history, question):
                if not fragment:
                    continue
                fragments += 1
                self._publish(transitions.append_fragment(self._state, fragment))
                if self._reveal_delay:
                    await asyncio.sleep(self._reveal_delay)
            if fragments == 0:
                raise EmptyStreamError()
        except Exception as exc:
            logger.error("Request failed: %s", exc)
            error = user_message(exc)
        finally:
            settled = transitions.clear_pending(self._state)
            if error is not None:
                settled = transitions.set_error(settled, error)
            # An empty placeholder is rolled back however the request ended
            self._publish(transitions.drop_empty_placeholder(settled))
