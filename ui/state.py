"""Conversation state and its transitions.

Every transition is a pure function from one ``ChatState`` to the next, so
the streaming session can publish each intermediate state and tests can
check them without a rendering surface.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, List, Literal, Optional, Tuple


TurnRole = Literal["user", "assistant"]

# Shown as the first assistant turn; never sent to the relay.
WELCOME_MESSAGE = (
    "Hi! I am your personal AI-powered dev assistant. "
    "Please ask me any developer-related question and I "
    "will do my best to answer!"
)


@dataclass(frozen=True)
class Turn:
    role: TurnRole
    content: str = ""

    def as_payload(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ChatState:
    turns: Tuple[Turn, ...] = ()
    pending: bool = False
    error: Optional[str] = None
    draft: str = ""
    # True when turns[0] is the locally synthesized welcome turn
    has_welcome: bool = False


def initial_state(welcome: Optional[str] = WELCOME_MESSAGE) -> ChatState:
    if welcome is None:
        return ChatState()
    return ChatState(turns=(Turn("assistant", welcome),), has_welcome=True)


def set_draft(state: ChatState, text: str) -> ChatState:
    return replace(state, draft=text)


def history_for_relay(state: ChatState) -> List[Dict[str, str]]:
    turns = state.turns[1:] if state.has_welcome else state.turns
    return [turn.as_payload() for turn in turns]


def append_exchange(state: ChatState, question: str) -> ChatState:
    """Add the user turn and its empty assistant placeholder in one step."""
    return replace(
        state,
        turns=state.turns + (Turn("user", question), Turn("assistant", "")),
        pending=True,
        error=None,
        draft="",
    )


def append_fragment(state: ChatState, fragment: str) -> ChatState:
    if not state.turns or state.turns[-1].role != "assistant":
        raise ValueError("no assistant turn to append to")
    last = state.turns[-1]
    return replace(
        state,
        turns=state.turns[:-1] + (Turn("assistant", last.content + fragment),),
    )


def set_error(state: ChatState, message: str) -> ChatState:
    return replace(state, error=message)


def clear_pending(state: ChatState) -> ChatState:
    return replace(state, pending=False)


def drop_empty_placeholder(state: ChatState) -> ChatState:
    # Never removes the only entry, which may be the welcome turn
    if len(state.turns) <= 1:
        return state
    last = state.turns[-1]
    if last.role != "assistant" or last.content:
        return state
    return replace(state, turns=state.turns[:-1])
