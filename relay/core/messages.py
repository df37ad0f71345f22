from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


_MESSAGE_TYPES = {
    Role.SYSTEM: SystemMessage,
    Role.USER: HumanMessage,
    Role.ASSISTANT: AIMessage,
}


def to_lc_message(role: Role, content: str) -> BaseMessage:
    return _MESSAGE_TYPES[Role(role)](content=content)


def to_lc_messages(history: Sequence[Dict[str, str]], limit: Optional[int] = None) -> List[BaseMessage]:
    """Map prior conversation turns onto LangChain message objects.

    Only ``user`` and ``assistant`` turns are accepted here; the system
    instruction is added separately by the relay. Turns with no content are
    skipped because the provider rejects empty parts.
    """
    turns = list(history or [])
    if limit is not None:
        turns = turns[-limit:] if limit > 0 else []

    messages: List[BaseMessage] = []
    for item in turns:
        role = Role((item.get("role") or "").lower())
        if role is Role.SYSTEM:
            raise ValueError("history may not contain system turns")
        content = item.get("content") or ""
        if not content:
            continue
        messages.append(to_lc_message(role, content))
    return messages
