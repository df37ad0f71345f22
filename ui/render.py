from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from ui.state import Turn


ROLE_LABELS = {"user": "You", "assistant": "Assistant"}

_FENCE = re.compile(r"^```\s*([\w+#.-]*)\s*$")


@dataclass(frozen=True)
class Segment:
    kind: str  # "text" or "code"
    body: str
    language: Optional[str] = None


@dataclass(frozen=True)
class RenderedTurn:
    role: str
    label: str
    segments: Tuple[Segment, ...]


def split_segments(content: str) -> List[Segment]:
    """Split markdown into prose and fenced code blocks.

    A fence still open at the end (a reply cut mid-stream) is closed
    implicitly so partial code renders as code.
    """
    segments: List[Segment] = []
    buffer: List[str] = []
    language: Optional[str] = None
    in_code = False

    def flush() -> None:
        body = "\n".join(buffer)
        if in_code:
            segments.append(Segment("code", body, language or None))
        elif body.strip():
            segments.append(Segment("text", body.strip("\n")))
        buffer.clear()

    for line in content.split("\n"):
        match = _FENCE.match(line.strip())
        if match and not in_code:
            flush()
            in_code = True
            language = match.group(1)
        elif in_code and line.strip() == "```":
            flush()
            in_code = False
            language = None
        else:
            buffer.append(line)
    flush()
    return segments


def render_turn(turn: Turn) -> RenderedTurn:
    return RenderedTurn(turn.role, ROLE_LABELS[turn.role], tuple(split_segments(turn.content)))


def render_transcript(turns: Iterable[Turn]) -> List[RenderedTurn]:
    return [render_turn(turn) for turn in turns]
