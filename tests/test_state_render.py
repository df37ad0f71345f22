import pytest

from ui import state
from ui.render import Segment, render_transcript, split_segments
from ui.state import ChatState, Turn


def test_initial_state_has_welcome_only():
    initial = state.initial_state("hello there")
    assert initial.turns == (Turn("assistant", "hello there"),)
    assert initial.has_welcome
    assert state.history_for_relay(initial) == []


def test_history_without_welcome_keeps_every_turn():
    s = ChatState(turns=(Turn("user", "a"), Turn("assistant", "b")))
    assert state.history_for_relay(s) == [
        {"role": "user", "content": "a"},
        {"role": "assistant", "content": "b"},
    ]


def test_append_fragment_requires_assistant_turn():
    with pytest.raises(ValueError):
        state.append_fragment(ChatState(turns=(Turn("user", "q"),)), "x")


def test_drop_placeholder_keeps_sole_entry_and_filled_replies():
    lone = ChatState(turns=(Turn("assistant", ""),))
    filled = ChatState(turns=(Turn("user", "q"), Turn("assistant", "a")))

    assert state.drop_empty_placeholder(lone) == lone
    assert state.drop_empty_placeholder(filled) == filled


def test_transitions_do_not_mutate_input():
    before = state.initial_state()
    after = state.append_exchange(before, "q")
    assert len(before.turns) == 1
    assert len(after.turns) == 3


def test_split_segments_with_code_block():
    content = "Use this:\n\n```python\nprint('hi')\n```\n\nDone."
    assert split_segments(content) == [
        Segment("text", "Use this:"),
        Segment("code", "print('hi')", "python"),
        Segment("text", "Done."),
    ]


def test_unterminated_fence_renders_as_code():
    assert split_segments("Here:\n```js\nlet x") == [
        Segment("text", "Here:"),
        Segment("code", "let x", "js"),
    ]


def test_rendering_is_pure():
    turns = (
        Turn("assistant", "Welcome"),
        Turn("user", "show code"),
        Turn("assistant", "```\nx = 1\n```"),
    )
    first = render_transcript(turns)
    second = render_transcript(turns)

    assert first == second
    assert [r.label for r in first] == ["Assistant", "You", "Assistant"]
    assert first[2].segments == (Segment("code", "x = 1", None),)
