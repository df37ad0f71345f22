import asyncio

import streamlit as st

from config.settings import get_settings
from ui.client import RelayClient
from ui.render import render_transcript
from ui.session import ChatSession
from ui.state import ChatState


st.set_page_config(page_title="AI Dev Assistant", page_icon="💻")
st.title("AI Dev Assistant")

if "session" not in st.session_state:
    settings = get_settings()
    st.session_state.session = ChatSession(
        RelayClient(), reveal_delay=settings.reveal_delay_ms / 1000.0
    )

session: ChatSession = st.session_state.session

transcript_area = st.empty()
error_area = st.empty()


def draw(state: ChatState) -> None:
    with transcript_area.container():
        for turn in render_transcript(state.turns):
            with st.chat_message(turn.role):
                for segment in turn.segments:
                    if segment.kind == "code":
                        st.code(segment.body, language=segment.language)
                    else:
                        st.markdown(segment.body)
    if state.error:
        error_area.error(state.error)
    else:
        error_area.empty()


def queue_question() -> None:
    # Runs before the rerun, so the input below is already disabled while the
    # queued question streams.
    session.queue(st.session_state.get("question") or "")


draw(session.state)

queued = session.state.draft
st.chat_input(
    "Ask your question...",
    key="question",
    on_submit=queue_question,
    disabled=session.busy,
)

if queued.strip() and not session.state.pending:
    unsubscribe = session.subscribe(draw)
    try:
        with st.spinner("Thinking..."):
            asyncio.run(session.submit(queued))
    finally:
        unsubscribe()
    # Redraw with the input enabled again
    st.rerun()
