import json

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from relay.core.errors import MARKER_REPLACEMENT, STREAM_ERROR_MARKER, TIMEOUT_ERROR
from relay.core.prompt import SYSTEM_PROMPT
from tests.fakes import FakeProvider


HISTORY = [
    {"role": "user", "content": "What is Python?"},
    {"role": "assistant", "content": "A programming language."},
]


def test_health(api):
    assert api.get("/health").json() == {"status": "ok"}


def test_buffered_reply(api, use_provider):
    provider = use_provider(FakeProvider(reply="Use a lock."))

    res = api.post("/api/query?stream=false", json={"history": HISTORY, "query": "Threads?"})

    assert res.status_code == 200
    assert res.json() == {"response": "Use a lock."}
    messages = provider.calls[0]
    assert [type(m) for m in messages] == [SystemMessage, HumanMessage, AIMessage, HumanMessage]
    assert messages[0].content == SYSTEM_PROMPT
    assert messages[-1].content == "Threads?"


def test_buffered_failure_is_generic_500(api, use_provider):
    use_provider(FakeProvider(fail_at=0))

    res = api.post("/api/query?stream=false", json={"history": [], "query": "hi"})

    assert res.status_code == 500
    assert res.json() == {"error": "Something went wrong!"}


def test_buffered_timeout_is_504(api, use_provider, monkeypatch):
    from config.settings import get_settings

    monkeypatch.setenv("PROVIDER_TIMEOUT_SECONDS", "0.05")
    get_settings.cache_clear()
    use_provider(FakeProvider(reply="late", delay=1.0))

    res = api.post("/api/query?stream=false", json={"history": [], "query": "hi"})

    assert res.status_code == 504
    assert "error" in res.json()


def test_stream_writes_fragments_in_order(api, use_provider):
    use_provider(FakeProvider(fragments=["A mutex ", "is", "", "..."]))

    res = api.post("/api/query", json={"history": [], "query": "What is a mutex?"})

    assert res.status_code == 200
    assert res.text == "A mutex is..."
    assert res.headers["content-type"].startswith("text/event-stream")
    assert res.headers["cache-control"] == "no-cache"
    assert res.headers["connection"] == "keep-alive"


def test_stream_failure_before_first_fragment_is_json_error(api, use_provider):
    use_provider(FakeProvider(fragments=["never"], fail_at=0))

    res = api.post("/api/query", json={"history": [], "query": "hi"})

    assert res.status_code == 500
    assert res.json() == {"error": "Something went wrong!"}


def test_stream_failure_mid_stream_appends_marker(api, use_provider):
    use_provider(FakeProvider(fragments=["Hel", "lo"], fail_at=2))

    res = api.post("/api/query", json={"history": [], "query": "hi"})

    assert res.status_code == 200
    text, marker, trailer = res.text.partition(STREAM_ERROR_MARKER)
    assert text == "Hello"
    assert marker
    assert json.loads(trailer) == {"error": "Something went wrong!"}


def test_successful_stream_has_no_marker(api, use_provider):
    use_provider(FakeProvider(fragments=["ok"]))

    res = api.post("/api/query?stream=true", json={"history": [], "query": "hi"})

    assert STREAM_ERROR_MARKER not in res.text


def test_rejects_unknown_roles_and_blank_query(api, use_provider):
    use_provider(FakeProvider(reply="x"))

    bad_role = api.post(
        "/api/query", json={"history": [{"role": "system", "content": "x"}], "query": "hi"}
    )
    blank = api.post("/api/query", json={"history": [], "query": "   "})

    assert bad_role.status_code == 422
    assert blank.status_code == 422


def test_missing_api_key_is_explained(api, monkeypatch):
    from config.settings import get_settings

    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    get_settings.cache_clear()

    res = api.post("/api/query", json={"history": [], "query": "hi"})

    assert res.status_code == 500
    assert res.json() == {"error": "Missing GOOGLE_API_KEY in environment or .env"}


def test_marker_in_model_output_is_escaped(api, use_provider):
    use_provider(FakeProvider(fragments=["col1\x1ecol2", "\x1e"]))

    res = api.post("/api/query", json={"history": [], "query": "hi"})

    assert res.status_code == 200
    assert STREAM_ERROR_MARKER not in res.text
    assert res.text == f"col1{MARKER_REPLACEMENT}col2{MARKER_REPLACEMENT}"


def test_stream_timeout_before_first_fragment_is_504(api, use_provider, monkeypatch):
    from config.settings import get_settings

    monkeypatch.setenv("PROVIDER_TIMEOUT_SECONDS", "0.05")
    get_settings.cache_clear()
    use_provider(FakeProvider(fragments=["late"], delay=1.0))

    res = api.post("/api/query", json={"history": [], "query": "hi"})

    assert res.status_code == 504
    assert res.json() == {"error": TIMEOUT_ERROR}


def test_stream_timeout_mid_stream_writes_timeout_marker(api, use_provider, monkeypatch):
    from config.settings import get_settings

    monkeypatch.setenv("PROVIDER_TIMEOUT_SECONDS", "0.05")
    get_settings.cache_clear()
    use_provider(FakeProvider(fragments=["fast", "slow"], delay=1.0, delay_from=1))

    res = api.post("/api/query", json={"history": [], "query": "hi"})

    assert res.status_code == 200
    text, marker, trailer = res.text.partition(STREAM_ERROR_MARKER)
    assert text == "fast"
    assert marker
    assert json.loads(trailer) == {"error": TIMEOUT_ERROR}
