from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.main import app, provider_dependency
from config.settings import get_settings
from relay.provider import get_provider
from tests.fakes import FakeProvider


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    monkeypatch.setenv("GOOGLE_API_KEY", "test-key")
    monkeypatch.setenv("UI_REVEAL_DELAY_MS", "0")
    get_settings.cache_clear()
    get_provider.cache_clear()
    yield
    get_settings.cache_clear()
    get_provider.cache_clear()
    app.dependency_overrides.clear()


@pytest.fixture
def use_provider():
    def install(provider: FakeProvider) -> FakeProvider:
        app.dependency_overrides[provider_dependency] = lambda: provider
        return provider

    return install


@pytest.fixture
def api():
    with TestClient(app) as client:
        yield client
