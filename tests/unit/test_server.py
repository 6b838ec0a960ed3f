"""
Unit tests for the HTTP endpoint, with settings and the chat model overridden.
"""

import threading

import pytest
from fastapi.testclient import TestClient

from arch_provider.settings import ConfigurationError
from server import app, get_chat_llm, get_settings

from conftest import CODE_MARKER, DOC_MARKER, ScriptedChatModel


@pytest.fixture
def client_for(openai_settings):
    def make(model):
        app.dependency_overrides[get_settings] = lambda: openai_settings
        app.dependency_overrides[get_chat_llm] = lambda: model
        return TestClient(app)

    yield make
    app.dependency_overrides.clear()


def test_documentation_only_request(client_for):
    model = ScriptedChatModel({DOC_MARKER: ["elaboration", "1. Frontend Component\n2. Billing"]})

    response = client_for(model).post("/architecture", json={"documentation": "Some docs"})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert [c["name"] for c in body["components"]] == ["Billing", "Frontend"]
    assert body["components"][0] == {"identifier": "Billing", "name": "Billing", "kind": "Component"}
    assert model.calls_for(CODE_MARKER) == []


def test_both_sources_without_aggregation_prompt(client_for):
    model = ScriptedChatModel({
        DOC_MARKER: ["elaboration", "- Gateway"],
        CODE_MARKER: ["summary", "- Gateways\n- Indexer"],
    })

    response = client_for(model).post("/architecture", json={
        "documentation": "Some docs",
        "packages": ["org.shop.gateway", "org.shop.indexer"],
        "use_aggregation_prompt": False,
    })

    assert response.status_code == 200
    assert [c["name"] for c in response.json()["components"]] == ["Gateway", "Indexer"]


def test_empty_request_is_rejected(client_for):
    response = client_for(ScriptedChatModel({})).post("/architecture", json={"documentation": "   "})
    assert response.status_code == 400


def test_model_failure_maps_to_500(client_for):
    model = ScriptedChatModel({}, fail_on={DOC_MARKER: RuntimeError("model unavailable")})
    response = client_for(model).post("/architecture", json={"documentation": "Some docs"})
    assert response.status_code == 500
    assert "model unavailable" in response.json()["detail"]


def test_timeout_maps_to_504(client_for):
    release = threading.Event()

    class Slow(ScriptedChatModel):
        def invoke(self, messages):
            release.wait(1)
            return super().invoke(messages)

    model = Slow({DOC_MARKER: ["elaboration", "- Frontend"]})
    try:
        response = client_for(model).post("/architecture", json={"documentation": "Some docs", "timeout": 0.05})
    finally:
        release.set()
    assert response.status_code == 504


def test_misconfigured_server_maps_to_500(monkeypatch):
    import server

    def broken_settings():
        raise ConfigurationError("OPENAI_API_KEY must be set")

    monkeypatch.setattr(server, "load_provider_settings", broken_settings)
    app.dependency_overrides.clear()

    response = TestClient(app).post("/architecture", json={"documentation": "Some docs"})

    assert response.status_code == 500
    assert "Server misconfigured" in response.json()["detail"]
