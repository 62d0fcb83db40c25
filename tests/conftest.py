import pytest
from contextlib import ExitStack
from unittest.mock import AsyncMock


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def ollama_client_builder():
    from tests.fixtures.mock_clients import OllamaClientBuilder
    return OllamaClientBuilder()


@pytest.fixture
def response_cache():
    """Fresh response cache per test."""
    from utils.cache import ResponseCache
    return ResponseCache(max_entries=50, ttl_seconds=300)


@pytest.fixture
def full_store():
    """Fresh pending full-response store per test."""
    from utils.cache import FullResponseStore
    return FullResponseStore(max_entries=50, ttl_seconds=3600)


@pytest.fixture
def mock_search_service():
    """Search collaborator that finds nothing unless configured."""
    service = AsyncMock()
    service.search = AsyncMock(return_value=None)
    return service


@pytest.fixture
def mock_http_client():
    """Mock HTTP client for search providers."""
    client = AsyncMock()
    client.get = AsyncMock()
    return client


@pytest.fixture
def make_runner(response_cache):
    """Build an available ModelRunner around a mocked Ollama client."""
    from services.model_runner import ModelRunner

    def _make(client, available=True):
        runner = ModelRunner(client=client, model="llama3.2:3b", cache=response_cache)
        runner.available = available
        return runner

    return _make


@pytest.fixture
def make_chat_service(make_runner, mock_search_service, full_store):
    """Build a ChatService wired to mocks and per-test stores."""
    from services.chat_service import ChatService

    def _make(client, search_service=None, available=True):
        return ChatService(
            runner=make_runner(client, available=available),
            search_service=search_service or mock_search_service,
            full_store=full_store
        )

    return _make


@pytest.fixture
def feedback_path(tmp_path):
    return tmp_path / "data" / "feedback.jsonl"


@pytest.fixture
def app_client_factory(monkeypatch, make_chat_service, feedback_path):
    """Build a TestClient for the full app around a given mocked Ollama client."""
    from fastapi.testclient import TestClient
    from main import app
    from services.chat_service import get_chat_service
    from services.feedback_store import FeedbackStore, get_feedback_store
    from services.search import get_search_service

    stack = ExitStack()

    def _build(ollama_client, search_service=None, available=True):
        service = make_chat_service(ollama_client, search_service, available=available)
        monkeypatch.setattr("services.chat_service._chat_service", service)
        app.dependency_overrides[get_chat_service] = lambda: service
        app.dependency_overrides[get_feedback_store] = lambda: FeedbackStore(str(feedback_path))
        app.dependency_overrides[get_search_service] = lambda: service.search_service
        client = stack.enter_context(TestClient(app))
        return client, service

    yield _build

    stack.close()
    app.dependency_overrides.clear()


@pytest.fixture
def guest_headers():
    return {"x-guest": "true"}
