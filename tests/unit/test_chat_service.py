import asyncio

import httpx
import pytest
import ollama
from unittest.mock import AsyncMock

from models.api_models import ChatRequest
from models.chat_models import GenerationSettings
from services.chat_service import ChatService
from tests.fixtures.responses import FULL_PARIS_ANSWER, SHORT_PARIS_ANSWER
from utils.constants import SEARCH_FAILED_MESSAGE, SearchMode
from utils.errors import GenerationError, ModelUnavailableError

FRANCE_QUESTION = "What is the capital of France?"
SEARCH_RESULTS = {
    "results": [
        {
            "title": "Fusion reactor sets energy record",
            "url": "https://www.example.com/fusion-record",
            "description": "Researchers reported a record energy output.",
            "snippet": "Researchers reported a record energy output.",
        }
    ],
    "summary": "1. Fusion reactor sets energy record\n   Researchers reported a record energy output.",
    "provider": "duckduckgo",
}


def chat_request(**overrides):
    body = {"message": FRANCE_QUESTION, "useWebSearch": "never"}
    body.update(overrides)
    return ChatRequest(**body)


@pytest.mark.parametrize("message, expected", [
    ("latest news today", False),
    ("What are the latest developments in fusion energy research", True),
    ("Please explain photosynthesis in plants clearly", False),
    ("Quelles sont les actualités du jour en France ?", True),
])
def test_should_use_web_search(message, expected):
    """Given a message in auto mode, search should trigger only for long messages with a temporal keyword."""
    assert ChatService.should_use_web_search(message) is expected


@pytest.mark.parametrize("mode, message, expected", [
    (SearchMode.ALWAYS, "hi", True),
    (SearchMode.NEVER, "What are the latest developments in fusion energy research", False),
    (SearchMode.AUTO, "What are the latest developments in fusion energy research", True),
])
def test_needs_web_search_respects_mode(mode, message, expected):
    assert ChatService.needs_web_search(message, mode) is expected


def test_two_phase_budgets():
    """Given base settings, the short, full and continuation budgets should be derived from them."""
    base = GenerationSettings(temperature=0.7, max_tokens=4096)
    assert ChatService.short_settings(base) == GenerationSettings(temperature=0.55, max_tokens=96)
    assert ChatService.full_settings(base) == GenerationSettings(temperature=0.7, max_tokens=4096)
    assert ChatService.continuation_settings(base) == GenerationSettings(temperature=0.7, max_tokens=128)

    small = GenerationSettings(temperature=0.3, max_tokens=50)
    assert ChatService.short_settings(small) == GenerationSettings(temperature=0.3, max_tokens=50)
    assert ChatService.full_settings(small) == GenerationSettings(temperature=0.3, max_tokens=1024)


@pytest.mark.anyio
async def test_fast_request_returns_short_answer_then_full_answer(ollama_client_builder, make_chat_service, full_store):
    """Given a fast request, the short answer should be returned with a pending fullId that later settles to the full answer."""
    client = ollama_client_builder.respond(96, SHORT_PARIS_ANSWER).respond(4096, FULL_PARIS_ANSWER).build()
    service = make_chat_service(client)

    payload = await service.handle_chat(chat_request(), "test01")

    assert payload["answer"] == SHORT_PARIS_ANSWER
    assert payload["pendingFull"] is True
    assert payload["fullId"]
    assert payload["usedWeb"] is False
    assert payload["sources"] == []
    assert payload["searchError"] is None
    assert payload["language"] == "en"
    assert payload["stats"]["phase"] == "short"
    assert service.get_full_response(payload["fullId"]).ready is False

    await service.drain()

    entry = service.get_full_response(payload["fullId"])
    assert entry.ready is True
    assert entry.error is None
    assert entry.answer.startswith(SHORT_PARIS_ANSWER)
    assert "\n\n" not in entry.answer
    assert len(entry.answer) >= len(payload["answer"])


@pytest.mark.anyio
async def test_fast_request_uses_request_settings(ollama_client_builder, make_chat_service):
    client = ollama_client_builder.respond(50, SHORT_PARIS_ANSWER).respond(1024, FULL_PARIS_ANSWER).build()
    service = make_chat_service(client)

    await service.handle_chat(chat_request(temperature=0.3, maxTokens=50), "test02")
    await service.drain()

    short_call, full_call = ollama_client_builder.calls
    assert short_call["options"]["temperature"] == 0.3
    assert short_call["options"]["num_predict"] == 50
    assert full_call["options"]["num_predict"] == 1024


@pytest.mark.anyio
async def test_incomplete_short_answer_gets_one_continuation(ollama_client_builder, make_chat_service):
    """Given a truncated short answer, one continuation should be requested and appended."""
    client = (
        ollama_client_builder
        .respond(96, "Paris is the capital of France and")
        .respond(128, "its largest city, home to more than two million people.")
        .respond(4096, FULL_PARIS_ANSWER)
        .build()
    )
    service = make_chat_service(client)

    payload = await service.handle_chat(chat_request(), "test03")
    await service.drain()

    assert payload["answer"] == (
        "Paris is the capital of France and its largest city, home to more than two million people."
    )
    continuation_call = ollama_client_builder.calls[1]
    assert continuation_call["options"]["num_predict"] == 128
    assert "Assistant: Paris is the capital of France and" in continuation_call["prompt"]


@pytest.mark.anyio
async def test_failed_continuation_keeps_partial_answer(ollama_client_builder, make_chat_service):
    client = (
        ollama_client_builder
        .respond(96, "Paris is the capital of France and")
        .fail(128, ollama.ResponseError("continuation failed", 500))
        .build()
    )
    service = make_chat_service(client)

    payload = await service.handle_chat(chat_request(), "test04")
    await service.drain()

    assert payload["answer"] == "Paris is the capital of France and"


@pytest.mark.anyio
async def test_continuation_transport_error_keeps_partial_answer(ollama_client_builder, make_chat_service):
    """Given a continuation whose connection drops, the partial short answer should still be returned."""
    client = (
        ollama_client_builder
        .respond(96, "Paris is the capital of France and")
        .fail(128, httpx.RemoteProtocolError("peer closed connection"))
        .respond(4096, FULL_PARIS_ANSWER)
        .build()
    )
    service = make_chat_service(client)

    payload = await service.handle_chat(chat_request(), "test04b")
    await service.drain()

    assert payload["answer"] == "Paris is the capital of France and"
    assert payload["pendingFull"] is True


@pytest.mark.anyio
async def test_failed_full_generation_settles_with_short_answer(ollama_client_builder, make_chat_service):
    """Given a background full generation that throws, the entry should still become ready with the short answer and the error."""
    client = (
        ollama_client_builder
        .respond(96, SHORT_PARIS_ANSWER)
        .fail(4096, ollama.ResponseError("model crashed", 500))
        .build()
    )
    service = make_chat_service(client)

    payload = await service.handle_chat(chat_request(), "test05")
    await service.drain()

    entry = service.get_full_response(payload["fullId"])
    assert entry.ready is True
    assert entry.answer == SHORT_PARIS_ANSWER
    assert entry.error == "model crashed"


@pytest.mark.anyio
async def test_cancelled_full_generation_still_publishes(ollama_client_builder, make_chat_service, full_store):
    """Given a background generation cancelled mid-flight, a settled entry should still be published."""
    client = ollama_client_builder.build()

    async def hang(**kwargs):
        await asyncio.sleep(60)

    client.generate = AsyncMock(side_effect=hang)
    service = make_chat_service(client)
    base = service.runner.default_settings
    full_store.create_pending("cancel-me")

    task = asyncio.create_task(
        service.run_full_generation("cancel-me", FRANCE_QUESTION, [], None, base, SHORT_PARIS_ANSWER, "test06")
    )
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    entry = full_store.get("cancel-me")
    assert entry.ready is True
    assert entry.answer == SHORT_PARIS_ANSWER
    assert entry.error == "Full generation cancelled"


@pytest.mark.anyio
async def test_single_phase_request(ollama_client_builder, make_chat_service, full_store):
    """Given fast=false, one generation with the default settings should be returned without a fullId."""
    client = ollama_client_builder.respond(4096, FULL_PARIS_ANSWER).build()
    service = make_chat_service(client)

    payload = await service.handle_chat(chat_request(fast=False), "test07")

    assert payload["pendingFull"] is False
    assert payload["fullId"] is None
    assert payload["answer"] == FULL_PARIS_ANSWER
    assert payload["stats"]["phase"] == "single"
    assert len(full_store) == 0
    assert ollama_client_builder.calls[0]["options"]["temperature"] == 0.7
    assert service.pending_tasks == 0


@pytest.mark.anyio
async def test_identical_single_phase_requests_hit_cache(ollama_client_builder, make_chat_service):
    client = ollama_client_builder.respond(4096, FULL_PARIS_ANSWER).build()
    service = make_chat_service(client)

    await service.handle_chat(chat_request(fast=False), "test08")
    second = await service.handle_chat(chat_request(fast=False), "test09")

    assert second["stats"]["cached"] is True
    assert len(ollama_client_builder.calls) == 1


@pytest.mark.anyio
async def test_unavailable_model_fails_without_minting_full_id(ollama_client_builder, make_chat_service, full_store):
    """Given a runner that stays down after one reinit, the request should fail before any generation."""
    service = make_chat_service(ollama_client_builder.unreachable().build(), available=False)

    with pytest.raises(ModelUnavailableError) as exc_info:
        await service.handle_chat(chat_request(), "test10")

    assert exc_info.value.context == {"usedWeb": False, "sources": []}
    assert len(full_store) == 0
    assert ollama_client_builder.calls == []


@pytest.mark.anyio
async def test_unavailable_model_is_reinitialised_once(ollama_client_builder, make_chat_service):
    client = ollama_client_builder.respond(96, SHORT_PARIS_ANSWER).build()
    service = make_chat_service(client, available=False)

    payload = await service.handle_chat(chat_request(), "test11")
    await service.drain()

    assert payload["answer"] == SHORT_PARIS_ANSWER
    client.show.assert_awaited_once()


@pytest.mark.anyio
async def test_short_generation_error_is_raised_with_search_context(
    ollama_client_builder, make_chat_service, mock_search_service, full_store
):
    mock_search_service.search.return_value = SEARCH_RESULTS
    client = ollama_client_builder.fail(96, ollama.ResponseError("bad request", 400)).build()
    service = make_chat_service(client)

    with pytest.raises(GenerationError) as exc_info:
        await service.handle_chat(chat_request(useWebSearch="always"), "test12")

    assert exc_info.value.context["usedWeb"] is True
    assert exc_info.value.context["sources"][0]["host"] == "example.com"
    assert len(full_store) == 0


@pytest.mark.anyio
async def test_search_results_feed_prompt_and_sources(ollama_client_builder, make_chat_service, mock_search_service):
    """Given a successful search, the summary should reach the prompt and sources should be returned."""
    mock_search_service.search.return_value = SEARCH_RESULTS
    client = ollama_client_builder.respond(96, "Fusion reactors set a new energy record this week.").build()
    service = make_chat_service(client)

    payload = await service.handle_chat(chat_request(message="What happened in fusion?", useWebSearch="always"), "test13")
    await service.drain()

    assert payload["usedWeb"] is True
    assert payload["searchProvider"] == "duckduckgo"
    assert payload["sources"] == [{
        "title": "Fusion reactor sets energy record",
        "url": "https://www.example.com/fusion-record",
        "snippet": "Researchers reported a record energy output.",
        "host": "example.com",
    }]
    assert "Web context:\n1. Fusion reactor sets energy record" in ollama_client_builder.calls[0]["prompt"]
    mock_search_service.search.assert_awaited_once_with("What happened in fusion?")


@pytest.mark.anyio
@pytest.mark.parametrize("search_behaviour", [
    {"return_value": None},
    {"side_effect": RuntimeError("network down")},
])
async def test_search_failure_is_advisory(search_behaviour, ollama_client_builder, make_chat_service, mock_search_service):
    """Given a failing search, generation should continue without web context and report an advisory."""
    mock_search_service.search = AsyncMock(**search_behaviour)
    client = ollama_client_builder.respond(96, SHORT_PARIS_ANSWER).build()
    service = make_chat_service(client)

    payload = await service.handle_chat(chat_request(useWebSearch="always"), "test14")
    await service.drain()

    assert payload["usedWeb"] is False
    assert payload["sources"] == []
    assert payload["searchError"] == SEARCH_FAILED_MESSAGE
    assert payload["answer"] == SHORT_PARIS_ANSWER
    assert "Web context:" not in ollama_client_builder.calls[0]["prompt"]


@pytest.mark.anyio
async def test_never_mode_skips_search(ollama_client_builder, make_chat_service, mock_search_service):
    client = ollama_client_builder.respond(96, SHORT_PARIS_ANSWER).build()
    service = make_chat_service(client)

    await service.handle_chat(chat_request(message="What is the latest news in France today?"), "test15")
    await service.drain()

    mock_search_service.search.assert_not_called()
