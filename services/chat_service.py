"""
Chat service containing the two-phase response orchestration.
Handles the web search decision, short answer generation with continuation,
background full generation and the poll-by-id handoff.
"""
import asyncio
import secrets
from typing import Any, Optional, Sequence

from config import Config
from models.api_models import ChatRequest
from models.chat_models import ChatPhase, FullResponseEntry, GenerationSettings, QueryResult, SearchOutcome
from services.completion import CompletionHeuristics
from services.model_runner import ModelRunner, get_model_runner
from services.prompt_builder import PromptBuilder
from services.search import SearchService, get_search_service
from utils.cache import FullResponseStore, get_full_response_store
from utils.constants import MODEL_UNAVAILABLE_MESSAGE, SEARCH_FAILED_MESSAGE, WEB_SEARCH_KEYWORDS, SearchMode
from utils.errors import GenerationError, ModelUnavailableError
from utils.logger import chat_logger
from utils.sanitizer import OutputSanitizer


class ChatService:
    """Orchestrates search, generation and background full answers for chat requests."""

    def __init__(
        self,
        runner: Optional[ModelRunner] = None,
        search_service: Optional[SearchService] = None,
        full_store: Optional[FullResponseStore] = None,
    ):
        self.runner = runner or get_model_runner()
        self.search_service = search_service or get_search_service()
        self.full_store = full_store if full_store is not None else get_full_response_store()
        self._background_tasks: set[asyncio.Task] = set()

    @staticmethod
    def should_use_web_search(message: str) -> bool:
        """Auto mode: long enough messages containing a temporal/news keyword."""
        if len(message or "") < Config.MIN_AUTO_SEARCH_LENGTH:
            return False

        message_lower = message.lower()
        return any(keyword in message_lower for keyword in WEB_SEARCH_KEYWORDS)

    @staticmethod
    def needs_web_search(message: str, mode: str) -> bool:
        if mode == SearchMode.ALWAYS:
            return True
        if mode == SearchMode.NEVER:
            return False
        return ChatService.should_use_web_search(message)

    async def resolve_search(self, message: str, mode: str, chat_id: str) -> SearchOutcome:
        """Run web augmentation when needed. Failures only produce an advisory."""
        if not self.needs_web_search(message, mode):
            return SearchOutcome()

        log = chat_logger(chat_id)
        log.info(f"Web search triggered ({mode})")
        try:
            results = await self.search_service.search(message)
        except Exception as e:
            log.error(f"Unexpected search error: {e}")
            results = None

        if not results:
            log.warning("Web search failed or returned no results")
            return SearchOutcome(search_error=SEARCH_FAILED_MESSAGE)

        sources = SearchService.to_sources(results.get("results") or [])
        provider = results.get("provider")
        log.info(f"Web search completed via {provider or 'unknown'}. Sources: {len(sources)}")
        return SearchOutcome(
            used_web=True,
            web_context=results.get("summary") or None,
            sources=sources,
            search_provider=provider
        )

    async def ensure_runner(self, chat_id: str, search: SearchOutcome) -> None:
        """Reinitialise an unavailable runner once; raise if it stays down."""
        if self.runner.is_available():
            return

        log = chat_logger(chat_id)
        log.warning("Local engine not available, attempting reinit...")
        if await self.runner.init():
            return

        log.error("Local model unavailable")
        raise ModelUnavailableError(MODEL_UNAVAILABLE_MESSAGE, usedWeb=search.used_web, sources=search.sources)

    def resolve_settings(self, request: ChatRequest) -> GenerationSettings:
        defaults = self.runner.default_settings
        return GenerationSettings(
            temperature=request.temperature if request.temperature is not None else defaults.temperature,
            max_tokens=request.max_tokens if request.max_tokens is not None else defaults.max_tokens
        )

    @staticmethod
    def short_settings(base: GenerationSettings) -> GenerationSettings:
        return GenerationSettings(
            temperature=min(Config.SHORT_TEMPERATURE, base.temperature),
            max_tokens=min(Config.SHORT_MAX_TOKENS, base.max_tokens)
        )

    @staticmethod
    def full_settings(base: GenerationSettings) -> GenerationSettings:
        return GenerationSettings(
            temperature=min(Config.FULL_TEMPERATURE, base.temperature),
            max_tokens=max(Config.FULL_MIN_TOKENS, base.max_tokens)
        )

    @staticmethod
    def continuation_settings(base: GenerationSettings) -> GenerationSettings:
        return GenerationSettings(
            temperature=min(Config.CONTINUATION_TEMPERATURE, base.temperature),
            max_tokens=Config.CONTINUATION_MAX_TOKENS
        )

    async def continue_answer(
        self,
        partial: str,
        history: Sequence[dict],
        web_context: Optional[str],
        base: GenerationSettings,
        language: str,
        chat_id: str,
    ) -> str:
        """
        Ask once for a brief continuation of a truncated answer.

        Returns:
            partial + continuation, or partial unchanged when the continuation fails
        """
        continuation_history = list(history) + [{"role": "assistant", "content": partial}]
        try:
            continuation = await self.runner.process_query(
                PromptBuilder.continuation_message(language),
                continuation_history,
                web_context,
                self.continuation_settings(base)
            )
        except Exception as e:
            chat_logger(chat_id).warning(f"Short continuation failed: {e}")
            return partial

        if continuation.response and continuation.response.strip():
            return f"{partial} {continuation.response}".strip()
        return partial

    async def generate_short(
        self,
        message: str,
        history: Sequence[dict],
        web_context: Optional[str],
        base: GenerationSettings,
        chat_id: str,
    ) -> QueryResult:
        """Generate the quick answer and repair it when it looks cut off."""
        short = await self.runner.process_query(message, history, web_context, self.short_settings(base), short=True)

        if CompletionHeuristics.is_probably_incomplete(short.response):
            chat_logger(chat_id).info("Short answer looks incomplete, requesting continuation")
            short.response = await self.continue_answer(
                short.response, history, web_context, base, short.language, chat_id
            )

        return short

    async def run_full_generation(
        self,
        full_id: str,
        message: str,
        history: Sequence[dict],
        web_context: Optional[str],
        base: GenerationSettings,
        short_answer: str,
        chat_id: str,
    ) -> None:
        """
        Background full generation. Always publishes a settled entry, falling back
        to the sanitized short answer when generation fails.
        """
        log = chat_logger(chat_id)
        entry = self.full_store.get(full_id) or FullResponseEntry.pending()
        settled: Optional[FullResponseEntry] = None
        short_fallback = OutputSanitizer.sanitize_full(short_answer) or short_answer

        try:
            log.info(f"Phase: {ChatPhase.FULL_GENERATING.value}")
            result = await self.runner.process_query(message, history, web_context, self.full_settings(base))
            answer = OutputSanitizer.sanitize_full(result.response)
            if not answer:
                log.warning("Full answer empty after sanitization, keeping short answer")
                answer = short_fallback
            settled = entry.settle(answer)
            log.info(f"Phase: {ChatPhase.FULL_READY.value} ({len(answer)} chars)")
        except Exception as e:
            log.error(f"Full generation failed: {e}")
            settled = entry.settle(short_fallback, error=str(e) or "Full generation failed")
            log.info(f"Phase: {ChatPhase.FULL_FAILED.value}")
        finally:
            if settled is None:
                settled = entry.settle(short_fallback, error="Full generation cancelled")
            self.full_store.publish(full_id, settled)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    @property
    def pending_tasks(self) -> int:
        return len(self._background_tasks)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight background generations."""
        if self._background_tasks:
            await asyncio.wait(set(self._background_tasks), timeout=timeout)

    def get_full_response(self, full_id: str) -> Optional[FullResponseEntry]:
        """Non-blocking lookup of a background full answer."""
        return self.full_store.get(full_id)

    async def handle_chat(self, request: ChatRequest, chat_id: str) -> dict[str, Any]:
        """
        Process a validated chat request.

        Raises:
            ModelUnavailableError: Runner down after one reinit attempt
            GenerationError: Runner failed while producing the returned answer
        """
        log = chat_logger(chat_id)
        log.info(f"Phase: {ChatPhase.RECEIVED.value} ({len(request.message)} chars)")

        search = await self.resolve_search(request.message, request.search_mode, chat_id)
        log.info(f"Phase: {ChatPhase.SEARCH_DECIDED.value} (usedWeb={search.used_web})")

        await self.ensure_runner(chat_id, search)

        history = PromptBuilder.trim_history(request.history_dicts())
        base = self.resolve_settings(request)
        full_id = None

        try:
            if request.fast:
                log.info(f"Phase: {ChatPhase.SHORT_GENERATING.value}")
                result = await self.generate_short(request.message, history, search.web_context, base, chat_id)

                full_id = secrets.token_hex(8)
                self.full_store.create_pending(full_id)
                self._spawn(self.run_full_generation(
                    full_id, request.message, history, search.web_context, base, result.response, chat_id
                ))
                log.info(f"Phase: {ChatPhase.SHORT_READY.value} (fullId={full_id})")
                stats = {**result.stats, "phase": "short"}
            else:
                result = await self.runner.process_query(request.message, history, search.web_context, base)
                stats = {**result.stats, "phase": "single"}
        except (GenerationError, ModelUnavailableError) as e:
            log.error(f"Generation error: {e}")
            e.context.update(usedWeb=search.used_web, sources=search.sources)
            raise

        answer = OutputSanitizer.sanitize_answer(
            result.response,
            source_urls=[source["url"] for source in search.sources]
        )

        return {
            "answer": answer,
            "pendingFull": full_id is not None,
            "fullId": full_id,
            "language": result.language,
            "usedWeb": search.used_web,
            "sources": search.sources,
            "model": result.model,
            "searchError": search.search_error,
            "searchProvider": search.search_provider,
            "stats": stats
        }


# Global chat service instance
_chat_service: Optional[ChatService] = None


def get_chat_service() -> ChatService:
    """Get the global chat service instance."""
    global _chat_service
    if _chat_service is None:
        _chat_service = ChatService()
    return _chat_service
