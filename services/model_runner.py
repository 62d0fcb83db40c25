"""
Local model runner backed by Ollama.
Wraps prompt generation with response caching, echo stripping and a one-shot retry on garbage output.
"""
import re
import time
from typing import Optional, Sequence

import httpx
import ollama

from config import Config
from models.chat_models import GenerationSettings, QueryResult
from services.prompt_builder import PromptBuilder
from utils.cache import ResponseCache, get_response_cache
from utils.constants import Patterns
from utils.errors import GenerationError, ModelUnavailableError
from utils.logger import app_logger
from utils.sanitizer import OutputSanitizer


class ModelRunner:
    """Generates answers from a local Ollama model."""

    PROVIDER = "ollama"

    _canned_patterns = [re.compile(p, re.IGNORECASE) for p in Patterns.CANNED]
    _system_echo: re.Pattern = re.compile(Patterns.SYSTEM_ECHO, re.IGNORECASE)

    def __init__(
        self,
        client: Optional[ollama.AsyncClient] = None,
        model: Optional[str] = None,
        cache: Optional[ResponseCache] = None,
    ):
        """
        Args:
            client: Ollama async client (created lazily from OLLAMA_HOST when omitted)
            model: Model name (defaults to OLLAMA_MODEL)
            cache: Response cache (defaults to the global one)
        """
        self._client = client
        self.model = model or Config.OLLAMA_MODEL
        self._cache = cache if cache is not None else get_response_cache()
        self.available = False
        self.default_settings = GenerationSettings(
            temperature=Config.DEFAULT_TEMPERATURE,
            max_tokens=Config.DEFAULT_MAX_TOKENS
        )

    @property
    def client(self) -> ollama.AsyncClient:
        if self._client is None:
            self._client = ollama.AsyncClient(host=Config.OLLAMA_HOST)
        return self._client

    def is_available(self) -> bool:
        return self.available

    async def init(self) -> bool:
        """
        Probe the configured model and pre-warm it.

        Returns:
            True when the model can serve requests
        """
        try:
            await self.client.show(self.model)
        except ollama.ResponseError as e:
            app_logger.warning(f"Model {self.model} not available in Ollama: {e.error}")
            self.available = False
            return False
        except (httpx.HTTPError, ConnectionError) as e:
            app_logger.warning(f"Ollama unreachable at {Config.OLLAMA_HOST}: {e}")
            self.available = False
            return False

        try:
            await self.client.generate(
                model=self.model,
                prompt="Hello.",
                options={"temperature": 0.0, "num_predict": 1}
            )
            app_logger.info("Pre-warm prompt executed")
        except (ollama.ResponseError, httpx.HTTPError, ConnectionError) as e:
            app_logger.warning(f"Pre-warm failed (non-fatal): {e}")

        self.available = True
        app_logger.info(f"Model runner ready: {self.model} (ctx={Config.CONTEXT_SIZE})")
        return True

    async def generate(self, prompt: str, settings: GenerationSettings, system_prompt: Optional[str] = None) -> str:
        """
        Run one generation call.

        Raises:
            ModelUnavailableError: Runner not initialised or Ollama unreachable
            GenerationError: Ollama rejected the request or the transport failed mid-call
        """
        if not self.available:
            raise ModelUnavailableError("Model runner is not initialised")

        try:
            response = await self.client.generate(
                model=self.model,
                prompt=prompt,
                system=system_prompt,
                options={
                    "temperature": settings.temperature,
                    "num_predict": settings.max_tokens,
                    "num_ctx": Config.CONTEXT_SIZE,
                }
            )
        except (httpx.ConnectError, ConnectionError) as e:
            self.available = False
            raise ModelUnavailableError(f"Ollama unreachable: {e}") from e
        except ollama.ResponseError as e:
            raise GenerationError(e.error) from e
        except httpx.HTTPError as e:
            raise GenerationError(f"Ollama request failed: {e}") from e

        return str(response["response"] or "").strip()

    @staticmethod
    def is_canned(text: str) -> bool:
        """Detect boilerplate greetings that ignore the actual question."""
        return any(pattern.search(text) for pattern in ModelRunner._canned_patterns)

    @staticmethod
    def looks_like_garbage(cleaned: str, raw: str, message: str, system_prompt: str) -> bool:
        """Check whether an answer is empty, too short, an echo or canned."""
        min_length = min(30, max(12, len(message) // 2))

        if not cleaned or len(cleaned) < min_length:
            return True
        if ModelRunner._system_echo.search(cleaned):
            return True
        if system_prompt and system_prompt[:OutputSanitizer.PERSONA_PREFIX_CHARS] in raw:
            return True
        return ModelRunner.is_canned(cleaned)

    async def process_query(
        self,
        message: str,
        history: Optional[Sequence[dict]] = None,
        web_context: Optional[str] = None,
        settings: Optional[GenerationSettings] = None,
        short: bool = False,
    ) -> QueryResult:
        """
        Answer a message: build the prompt, serve from cache when possible,
        generate, strip echoes and retry once on garbage output.

        Args:
            message: User message
            history: Trimmed conversation history
            web_context: Search summary, if any
            settings: Temperature/token budget (runner defaults when omitted)
            short: Use the concise-answer instruction

        Returns:
            QueryResult with the cleaned answer
        """
        settings = settings or self.default_settings
        history = list(history or [])

        language = PromptBuilder.detect_language(message, history)
        system_prompt = PromptBuilder.get_persona(language)
        prompt = PromptBuilder.build(message, history, web_context, language, short=short)

        if Config.DEBUG_PROMPTS:
            preview = prompt if len(prompt) <= 4000 else prompt[:4000] + "\n...[truncated]"
            app_logger.debug(f"Detected language: {language}\nFinal prompt preview:\n{preview}")

        cache_key = ResponseCache.make_key(
            message, history, web_context, system_prompt,
            settings.temperature, settings.max_tokens, short
        )
        cached = self._cache.get(cache_key)
        if cached:
            app_logger.info(f"Response cache HIT ({'short' if short else 'full'})")
            return QueryResult(
                response=cached,
                language=language,
                model=self.model,
                stats={"elapsed_ms": 0, "provider": self.PROVIDER, "cached": True, "retried": False}
            )

        start = time.monotonic()
        raw = await self.generate(prompt, settings, system_prompt)
        cleaned = OutputSanitizer.strip_echoes(raw, system_prompt)

        retried = False
        if self.looks_like_garbage(cleaned, raw, message, system_prompt):
            app_logger.warning(f"Unusable model output ({len(cleaned)} chars), retrying once")
            retry_settings = GenerationSettings(
                temperature=min(Config.RETRY_MAX_TEMPERATURE, settings.temperature + Config.RETRY_TEMPERATURE_STEP),
                max_tokens=max(Config.RETRY_MIN_TOKENS, min(settings.max_tokens * 4, Config.RETRY_MAX_TOKENS))
            )
            try:
                retry_raw = await self.generate(
                    PromptBuilder.build_retry(prompt, message, language),
                    retry_settings,
                    system_prompt
                )
                retry_cleaned = OutputSanitizer.strip_echoes(retry_raw, system_prompt)
                if retry_cleaned and len(retry_cleaned) > len(cleaned) and not self.is_canned(retry_cleaned):
                    cleaned = retry_cleaned
                    retried = True
            except Exception as e:
                app_logger.warning(f"Retry generation failed (non-fatal): {e}")

        elapsed_ms = int((time.monotonic() - start) * 1000)

        if cleaned and len(cleaned) > Config.MIN_CACHEABLE_LENGTH:
            self._cache.set(cache_key, cleaned)

        return QueryResult(
            response=cleaned or raw,
            language=language,
            model=self.model,
            stats={"elapsed_ms": elapsed_ms, "provider": self.PROVIDER, "cached": False, "retried": retried}
        )


# Global runner instance
_model_runner: Optional[ModelRunner] = None


def get_model_runner() -> ModelRunner:
    """Get the global model runner instance."""
    global _model_runner
    if _model_runner is None:
        _model_runner = ModelRunner()
    return _model_runner
