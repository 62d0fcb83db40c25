"""
Configuration module for the Luck Relay application.
Handles environment variables and application settings.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration class."""

    # Application Settings
    APP_TITLE: str = "Luck Relay"
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    DEBUG_PROMPTS: bool = _env_bool("LUCK_DEBUG_PROMPTS")

    # Model runner (Ollama)
    OLLAMA_HOST: str = os.getenv("OLLAMA_HOST", "http://localhost:11434")
    OLLAMA_MODEL: str = os.getenv("OLLAMA_MODEL", "llama3.2:3b")
    CONTEXT_SIZE: int = int(os.getenv("LUCK_CTX", "4096"))
    DEFAULT_TEMPERATURE: float = float(os.getenv("LUCK_TEMPERATURE", "0.7"))
    DEFAULT_MAX_TOKENS: int = int(os.getenv("LUCK_MAX_TOKENS", "4096"))

    # Request limits
    MAX_MESSAGE_LENGTH: int = 5000
    MAX_HISTORY_TURNS: int = 6
    CACHE_HISTORY_TURNS: int = 3

    # Two-phase generation budgets
    SHORT_MAX_TOKENS: int = 96
    SHORT_TEMPERATURE: float = 0.55
    FULL_MIN_TOKENS: int = 1024
    FULL_TEMPERATURE: float = 0.9
    CONTINUATION_MAX_TOKENS: int = 128
    CONTINUATION_TEMPERATURE: float = 0.7

    # Garbage retry
    RETRY_TEMPERATURE_STEP: float = 0.2
    RETRY_MAX_TEMPERATURE: float = 0.9
    RETRY_MIN_TOKENS: int = 128
    RETRY_MAX_TOKENS: int = 2048

    # Response cache
    RESPONSE_CACHE_MAX: int = int(os.getenv("LUCK_CACHE_MAX", "200"))
    RESPONSE_CACHE_TTL: float = float(os.getenv("LUCK_CACHE_TTL_SECONDS", "300"))
    MIN_CACHEABLE_LENGTH: int = 8

    # Pending full responses
    FULL_RESPONSE_TTL: float = float(os.getenv("LUCK_FULL_TTL_SECONDS", "3600"))
    FULL_RESPONSE_MAX: int = int(os.getenv("LUCK_FULL_MAX", "1000"))
    SHUTDOWN_DRAIN_TIMEOUT: float = 5.0

    # Search
    BRAVE_SEARCH_API_KEY: str = os.getenv("BRAVE_SEARCH_API_KEY", "")
    BRAVE_SEARCH_URL: str = "https://api.search.brave.com/res/v1/web/search"
    DUCKDUCKGO_HTML_URL: str = "https://html.duckduckgo.com/html/"
    SEARCH_USER_AGENT: str = "Mozilla/5.0 (compatible; LuckRelay/1.0)"
    SEARCH_TIMEOUT: float = 15.0
    SEARCH_RESULTS_LIMIT: int = 6
    MAX_CONNECTIONS: int = 10
    MAX_REDIRECTS: int = 5
    MIN_AUTO_SEARCH_LENGTH: int = 30

    # Auth
    JWT_SECRET: str = os.getenv("JWT_SECRET", "luck_relay_secret_key")
    JWT_ALGORITHM: str = "HS256"
    TOKEN_TTL_HOURS: int = 24
    ADMIN_USERNAME: str = os.getenv("ADMIN_USERNAME", "admin")
    ADMIN_PASSWORD: str = os.getenv("ADMIN_PASSWORD", "LuckAI")
    ADMIN_USER_ID: str = "user-001"

    # Feedback
    FEEDBACK_LOG_PATH: str = os.getenv("FEEDBACK_LOG_PATH", os.path.join("data", "feedback.jsonl"))

    @classmethod
    def validate(cls) -> None:
        """Log warnings for insecure defaults and missing optional keys."""
        from utils.logger import app_logger

        if not os.getenv("JWT_SECRET"):
            app_logger.warning("JWT_SECRET not set in .env file, using the built-in development secret")

        if not cls.BRAVE_SEARCH_API_KEY:
            app_logger.info("BRAVE_SEARCH_API_KEY not set, web search will use DuckDuckGo HTML results only")


Config.validate()
