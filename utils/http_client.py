"""
Shared outbound HTTP client for the search providers.
"""
import httpx

from config import Config
from utils.logger import app_logger


async def _log_provider_error(response: httpx.Response) -> None:
    if response.status_code >= 400:
        app_logger.warning(f"Search provider {response.request.url.host} answered HTTP {response.status_code}")


def build_search_client(timeout: float = None) -> httpx.AsyncClient:
    """Pooled HTTP/2 client with the relay's user agent and a split connect/read timeout."""
    total = timeout if timeout is not None else Config.SEARCH_TIMEOUT
    return httpx.AsyncClient(
        timeout=httpx.Timeout(total, connect=min(5.0, total)),
        follow_redirects=True,
        max_redirects=Config.MAX_REDIRECTS,
        limits=httpx.Limits(max_connections=Config.MAX_CONNECTIONS, max_keepalive_connections=4),
        headers={"User-Agent": Config.SEARCH_USER_AGENT, "Accept-Language": "en-US,en;q=0.8"},
        event_hooks={"response": [_log_provider_error]},
        http2=True
    )


class HTTPClientManager:
    """Lazily creates the search client and closes it on shutdown."""

    _search_client: httpx.AsyncClient | None = None

    @classmethod
    def get_search_client(cls) -> httpx.AsyncClient:
        if cls._search_client is None or cls._search_client.is_closed:
            cls._search_client = build_search_client()
        return cls._search_client

    @classmethod
    async def close_all(cls) -> None:
        client, cls._search_client = cls._search_client, None
        if client is not None and not client.is_closed:
            await client.aclose()
