"""
Web search service: Brave Search API when keyed, DuckDuckGo HTML results otherwise.
"""
from typing import Any, Dict, List, Optional

import httpx

from config import Config
from utils.constants import SearchProvider
from utils.errors import SearchUnavailableError
from utils.html_parser import HTMLParser
from utils.http_client import HTTPClientManager
from utils.logger import app_logger
from utils.sanitizer import OutputSanitizer


class SearchService:
    """Service for performing web searches and summarizing results into prompt context."""

    async def search(self, query: str) -> Optional[Dict[str, Any]]:
        """
        Search the web for a query.

        Args:
            query: Search query string

        Returns:
            {"results": [...], "summary": str, "provider": str}, or None when
            every provider failed or nothing was found
        """
        if not query or not query.strip():
            return None

        if Config.BRAVE_SEARCH_API_KEY:
            try:
                results = await self._brave_search(query)
                if results:
                    return self._package(results, SearchProvider.BRAVE)
                app_logger.info("Brave search returned no results, falling back to DuckDuckGo")
            except SearchUnavailableError as e:
                app_logger.warning(f"Brave search failed, falling back to DuckDuckGo: {e}")

        try:
            results = await self._duckduckgo_search(query)
        except SearchUnavailableError as e:
            app_logger.error(f"DuckDuckGo search error: {e}")
            return None

        if not results:
            app_logger.warning(f"No search results for '{query[:50]}'")
            return None

        return self._package(results, SearchProvider.DUCKDUCKGO)

    async def _brave_search(self, query: str) -> List[Dict[str, str]]:
        """Query the Brave Search JSON API."""
        client = HTTPClientManager.get_search_client()

        try:
            response = await client.get(
                Config.BRAVE_SEARCH_URL,
                headers={
                    "Accept": "application/json",
                    "Accept-Encoding": "gzip",
                    "X-Subscription-Token": Config.BRAVE_SEARCH_API_KEY
                },
                params={"q": query, "count": Config.SEARCH_RESULTS_LIMIT}
            )
        except httpx.TimeoutException as e:
            raise SearchUnavailableError(f"Brave search timed out: {e}") from e
        except httpx.RequestError as e:
            raise SearchUnavailableError(f"Brave request failed: {e}") from e

        if response.status_code == 401:
            raise SearchUnavailableError("Invalid BRAVE_SEARCH_API_KEY")
        if response.status_code == 429:
            raise SearchUnavailableError("Brave API rate limit exceeded")
        if response.status_code != 200:
            raise SearchUnavailableError(f"Brave API error (status {response.status_code})")

        data = response.json()
        web_results = (data.get("web") or {}).get("results") or []

        results = []
        for result in web_results[:Config.SEARCH_RESULTS_LIMIT]:
            description = result.get("description") or result.get("snippet") or ""
            results.append({
                "title": result.get("title", ""),
                "url": result.get("url", ""),
                "description": description,
                "snippet": result.get("snippet") or description
            })
        return results

    async def _duckduckgo_search(self, query: str) -> List[Dict[str, str]]:
        """Scrape the DuckDuckGo HTML endpoint."""
        client = HTTPClientManager.get_search_client()

        try:
            response = await client.get(
                Config.DUCKDUCKGO_HTML_URL,
                headers={"Accept": "text/html", "User-Agent": Config.SEARCH_USER_AGENT},
                params={"q": query}
            )
        except httpx.TimeoutException as e:
            raise SearchUnavailableError(f"DuckDuckGo search timed out: {e}") from e
        except httpx.RequestError as e:
            raise SearchUnavailableError(f"DuckDuckGo request failed: {e}") from e

        if response.status_code != 200:
            raise SearchUnavailableError(f"DuckDuckGo HTML search failed, status: {response.status_code}")

        return HTMLParser.parse_duckduckgo_results(response.text, Config.SEARCH_RESULTS_LIMIT)

    @staticmethod
    def _package(results: List[Dict[str, str]], provider: str) -> Dict[str, Any]:
        cleaned = []
        for result in results:
            snippet = OutputSanitizer.sanitize_answer(result.get("description") or result.get("snippet") or "")
            cleaned.append({**result, "description": snippet, "snippet": snippet})

        app_logger.info(f"Search completed via {provider}: {len(cleaned)} results")
        return {
            "results": cleaned,
            "summary": SearchService.build_summary(cleaned),
            "provider": provider
        }

    @staticmethod
    def build_summary(results: List[Dict[str, str]]) -> str:
        """Format results as numbered prompt context."""
        lines = []
        for idx, result in enumerate(results, start=1):
            lines.append(f"{idx}. {result.get('title', '')}")
            description = result.get("description") or result.get("snippet") or ""
            if description:
                lines.append(f"   {description}")
        return "\n".join(lines)

    @staticmethod
    def to_sources(results: List[Dict[str, str]]) -> List[Dict[str, str]]:
        """Shape results into the source list returned to the client."""
        return [
            {
                "title": result.get("title", ""),
                "url": result.get("url", ""),
                "snippet": result.get("description") or result.get("snippet") or "",
                "host": HTMLParser.host_of(result.get("url"))
            }
            for result in results
        ]


# Global search service instance
_search_service = SearchService()


def get_search_service() -> SearchService:
    """Get the global search service instance."""
    return _search_service
