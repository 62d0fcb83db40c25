"""
HTML parsing utilities for DuckDuckGo result pages.
Best-effort: markup drift yields an empty result list, never an exception.
"""
import re
from typing import Optional
from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup


class HTMLParser:
    """Extracts search results from DuckDuckGo's HTML endpoint."""

    _whitespace: re.Pattern = re.compile(r'\s+')

    @staticmethod
    def _clean_text(text: str) -> str:
        return HTMLParser._whitespace.sub(' ', text or '').strip()

    @staticmethod
    def resolve_redirect(href: str) -> str:
        """
        Resolve a DuckDuckGo redirect link (//duckduckgo.com/l/?uddg=...) to its target URL.

        Args:
            href: Raw anchor href

        Returns:
            Target URL, or the href unchanged when it is not a redirect
        """
        if not href:
            return ''

        url = f"https:{href}" if href.startswith('//') else href
        parsed = urlparse(url)

        if parsed.netloc.endswith('duckduckgo.com') and parsed.path.startswith('/l/'):
            target = parse_qs(parsed.query).get('uddg')
            if target and target[0]:
                return target[0]

        return url

    @staticmethod
    def _find_snippet(anchor) -> str:
        container = anchor.find_parent(class_=re.compile(r'\bresult\b'))
        snippet = None
        if container is not None:
            snippet = container.find(class_='result__snippet')
        if snippet is None:
            snippet = anchor.find_next(class_='result__snippet')
        return HTMLParser._clean_text(snippet.get_text(' ')) if snippet is not None else ''

    @staticmethod
    def parse_duckduckgo_results(html: str, limit: int = 6) -> list[dict]:
        """
        Parse result anchors and their snippets.

        Args:
            html: Raw HTML from html.duckduckgo.com
            limit: Maximum number of results

        Returns:
            List of {title, url, description, snippet}
        """
        if not html:
            return []

        soup = BeautifulSoup(html, 'lxml')
        results = []

        for anchor in soup.select('a.result__a'):
            if len(results) >= limit:
                break

            url = HTMLParser.resolve_redirect(anchor.get('href', ''))
            title = HTMLParser._clean_text(anchor.get_text(' '))
            if not url or not title:
                continue

            snippet = HTMLParser._find_snippet(anchor)
            results.append({
                'title': title,
                'url': url,
                'description': snippet,
                'snippet': snippet
            })

        return results

    @staticmethod
    def host_of(url: Optional[str]) -> str:
        """Hostname without a leading www., or the raw value when it cannot be parsed."""
        if not url:
            return ''
        host = urlparse(url).hostname
        if not host:
            return url
        return host[4:] if host.startswith('www.') else host
