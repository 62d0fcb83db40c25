"""
Output sanitizer for model answers and search snippets.
Strips redirect/tracking artifacts and prompt echoes without destroying legitimate content.
"""
import re
from dataclasses import dataclass
from typing import Iterable, Optional

from utils.constants import PERSONA_EN, PERSONA_FR, Patterns


@dataclass(frozen=True)
class FallbackLimits:
    """Caps applied by the permissive fallback."""
    max_lines: int
    max_chars: int


class OutputSanitizer:
    """Line-based sanitizer with a permissive fallback.

    Two call sites exist: the immediate answer keeps blank lines (paragraph breaks)
    and falls back to 10 lines / 2000 chars, the background full answer drops blank
    lines and falls back to 30 lines / 8000 chars.
    """

    IMMEDIATE = FallbackLimits(max_lines=10, max_chars=2000)
    FULL = FallbackLimits(max_lines=30, max_chars=8000)

    PERSONA_PREFIX_CHARS = 60
    TRUNCATION_MARK = "..."
    LINK_MARKER = " [link]"

    _redirect_domain: re.Pattern = re.compile(Patterns.REDIRECT_DOMAIN, re.IGNORECASE)
    _tracking_param: re.Pattern = re.compile(Patterns.TRACKING_PARAM, re.IGNORECASE)
    _bare_url: re.Pattern = re.compile(Patterns.BARE_URL, re.IGNORECASE)
    _encoded_escape: re.Pattern = re.compile(Patterns.ENCODED_ESCAPE, re.IGNORECASE)
    _url_chars: re.Pattern = re.compile(Patterns.URL_CHARS)

    _redirect_fragment: re.Pattern = re.compile(Patterns.REDIRECT_FRAGMENT, re.IGNORECASE)
    _tracking_fragment: re.Pattern = re.compile(Patterns.TRACKING_FRAGMENT, re.IGNORECASE)
    _encoded_run: re.Pattern = re.compile(Patterns.ENCODED_RUN, re.IGNORECASE)

    _system_prefix: re.Pattern = re.compile(Patterns.SYSTEM_PREFIX, re.IGNORECASE)
    _instruction_line: re.Pattern = re.compile(Patterns.INSTRUCTION_LINE, re.IGNORECASE)
    _sentinel: re.Pattern = re.compile(Patterns.SENTINEL, re.IGNORECASE)
    _identity_line: re.Pattern = re.compile(Patterns.IDENTITY_LINE, re.IGNORECASE)
    _leading_punctuation: re.Pattern = re.compile(Patterns.LEADING_PUNCTUATION)

    @staticmethod
    def strip_echoes(text: str, system_prompt: Optional[str] = None) -> str:
        """
        Remove prompt echoes: System:/Instruction: prefixes, sentinel markers,
        persona text (verbatim or its first 60 chars), a leading identity line
        and stray leading punctuation.

        Args:
            text: Raw model output
            system_prompt: Persona text injected into the prompt; both built-in
                personas are checked when omitted

        Returns:
            Text without echoes (repeated until nothing more is removed)
        """
        if not text:
            return ""

        personas = [system_prompt] if system_prompt else [PERSONA_EN, PERSONA_FR]
        cleaned = text.replace("\r", "").strip()

        while True:
            previous = cleaned
            cleaned = OutputSanitizer._system_prefix.sub("", cleaned).strip()
            cleaned = OutputSanitizer._instruction_line.sub("", cleaned).strip()
            cleaned = OutputSanitizer._sentinel.sub("", cleaned).strip()

            for persona in personas:
                persona = persona.strip()
                if not persona:
                    continue
                if cleaned.startswith(persona):
                    cleaned = cleaned[len(persona):].strip()
                prefix = persona[:OutputSanitizer.PERSONA_PREFIX_CHARS].strip()
                if prefix and cleaned.startswith(prefix):
                    cleaned = cleaned[len(prefix):].strip()

            cleaned = OutputSanitizer._identity_line.sub("", cleaned).strip()
            cleaned = OutputSanitizer._leading_punctuation.sub("", cleaned).strip()

            if cleaned == previous:
                return cleaned

    @staticmethod
    def is_artifact_line(line: str, source_urls: Iterable[str] = ()) -> bool:
        """Check whether a non-blank line is a redirect, tracking or raw-URL artifact."""
        stripped = line.strip()

        if any(url and url in stripped for url in source_urls):
            return True
        if OutputSanitizer._redirect_domain.search(stripped):
            return True
        if OutputSanitizer._tracking_param.search(stripped):
            return True
        if OutputSanitizer._bare_url.match(stripped):
            return True
        if OutputSanitizer._encoded_escape.search(stripped) and len(stripped) > 24:
            return True
        if OutputSanitizer._url_chars.search(stripped) and len(stripped) > 40:
            return True

        return False

    @staticmethod
    def filter_lines(text: str, keep_blank_lines: bool = True, source_urls: Iterable[str] = ()) -> str:
        """
        Drop artifact lines.

        Args:
            text: Text to filter
            keep_blank_lines: Keep blank lines to preserve paragraph breaks
            source_urls: Exact URLs whose lines should be removed

        Returns:
            Filtered text, trimmed
        """
        source_urls = [url for url in source_urls if url]
        kept = []

        for line in text.splitlines():
            if not line.strip():
                if keep_blank_lines:
                    kept.append(line)
                continue
            if OutputSanitizer.is_artifact_line(line, source_urls):
                continue
            kept.append(line)

        return "\n".join(kept).strip()

    @staticmethod
    def permissive_fallback(text: str, limits: FallbackLimits) -> str:
        """
        Strip only explicit redirect/tracking substrings, collapse encoded runs,
        keep the first non-empty lines and cap the total length.
        """
        fallback = OutputSanitizer._redirect_fragment.sub("", text)
        fallback = OutputSanitizer._tracking_fragment.sub("", fallback)
        fallback = OutputSanitizer._encoded_run.sub(OutputSanitizer.LINK_MARKER, fallback)

        # Text made only of redirect fragments is capped as-is rather than emptied
        return OutputSanitizer._cap(fallback, limits) or OutputSanitizer._cap(text, limits)

    @staticmethod
    def _cap(text: str, limits: FallbackLimits) -> str:
        lines = [line.strip() for line in text.splitlines()]
        capped = "\n".join([line for line in lines if line][:limits.max_lines])

        if len(capped) > limits.max_chars:
            keep = limits.max_chars - len(OutputSanitizer.TRUNCATION_MARK)
            capped = capped[:keep].rstrip() + OutputSanitizer.TRUNCATION_MARK

        return capped.strip()

    @staticmethod
    def _settle(text: str, system_prompt: Optional[str], keep_blank_lines: bool, source_urls: list) -> str:
        # Dropping lines can expose a new leading echo, so repeat until stable
        current = text
        while True:
            cleaned = OutputSanitizer.strip_echoes(current, system_prompt)
            cleaned = OutputSanitizer.filter_lines(cleaned, keep_blank_lines, source_urls)
            if cleaned == current or not cleaned:
                return cleaned
            current = cleaned

    @classmethod
    def sanitize(
        cls,
        text: Optional[str],
        system_prompt: Optional[str] = None,
        keep_blank_lines: bool = True,
        source_urls: Iterable[str] = (),
        limits: FallbackLimits = IMMEDIATE,
    ) -> str:
        """
        Sanitize text for display.

        Never returns an empty string for non-empty input: when every line is
        stripped, the permissive fallback is used instead.
        """
        if not text or not text.strip():
            return ""

        source_urls = list(source_urls)
        settled = cls._settle(text, system_prompt, keep_blank_lines, source_urls)
        if settled:
            return settled

        fallback = cls.permissive_fallback(text, limits)
        return cls._settle(fallback, system_prompt, keep_blank_lines, source_urls) or fallback

    @classmethod
    def sanitize_answer(cls, text: Optional[str], source_urls: Iterable[str] = (), system_prompt: Optional[str] = None) -> str:
        """Sanitize the answer returned synchronously to the caller."""
        return cls.sanitize(text, system_prompt, keep_blank_lines=True, source_urls=source_urls, limits=cls.IMMEDIATE)

    @classmethod
    def sanitize_full(cls, text: Optional[str], system_prompt: Optional[str] = None) -> str:
        """Sanitize a background full answer; blank lines are dropped."""
        return cls.sanitize(text, system_prompt, keep_blank_lines=False, limits=cls.FULL)
