"""
Completeness heuristics for short answers.
"""
import re

from utils.constants import Patterns


class CompletionHeuristics:
    """Detects answers that were likely cut off by a small token budget."""

    MIN_COMPLETE_LENGTH = 30

    _terminal: re.Pattern = re.compile(Patterns.TERMINAL_PUNCTUATION)
    _dangling: re.Pattern = re.compile(Patterns.DANGLING_CONJUNCTION, re.IGNORECASE)
    _ellipsis: re.Pattern = re.compile(Patterns.ELLIPSIS)
    _open_markup: re.Pattern = re.compile(Patterns.OPEN_MARKUP)
    _open_fence: re.Pattern = re.compile(Patterns.OPEN_FENCE)

    @staticmethod
    def is_probably_incomplete(text: str) -> bool:
        """
        Check whether text looks truncated.

        Rules, first match wins: shorter than 30 chars is incomplete; terminal
        punctuation is complete; a dangling conjunction, an ellipsis or a trailing
        markdown/code marker is incomplete; anything else is complete.
        """
        if not text:
            return True

        stripped = str(text).strip()
        if len(stripped) < CompletionHeuristics.MIN_COMPLETE_LENGTH:
            return True
        if CompletionHeuristics._terminal.search(stripped):
            return False
        if CompletionHeuristics._dangling.search(stripped):
            return True
        if CompletionHeuristics._ellipsis.search(stripped):
            return True
        if CompletionHeuristics._open_markup.search(stripped):
            return True
        if CompletionHeuristics._open_fence.search(stripped):
            return True
        return False
