"""
Prompt construction for the local model runner.
Builds a plain-text, tokenizer-agnostic prompt from persona, history, web context and the message.
"""
import re
from typing import Optional, Sequence

from config import Config
from utils.constants import PROMPT_TEXT, SYSTEM_OPEN, SYSTEM_CLOSE, Language, Patterns


class PromptBuilder:
    """Builds prompts and detects the answer language."""

    _french: re.Pattern = re.compile(Patterns.FRENCH, re.IGNORECASE)

    @staticmethod
    def detect_language(text: str, history: Optional[Sequence[dict]] = None) -> str:
        """
        Detect answer language: French diacritics or function words in the text,
        then in history turns newest-first; English otherwise.
        """
        if text and PromptBuilder._french.search(text):
            return Language.FR

        for turn in reversed(list(history or [])):
            content = turn.get("content") or turn.get("message") or ""
            if PromptBuilder._french.search(content):
                return Language.FR

        return Language.EN

    @staticmethod
    def get_persona(language: str) -> str:
        return PROMPT_TEXT.get(language, PROMPT_TEXT[Language.EN])["persona"]

    @staticmethod
    def trim_history(history: Optional[Sequence[dict]]) -> list[dict]:
        """Keep only the most recent turns; older turns are dropped."""
        if not history:
            return []
        return list(history)[-Config.MAX_HISTORY_TURNS:]

    @staticmethod
    def build(
        message: str,
        history: Optional[Sequence[dict]],
        web_context: Optional[str],
        language: str,
        short: bool = False,
    ) -> str:
        """
        Build the full prompt.

        Args:
            message: Current user message, included verbatim
            history: Conversation turns, only the last few are used
            web_context: Search summary, if any
            language: Detected language (en/fr)
            short: Ask for a concise, complete one-paragraph answer

        Returns:
            Prompt string ending with an open "Assistant:" turn
        """
        text = PROMPT_TEXT.get(language, PROMPT_TEXT[Language.EN])

        prompt = f"{text['system_header']}\n{SYSTEM_OPEN}\n{text['persona']}\n{SYSTEM_CLOSE}\n\n"

        turns = PromptBuilder.trim_history(history)
        if turns:
            for turn in turns:
                role = "Assistant" if turn.get("role") == "assistant" else "User"
                prompt += f"{role}: {turn.get('content', '')}\n"
            prompt += "\n"

        if web_context:
            prompt += f"{text['web_context']}\n{web_context}\n\n"

        instruction = text["short_instruction"] if short else text["full_instruction"]
        prompt += f"User: {message}\n\n{instruction}\n\nAssistant: "
        return prompt

    @staticmethod
    def build_retry(prompt: str, message: str, language: str) -> str:
        """Extend a prompt with an explicit answer-directly instruction."""
        text = PROMPT_TEXT.get(language, PROMPT_TEXT[Language.EN])
        return f"{prompt}\n{text['retry_instruction']}\nQuestion: {message}\n"

    @staticmethod
    def continuation_message(language: str) -> str:
        return PROMPT_TEXT.get(language, PROMPT_TEXT[Language.EN])["continuation"]
