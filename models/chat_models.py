"""
Data models for chat processing.
Contains generation settings, search outcomes, pending full answers and phase tracking.
"""
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ChatPhase(Enum):
    """Phases of a chat request in two-phase mode."""
    RECEIVED = "received"
    SEARCH_DECIDED = "search_decided"
    SHORT_GENERATING = "short_generating"
    SHORT_READY = "short_ready"
    FULL_GENERATING = "full_generating"
    FULL_READY = "full_ready"
    FULL_FAILED = "full_failed"


@dataclass(frozen=True)
class GenerationSettings:
    """Temperature and token budget for a single generation call."""
    temperature: float
    max_tokens: int


@dataclass
class SearchOutcome:
    """Web augmentation result for one request."""
    used_web: bool = False
    web_context: Optional[str] = None
    sources: list = field(default_factory=list)
    search_error: Optional[str] = None
    search_provider: Optional[str] = None


@dataclass
class QueryResult:
    """Answer produced by the model runner for one prompt."""
    response: str
    language: str
    model: str
    stats: dict = field(default_factory=dict)


@dataclass(frozen=True)
class FullResponseEntry:
    """
    Background full answer slot.
    Frozen so that a settled value is always published as a whole new entry.
    """
    ready: bool
    answer: Optional[str] = None
    error: Optional[str] = None
    started_at: float = 0.0
    finished_at: Optional[float] = None

    @property
    def state(self) -> str:
        if not self.ready:
            return "pending"
        return "failed" if self.error else "ready"

    @classmethod
    def pending(cls) -> "FullResponseEntry":
        return cls(ready=False, started_at=time.time())

    def settle(self, answer: str, error: Optional[str] = None) -> "FullResponseEntry":
        return FullResponseEntry(
            ready=True,
            answer=answer,
            error=error,
            started_at=self.started_at,
            finished_at=time.time(),
        )
