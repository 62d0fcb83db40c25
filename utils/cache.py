"""
In-memory stores with TTL and capacity bounds.
Backs the prompt/response cache and the pending full-response store.
"""
import hashlib
import json
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar

from config import Config
from models.chat_models import FullResponseEntry
from utils.logger import app_logger

V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    """Stored value with its absolute expiry time."""
    value: V
    expires_at: float


class TTLStore(Generic[V]):
    """
    Capacity-bounded map with insertion-order eviction and a per-entry TTL.

    Expired entries are removed lazily when read. Each write replaces the whole
    entry in one step under a lock, so readers never observe a partial value.
    """

    def __init__(self, max_entries: int, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            max_entries: Maximum number of entries kept
            ttl_seconds: Lifetime of an entry after it is set
            clock: Time source in seconds
        """
        self._max_entries = max(1, max_entries)
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry[V]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[V]:
        """Return the value for key, or None when absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at < self._clock():
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: V) -> None:
        """Store value under key, evicting the oldest entry when full."""
        with self._lock:
            self._entries.pop(key, None)
            while len(self._entries) >= self._max_entries:
                oldest_key, _ = self._entries.popitem(last=False)
                app_logger.debug(f"Store: evicted oldest entry {oldest_key[:12]}")
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + self._ttl)

    def delete(self, key: str) -> None:
        """Remove key if present."""
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Remove all entries."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class ResponseCache(TTLStore[str]):
    """Memoizes sanitized answers by the inputs that shape the generated output."""

    @staticmethod
    def make_key(
        message: str,
        history: Sequence[dict],
        web_context: Optional[str],
        system_prompt: str,
        temperature: float,
        max_tokens: int,
        short: bool,
    ) -> str:
        """
        Build a canonical key from the semantic request inputs.
        Only the last few history turns take part in the key.
        """
        recent = list(history)[-Config.CACHE_HISTORY_TURNS:] if history else []
        payload: dict[str, Any] = {
            "message": message,
            "history": recent,
            "webContext": web_context or None,
            "systemPrompt": system_prompt,
            "temperature": temperature,
            "maxTokens": max_tokens,
            "short": bool(short),
        }
        canonical = json.dumps(payload, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class FullResponseStore(TTLStore[FullResponseEntry]):
    """Pending and settled background full answers, keyed by fullId."""

    def create_pending(self, full_id: str) -> FullResponseEntry:
        entry = FullResponseEntry.pending()
        self.set(full_id, entry)
        return entry

    def publish(self, full_id: str, entry: FullResponseEntry) -> None:
        """Replace the entry for full_id with its settled value."""
        self.set(full_id, entry)


# Global store instances
_response_cache = ResponseCache(Config.RESPONSE_CACHE_MAX, Config.RESPONSE_CACHE_TTL)
_full_response_store = FullResponseStore(Config.FULL_RESPONSE_MAX, Config.FULL_RESPONSE_TTL)


def get_response_cache() -> ResponseCache:
    """Get the global response cache instance."""
    return _response_cache


def get_full_response_store() -> FullResponseStore:
    """Get the global pending full-response store."""
    return _full_response_store
