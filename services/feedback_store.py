"""
Append-only feedback log stored as newline-delimited JSON.
"""
import json
import os
import threading
from datetime import datetime, timezone
from typing import Optional

from config import Config
from utils.logger import app_logger


class FeedbackStore:
    """Writes one JSON record per line to the feedback log."""

    VALID_FEEDBACK = ("up", "down")

    def __init__(self, path: Optional[str] = None):
        self.path = path or Config.FEEDBACK_LOG_PATH
        self._lock = threading.Lock()

    @staticmethod
    def build_record(
        message_id: str,
        feedback: str,
        username: Optional[str] = None,
        content: Optional[str] = None,
        prompt: Optional[str] = None,
        user_agent: Optional[str] = None,
        ip: Optional[str] = None,
    ) -> dict:
        return {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "username": username or "guest",
            "messageId": message_id,
            "feedback": feedback,
            "content": content or "",
            "prompt": prompt or "",
            "userAgent": user_agent or "",
            "ip": ip or ""
        }

    def append(self, record: dict) -> bool:
        """
        Append a record to the log, creating the parent directory if needed.

        Returns:
            True if the record was written
        """
        line = json.dumps(record, ensure_ascii=False)
        try:
            with self._lock:
                directory = os.path.dirname(self.path)
                if directory:
                    os.makedirs(directory, exist_ok=True)
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
        except OSError as e:
            app_logger.error(f"Failed to write feedback: {e}")
            return False

        app_logger.info(f"Feedback recorded: {record.get('messageId')} ({record.get('feedback')})")
        return True


# Global feedback store instance
_feedback_store: Optional[FeedbackStore] = None


def get_feedback_store() -> FeedbackStore:
    """Get the global feedback store instance."""
    global _feedback_store
    if _feedback_store is None:
        _feedback_store = FeedbackStore()
    return _feedback_store
