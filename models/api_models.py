"""
Pydantic data models for API requests.
"""
from typing import List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

from config import Config
from utils.constants import SearchMode


class Message(BaseModel):
    """Conversation turn supplied by the client."""
    role: str = "user"  # "user" or "assistant"
    content: str = ""

    @field_validator("role")
    @classmethod
    def normalize_role(cls, value: str) -> str:
        return "assistant" if (value or "").lower() == "assistant" else "user"


class ChatRequest(BaseModel):
    """Chat request model with client-held conversation history."""
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., min_length=1, max_length=Config.MAX_MESSAGE_LENGTH)
    use_web_search: Union[bool, str] = Field(True, alias="useWebSearch")
    conversation_history: List[Message] = Field(default_factory=list, alias="conversationHistory")
    temperature: Optional[float] = None
    max_tokens: Optional[int] = Field(None, alias="maxTokens", gt=0)
    fast: bool = True

    @field_validator("conversation_history", mode="before")
    @classmethod
    def coerce_history(cls, value):
        if value is None:
            return []
        turns = []
        for turn in value:
            if not turn:
                continue
            if isinstance(turn, str):
                turns.append({"role": "user", "content": turn})
            elif isinstance(turn, dict) and "content" not in turn and "message" in turn:
                turns.append({"role": turn.get("role", "user"), "content": turn["message"]})
            else:
                turns.append(turn)
        return turns

    @property
    def search_mode(self) -> str:
        """Resolve useWebSearch (bool or mode string) into a SearchMode."""
        if isinstance(self.use_web_search, str):
            mode = self.use_web_search.lower()
            if mode in (SearchMode.ALWAYS, SearchMode.NEVER):
                return mode
            return SearchMode.AUTO
        return SearchMode.AUTO if self.use_web_search else SearchMode.NEVER

    def history_dicts(self) -> list[dict]:
        return [{"role": turn.role, "content": turn.content} for turn in self.conversation_history]


class LoginRequest(BaseModel):
    """Login credentials."""
    username: Optional[str] = None
    password: Optional[str] = None


class FeedbackRequest(BaseModel):
    """Thumbs up/down feedback for one assistant message."""
    model_config = ConfigDict(populate_by_name=True)

    message_id: Optional[str] = Field(None, alias="messageId")
    feedback: Optional[str] = None
    content: Optional[str] = None
    prompt: Optional[str] = None
