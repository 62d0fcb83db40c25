"""
Models package exports.
"""
from models.api_models import Message, ChatRequest, LoginRequest, FeedbackRequest
from models.chat_models import (
    ChatPhase,
    GenerationSettings,
    SearchOutcome,
    QueryResult,
    FullResponseEntry
)

__all__ = [
    'Message',
    'ChatRequest',
    'LoginRequest',
    'FeedbackRequest',
    'ChatPhase',
    'GenerationSettings',
    'SearchOutcome',
    'QueryResult',
    'FullResponseEntry'
]
