"""Persistence layer for conversations, turns and audit trails."""
from .models import ConversationSession, Survey, Theme, Turn
from .store import ConversationStore, SqliteStore

__all__ = ["ConversationSession", "ConversationStore", "SqliteStore", "Survey", "Theme", "Turn"]
