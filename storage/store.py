"""Collaborator store contract consumed by the orchestrator, with its SQLite backing."""
from __future__ import annotations

from typing import Any, List, Optional, Protocol, Sequence

from . import logs, sessions, themes, turns
from .models import ConversationSession, Survey, Theme, Turn


class ConversationStore(Protocol):  # Narrow read/write contract used by the router and enrichment
    def get_session(self, conversation_id: str) -> Optional[ConversationSession]: ...

    def create_session(self, session: ConversationSession) -> None: ...

    def update_session(self, conversation_id: str, **fields: Any) -> None: ...

    def get_survey(self, survey_id: str) -> Optional[Survey]: ...

    def themes_for_survey(self, survey_id: str) -> List[Theme]: ...

    def themes_by_ids(self, theme_ids: Sequence[str]) -> List[Theme]: ...

    def list_turns(self, conversation_id: str) -> List[Turn]: ...

    def insert_turn(self, turn: Turn) -> int: ...

    def update_turn(self, turn_id: int, **fields: Any) -> None: ...

    def insert_escalation(self, response_id: int) -> bool: ...

    def insert_audit(self, **fields: Any) -> bool: ...

    def upsert_signal(self, **fields: Any) -> None: ...

    def user_for_token(self, token: str) -> Optional[str]: ...


class SqliteStore:
    """ConversationStore backed by the SQLite database at ``settings.DB_PATH``."""

    def get_session(self, conversation_id: str) -> Optional[ConversationSession]:
        return sessions.fetch_session(conversation_id)

    def create_session(self, session: ConversationSession) -> None:
        sessions.insert_session(session)

    def update_session(self, conversation_id: str, **fields: Any) -> None:
        sessions.update_session(conversation_id, **fields)

    def get_survey(self, survey_id: str) -> Optional[Survey]:
        return sessions.fetch_survey(survey_id)

    def themes_for_survey(self, survey_id: str) -> List[Theme]:
        return themes.fetch_themes_for_survey(survey_id)

    def themes_by_ids(self, theme_ids: Sequence[str]) -> List[Theme]:
        return themes.fetch_themes_by_ids(theme_ids)

    def list_turns(self, conversation_id: str) -> List[Turn]:
        return turns.fetch_turns(conversation_id)

    def insert_turn(self, turn: Turn) -> int:
        return turns.insert_turn(turn)

    def update_turn(self, turn_id: int, **fields: Any) -> None:
        turns.update_turn(turn_id, **fields)

    def insert_escalation(self, response_id: int) -> bool:
        return logs.insert_escalation(response_id)

    def insert_audit(self, **fields: Any) -> bool:
        return logs.insert_audit(**fields)

    def upsert_signal(self, **fields: Any) -> None:
        logs.upsert_signal(**fields)

    def user_for_token(self, token: str) -> Optional[str]:
        return sessions.fetch_user_for_token(token)


__all__ = ["ConversationStore", "SqliteStore"]
