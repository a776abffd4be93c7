"""Records exchanged with the conversation store."""
from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

SurveyType = Literal["employee_satisfaction", "course_evaluation"]
Pacing = Literal["coverage", "duration"]
OwnerKind = Literal["employee", "public_link", "preview"]


class Survey(BaseModel):
    id: str
    title: str = ""
    survey_type: SurveyType = "employee_satisfaction"
    pacing: Pacing = "coverage"


class Theme(BaseModel):
    id: str
    name: str
    description: str = ""
    survey_type: SurveyType = "employee_satisfaction"


class ConversationSession(BaseModel):
    id: str
    owner_kind: OwnerKind
    employee_id: Optional[str] = None
    public_link_id: Optional[str] = None
    survey_id: Optional[str] = None
    phase: Optional[str] = None
    selected_duration: Optional[int] = None
    selected_theme_id: Optional[str] = None


class Turn(BaseModel):
    """One persisted user utterance with the interviewer's reply."""

    id: Optional[int] = None
    conversation_id: str
    survey_id: Optional[str] = None
    content: str
    ai_response: str = ""
    empathy: Optional[str] = None
    sentiment: Optional[str] = None
    sentiment_score: Optional[int] = None
    theme_id: Optional[str] = None
    urgency_escalated: bool = False
    urgency_score: Optional[int] = None
    ai_analysis: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = None


__all__ = ["ConversationSession", "OwnerKind", "Pacing", "Survey", "SurveyType", "Theme", "Turn"]
