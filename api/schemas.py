"""Pydantic schemas for the chat turn API."""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from agents.types import StructuredSummary
from services.theme_tracker import ThemeProgress


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"] = "user"
    content: str = ""


class ChatReq(BaseModel):
    conversationId: str
    messages: List[ChatMessage] = Field(default_factory=list)
    testMode: Optional[bool] = None
    themes: Optional[List[str]] = None  # theme ids, preview mode only
    selectedDuration: Optional[int] = None
    selectedThemeId: Optional[str] = None
    finishEarly: Optional[bool] = None
    isFinalResponse: Optional[bool] = None
    isCompletionConfirmation: Optional[bool] = None
    initialMood: Optional[int] = Field(default=None, ge=1, le=5)


class AvailableTheme(BaseModel):
    id: str
    name: str


class ChatResp(BaseModel):
    message: str
    empathy: Optional[str] = None
    shouldComplete: bool = False
    isCompletionPrompt: Optional[bool] = None
    phase: Optional[str] = None
    themeProgress: Optional[ThemeProgress] = None
    structuredSummary: Optional[StructuredSummary] = None
    targetExchanges: Optional[int] = None
    halfwayPoint: Optional[int] = None
    availableThemes: Optional[List[AvailableTheme]] = None


class ErrorResp(BaseModel):
    error: str
    message: Optional[str] = None
    aiMessage: Optional[str] = None
