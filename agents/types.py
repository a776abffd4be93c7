"""Shared type definitions for model-backed agents."""
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field

SentimentLabel = Literal["positive", "neutral", "negative"]
SummarySentiment = Literal["positive", "mixed", "negative"]
Dimension = Literal["expertise", "autonomy", "justice", "social_connection", "social_status"]


class ParseSuccess(BaseModel):
    """Interviewer reply recovered from the model's JSON."""

    kind: Literal["success"] = "success"
    empathy: Optional[str] = None
    question: str
    strategy: Literal["direct", "embedded", "fragment"] = "direct"


class ParseFallback(BaseModel):
    """Interviewer reply substituted when no JSON could be recovered."""

    kind: Literal["fallback"] = "fallback"
    question: str
    strategy: Literal["generic", "plain_text"] = "generic"

    @property
    def empathy(self) -> None:
        return None


ParsedReply = Union[ParseSuccess, ParseFallback]


class StructuredSummary(BaseModel):
    keyPoints: List[str] = Field(min_length=1)
    sentiment: SummarySentiment = "mixed"
    opening: Optional[str] = None


class SentimentResult(BaseModel):
    sentiment: SentimentLabel
    score: int


class FastClassification(BaseModel):
    """Joined result of the sentiment, theme and urgency classifiers."""

    sentiment: Optional[SentimentResult] = None
    theme_id: Optional[str] = None
    urgent: Optional[bool] = None


class DeepAnalysis(BaseModel):
    urgency_score: int = Field(ge=1, le=5)
    urgency_reason: str = ""
    detected_themes: List[str] = Field(default_factory=list)
    key_sentiment_indicators: List[str] = Field(default_factory=list)
    suggested_followup: str = ""


class SemanticSignal(BaseModel):
    signal_text: str
    dimension: Dimension
    facet: str
    intensity: int = Field(ge=1, le=10)
    sentiment: SentimentLabel
    confidence: float = Field(ge=0.0, le=1.0)
