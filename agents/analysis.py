"""Tool-call analysis of a single turn: deep urgency analysis and semantic signals."""
from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from agents.types import DeepAnalysis, SemanticSignal
from config.registry import ANALYSIS_KEY, get_model
from storage.models import Theme

ANALYZE_RESPONSE_TOOL: Dict[str, Any] = {
    "name": "analyze_response",
    "description": "Extract urgency score, themes, and sentiment from feedback",
    "parameters": {
        "type": "object",
        "properties": {
            "urgency_score": {"type": "integer", "description": "Urgency level 1-5", "enum": [1, 2, 3, 4, 5]},
            "urgency_reason": {"type": "string"},
            "detected_themes": {"type": "array", "items": {"type": "string"}},
            "key_sentiment_indicators": {"type": "array", "items": {"type": "string"}},
            "suggested_followup": {"type": "string"},
        },
        "required": [
            "urgency_score",
            "urgency_reason",
            "detected_themes",
            "key_sentiment_indicators",
            "suggested_followup",
        ],
        "additionalProperties": False,
    },
}

SEMANTIC_SIGNAL_TOOL: Dict[str, Any] = {
    "name": "extract_semantic_signal",
    "description": "Extract psychological dimension and semantic signal",
    "parameters": {
        "type": "object",
        "properties": {
            "signal_text": {"type": "string"},
            "dimension": {
                "type": "string",
                "enum": ["expertise", "autonomy", "justice", "social_connection", "social_status"],
            },
            "facet": {"type": "string"},
            "intensity": {"type": "integer", "minimum": 1, "maximum": 10},
            "sentiment": {"type": "string", "enum": ["positive", "negative", "neutral"]},
            "confidence": {"type": "number", "minimum": 0, "maximum": 1},
        },
        "required": ["signal_text", "dimension", "facet", "intensity", "sentiment", "confidence"],
        "additionalProperties": False,
    },
}

_ANALYSIS_SYSTEM = "You analyze feedback to extract urgency, themes, and sentiment indicators."
_SIGNAL_SYSTEM = (
    "You analyze employee feedback through 5 psychological dimensions: "
    "EXPERTISE, AUTONOMY, JUSTICE, SOCIAL_CONNECTION, SOCIAL_STATUS."
)


def analyze_response(content: str, themes: Sequence[Theme]) -> DeepAnalysis:
    """Ask for the ``analyze_response`` tool call and validate its arguments.

    Raises ``pydantic.ValidationError`` when the arguments do not fit the schema.
    """
    llm = get_model(ANALYSIS_KEY)
    available = ", ".join(f"{theme.id}:{theme.name}" for theme in themes)
    args = llm(
        messages=[
            {"role": "system", "content": _ANALYSIS_SYSTEM},
            {"role": "user", "content": f'Analyze this feedback: "{content}"\n\nAvailable themes: {available}'},
        ],
        tool=ANALYZE_RESPONSE_TOOL,
    )
    return DeepAnalysis.model_validate(args)


def extract_semantic_signal(content: str) -> Optional[SemanticSignal]:
    llm = get_model(ANALYSIS_KEY)
    args = llm(
        messages=[
            {"role": "system", "content": _SIGNAL_SYSTEM},
            {"role": "user", "content": f'Analyze this feedback: "{content}"'},
        ],
        tool=SEMANTIC_SIGNAL_TOOL,
    )
    if not args:
        return None
    return SemanticSignal.model_validate(args)


__all__ = ["ANALYZE_RESPONSE_TOOL", "SEMANTIC_SIGNAL_TOOL", "analyze_response", "extract_semantic_signal"]
