"""Structured end-of-interview recap with a transcript-based fallback."""
from __future__ import annotations

import json
import logging
from typing import Any, Optional, Sequence

from agents.types import StructuredSummary
from config.registry import SUMMARY_KEY, get_model
from llm_gateway import strip_code_fences
from storage.models import SurveyType

logger = logging.getLogger(__name__)

MIN_KEY_POINTS = 2
MAX_KEY_POINTS = 4
FALLBACK_POINTS = 3
FALLBACK_POINT_CHARS = 150
DEFAULT_OPENING = "Thank you for sharing your thoughts today."
EMPTY_TRANSCRIPT_POINT = "Thank you for sharing your feedback"

_SYSTEM = "Extract structured insights from feedback conversations. Return valid JSON only."


def _user_prompt(contents: Sequence[str], survey_type: SurveyType) -> str:
    subject = "course evaluation" if survey_type == "course_evaluation" else "workplace feedback"
    transcript = "\n".join(contents) or "User shared their thoughts."
    return (
        f"Based on this {subject} conversation, create a summary:\n\n"
        "1. OPENING: A warm, personalized 1-sentence acknowledgment\n"
        "2. KEY_POINTS: 2-4 bullet points summarizing specific feedback (25-35 words each)\n"
        "3. SENTIMENT: overall tone (positive, mixed, or negative)\n\n"
        f"Conversation:\n{transcript}\n\n"
        'Return ONLY valid JSON: {"opening": "...", "keyPoints": [...], "sentiment": "..."}'
    )


def _truncate(text: str, limit: int = FALLBACK_POINT_CHARS) -> str:
    text = text.strip()
    return text if len(text) <= limit else text[: limit - 3].rstrip() + "..."


def fallback_summary(contents: Sequence[str]) -> StructuredSummary:
    """Most recent user turns as key points; never empty."""
    recent = [_truncate(c) for c in contents if c and c.strip()][-FALLBACK_POINTS:]
    return StructuredSummary(keyPoints=recent or [EMPTY_TRANSCRIPT_POINT], sentiment="mixed")


def _coerce(parsed: Any) -> Optional[StructuredSummary]:
    if not isinstance(parsed, dict):
        return None
    points = parsed.get("keyPoints")
    if not isinstance(points, list):
        return None
    points = [str(p).strip() for p in points if str(p).strip()][:MAX_KEY_POINTS]
    if not points:
        return None
    sentiment = str(parsed.get("sentiment") or "").lower()
    if sentiment not in ("positive", "mixed", "negative"):
        sentiment = "mixed"
    return StructuredSummary(
        keyPoints=points,
        sentiment=sentiment,
        opening=parsed.get("opening") or DEFAULT_OPENING,
    )


def generate_summary(contents: Sequence[str], survey_type: SurveyType = "employee_satisfaction") -> StructuredSummary:
    """Summarize the participant's utterances. Never raises."""
    contents = [c for c in contents if c]
    try:
        llm = get_model(SUMMARY_KEY)
        raw = llm(
            messages=[
                {"role": "system", "content": _SYSTEM},
                {"role": "user", "content": _user_prompt(contents, survey_type)},
            ],
            temperature=0.4,
            max_tokens=350,
        )
        summary = _coerce(json.loads(strip_code_fences(raw or "")))
    except Exception:  # noqa: BLE001
        logger.warning("summary generation failed; using transcript fallback", exc_info=True)
        summary = None
    if summary is None:
        return fallback_summary(contents)
    return _pad(summary, contents)


def _pad(summary: StructuredSummary, contents: Sequence[str]) -> StructuredSummary:
    """Top up a too-short model recap with recent turns; a one-turn transcript may stay at one point."""
    points = list(summary.keyPoints)
    for extra in reversed(fallback_summary(contents).keyPoints):
        if len(points) >= MIN_KEY_POINTS:
            break
        if extra not in points and extra != EMPTY_TRANSCRIPT_POINT:
            points.append(extra)
    return summary.model_copy(update={"keyPoints": points})


__all__ = ["fallback_summary", "generate_summary"]
