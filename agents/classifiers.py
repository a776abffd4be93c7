"""Fast single-label classifiers run against the lightweight classifier model."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

from agents.types import FastClassification, SentimentResult
from config.registry import CLASSIFIER_KEY, get_model
from storage.models import Theme

logger = logging.getLogger(__name__)

SENTIMENT_SCORES = {"positive": 75, "neutral": 50, "negative": 25}

_SENTIMENT_SYSTEM = "Analyze sentiment. Reply with only: positive, neutral, or negative"

_URGENCY_PROMPT = (
    "Analyze if this feedback indicates an URGENT issue requiring immediate attention. "
    "Urgent issues include: harassment, safety concerns, severe mental health crisis, threats, "
    "discrimination, or illegal activity.\n\n"
    'Feedback: "{content}"\n\n'
    "Reply with only: urgent OR not-urgent"
)


def _theme_prompt(content: str, themes: Sequence[Theme]) -> str:
    catalogue = "\n".join(f"- {theme.name}: {theme.description}" for theme in themes)
    return (
        f"Classify this feedback into ONE of these themes:\n{catalogue}\n\n"
        f'Feedback: "{content}"\n\n'
        "Reply with only the exact theme name."
    )


def classify_sentiment(content: str) -> SentimentResult:
    """Label sentiment; anything outside the three labels reads as neutral."""
    llm = get_model(CLASSIFIER_KEY)
    raw = llm(
        messages=[{"role": "system", "content": _SENTIMENT_SYSTEM}, {"role": "user", "content": content}],
        temperature=0.3,
        max_tokens=10,
    )
    label = (raw or "").strip().strip(".").lower()
    if label not in SENTIMENT_SCORES:
        label = "neutral"
    return SentimentResult(sentiment=label, score=SENTIMENT_SCORES[label])


def match_theme(label: str, themes: Sequence[Theme]) -> Optional[str]:
    """First theme whose name appears (case-insensitively) in the model's label."""
    lowered = (label or "").lower()
    for theme in themes:
        if theme.name and theme.name.lower() in lowered:
            return theme.id
    return None


def classify_theme(content: str, themes: Sequence[Theme]) -> Optional[str]:
    if not themes:
        return None
    llm = get_model(CLASSIFIER_KEY)
    raw = llm(
        messages=[{"role": "user", "content": _theme_prompt(content, themes)}],
        temperature=0.2,
        max_tokens=20,
    )
    return match_theme(raw, themes)


def is_urgent_label(label: str) -> bool:
    # "not-urgent" also contains "urgent"
    return (label or "").strip().strip("\"'.").lower().startswith("urgent")


def classify_urgency(content: str) -> bool:
    llm = get_model(CLASSIFIER_KEY)
    raw = llm(
        messages=[{"role": "user", "content": _URGENCY_PROMPT.format(content=content)}],
        temperature=0.1,
        max_tokens=10,
    )
    return is_urgent_label(raw)


def run_fast_classifiers(
    content: str,
    themes: Sequence[Theme],
    *,
    include_urgency: bool = True,
) -> FastClassification:
    """Run sentiment, theme and urgency concurrently and join before returning.

    Model errors propagate to the caller; the router maps them to an upstream failure.
    """
    with ThreadPoolExecutor(max_workers=3, thread_name_prefix="classify") as pool:
        sentiment_future = pool.submit(classify_sentiment, content)
        theme_future = pool.submit(classify_theme, content, themes)
        urgency_future = pool.submit(classify_urgency, content) if include_urgency else None
        sentiment = sentiment_future.result()
        theme_id = theme_future.result()
        urgent = urgency_future.result() if urgency_future is not None else None
    logger.debug("fast classification sentiment=%s theme=%s urgent=%s", sentiment.sentiment, theme_id, urgent)
    return FastClassification(sentiment=sentiment, theme_id=theme_id, urgent=urgent)


__all__ = [
    "SENTIMENT_SCORES",
    "classify_sentiment",
    "classify_theme",
    "classify_urgency",
    "is_urgent_label",
    "match_theme",
    "run_fast_classifiers",
]
