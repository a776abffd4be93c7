"""Theme coverage and depth derived from the turn history."""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from storage.models import Theme, Turn

FIRST_MENTION_DEPTH = 25
DEPTH_PER_EXCHANGE = 20
MAX_DEPTH = 100


class ThemeProgressEntry(BaseModel):
    id: str
    name: str
    discussed: bool
    current: bool
    depth: int = Field(ge=0, le=MAX_DEPTH)


class ThemeProgress(BaseModel):
    themes: List[ThemeProgressEntry] = Field(default_factory=list)
    coveragePercent: float = 0.0
    discussedCount: int = 0
    totalCount: int = 0


def theme_depth(exchanges: int) -> int:
    """0 when untouched, 25 on first mention, +20 per further exchange, capped at 100."""

    if exchanges <= 0:
        return 0
    return min(MAX_DEPTH, FIRST_MENTION_DEPTH + DEPTH_PER_EXCHANGE * (exchanges - 1))


def coverage_percent(discussed: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return discussed / total * 100


def exchange_counts(turns: Sequence[Turn], themes: Sequence[Theme]) -> Dict[str, int]:
    """Classified turns per catalogue theme; turns on unknown themes are ignored."""

    counts = {theme.id: 0 for theme in themes}
    for turn in turns:
        if turn.theme_id in counts:
            counts[turn.theme_id] += 1
    return counts


def current_theme_id(turns: Sequence[Turn]) -> Optional[str]:
    """Theme of the most recent classified turn (may trail the live turn by one)."""

    for turn in reversed(turns):
        if turn.theme_id:
            return turn.theme_id
    return None


def trailing_streak(turns: Sequence[Turn]) -> Tuple[Optional[str], int]:
    """Theme id and length of the run of consecutive classified turns ending the history."""

    classified = [turn.theme_id for turn in turns if turn.theme_id]
    if not classified:
        return None, 0
    last = classified[-1]
    streak = 0
    for theme_id in reversed(classified):
        if theme_id != last:
            break
        streak += 1
    return last, streak


def undiscussed_themes(turns: Sequence[Turn], themes: Sequence[Theme], extra_ids: Sequence[str] = ()) -> List[Theme]:
    discussed = {turn.theme_id for turn in turns if turn.theme_id} | {theme_id for theme_id in extra_ids if theme_id}
    return [theme for theme in themes if theme.id not in discussed]


def build_theme_progress(
    turns: Sequence[Turn],
    themes: Sequence[Theme],
    current_id: Optional[str] = None,
) -> ThemeProgress:
    """Recompute per-theme progress; ``current_id`` overrides the inferred current theme."""

    counts = exchange_counts(turns, themes)
    current = current_id if current_id is not None else current_theme_id(turns)
    entries = [
        ThemeProgressEntry(
            id=theme.id,
            name=theme.name,
            discussed=counts[theme.id] > 0,
            current=theme.id == current,
            depth=theme_depth(counts[theme.id]),
        )
        for theme in themes
    ]
    discussed = sum(1 for entry in entries if entry.discussed)
    return ThemeProgress(
        themes=entries,
        coveragePercent=coverage_percent(discussed, len(entries)),
        discussedCount=discussed,
        totalCount=len(entries),
    )


__all__ = [
    "ThemeProgress",
    "ThemeProgressEntry",
    "build_theme_progress",
    "coverage_percent",
    "current_theme_id",
    "exchange_counts",
    "theme_depth",
    "trailing_streak",
    "undiscussed_themes",
]
