"""Completion policies deciding when an interview has gathered enough."""
from __future__ import annotations

from typing import Dict, Literal, Mapping, Optional, Protocol

from pydantic import BaseModel

COVERAGE_MIN_TURNS = 6
DURATION_MIN_TURNS = 3
DURATION_FORCE_MARGIN = 2


class DurationTarget(BaseModel):
    minutes: int
    target_exchanges: int
    halfway_point: int


DURATION_TARGETS: Dict[int, DurationTarget] = {
    5: DurationTarget(minutes=5, target_exchanges=5, halfway_point=3),
    10: DurationTarget(minutes=10, target_exchanges=10, halfway_point=5),
    15: DurationTarget(minutes=15, target_exchanges=15, halfway_point=8),
}


def duration_target(selected: Optional[int], default: int = 10) -> DurationTarget:
    """Map a selected session length to its exchange target; unknown lengths use ``default``."""

    if selected in DURATION_TARGETS:
        return DURATION_TARGETS[selected]  # type: ignore[index]
    return DURATION_TARGETS.get(default, DURATION_TARGETS[10])


class CompletionVerdict(BaseModel):
    complete: bool
    reason: Literal[
        "below_floor",
        "untouched_themes",
        "shallow",
        "covered",
        "below_target",
        "target_reached",
        "forced",
    ]


def coverage_verdict(turn_count: int, exchanges_by_theme: Mapping[str, int]) -> CompletionVerdict:
    """Breadth first: every theme touched, then average depth, above a turn floor."""

    floor = max(COVERAGE_MIN_TURNS, len(exchanges_by_theme) + 2)
    if turn_count < floor:
        return CompletionVerdict(complete=False, reason="below_floor")
    if any(count <= 0 for count in exchanges_by_theme.values()):
        return CompletionVerdict(complete=False, reason="untouched_themes")
    discussed = [count for count in exchanges_by_theme.values() if count > 0]
    if discussed and sum(discussed) / len(discussed) < 1:
        return CompletionVerdict(complete=False, reason="shallow")
    return CompletionVerdict(complete=True, reason="covered")


def duration_verdict(turn_count: int, target_exchanges: int) -> CompletionVerdict:
    if turn_count < DURATION_MIN_TURNS:
        return CompletionVerdict(complete=False, reason="below_floor")
    if turn_count >= target_exchanges + DURATION_FORCE_MARGIN:
        return CompletionVerdict(complete=True, reason="forced")
    if turn_count >= target_exchanges:
        return CompletionVerdict(complete=True, reason="target_reached")
    return CompletionVerdict(complete=False, reason="below_target")


def should_complete_by_coverage(turn_count: int, exchanges_by_theme: Mapping[str, int]) -> bool:
    return coverage_verdict(turn_count, exchanges_by_theme).complete


def should_complete_by_duration(turn_count: int, target_exchanges: int) -> bool:
    return duration_verdict(turn_count, target_exchanges).complete


class CompletionPolicy(Protocol):  # Interchangeable completion strategy
    pacing: str

    def evaluate(self, turn_count: int, exchanges_by_theme: Mapping[str, int]) -> CompletionVerdict: ...


class CoveragePolicy:
    pacing = "coverage"

    def evaluate(self, turn_count: int, exchanges_by_theme: Mapping[str, int]) -> CompletionVerdict:
        return coverage_verdict(turn_count, exchanges_by_theme)


class DurationPolicy:
    pacing = "duration"

    def __init__(self, target: DurationTarget) -> None:
        self.target = target

    def evaluate(self, turn_count: int, exchanges_by_theme: Mapping[str, int]) -> CompletionVerdict:
        return duration_verdict(turn_count, self.target.target_exchanges)


__all__ = [
    "DURATION_TARGETS",
    "CompletionPolicy",
    "CompletionVerdict",
    "CoveragePolicy",
    "DurationPolicy",
    "DurationTarget",
    "coverage_verdict",
    "duration_target",
    "duration_verdict",
    "should_complete_by_coverage",
    "should_complete_by_duration",
]
