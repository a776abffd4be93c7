"""Phase vocabulary and the fixed texts the router replies with."""
from __future__ import annotations

import re
from typing import Literal, Optional

Phase = Literal["duration_selection", "interview", "theme_selection", "reviewing", "complete"]

DURATION_SELECTION: Phase = "duration_selection"
INTERVIEW: Phase = "interview"
THEME_SELECTION: Phase = "theme_selection"
REVIEWING: Phase = "reviewing"
COMPLETE: Phase = "complete"

# Phases in which a new introduction would restart a live conversation
STARTED_PHASES = (THEME_SELECTION, REVIEWING, COMPLETE)

DURATION_PROMPT = "How much time do you have for our chat today?"
HALFWAY_PROMPT = "We're about halfway through. Which of these topics would you most like to talk about?"
COMPLETION_ACK = "Thank you for sharing your thoughts."
SUMMARY_MESSAGE = "Thank you for your time and valuable insights."
FINAL_ACK = "Thank you for your time and insights."
COMPLETE_MESSAGE = (
    "Thank you for your time and valuable insights. Your feedback will help create meaningful change."
)
TRANSITION_FALLBACK = "What stands out to you most about {name}?"

PREVIEW_PREFIX = "preview-"

_CONFIRM = re.compile(
    r"^\s*(yes|yep|yeah|done|no|nope|nothing else|that'?s all|that'?s it|all good|i'?m good|i'?m all good|looks good)"
    r"[\s.!,]*$",
    re.IGNORECASE,
)
_TERMINAL = re.compile(
    r"^\s*(i'?m all good|i'?m done|nothing else|that'?s all|that'?s everything)[\s.!,]*$",
    re.IGNORECASE,
)
_DURATION_CHOICE = re.compile(r"\b(5|10|15)\b")


def is_confirmation(content: str) -> bool:
    """Participant agrees the recap is complete ("yes", "done", "nothing else", ...)."""
    return bool(_CONFIRM.match(content or ""))


def is_terminal_option(content: str) -> bool:
    return bool(_TERMINAL.match(content or ""))


def parse_duration_choice(content: str) -> Optional[int]:
    match = _DURATION_CHOICE.search(content or "")
    return int(match.group(1)) if match else None


def is_preview_conversation(conversation_id: str, test_mode: Optional[bool], owner_kind: Optional[str] = None) -> bool:
    """Anonymous preview path; a stored non-preview session never qualifies, whatever the flags say."""
    if owner_kind is not None and owner_kind != "preview":
        return False
    return bool(test_mode) or conversation_id.startswith(PREVIEW_PREFIX)


__all__ = [
    "COMPLETE",
    "COMPLETE_MESSAGE",
    "COMPLETION_ACK",
    "DURATION_PROMPT",
    "DURATION_SELECTION",
    "FINAL_ACK",
    "HALFWAY_PROMPT",
    "INTERVIEW",
    "PREVIEW_PREFIX",
    "Phase",
    "REVIEWING",
    "STARTED_PHASES",
    "SUMMARY_MESSAGE",
    "THEME_SELECTION",
    "TRANSITION_FALLBACK",
    "is_confirmation",
    "is_preview_conversation",
    "is_terminal_option",
    "parse_duration_choice",
]
