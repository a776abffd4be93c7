"""System prompt and conversation-context assembly for the interviewer model."""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from config.distress import match_distress
from services.theme_tracker import exchange_counts, trailing_streak, undiscussed_themes
from storage.models import SurveyType, Theme, Turn

MAX_CONSECUTIVE_EXCHANGES = 2
EXCERPT_TURNS = 2
EXCERPT_CHARS = 60
SENTIMENT_WINDOW = 3
DISTRESS_WINDOW = 2
NEAR_END_REMAINING = 2
FINAL_STRETCH_REMAINING = 4
TRANSITION_MAX_WORDS = 15

RESPONSE_FORMAT = """RESPONSE FORMAT:
Respond with compact JSON only:
{"empathy": "3-12 words scaled to intensity, or null", "question": "Your follow-up question (max 15 words)"}
Use "empathy": null for the very first message of the conversation."""

EMPATHY_RULES = """EMPATHY: Acknowledge the person, not the content. Scale to emotional intensity: 3-5 words (low), 5-8 words (medium), 8-12 words (high).
Never validate a complaint as objective fact, mirror emotions, or name emotions directly.
For negative feedback: acknowledge the perspective, then redirect toward what improvement would look like."""

CORE_APPROACH = """Your approach:
- Professional curiosity without emotional investment
- Focus on understanding their perspective, not validating it
- Natural, conversational language with contractions
- Brief and direct, respect their time"""

QUESTION_GUIDELINES = """QUESTION GUIDELINES:
- Direct and specific, no preamble or repetition
- Offer structured options when helpful (e.g. "Was it the workload, the support, or something else?")
- For negative feedback, ask what would make it better
- Ask for specifics, examples, or root causes"""

PROBING_LENSES = (
    "PROBING LENSES: Expertise (skills used?), Autonomy (control over work?), Justice (fair rewards?), "
    "Social Connection (team bonds?), Social Status (valued/recognized?). "
    "Identify which dimension drives their feedback and probe deeper."
)

_FRAMES: Dict[str, Dict[str, str]] = {
    "employee_satisfaction": {
        "role": "You are Spradley, a neutral research interviewer conducting confidential employee feedback sessions.",
        "catalogue": "Conversation Themes",
        "empty": "General employee feedback",
        "participant": "employee",
        "context": "workplace",
    },
    "course_evaluation": {
        "role": "You are Spradley, a neutral research interviewer conducting course evaluation sessions.",
        "catalogue": "Evaluation Dimensions",
        "empty": "General course evaluation",
        "participant": "student",
        "context": "course",
    },
}


def _frame(survey_type: SurveyType) -> Dict[str, str]:
    return _FRAMES.get(survey_type, _FRAMES["employee_satisfaction"])


def build_system_prompt(survey_type: SurveyType, themes: Sequence[Theme], context: str = "") -> str:
    """Role, theme catalogue, tone rules and output format, followed by the live context block."""
    frame = _frame(survey_type)
    catalogue = "\n".join(f"- {theme.name}: {theme.description}" for theme in themes) or frame["empty"]
    sections = [frame["role"], CORE_APPROACH, RESPONSE_FORMAT, EMPATHY_RULES]
    if survey_type != "course_evaluation":
        sections.append(PROBING_LENSES)
    sections.extend(
        [
            QUESTION_GUIDELINES,
            f"{frame['catalogue']}:\n{catalogue}",
            "CONVERSATION FLOW:\n"
            "1. Start with the provided first question\n"
            "2. Explore themes systematically, aim for 2-3 exchanges per theme\n"
            "3. Ask specific follow-ups to get concrete examples\n"
            "4. Transition naturally between themes after adequate depth\n"
            '5. When near completion, ask "Anything else?" then thank briefly',
        ]
    )
    if context:
        sections.append(context.strip())
    sections.append("Always respond with valid JSON. Maintain professional distance.")
    return "\n\n".join(sections)


def _theme_names(themes: Sequence[Theme]) -> Dict[str, str]:
    return {theme.id: theme.name for theme in themes}


def _discussed_names(turns: Sequence[Turn], themes: Sequence[Theme]) -> List[str]:
    names = _theme_names(themes)
    seen: List[str] = []
    for turn in turns:
        name = names.get(turn.theme_id or "")
        if name and name not in seen:
            seen.append(name)
    return seen


def sentiment_trend(turns: Sequence[Turn]) -> List[str]:
    return [turn.sentiment for turn in turns[-SENTIMENT_WINDOW:] if turn.sentiment]


def key_excerpts(turns: Sequence[Turn]) -> str:
    excerpts = [turn.content[:EXCERPT_CHARS] for turn in turns[:EXCERPT_TURNS] if turn.content]
    return '"' + '"; "'.join(excerpts) + '"' if excerpts else ""


def emotional_state(turns: Sequence[Turn], current_content: Optional[str] = None) -> str:
    """Distress keywords in the most recent utterances override the sentiment-based state."""
    recent = [turn.content for turn in turns] + ([current_content] if current_content else [])
    finding = match_distress(" ".join(recent[-DISTRESS_WINDOW:]))
    if finding.distressed:
        return "URGENT - Participant may need immediate support"
    trend = sentiment_trend(turns)
    if trend.count("positive") > trend.count("negative"):
        return "Positive momentum - build on this"
    return "Neutral - explore deeper"


def _adaptive_lines(turns: Sequence[Turn], survey_type: SurveyType, state: str) -> List[str]:
    frame = _frame(survey_type)
    trend = sentiment_trend(turns)
    last = trend[-1] if trend else None
    lines: List[str] = []
    if state.startswith("URGENT"):
        lines.append("- URGENT: The participant may be in distress. Use extra care and keep questions gentle.")
    if last == "negative":
        lines.append(
            f"- The {frame['participant']} is sharing challenges. Ask specific follow-up questions "
            "to understand what happened and what would help."
        )
    elif last == "positive":
        lines.append(
            f"- The {frame['participant']} is positive. Also explore if there are any areas for improvement."
        )
    if len(turns) >= 3:
        lines.append("- Reference earlier points when relevant to build on what they've shared.")
    return lines


def _context_header(
    turns: Sequence[Turn],
    themes: Sequence[Theme],
    current_content: Optional[str],
) -> List[str]:
    names = _theme_names(themes)
    discussed = _discussed_names(turns, themes)
    counts = exchange_counts(turns, themes)
    per_theme = ", ".join(f"{names[theme_id]} ({count})" for theme_id, count in counts.items() if count)
    lines = [
        "CONVERSATION CONTEXT:",
        f"- Topics already discussed: {', '.join(discussed) if discussed else 'None yet'}",
        f"- Exchanges per topic: {per_theme or 'none yet'}",
        f"- Recent sentiment pattern: {' -> '.join(sentiment_trend(turns)) or 'none'}",
        f"- Emotional state: {emotional_state(turns, current_content)}",
    ]
    excerpts = key_excerpts(turns)
    if excerpts:
        lines.append(f"- Key points mentioned earlier: {excerpts}")
    return lines


def coverage_context(
    turns: Sequence[Turn],
    themes: Sequence[Theme],
    survey_type: SurveyType = "employee_satisfaction",
    current_content: Optional[str] = None,
) -> str:
    """Context block for theme-coverage pacing."""
    if not turns:
        return ""
    lines = _context_header(turns, themes, current_content)
    lines.append(f"- Exchange count: {len(turns)}")
    remaining = undiscussed_themes(turns, themes)
    lines.append(f"- Undiscussed topics: {', '.join(t.name for t in remaining) if remaining else 'All covered'}")

    lines.append("")
    lines.append("PACING RULES:")
    streak_theme, streak = trailing_streak(turns)
    if streak >= MAX_CONSECUTIVE_EXCHANGES and remaining:
        name = _theme_names(themes).get(streak_theme or "", "the current topic")
        lines.append(
            f"- You must transition off {name} now: it has had {streak} consecutive exchanges. "
            f"Move to one of: {', '.join(t.name for t in remaining)}."
        )
    else:
        lines.append(
            f"- You must transition off a theme after {MAX_CONSECUTIVE_EXCHANGES} consecutive exchanges on it."
        )
    if themes and not remaining:
        lines.append("- All themes covered. Wrap up: ask if there is anything else, then thank them briefly.")

    state = emotional_state(turns, current_content)
    adaptive = _adaptive_lines(turns, survey_type, state)
    if adaptive:
        lines.append("")
        lines.append("ADAPTIVE INSTRUCTIONS:")
        lines.extend(adaptive)
    return "\n".join(lines)


def duration_context(
    turns: Sequence[Turn],
    themes: Sequence[Theme],
    target_exchanges: int,
    selected_theme_id: Optional[str] = None,
    survey_type: SurveyType = "employee_satisfaction",
    current_content: Optional[str] = None,
) -> str:
    """Context block for time-boxed pacing."""
    turn_count = len(turns)
    remaining = max(0, target_exchanges - turn_count)
    lines = _context_header(turns, themes, current_content)
    lines.insert(1, f"- Exchange {turn_count} of ~{target_exchanges} target")

    lines.append("")
    lines.append("PACING RULES:")
    lines.append(f"- You have ~{remaining} exchanges left")
    lines.append("- Each theme should get 1-3 exchanges depending on remaining time")
    lines.append("- If running low on time, prioritize depth over breadth")
    if remaining <= NEAR_END_REMAINING:
        lines.append(
            "- We are near the end. Start wrapping up naturally. "
            "Ask if there is anything else important, then thank them warmly."
        )
    elif remaining <= FINAL_STRETCH_REMAINING:
        lines.append("- We are approaching the final stretch. Focus on the most important remaining topics.")

    focus = _theme_names(themes).get(selected_theme_id or "")
    if focus:
        lines.append(
            f'- The participant chose to explore "{focus}" in more depth. '
            "Focus your questions on this theme for the next 2-3 exchanges."
        )
    uncovered = undiscussed_themes(turns, themes)
    if uncovered and remaining > 3 and not focus:
        lines.append(f"- Themes not yet covered: {', '.join(t.name for t in uncovered)}. Transition naturally.")
    elif themes and not uncovered:
        lines.append("- All themes covered. Wrap up: ask if there is anything else, then thank them briefly.")

    state = emotional_state(turns, current_content)
    adaptive = _adaptive_lines(turns, survey_type, state)
    if adaptive:
        lines.append("")
        lines.append("ADAPTIVE INSTRUCTIONS:")
        lines.extend(adaptive)
    return "\n".join(lines)


def theme_transition_prompt(theme_name: str) -> str:
    return (
        f'You are Spradley, a neutral research interviewer. The participant just chose to discuss "{theme_name}" '
        f"in more depth. Ask one focused, feeling-based question about this topic. "
        f"Maximum {TRANSITION_MAX_WORDS} words. "
        'Respond with JSON: {"empathy": null, "question": "..."}'
    )


def interview_messages(system_prompt: str, messages: Sequence[Dict[str, str]]) -> List[Dict[str, str]]:
    """System prompt followed by the client's transcript, reduced to role/content pairs."""
    convo = [
        {"role": str(m.get("role", "user")), "content": str(m.get("content", ""))}
        for m in messages
        if m.get("content")
    ]
    return [{"role": "system", "content": system_prompt}, *convo]


def limit_words(text: str, max_words: int = TRANSITION_MAX_WORDS) -> str:
    words = text.split()
    if len(words) <= max_words:
        return text.strip()
    clipped = " ".join(words[:max_words]).rstrip(",;:")
    return clipped if clipped.endswith("?") else clipped + "?"


__all__ = [
    "build_system_prompt",
    "coverage_context",
    "duration_context",
    "emotional_state",
    "interview_messages",
    "key_excerpts",
    "limit_words",
    "sentiment_trend",
    "theme_transition_prompt",
]
