"""Opening question catalogue, keyed by theme, for both survey types."""
from __future__ import annotations

import random
from typing import Dict, List, Optional, Sequence, Tuple

from storage.models import SurveyType, Theme

EMPLOYEE_QUESTIONS: Dict[str, List[str]] = {
    "work-satisfaction": [
        "When you think about heading to work, what's the first feeling that comes up?",
        "How has your energy been when you arrive at work this week?",
        "What's been taking up most of your mental space at work lately?",
    ],
    "work-life-balance": [
        "When you leave work at the end of the day, how easy is it to switch off?",
        "How have your evenings and weekends been feeling lately?",
        "Do you find yourself thinking about work during personal time?",
    ],
    "team-collaboration": [
        "How connected do you feel to the people you work with right now?",
        "When you need support at work, how does it feel to ask for help?",
        "What's it like when you collaborate with your team on a project?",
    ],
    "career-growth": [
        "When you imagine where you'll be in a year, how does that make you feel?",
        "How excited or stuck do you feel about your growth here?",
        "Do you feel like you're learning new things in your current role?",
    ],
    "leadership": [
        "How supported do you feel by those leading your team?",
        "When decisions are made that affect you, how heard do you feel?",
        "What's your relationship like with your direct manager?",
    ],
    "culture": [
        "How comfortable do you feel being yourself at work?",
        "What's the atmosphere like when you walk into the office or join a call?",
        "How would you describe the vibe of your workplace right now?",
    ],
    "compensation": [
        "How do you feel about the recognition you receive for your work?",
        "Do you feel fairly valued for what you contribute?",
        "What comes to mind when you think about your compensation?",
    ],
    "communication": [
        "How clear do things feel at work right now - do you know what's expected?",
        "When important news comes down, how well-informed do you feel?",
        "How easy is it to get the information you need to do your job?",
    ],
    "recognition": [
        "When was the last time you felt genuinely appreciated at work?",
        "How acknowledged do you feel for the effort you put in?",
        "Does good work get noticed around here?",
    ],
    "workload": [
        "How manageable does your workload feel right now?",
        "Do you feel like you have enough time to do your work well?",
        "What's your energy like by the end of most workdays?",
    ],
}

COURSE_QUESTIONS: Dict[str, List[str]] = {
    "teaching-effectiveness": [
        "How engaged did you feel during the lectures?",
        "When the instructor explains something, how clear does it feel?",
        "What's your experience been like in class sessions?",
    ],
    "learning-outcomes": [
        "How confident do you feel about what you've learned so far?",
        "When you think about applying this material, how prepared do you feel?",
        "Do you feel like you're genuinely learning and growing?",
    ],
    "course-materials": [
        "How helpful have the course materials been for your learning?",
        "Do the readings and resources feel relevant and useful?",
        "What's your experience been with the textbook or online materials?",
    ],
    "assessment": [
        "How fair do the assignments and exams feel?",
        "Do you feel like assessments reflect what you've actually learned?",
        "How useful has the feedback on your work been?",
    ],
    "engagement": [
        "How motivated do you feel to participate in this course?",
        "What's the energy like in class discussions?",
        "Do you look forward to this class, or does it feel like a chore?",
    ],
}

DEFAULT_EMPLOYEE_QUESTION = "How have things been feeling at work lately?"
DEFAULT_COURSE_QUESTION = "How has your learning experience been in this course?"

# mood -> (employee question, course question)
_MOOD_QUESTIONS: Dict[int, Tuple[str, str]] = {
    1: (
        "I hear that. What's been the biggest challenge this week?",
        "I hear that. What's been the hardest part of this course?",
    ),
    2: (
        "Thanks for being honest. What's been weighing on you?",
        "Thanks for being honest. What's been weighing on you about the course?",
    ),
    3: (
        "Got it. Is there anything that could make things better right now?",
        "Got it. Is there anything about the course that could be better?",
    ),
    4: (
        "Nice! What's been going well for you lately?",
        "Nice! What's been working well for you in this course?",
    ),
    5: (
        "Love to hear it! What's making things feel good right now?",
        "Love to hear it! What's making this course work so well for you?",
    ),
}


def _slug(name: str) -> str:
    return "-".join(name.lower().split())


def select_first_question(
    themes: Sequence[Theme],
    survey_type: SurveyType = "employee_satisfaction",
    rng: Optional[random.Random] = None,
) -> str:
    """Pick a feeling-focused opener for the survey's primary theme."""

    rng = rng or random.Random()
    is_course = survey_type == "course_evaluation"
    default = DEFAULT_COURSE_QUESTION if is_course else DEFAULT_EMPLOYEE_QUESTION
    if not themes:
        return default

    slug = _slug(themes[0].name)
    catalogue = COURSE_QUESTIONS if is_course else EMPLOYEE_QUESTIONS
    questions = catalogue.get(slug)
    if questions:
        return rng.choice(questions)
    if is_course:
        return default

    for key, candidates in EMPLOYEE_QUESTIONS.items():
        if key in slug or slug in key:
            return rng.choice(candidates)
    return default


def mood_adaptive_question(mood: Optional[int], survey_type: SurveyType = "employee_satisfaction") -> str:
    """Follow-up for the participant's initial mood selection (1 tough .. 5 great)."""

    is_course = survey_type == "course_evaluation"
    pair = _MOOD_QUESTIONS.get(mood or 0)
    if pair is None:
        return DEFAULT_COURSE_QUESTION if is_course else DEFAULT_EMPLOYEE_QUESTION
    return pair[1] if is_course else pair[0]


def warm_introduction(first_question: str, survey_type: SurveyType = "employee_satisfaction") -> str:
    context = "your learning experience" if survey_type == "course_evaluation" else "how things are going at work"
    return f"Hi, I'm Spradley. Thanks for taking a few minutes to chat about {context}.\n\n{first_question}"


__all__ = ["mood_adaptive_question", "select_first_question", "warm_introduction"]
