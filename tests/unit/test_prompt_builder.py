from agents.prompt_builder import (
    build_system_prompt,
    coverage_context,
    duration_context,
    emotional_state,
    interview_messages,
    key_excerpts,
    limit_words,
    theme_transition_prompt,
)
from storage.models import Theme, Turn

THEMES = [
    Theme(id="t1", name="Workload", description="Hours and pace"),
    Theme(id="t2", name="Growth", description="Learning and promotion"),
]


def _turn(content, theme_id=None, sentiment=None):
    return Turn(conversation_id="c1", content=content, theme_id=theme_id, sentiment=sentiment)


def test_system_prompt_carries_catalogue_format_and_tone():
    prompt = build_system_prompt("employee_satisfaction", THEMES, "CONVERSATION CONTEXT:\n- x")
    assert "- Workload: Hours and pace" in prompt
    assert '"empathy": null' in prompt
    assert "3-5 words" in prompt and "8-12 words" in prompt
    assert "improvement" in prompt
    assert "Never validate a complaint as objective fact" in prompt
    assert prompt.rstrip().endswith("Maintain professional distance.")
    assert "CONVERSATION CONTEXT" in prompt


def test_course_prompt_uses_course_framing():
    prompt = build_system_prompt("course_evaluation", [], "")
    assert "course evaluation" in prompt
    assert "General course evaluation" in prompt
    assert "PROBING LENSES" not in prompt


def test_coverage_context_lists_discussed_counts_and_trend():
    turns = [
        _turn("My hours are long and meetings pile up", "t1", "negative"),
        _turn("Weekends too", "t1", "negative"),
    ]
    context = coverage_context(turns, THEMES)
    assert "Topics already discussed: Workload" in context
    assert "Workload (2)" in context
    assert "negative -> negative" in context
    assert '"My hours are long and meetings pile up"' in context
    assert "You must transition off Workload now" in context
    assert "Growth" in context


def test_coverage_context_wraps_up_when_all_covered():
    turns = [_turn("a", "t1"), _turn("b", "t2")]
    assert "All themes covered" in coverage_context(turns, THEMES)


def test_coverage_context_empty_history():
    assert coverage_context([], THEMES) == ""


def test_duration_context_pacing_lines():
    turns = [_turn("a", "t1"), _turn("b", None)]
    context = duration_context(turns, THEMES, target_exchanges=10, selected_theme_id="t2")
    assert "You have ~8 exchanges left" in context
    assert 'chose to explore "Growth"' in context

    near_end = duration_context([_turn(str(i)) for i in range(9)], THEMES, target_exchanges=10)
    assert "near the end" in near_end


def test_distress_switches_emotional_state():
    turns = [_turn("fine", sentiment="positive"), _turn("I'm overwhelmed honestly", sentiment="negative")]
    assert emotional_state(turns).startswith("URGENT")
    assert emotional_state([_turn("fine", sentiment="positive")]).startswith("Positive momentum")
    assert emotional_state([], current_content="this is a crisis").startswith("URGENT")
    assert "URGENT" in coverage_context(turns, THEMES)


def test_key_excerpts_truncate_first_two_turns():
    turns = [_turn("x" * 100), _turn("second"), _turn("third")]
    excerpts = key_excerpts(turns)
    assert excerpts == '"' + "x" * 60 + '"; "second"'


def test_transition_prompt_and_word_limit():
    prompt = theme_transition_prompt("Growth")
    assert '"Growth"' in prompt and "Maximum 15 words" in prompt
    clipped = limit_words(" ".join(["word"] * 20) + "?")
    assert len(clipped.split()) == 15
    assert clipped.endswith("?")
    assert limit_words("Short question?") == "Short question?"


def test_interview_messages_prepend_system():
    msgs = interview_messages("SYS", [{"role": "user", "content": "hi"}, {"role": "assistant", "content": ""}])
    assert msgs == [{"role": "system", "content": "SYS"}, {"role": "user", "content": "hi"}]
