import pytest

from agents.analysis import analyze_response, extract_semantic_signal
from agents.classifiers import (
    classify_sentiment,
    classify_theme,
    classify_urgency,
    is_urgent_label,
    match_theme,
    run_fast_classifiers,
)
from storage.models import Theme

THEMES = [
    Theme(id="t1", name="Work-Life Balance", description="hours"),
    Theme(id="t2", name="Leadership", description="managers"),
]


@pytest.mark.parametrize("label,score", [("positive", 75), ("neutral", 50), ("negative", 25)])
def test_sentiment_scores(fake_models, label, score):
    fake_models.sentiment = label
    result = classify_sentiment("text")
    assert (result.sentiment, result.score) == (label, score)


def test_unknown_sentiment_is_neutral(fake_models):
    fake_models.sentiment = "ambivalent"
    assert classify_sentiment("text").score == 50


def test_theme_matched_by_substring(fake_models):
    fake_models.theme_name = "Theme: leadership."
    assert classify_theme("my manager", THEMES) == "t2"


def test_theme_without_catalogue_skips_model(fake_models):
    assert classify_theme("anything", []) is None
    assert fake_models.calls["classifier"] == []


def test_match_theme_checks_catalogue_order():
    assert match_theme("work-life balance and leadership", THEMES) == "t1"
    assert match_theme("none", THEMES) is None


@pytest.mark.parametrize(
    "label,expected",
    [("urgent", True), ("URGENT.", True), ("not-urgent", False), ("Not urgent", False), ("", False)],
)
def test_urgency_label(label, expected):
    assert is_urgent_label(label) is expected


def test_urgency_uses_model(fake_models):
    fake_models.urgency = "urgent"
    assert classify_urgency("someone threatened me") is True


def test_fast_classifiers_join(fake_models):
    fake_models.sentiment = "positive"
    fake_models.theme_name = "Work-Life Balance"
    result = run_fast_classifiers("I finally get my evenings back", THEMES)
    assert result.sentiment.score == 75
    assert result.theme_id == "t1"
    assert result.urgent is False
    assert len(fake_models.calls["classifier"]) == 3


def test_deep_analysis_and_signal(fake_models):
    analysis = analyze_response("too many meetings", THEMES)
    assert analysis.urgency_score == 2
    prompt = fake_models.calls["analysis"][0]["messages"][1]["content"]
    assert "t1:Work-Life Balance" in prompt
    signal = extract_semantic_signal("too many meetings")
    assert signal.dimension == "autonomy"
    assert fake_models.calls["analysis"][1]["tool"]["name"] == "extract_semantic_signal"
