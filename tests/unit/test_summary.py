import json

from agents.summary import EMPTY_TRANSCRIPT_POINT, fallback_summary, generate_summary
from llm_gateway import LlmGatewayError


def test_model_summary_is_used(fake_models):
    fake_models.summary = {
        "opening": "Thanks!",
        "keyPoints": ["a", "b", "c", "d", "e"],
        "sentiment": "positive",
    }
    summary = generate_summary(["I like my team"], "employee_satisfaction")
    assert summary.keyPoints == ["a", "b", "c", "d"]
    assert summary.sentiment == "positive"
    assert summary.opening == "Thanks!"
    call = fake_models.calls["summary"][0]
    assert call["temperature"] == 0.4 and call["max_tokens"] == 350


def test_fenced_summary_is_parsed(fake_models):
    fake_models.summary = "```json\n" + json.dumps({"keyPoints": ["one"], "sentiment": "constructive"}) + "\n```"
    summary = generate_summary(["text"])
    assert summary.keyPoints == ["one", "text"]
    assert summary.sentiment == "mixed"


def test_model_failure_falls_back_to_recent_turns(fake_models):
    fake_models.fail["summary"] = LlmGatewayError("down")
    contents = ["first", "second", "third", "fourth " + "x" * 400]
    summary = generate_summary(contents)
    assert len(summary.keyPoints) == 3
    assert summary.keyPoints[0] == "second"
    assert summary.keyPoints[-1].endswith("...")
    assert summary.sentiment == "mixed"


def test_unparseable_summary_falls_back(fake_models):
    fake_models.summary = "not json at all"
    summary = generate_summary(["only turn"])
    assert summary.keyPoints == ["only turn"]


def test_empty_key_points_fall_back(fake_models):
    fake_models.summary = {"keyPoints": [], "sentiment": "positive"}
    assert generate_summary([]).keyPoints == [EMPTY_TRANSCRIPT_POINT]


def test_fallback_never_empty():
    assert fallback_summary([]).keyPoints == [EMPTY_TRANSCRIPT_POINT]
    assert fallback_summary(["", "  "]).keyPoints == [EMPTY_TRANSCRIPT_POINT]


def test_single_point_summary_is_topped_up_from_recent_turns(fake_models):
    fake_models.summary = {"keyPoints": ["Pay lags the market"], "sentiment": "negative"}
    summary = generate_summary(["first turn", "second turn", "latest turn"])
    assert summary.keyPoints == ["Pay lags the market", "latest turn"]
    assert summary.sentiment == "negative"


def test_single_turn_transcript_keeps_one_point(fake_models):
    fake_models.summary = {"keyPoints": ["only turn"], "sentiment": "mixed"}
    assert generate_summary(["only turn"]).keyPoints == ["only turn"]
