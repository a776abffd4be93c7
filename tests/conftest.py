import json
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("ENABLE_FILE_LOGS", "0")

from config.registry import ANALYSIS_KEY, CLASSIFIER_KEY, INTERVIEWER_KEY, SUMMARY_KEY, bind_model
from config.settings import settings
from storage.migrate import migrate


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    migrate(db_path)
    try:
        yield db_path
    finally:
        td.cleanup()


class FakeModels:
    """Scriptable stand-ins for every registry-bound model role."""

    def __init__(self) -> None:
        self.interviewer_replies: List[str] = []
        self.default_question = "What would make that better for you?"
        self.sentiment = "negative"
        self.theme_name: Optional[str] = None
        self.urgency = "not-urgent"
        self.summary: Any = {
            "opening": "Thanks for talking with me.",
            "keyPoints": ["Workload has been heavy this quarter.", "Growth paths feel unclear."],
            "sentiment": "mixed",
        }
        self.analysis: Dict[str, Any] = {
            "urgency_score": 2,
            "urgency_reason": "routine",
            "detected_themes": [],
            "key_sentiment_indicators": ["tired"],
            "suggested_followup": "Ask about staffing",
        }
        self.signal: Dict[str, Any] = {
            "signal_text": "too many meetings",
            "dimension": "autonomy",
            "facet": "schedule control",
            "intensity": 6,
            "sentiment": "negative",
            "confidence": 0.8,
        }
        self.calls: Dict[str, List[Dict[str, Any]]] = {"interviewer": [], "classifier": [], "summary": [], "analysis": []}
        self.fail: Dict[str, Exception] = {}

    def _maybe_fail(self, role: str) -> None:
        if role in self.fail:
            raise self.fail[role]

    def interviewer(self, **kwargs: Any) -> str:
        self.calls["interviewer"].append(kwargs)
        self._maybe_fail("interviewer")
        if self.interviewer_replies:
            return self.interviewer_replies.pop(0)
        return json.dumps({"empathy": "Thanks for sharing.", "question": self.default_question})

    def classifier(self, **kwargs: Any) -> str:
        self.calls["classifier"].append(kwargs)
        self._maybe_fail("classifier")
        messages = kwargs["messages"]
        text = " ".join(m["content"] for m in messages)
        if "Analyze sentiment" in text:
            return self.sentiment
        if "Classify this feedback" in text:
            return self.theme_name or "none"
        return self.urgency

    def summarizer(self, **kwargs: Any) -> str:
        self.calls["summary"].append(kwargs)
        self._maybe_fail("summary")
        return self.summary if isinstance(self.summary, str) else json.dumps(self.summary)

    def analyzer(self, **kwargs: Any) -> Dict[str, Any]:
        self.calls["analysis"].append(kwargs)
        self._maybe_fail("analysis")
        if kwargs["tool"]["name"] == "extract_semantic_signal":
            return dict(self.signal)
        return dict(self.analysis)


@pytest.fixture
def fake_models() -> FakeModels:
    models = FakeModels()
    bind_model(INTERVIEWER_KEY, models.interviewer)
    bind_model(CLASSIFIER_KEY, models.classifier)
    bind_model(SUMMARY_KEY, models.summarizer)
    bind_model(ANALYSIS_KEY, models.analyzer)
    return models


class DeferredScheduler:
    """Collects scheduled work so tests decide when (and whether) it runs."""

    def __init__(self) -> None:
        self.pending: List[tuple] = []

    def schedule(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        self.pending.append((fn, args, kwargs))

    def run_all(self) -> List[Any]:
        results = []
        while self.pending:
            fn, args, kwargs = self.pending.pop(0)
            results.append(fn(*args, **kwargs))
        return results


@pytest.fixture
def deferred() -> DeferredScheduler:
    return DeferredScheduler()


@pytest.fixture(autouse=True)
def fresh_phase_router():
    from api.routes import reset_phase_router

    reset_phase_router()
    yield
    reset_phase_router()
