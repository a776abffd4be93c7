"""Best-effort background enrichment of a persisted turn.

Every step is independent: a failing classifier is logged and the others still
land. All writes target the existing turn by id and are safe to repeat.
"""
from __future__ import annotations

import logging
import sqlite3
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from agents.analysis import analyze_response, extract_semantic_signal
from agents.classifiers import classify_sentiment, classify_theme, classify_urgency
from agents.types import DeepAnalysis, FastClassification, SemanticSignal, SentimentResult
from config.settings import settings
from observability import log_event, span
from storage.models import SurveyType, Theme
from storage.store import ConversationStore

logger = logging.getLogger(__name__)


class EnrichmentJob(BaseModel):
    turn_id: int
    conversation_id: str
    survey_id: Optional[str] = None
    content: str
    themes: List[Theme] = Field(default_factory=list)
    survey_type: SurveyType = "employee_satisfaction"
    user_id: Optional[str] = None
    classified: Optional[FastClassification] = None


class EnrichmentReport(BaseModel):
    sentiment: Optional[SentimentResult] = None
    theme_id: Optional[str] = None
    urgent: Optional[bool] = None
    analysis: Optional[DeepAnalysis] = None
    signal: Optional[SemanticSignal] = None
    escalated: bool = False
    audited: bool = False
    failures: List[str] = Field(default_factory=list)
    timings: List[Dict[str, Any]] = Field(default_factory=list)


class EnrichmentPipeline:
    """Classify, analyze and log one turn; run it through a TaskScheduler."""

    def __init__(self, store: ConversationStore, max_workers: Optional[int] = None) -> None:
        self.store = store
        self.max_workers = max_workers or settings.ENRICHMENT_WORKERS

    def __call__(self, job: EnrichmentJob) -> EnrichmentReport:
        return self.run(job)

    def _steps(self, job: EnrichmentJob) -> Dict[str, Callable[[], Any]]:
        steps: Dict[str, Callable[[], Any]] = {}
        if job.classified is None:
            steps["sentiment"] = lambda: classify_sentiment(job.content)
            steps["theme"] = lambda: classify_theme(job.content, job.themes)
            steps["urgency"] = lambda: classify_urgency(job.content)
        steps["analysis"] = lambda: analyze_response(job.content, job.themes)
        if job.survey_type == "employee_satisfaction":
            steps["signal"] = lambda: extract_semantic_signal(job.content)
        return steps

    def _timed(self, name: str, fn: Callable[[], Any], timings: List[Dict[str, Any]]) -> Any:
        with span(timings, name):
            return fn()

    def run(self, job: EnrichmentJob) -> EnrichmentReport:
        report = EnrichmentReport()
        if job.classified is not None:
            report.sentiment = job.classified.sentiment
            report.theme_id = job.classified.theme_id
            report.urgent = job.classified.urgent

        steps = self._steps(job)
        results: Dict[str, Any] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="enrich") as pool:
            futures: Dict[str, Future] = {
                name: pool.submit(self._timed, name, fn, report.timings) for name, fn in steps.items()
            }
            for name, future in futures.items():
                try:
                    results[name] = future.result()
                    outcome = "ok"
                except Exception as exc:  # noqa: BLE001
                    report.failures.append(name)
                    outcome = "error"
                    logger.warning("enrichment step %s failed for turn %s: %s", name, job.turn_id, exc)
                log_event(
                    "enrichment",
                    job.conversation_id,
                    level=logging.INFO if outcome == "ok" else logging.WARNING,
                    step=name,
                    outcome=outcome,
                    turn_id=job.turn_id,
                    ms=next((t["ms"] for t in report.timings if t["span"] == name), None),
                )

        if "sentiment" in results:
            report.sentiment = results["sentiment"]
        if "theme" in results:
            report.theme_id = results["theme"]
        if "urgency" in results:
            report.urgent = results["urgency"]
        report.analysis = results.get("analysis")
        report.signal = results.get("signal")

        self._write_turn(job, report)
        self._write_signal(job, report)
        self._write_escalation(job, report)
        self._write_audit(job, report)
        return report

    def _write(self, job: EnrichmentJob, report: EnrichmentReport, name: str, fn: Callable[[], Any]) -> Any:
        try:
            return fn()
        except (sqlite3.Error, ValueError) as exc:
            report.failures.append(name)
            log_event(
                "enrichment",
                job.conversation_id,
                level=logging.WARNING,
                step=name,
                outcome="error",
                turn_id=job.turn_id,
                error=str(exc),
            )
            return None

    def _write_turn(self, job: EnrichmentJob, report: EnrichmentReport) -> None:
        fields: Dict[str, Any] = {}
        if report.sentiment is not None:
            fields["sentiment"] = report.sentiment.sentiment
            fields["sentiment_score"] = report.sentiment.score
        if report.theme_id is not None:
            fields["theme_id"] = report.theme_id
        if report.urgent:
            fields["urgency_escalated"] = True
        if report.analysis is not None:
            fields["urgency_score"] = report.analysis.urgency_score
            fields["ai_analysis"] = report.analysis.model_dump()
        if fields:
            self._write(job, report, "turn_update", lambda: self.store.update_turn(job.turn_id, **fields))

    def _write_signal(self, job: EnrichmentJob, report: EnrichmentReport) -> None:
        if report.signal is None:
            return
        signal = report.signal
        self._write(
            job,
            report,
            "signal_write",
            lambda: self.store.upsert_signal(response_id=job.turn_id, survey_id=job.survey_id, **signal.model_dump()),
        )

    def _write_escalation(self, job: EnrichmentJob, report: EnrichmentReport) -> None:
        if not report.urgent:
            return
        created = self._write(job, report, "escalation_write", lambda: self.store.insert_escalation(job.turn_id))
        report.escalated = bool(created)
        if created:
            log_event("escalation", job.conversation_id, level=logging.WARNING, turn_id=job.turn_id, status="ai_detected")

    def _write_audit(self, job: EnrichmentJob, report: EnrichmentReport) -> None:
        if not job.user_id:
            return
        metadata = {
            "survey_id": job.survey_id,
            "theme_id": report.theme_id,
            "sentiment": report.sentiment.sentiment if report.sentiment else None,
            "urgency_escalated": bool(report.urgent),
        }
        created = self._write(
            job,
            report,
            "audit_write",
            lambda: self.store.insert_audit(
                user_id=job.user_id,
                resource_id=job.conversation_id,
                response_id=job.turn_id,
                metadata=metadata,
            ),
        )
        report.audited = bool(created)


__all__ = ["EnrichmentJob", "EnrichmentPipeline", "EnrichmentReport"]
