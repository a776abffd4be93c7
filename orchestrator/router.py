"""Per-request phase router for adaptive interview conversations.

One call to :meth:`PhaseRouter.handle` serves one participant turn: validate,
authorize, rate-limit, then dispatch on the stored phase and the request flags.
Enrichment of persisted turns is handed to a scheduler and never awaited.
"""
from __future__ import annotations

import logging
import random
import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from agents.classifiers import run_fast_classifiers
from agents.first_questions import mood_adaptive_question, select_first_question, warm_introduction
from agents.prompt_builder import (
    build_system_prompt,
    coverage_context,
    duration_context,
    interview_messages,
    limit_words,
    theme_transition_prompt,
)
from agents.response_parser import parse_reply
from agents.summary import generate_summary
from agents.types import FastClassification, StructuredSummary
from api.schemas import AvailableTheme, ChatReq, ChatResp
from config.registry import INTERVIEWER_KEY, get_model
from config.settings import Settings, settings as default_settings
from llm_gateway import LlmGatewayError
from observability import log_event
from services.completion import CompletionPolicy, CoveragePolicy, DurationPolicy, duration_target
from services.enrichment import EnrichmentJob, EnrichmentPipeline
from services.rate_limit import RateLimits, preview_key
from services.sanitizer import is_introduction_trigger, last_content, validate_input
from services.tasks import TaskScheduler
from services.theme_tracker import build_theme_progress, exchange_counts, undiscussed_themes
from storage.models import ConversationSession, Pacing, SurveyType, Theme, Turn
from storage.store import ConversationStore

from .errors import InvalidInput, PersistenceFailure, RateLimited, Unauthorized, UpstreamUnavailable
from .state import (
    COMPLETE,
    COMPLETE_MESSAGE,
    COMPLETION_ACK,
    DURATION_PROMPT,
    DURATION_SELECTION,
    FINAL_ACK,
    HALFWAY_PROMPT,
    INTERVIEW,
    REVIEWING,
    STARTED_PHASES,
    SUMMARY_MESSAGE,
    THEME_SELECTION,
    TRANSITION_FALLBACK,
    is_confirmation,
    is_preview_conversation,
    is_terminal_option,
    parse_duration_choice,
)

logger = logging.getLogger(__name__)

INTERVIEW_TEMPERATURE = 0.8
INTERVIEW_MAX_TOKENS = 180
TRANSITION_MAX_TOKENS = 100
TRAILING_CONTENT_MIN_CHARS = 3
PREVIEW_RATE_MESSAGE = "Too many requests. Please wait a moment and try again."


@dataclass
class CallerContext:
    """Transport-level facts about the caller."""

    authorization: Optional[str] = None
    client_ip: Optional[str] = None


@dataclass
class TurnContext:
    req: ChatReq
    conversation_id: str
    session: ConversationSession
    themes: List[Theme]
    survey_type: SurveyType
    pacing: Pacing
    policy: CompletionPolicy
    preview: bool
    user_id: Optional[str] = None
    content: str = ""
    scheduler: Optional[TaskScheduler] = None

    @property
    def phase(self) -> Optional[str]:
        return self.session.phase


def _bearer_token(header: Optional[str]) -> Optional[str]:
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class PhaseRouter:
    """Top-level dispatcher: one participant turn in, one reply out."""

    def __init__(
        self,
        store: ConversationStore,
        limits: Optional[RateLimits] = None,
        *,
        enrichment: Optional[EnrichmentPipeline] = None,
        cfg: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.store = store
        self.cfg = cfg or default_settings
        self.limits = limits or RateLimits.from_settings(self.cfg)
        self.enrichment = enrichment or EnrichmentPipeline(store)
        self.rng = rng or random.Random()

    # ------------------------------------------------------------------ entry

    def handle(self, req: ChatReq, caller: CallerContext, scheduler: TaskScheduler) -> ChatResp:
        cid = req.conversationId
        intro = is_introduction_trigger(req.messages)
        if intro:
            if not cid:
                raise InvalidInput("Invalid or missing conversationId", reason="invalid conversationId")
            content = ""
        else:
            content = validate_input(
                cid, req.messages, last_content(req.messages), max_length=self.cfg.MAX_MESSAGE_LENGTH
            )

        stored = self.store.get_session(cid)
        preview = is_preview_conversation(cid, req.testMode, stored.owner_kind if stored else None)
        if preview:
            self._check_rate(cid, preview_key(caller.client_ip, cid), preview=True)
            session = stored or self._preview_session(cid)
            user_id = None
        else:
            session, user_id, rate_key = self._authorize(stored, caller)
            self._check_rate(cid, rate_key, preview=False)

        ctx = self._context(req, session, preview=preview, user_id=user_id, content=content)
        ctx.scheduler = scheduler
        if intro:
            return self._introduction(ctx)
        return self._dispatch(ctx)

    # ------------------------------------------------------------ entitlement

    def _authorize(
        self, session: Optional[ConversationSession], caller: CallerContext
    ) -> Tuple[ConversationSession, Optional[str], str]:
        if session is None:
            # absent and not-yours are indistinguishable to the caller
            raise Unauthorized("Unauthorized", reason="conversation not found")
        if session.public_link_id:
            return session, None, session.id
        token = _bearer_token(caller.authorization)
        if token is None:
            raise Unauthorized("Unauthorized", reason="missing authorization header")
        user_id = self.store.user_for_token(token)
        if user_id is None:
            raise Unauthorized("Unauthorized", reason="invalid token")
        if session.employee_id != user_id:
            raise Unauthorized("Unauthorized", reason="conversation owned by another participant")
        return session, user_id, user_id

    def _check_rate(self, cid: str, key: str, *, preview: bool) -> None:
        limiter = self.limits.preview if preview else self.limits.participant
        if not limiter.check(key):
            log_event("rate_limited", cid, level=logging.WARNING, status="preview" if preview else "participant")
            if preview:
                raise RateLimited(PREVIEW_RATE_MESSAGE)
            raise RateLimited()

    def _preview_session(self, cid: str) -> ConversationSession:
        session = self.store.get_session(cid)
        if session is None:
            self.store.create_session(ConversationSession(id=cid, owner_kind="preview"))
            session = self.store.get_session(cid) or ConversationSession(id=cid, owner_kind="preview")
        return session

    def _context(
        self,
        req: ChatReq,
        session: ConversationSession,
        *,
        preview: bool,
        user_id: Optional[str],
        content: str,
    ) -> TurnContext:
        survey = self.store.get_survey(session.survey_id) if session.survey_id else None
        if survey is not None:
            themes = self.store.themes_for_survey(survey.id)
            survey_type: SurveyType = survey.survey_type
            pacing: Pacing = self.cfg.PREVIEW_PACING if preview else survey.pacing
        else:
            themes = self.store.themes_by_ids(req.themes or []) if preview else []
            survey_type = themes[0].survey_type if themes else "employee_satisfaction"
            pacing = self.cfg.PREVIEW_PACING if preview else "coverage"

        policy: CompletionPolicy
        if pacing == "duration":
            policy = DurationPolicy(duration_target(session.selected_duration, self.cfg.DEFAULT_DURATION))
        else:
            policy = CoveragePolicy()
        return TurnContext(
            req=req,
            conversation_id=session.id,
            session=session,
            themes=themes,
            survey_type=survey_type,
            pacing=pacing,
            policy=policy,
            preview=preview,
            user_id=user_id,
            content=content,
        )

    # --------------------------------------------------------------- dispatch

    def _dispatch(self, ctx: TurnContext) -> ChatResp:
        req = ctx.req
        phase = ctx.phase
        if phase == COMPLETE:
            raise InvalidInput("This conversation has already been completed", reason="conversation complete")

        if ctx.pacing == "duration" and phase in (None, DURATION_SELECTION):
            # free text is only read as a duration once the question has been asked
            minutes = req.selectedDuration or (
                parse_duration_choice(ctx.content) if phase == DURATION_SELECTION else None
            )
            if minutes is not None:
                return self._select_duration(ctx, minutes)
            if phase == DURATION_SELECTION:
                self._route(ctx, "reprompt_duration", DURATION_SELECTION)
                return ChatResp(message=DURATION_PROMPT, phase=DURATION_SELECTION)

        if phase == THEME_SELECTION and req.selectedThemeId:
            return self._select_theme(ctx, req.selectedThemeId)

        if req.isCompletionConfirmation:
            return self._confirm_completion(ctx)

        if phase == REVIEWING:
            if is_confirmation(ctx.content):
                return self._confirm_completion(ctx)
            self._route(ctx, "resume_interview", INTERVIEW)
            self._set_phase(ctx, INTERVIEW)

        if req.finishEarly:
            return self._summarize(ctx, decision="finish_early")
        if req.isFinalResponse:
            self._persist_classified(ctx, ctx.content, FINAL_ACK)
            return self._summarize(ctx, decision="final_response")
        if is_terminal_option(ctx.content):
            return self._summarize(ctx, decision="terminal_option")

        return self._interview_turn(ctx)

    # ------------------------------------------------------------- handlers

    def _introduction(self, ctx: TurnContext) -> ChatResp:
        if ctx.phase in STARTED_PHASES or self.store.list_turns(ctx.conversation_id):
            raise InvalidInput("This conversation has already started", reason="introduction after start")

        if ctx.pacing == "duration":
            self._set_phase(ctx, DURATION_SELECTION)
            self._route(ctx, "introduction", DURATION_SELECTION)
            return ChatResp(message=DURATION_PROMPT, phase=DURATION_SELECTION)

        first = self._first_question(ctx)
        self._set_phase(ctx, INTERVIEW)
        self._route(ctx, "introduction", INTERVIEW)
        return ChatResp(
            message=warm_introduction(first, ctx.survey_type),
            phase=INTERVIEW,
            themeProgress=build_theme_progress([], ctx.themes),
        )

    def _select_duration(self, ctx: TurnContext, minutes: int) -> ChatResp:
        target = duration_target(minutes, self.cfg.DEFAULT_DURATION)
        self.store.update_session(ctx.conversation_id, selected_duration=target.minutes, phase=INTERVIEW)
        ctx.session = ctx.session.model_copy(update={"selected_duration": target.minutes, "phase": INTERVIEW})
        self._route(ctx, "duration_selected", INTERVIEW, minutes=target.minutes)
        return ChatResp(
            message=self._first_question(ctx),
            phase=INTERVIEW,
            targetExchanges=target.target_exchanges,
            halfwayPoint=target.halfway_point,
            themeProgress=build_theme_progress([], ctx.themes),
        )

    def _select_theme(self, ctx: TurnContext, theme_id: str) -> ChatResp:
        theme = next((t for t in ctx.themes if t.id == theme_id), None)
        if theme is None:
            raise InvalidInput("Unknown theme selection", reason="unknown theme id")

        raw = self._call_interviewer(
            ctx,
            [{"role": "system", "content": theme_transition_prompt(theme.name)}],
            max_tokens=TRANSITION_MAX_TOKENS,
            partial=TRANSITION_FALLBACK.format(name=theme.name),
        )
        parsed = parse_reply(raw)
        log_event("parse", ctx.conversation_id, strategy=parsed.strategy)

        self.store.update_session(ctx.conversation_id, selected_theme_id=theme.id, phase=INTERVIEW)
        self._route(ctx, "theme_selected", INTERVIEW, theme_id=theme.id)
        turns = self.store.list_turns(ctx.conversation_id)
        return ChatResp(
            message=limit_words(parsed.question),
            empathy=parsed.empathy,
            phase=INTERVIEW,
            themeProgress=build_theme_progress(turns, ctx.themes, current_id=theme.id),
        )

    def _confirm_completion(self, ctx: TurnContext) -> ChatResp:
        content = ctx.content
        if len(content) > TRAILING_CONTENT_MIN_CHARS and not is_confirmation(content):
            self._persist_classified(ctx, content, FINAL_ACK)
        turns = self.store.list_turns(ctx.conversation_id)
        summary = generate_summary([t.content for t in turns], ctx.survey_type)
        self._set_phase(ctx, COMPLETE)
        self._route(ctx, "confirm_completion", COMPLETE)
        return ChatResp(
            message=COMPLETE_MESSAGE,
            structuredSummary=summary,
            shouldComplete=True,
            isCompletionPrompt=True,
            phase=COMPLETE,
        )

    def _summarize(self, ctx: TurnContext, *, decision: str) -> ChatResp:
        turns = self.store.list_turns(ctx.conversation_id)
        summary = generate_summary([t.content for t in turns], ctx.survey_type)
        self._set_phase(ctx, REVIEWING)
        self._route(ctx, decision, REVIEWING)
        return self._review_reply(SUMMARY_MESSAGE, summary)

    def _interview_turn(self, ctx: TurnContext) -> ChatResp:
        turns = self.store.list_turns(ctx.conversation_id)
        turn_count = len(turns) + 1
        persisted_id: Optional[int] = None
        classification: Optional[FastClassification] = None

        if isinstance(ctx.policy, DurationPolicy):
            halfway = ctx.policy.target.halfway_point
            if turn_count == halfway and not ctx.session.selected_theme_id:
                classification = self._classify(ctx)
                persisted_id = self._persist(ctx, ctx.content, "", classification=classification)
                self._schedule(ctx, persisted_id, classification)
                remaining = undiscussed_themes(turns, ctx.themes, [classification.theme_id or ""])
                if remaining:
                    return self._offer_themes(ctx, turns, persisted_id, classification, remaining)
                # every theme already discussed: carry on, reusing the stored turn

        verdict = ctx.policy.evaluate(turn_count, exchange_counts(turns, ctx.themes))
        log_event("completion", ctx.conversation_id, verdict=verdict.reason, status=ctx.policy.pacing, turn_count=turn_count)
        if verdict.complete:
            return self._complete_by_policy(ctx, turns, persisted_id, classification)

        if isinstance(ctx.policy, DurationPolicy):
            context = duration_context(
                turns,
                ctx.themes,
                ctx.policy.target.target_exchanges,
                ctx.session.selected_theme_id,
                ctx.survey_type,
                current_content=ctx.content,
            )
        else:
            context = coverage_context(turns, ctx.themes, ctx.survey_type, current_content=ctx.content)
        system_prompt = build_system_prompt(ctx.survey_type, ctx.themes, context)
        raw = self._call_interviewer(ctx, interview_messages(system_prompt, self._transcript(ctx)))
        parsed = parse_reply(raw)
        log_event("parse", ctx.conversation_id, strategy=parsed.strategy)

        if persisted_id is not None:
            self._update_reply(ctx, persisted_id, parsed.question, parsed.empathy)
            new_turn_theme = classification.theme_id if classification else None
        else:
            persisted_id = self._persist(ctx, ctx.content, parsed.question, empathy=parsed.empathy)
            self._schedule(ctx, persisted_id, None)
            new_turn_theme = None

        if ctx.phase != INTERVIEW:
            self._set_phase(ctx, INTERVIEW)
        self._route(ctx, "interview_turn", INTERVIEW, turn_id=persisted_id)
        progress_turns = [*turns, self._shadow_turn(ctx, new_turn_theme)]
        return ChatResp(
            message=parsed.question,
            empathy=parsed.empathy,
            phase=INTERVIEW,
            themeProgress=build_theme_progress(progress_turns, ctx.themes),
        )

    def _offer_themes(
        self,
        ctx: TurnContext,
        turns: Sequence[Turn],
        turn_id: int,
        classification: FastClassification,
        remaining: Sequence[Theme],
    ) -> ChatResp:
        self._set_phase(ctx, THEME_SELECTION)
        self._route(ctx, "halfway_theme_selection", THEME_SELECTION, turn_id=turn_id)
        progress_turns = [*turns, self._shadow_turn(ctx, classification.theme_id)]
        return ChatResp(
            message=HALFWAY_PROMPT,
            phase=THEME_SELECTION,
            availableThemes=[AvailableTheme(id=t.id, name=t.name) for t in remaining],
            themeProgress=build_theme_progress(progress_turns, ctx.themes, current_id=classification.theme_id),
        )

    def _complete_by_policy(
        self,
        ctx: TurnContext,
        turns: Sequence[Turn],
        persisted_id: Optional[int],
        classification: Optional[FastClassification],
    ) -> ChatResp:
        if persisted_id is None:
            classification = self._classify(ctx)
            persisted_id = self._persist(ctx, ctx.content, COMPLETION_ACK, classification=classification)
            self._schedule(ctx, persisted_id, classification)
        else:
            self._update_reply(ctx, persisted_id, COMPLETION_ACK, None)
        theme_id = classification.theme_id if classification else None
        summary = generate_summary([*(t.content for t in turns), ctx.content], ctx.survey_type)
        self._set_phase(ctx, REVIEWING)
        self._route(ctx, "policy_complete", REVIEWING, turn_id=persisted_id)
        progress_turns = [*turns, self._shadow_turn(ctx, theme_id)]
        return self._review_reply(
            COMPLETION_ACK,
            summary,
            themeProgress=build_theme_progress(progress_turns, ctx.themes, current_id=theme_id),
        )

    # ---------------------------------------------------------------- helpers

    def _review_reply(self, message: str, summary: StructuredSummary, **extra: Any) -> ChatResp:
        return ChatResp(
            message=message,
            structuredSummary=summary,
            shouldComplete=False,
            isCompletionPrompt=True,
            phase=REVIEWING,
            **extra,
        )

    def _first_question(self, ctx: TurnContext) -> str:
        if ctx.req.initialMood is not None:
            return mood_adaptive_question(ctx.req.initialMood, ctx.survey_type)
        return select_first_question(ctx.themes, ctx.survey_type, self.rng)

    def _transcript(self, ctx: TurnContext) -> List[Dict[str, str]]:
        messages = [m.model_dump() for m in ctx.req.messages][-self.cfg.HISTORY_LIMIT :]
        if messages and messages[-1]["role"] == "user":
            messages[-1]["content"] = ctx.content
        return messages

    def _call_interviewer(
        self,
        ctx: TurnContext,
        messages: List[Dict[str, str]],
        *,
        max_tokens: int = INTERVIEW_MAX_TOKENS,
        partial: Optional[str] = None,
    ) -> str:
        llm = get_model(INTERVIEWER_KEY)
        try:
            return llm(messages=messages, temperature=INTERVIEW_TEMPERATURE, max_tokens=max_tokens)
        except LlmGatewayError as exc:
            log_event("model_error", ctx.conversation_id, level=logging.ERROR, step="interviewer", error=str(exc))
            raise UpstreamUnavailable(partial_message=partial, reason=str(exc)) from exc

    def _classify(self, ctx: TurnContext) -> FastClassification:
        try:
            return run_fast_classifiers(ctx.content, ctx.themes)
        except LlmGatewayError as exc:
            log_event("model_error", ctx.conversation_id, level=logging.ERROR, step="classifier", error=str(exc))
            raise UpstreamUnavailable(reason=str(exc)) from exc

    def _persist(
        self,
        ctx: TurnContext,
        content: str,
        ai_response: str,
        *,
        empathy: Optional[str] = None,
        classification: Optional[FastClassification] = None,
    ) -> int:
        turn = Turn(
            conversation_id=ctx.conversation_id,
            survey_id=ctx.session.survey_id,
            content=content,
            ai_response=ai_response,
            empathy=empathy,
        )
        if classification is not None:
            if classification.sentiment is not None:
                turn.sentiment = classification.sentiment.sentiment
                turn.sentiment_score = classification.sentiment.score
            turn.theme_id = classification.theme_id
            turn.urgency_escalated = bool(classification.urgent)
        try:
            return self.store.insert_turn(turn)
        except sqlite3.Error as exc:
            logger.exception("failed to save turn for %s", ctx.conversation_id)
            raise PersistenceFailure(ai_message=ai_response or None, reason=str(exc)) from exc

    def _persist_classified(self, ctx: TurnContext, content: str, ai_response: str) -> Optional[int]:
        if not content:
            return None
        classification = self._classify(ctx)
        turn_id = self._persist(ctx, content, ai_response, classification=classification)
        self._schedule(ctx, turn_id, classification)
        return turn_id

    def _update_reply(self, ctx: TurnContext, turn_id: int, question: str, empathy: Optional[str]) -> None:
        try:
            self.store.update_turn(turn_id, ai_response=question, empathy=empathy)
        except sqlite3.Error as exc:
            logger.exception("failed to update turn %s", turn_id)
            raise PersistenceFailure(ai_message=question, reason=str(exc)) from exc

    def _shadow_turn(self, ctx: TurnContext, theme_id: Optional[str]) -> Turn:
        return Turn(conversation_id=ctx.conversation_id, content=ctx.content, theme_id=theme_id)

    def _schedule(self, ctx: TurnContext, turn_id: int, classification: Optional[FastClassification]) -> None:
        job = EnrichmentJob(
            turn_id=turn_id,
            conversation_id=ctx.conversation_id,
            survey_id=ctx.session.survey_id,
            content=ctx.content,
            themes=ctx.themes,
            survey_type=ctx.survey_type,
            user_id=ctx.user_id,
            classified=classification,
        )
        if ctx.scheduler is None:
            logger.warning("no scheduler for %s; turn %s left unenriched", ctx.conversation_id, turn_id)
            return
        ctx.scheduler.schedule(self.enrichment.run, job)

    def _set_phase(self, ctx: TurnContext, phase: str) -> None:
        self.store.update_session(ctx.conversation_id, phase=phase)
        ctx.session = ctx.session.model_copy(update={"phase": phase})

    def _route(self, ctx: TurnContext, decision: str, phase: str, **fields: Any) -> None:
        log_event("route", ctx.conversation_id, decision=decision, phase=phase, **fields)


__all__ = ["CallerContext", "PhaseRouter", "TurnContext"]
