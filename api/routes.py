"""FastAPI routes for interview chat turns."""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from api.schemas import ChatReq, ChatResp
from orchestrator.errors import GENERIC_CLIENT_MESSAGE, InterviewError, InvalidInput
from orchestrator.router import CallerContext, PhaseRouter
from services.tasks import BackgroundTasksScheduler
from storage.store import SqliteStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

_phase_router: Optional[PhaseRouter] = None


def get_phase_router() -> PhaseRouter:
    global _phase_router
    if _phase_router is None:
        _phase_router = PhaseRouter(SqliteStore())
    return _phase_router


def reset_phase_router() -> None:
    """Drop the cached router (and its rate-limit buckets)."""
    global _phase_router
    _phase_router = None


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else None


def _error_response(exc: InterviewError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@router.post("/chat", response_model=ChatResp, response_model_exclude_none=True)
def chat(
    request: Request,
    background_tasks: BackgroundTasks,
    payload: Any = Body(default=None),
    phase_router: PhaseRouter = Depends(get_phase_router),
) -> Any:
    try:
        req = ChatReq.model_validate(payload)
    except ValidationError as exc:
        invalid = InvalidInput("Invalid request body", reason=str(exc))
        return _error_response(invalid)

    caller = CallerContext(
        authorization=request.headers.get("authorization"),
        client_ip=_client_ip(request),
    )
    try:
        return phase_router.handle(req, caller, BackgroundTasksScheduler(background_tasks))
    except InterviewError as exc:
        if exc.status_code >= 500:
            logger.error("chat turn failed for %s: %s", req.conversationId, exc.reason)
        return _error_response(exc)
    except Exception:  # noqa: BLE001
        logger.exception("unhandled error for %s", req.conversationId)
        return JSONResponse(status_code=500, content={"error": GENERIC_CLIENT_MESSAGE})
