from __future__ import annotations  # FastAPI server exposing the interview chat endpoint

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router as chat_router
from config.registry import MODEL_KEYS, is_bound
from config.settings import Settings, settings
from llm_gateway import bind_default_models
from storage.migrate import migrate


logger = logging.getLogger(__name__)


def create_app(cfg: Optional[Settings] = None, *, bind_models: bool = True) -> FastAPI:
    """Build the app; the schema is migrated and gateway models bound on startup."""

    cfg = cfg or settings

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        migrate(cfg.DB_PATH)
        if bind_models and not all(is_bound(key) for key in MODEL_KEYS):
            bind_default_models(cfg)
            logger.info("bound gateway models interviewer=%s classifier=%s", cfg.INTERVIEW_MODEL, cfg.CLASSIFIER_MODEL)
        yield

    application = FastAPI(title="Adaptive Interview API", lifespan=lifespan)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.include_router(chat_router)

    @application.get("/healthz")
    def healthz() -> dict:
        return {"status": "ok"}

    return application


app = create_app()


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
