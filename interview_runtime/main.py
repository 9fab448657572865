from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import asyncio
import logging
import os

from interview_runtime.api.dependencies import refresh_live_metrics
from interview_runtime.api.interviews import router as interviews_router
from interview_runtime.api.live import router as live_router
from interview_runtime.api.scores import router as scores_router
from interview_runtime.auth import get_user_id_async
from interview_runtime.core.config import (
    AUTOSAVE_INTERVAL_SEC,
    ENVIRONMENT,
    LIVE_SESSION_CLEANUP_INTERVAL_SEC,
    LIVE_SESSION_TTL_SEC,
)
from interview_runtime.core.logger import log_event
from interview_runtime.errors import InterviewRuntimeError
from interview_runtime.question_bank import build_question_bank
from interview_runtime.session.registry import LiveSessionRegistry, live_session_registry
from interview_runtime.session.service import InterviewService
from interview_runtime.session.store import build_session_store
from interview_runtime.system_metrics import get_metrics_snapshot, increment_metric

logger = logging.getLogger("interview_runtime.main")


def _get_allowed_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if not raw:
        return [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
    return [item.strip() for item in raw.split(",") if item.strip()]


async def evict_idle_live_sessions(registry: LiveSessionRegistry, ttl_sec: float) -> int:
    evicted = 0
    for session_id in registry.idle_active(ttl_sec):
        item = registry.pop(session_id)
        if not item:
            continue
        saved = await item["live_interview"].close()
        log_event("registry", "live_session_evicted", session_id, saved=saved)
        increment_metric("live_sessions_evicted")
        evicted += 1
    evicted += registry.cleanup_inactive(ttl_sec)
    refresh_live_metrics(registry)
    return evicted


def create_app(
    service: InterviewService | None = None,
    registry: LiveSessionRegistry | None = None,
    autosave_interval_sec: float = AUTOSAVE_INTERVAL_SEC,
) -> FastAPI:
    app = FastAPI(title="Interview Session Runtime")
    app.state.interview_service = service or InterviewService(build_session_store(), build_question_bank())
    app.state.live_registry = registry or live_session_registry
    app.state.autosave_interval_sec = autosave_interval_sec
    app.state.cleanup_task = None

    allowed_origins = _get_allowed_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=False,
    )

    @app.exception_handler(InterviewRuntimeError)
    async def runtime_error_handler(request: Request, exc: InterviewRuntimeError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "error": exc.__class__.__name__},
        )

    @app.on_event("startup")
    async def startup_banner():
        logger.info("[SYSTEM] env=%s CORS allow_origins=%s", ENVIRONMENT, allowed_origins)
        logger.info("[SYSTEM] autosave interval_sec=%s", app.state.autosave_interval_sec)

        async def _live_cleanup_loop():
            while True:
                await asyncio.sleep(LIVE_SESSION_CLEANUP_INTERVAL_SEC)
                removed = await evict_idle_live_sessions(app.state.live_registry, LIVE_SESSION_TTL_SEC)
                if removed > 0:
                    logger.info("[SYSTEM] cleaned live sessions=%s", removed)

        app.state.cleanup_task = asyncio.create_task(_live_cleanup_loop())

    @app.on_event("shutdown")
    async def shutdown_handler():
        task = app.state.cleanup_task
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            finally:
                app.state.cleanup_task = None

        registry = app.state.live_registry
        for session_id in registry.session_ids():
            item = registry.pop(session_id)
            if item:
                await item["live_interview"].close()
        logger.info("[SYSTEM] shutdown complete")

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok", "service": "interview-runtime"}

    @app.get("/api/system/metrics")
    async def system_metrics_route(request: Request):
        await get_user_id_async(request)
        return get_metrics_snapshot(extra={
            "autosave_interval_sec": app.state.autosave_interval_sec,
        })

    app.include_router(interviews_router)
    app.include_router(scores_router)
    app.include_router(live_router)
    return app


app = create_app()
