from fastapi import APIRouter, Request

from interview_runtime.api.dependencies import (
    get_live_interview,
    get_registry,
    get_service,
    refresh_live_metrics,
    release_live_interview,
)
from interview_runtime.auth import get_user_id_async
from interview_runtime.core.config import AUTOSAVE_INTERVAL_SEC
from interview_runtime.live.runtime import LiveInterview
from interview_runtime.schemas import LiveQuestionUpdate, SelectQuestionRequest

router = APIRouter(prefix="/api/interviews/{session_id}/live")


@router.post("")
async def open_live_interview(session_id: str, request: Request):
    user_id = await get_user_id_async(request)
    registry = get_registry(request)
    item = registry.get(session_id)
    if item and item.get("active"):
        return get_live_interview(request, session_id, user_id).snapshot()

    interval_sec = float(getattr(request.app.state, "autosave_interval_sec", AUTOSAVE_INTERVAL_SEC))
    live = await LiveInterview.open(get_service(request), session_id, user_id, interval_sec=interval_sec)
    registry.register(session_id, live, owner_id=user_id)
    refresh_live_metrics(registry)
    return live.snapshot()


@router.get("")
async def get_live_snapshot(session_id: str, request: Request):
    user_id = await get_user_id_async(request)
    return get_live_interview(request, session_id, user_id).snapshot()


@router.put("/questions/{question_id}")
async def update_live_question(session_id: str, question_id: str, req: LiveQuestionUpdate, request: Request):
    user_id = await get_user_id_async(request)
    live = get_live_interview(request, session_id, user_id)
    if req.score is not None:
        live.set_score(question_id, req.score)
    if req.notes is not None:
        live.set_notes(question_id, req.notes)
    return live.snapshot()


@router.post("/select")
async def select_live_question(session_id: str, req: SelectQuestionRequest, request: Request):
    user_id = await get_user_id_async(request)
    live = get_live_interview(request, session_id, user_id)
    live.select_question(req.index)
    return live.snapshot()


@router.post("/advance")
async def advance_live_section(session_id: str, request: Request):
    user_id = await get_user_id_async(request)
    live = get_live_interview(request, session_id, user_id)
    await live.advance_section()
    if live.finished:
        registry = get_registry(request)
        registry.mark_inactive(session_id)
        refresh_live_metrics(registry)
    return live.snapshot()


@router.post("/end")
async def end_live_interview(session_id: str, request: Request):
    user_id = await get_user_id_async(request)
    live = get_live_interview(request, session_id, user_id)
    await live.end_early()
    registry = get_registry(request)
    registry.mark_inactive(session_id)
    refresh_live_metrics(registry)
    return live.snapshot()


@router.delete("")
async def close_live_interview(session_id: str, request: Request):
    user_id = await get_user_id_async(request)
    get_live_interview(request, session_id, user_id)
    saved = await release_live_interview(request, session_id, flush=True)
    return {"session_id": session_id, "closed": True, "saved": saved}
