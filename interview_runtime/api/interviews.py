from fastapi import APIRouter, Request
from fastapi.responses import Response

from interview_runtime.api.dependencies import (
    get_registry,
    get_service,
    refresh_live_metrics,
    release_live_interview,
)
from interview_runtime.auth import get_user_id_async
from interview_runtime.exports import (
    build_export_bundle,
    export_filename,
    render_csv,
    render_json,
    results_payload,
)
from interview_runtime.schemas import (
    AggregateResultResponse,
    CreateSessionRequest,
    SessionResponse,
    UpdateSessionRequest,
)

router = APIRouter(prefix="/api/interviews")


def _session_response(session) -> SessionResponse:
    return SessionResponse(**session.to_dict())


@router.post("", status_code=201, response_model=SessionResponse)
async def create_interview(req: CreateSessionRequest, request: Request):
    user_id = await get_user_id_async(request)
    session = await get_service(request).create_session(
        owner_id=user_id,
        candidate_label=req.candidate_label,
        section_plan=[item.model_dump() for item in req.section_plan],
        question_selection=[item.model_dump() for item in req.question_selection],
    )
    return _session_response(session)


@router.get("")
async def list_interviews(request: Request):
    user_id = await get_user_id_async(request)
    sessions = await get_service(request).list_sessions(user_id)
    return {"items": [_session_response(session) for session in sessions]}


@router.get("/{session_id}", response_model=SessionResponse)
async def get_interview(session_id: str, request: Request):
    user_id = await get_user_id_async(request)
    return _session_response(await get_service(request).get_session(session_id, user_id))


@router.put("/{session_id}", response_model=SessionResponse)
async def update_interview(session_id: str, req: UpdateSessionRequest, request: Request):
    user_id = await get_user_id_async(request)
    session = await get_service(request).update_session(
        session_id,
        user_id,
        candidate_label=req.candidate_label,
        section_plan=[item.model_dump() for item in req.section_plan] if req.section_plan is not None else None,
        question_selection=[item.model_dump() for item in req.question_selection] if req.question_selection is not None else None,
    )
    return _session_response(session)


@router.delete("/{session_id}", status_code=204)
async def delete_interview(session_id: str, request: Request):
    user_id = await get_user_id_async(request)
    service = get_service(request)
    await service.get_session(session_id, user_id)
    await release_live_interview(request, session_id, flush=False)
    await service.delete_session(session_id, user_id)
    return Response(status_code=204)


@router.post("/{session_id}/start", response_model=SessionResponse)
async def start_interview(session_id: str, request: Request):
    user_id = await get_user_id_async(request)
    return _session_response(await get_service(request).begin(session_id, user_id))


@router.post("/{session_id}/complete", response_model=SessionResponse)
async def complete_interview(session_id: str, request: Request):
    user_id = await get_user_id_async(request)
    service = get_service(request)
    registry = get_registry(request)
    item = registry.get(session_id)
    if item and str(item.get("owner_id") or "") == user_id and not item["live_interview"].finished:
        # buffered live scores must land before the session turns terminal
        await item["live_interview"].end_early()
        registry.mark_inactive(session_id)
        refresh_live_metrics(registry)
        return _session_response(await service.get_session(session_id, user_id))
    return _session_response(await service.finish(session_id, user_id))


@router.post("/{session_id}/cancel", response_model=SessionResponse)
async def cancel_interview(session_id: str, request: Request):
    user_id = await get_user_id_async(request)
    service = get_service(request)
    await service.get_session(session_id, user_id)
    await release_live_interview(request, session_id, flush=True)
    return _session_response(await service.cancel(session_id, user_id))


@router.get("/{session_id}/aggregate", response_model=AggregateResultResponse)
async def get_aggregate(session_id: str, request: Request):
    user_id = await get_user_id_async(request)
    aggregate = await get_service(request).get_aggregate(session_id, user_id)
    return AggregateResultResponse(**aggregate.to_dict())


@router.get("/{session_id}/results")
async def get_results(session_id: str, request: Request):
    user_id = await get_user_id_async(request)
    service = get_service(request)
    bundle = await build_export_bundle(service, session_id, user_id)
    return results_payload(bundle, service.question_bank)


@router.get("/{session_id}/export")
async def export_interview(session_id: str, request: Request, format: str = "json"):
    user_id = await get_user_id_async(request)
    service = get_service(request)
    bundle = await build_export_bundle(service, session_id, user_id)

    normalized = str(format or "json").strip().lower()
    if normalized == "csv":
        return Response(
            content=render_csv(bundle, service.question_bank),
            media_type="text/csv",
            headers={
                "Content-Disposition": f'attachment; filename="{export_filename(bundle.session.candidate_label, "csv")}"',
            },
        )
    return render_json(bundle, service.question_bank)
