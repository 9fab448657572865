from fastapi import APIRouter, Request

from interview_runtime.api.dependencies import get_service
from interview_runtime.auth import get_user_id_async
from interview_runtime.schemas import ScoreEntryResponse, ScoreUpsertRequest

router = APIRouter(prefix="/api/scores")


@router.post("", response_model=ScoreEntryResponse)
async def upsert_score(req: ScoreUpsertRequest, request: Request):
    user_id = await get_user_id_async(request)
    entry = await get_service(request).upsert_score(
        req.session_id,
        user_id,
        req.question_id,
        req.score,
        notes=req.notes,
    )
    return ScoreEntryResponse(**entry.to_dict())


@router.get("/interview/{session_id}", response_model=list[ScoreEntryResponse])
async def list_scores(session_id: str, request: Request):
    user_id = await get_user_id_async(request)
    entries = await get_service(request).list_scores(session_id, user_id)
    return [ScoreEntryResponse(**entry.to_dict()) for entry in entries]
