from fastapi import Request

from interview_runtime.errors import NotFound, Unauthorized
from interview_runtime.live.runtime import LiveInterview
from interview_runtime.session.registry import LiveSessionRegistry
from interview_runtime.session.service import InterviewService
from interview_runtime.system_metrics import set_metric


def get_service(request: Request) -> InterviewService:
    return request.app.state.interview_service


def get_registry(request: Request) -> LiveSessionRegistry:
    return request.app.state.live_registry


def refresh_live_metrics(registry: LiveSessionRegistry) -> None:
    set_metric("live_sessions_active", float(registry.count_active()))


def get_live_interview(request: Request, session_id: str, user_id: str) -> LiveInterview:
    registry = get_registry(request)
    item = registry.get(session_id)
    if not item:
        raise NotFound("Live interview is not open")
    if str(item.get("owner_id") or "") != str(user_id):
        raise Unauthorized("Caller does not own this interview session")
    registry.touch(session_id)
    return item["live_interview"]


async def release_live_interview(request: Request, session_id: str, flush: bool = True) -> bool:
    """Stop and forget the live runtime of a session, if one is open."""
    registry = get_registry(request)
    item = registry.pop(session_id)
    refresh_live_metrics(registry)
    if not item:
        return True
    live: LiveInterview = item["live_interview"]
    if flush:
        return await live.close()
    await live.coordinator.stop(final_flush=False)
    return True
