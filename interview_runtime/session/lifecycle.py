from __future__ import annotations

import time

from interview_runtime.core.logger import log_event
from interview_runtime.core.state import SessionStatus
from interview_runtime.errors import InvalidState, InvalidTransition, Unauthorized
from interview_runtime.models import Session

# action -> statuses it may start from
_ALLOWED_FROM = {
    "begin": frozenset({SessionStatus.DRAFT}),
    "finish": frozenset({SessionStatus.RUNNING}),
    "cancel": frozenset({SessionStatus.DRAFT, SessionStatus.RUNNING}),
}

_TARGET = {
    "begin": SessionStatus.RUNNING,
    "finish": SessionStatus.FINISHED,
    "cancel": SessionStatus.CANCELLED,
}


def ensure_owner(session: Session, caller_id: str) -> None:
    if not caller_id or str(session.owner_id) != str(caller_id):
        raise Unauthorized("Caller does not own this interview session")


def ensure_editable(session: Session, caller_id: str) -> None:
    ensure_owner(session, caller_id)
    if session.status != SessionStatus.DRAFT:
        raise InvalidState(f"Can only edit interviews in {SessionStatus.DRAFT.value} status")


def ensure_scorable(session: Session, caller_id: str) -> None:
    ensure_owner(session, caller_id)
    if session.status != SessionStatus.RUNNING:
        raise InvalidState(f"Can only score interviews in {SessionStatus.RUNNING.value} status")


def _transition(action: str, session: Session, caller_id: str, now: float | None) -> Session:
    ensure_owner(session, caller_id)
    if session.status not in _ALLOWED_FROM[action]:
        raise InvalidTransition(f"Cannot {action} an interview in {session.status.value} status")

    previous = session.status
    now_ts = float(now if now is not None else time.time())
    session.status = _TARGET[action]
    session.updated_at = now_ts
    if action == "begin":
        session.started_at = now_ts
    elif action == "finish":
        session.finished_at = now_ts

    log_event(
        "lifecycle",
        action,
        session.id,
        from_status=previous.value,
        to_status=session.status.value,
    )
    return session


def begin(session: Session, caller_id: str, now: float | None = None) -> Session:
    return _transition("begin", session, caller_id, now)


def finish(session: Session, caller_id: str, now: float | None = None) -> Session:
    return _transition("finish", session, caller_id, now)


def cancel(session: Session, caller_id: str, now: float | None = None) -> Session:
    return _transition("cancel", session, caller_id, now)
