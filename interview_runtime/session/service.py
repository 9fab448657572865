from __future__ import annotations

import time
import uuid
from typing import Any, Callable, Iterable

from interview_runtime.core.logger import log_event
from interview_runtime.core.state import SessionStatus
from interview_runtime.errors import InvalidState, NotFound
from interview_runtime.models import (
    AggregateResult,
    QuestionSelectionItem,
    ScoreEntry,
    SectionPlanItem,
    Session,
    validate_score,
)
from interview_runtime.question_bank import QuestionBank
from interview_runtime.scoring import compute_aggregate, scores_by_question
from interview_runtime.session import lifecycle
from interview_runtime.session.store import SessionStore
from interview_runtime.system_metrics import increment_metric


def _field(item: Any, name: str, default: Any = None) -> Any:
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


class InterviewService:
    """
    Owns every durable mutation of an interview session.

    Each operation loads the session, asks the lifecycle gate whether the
    caller may do this now, then writes through the store.
    """

    def __init__(self, store: SessionStore, question_bank: QuestionBank, clock: Callable[[], float] = time.time):
        self.store = store
        self.question_bank = question_bank
        self.clock = clock

    def section_of(self, question_id: str) -> str | None:
        return self.question_bank.section_of(question_id)

    # -------------------------
    # PLAN / SELECTION
    # -------------------------

    def _build_plan(self, items: Iterable[Any]) -> list[SectionPlanItem]:
        plan: list[SectionPlanItem] = []
        seen: set[str] = set()
        for idx, item in enumerate(list(items or []), start=1):
            section_id = str(_field(item, "section_id") or "").strip()
            section = self.question_bank.section(section_id)
            if section is None:
                raise NotFound(f"Section {section_id!r} not found")
            if section_id in seen:
                raise InvalidState(f"Section {section_id!r} appears more than once in the plan")
            seen.add(section_id)

            minutes = int(_field(item, "allocated_minutes") or 0)
            if minutes <= 0:
                minutes = section.default_duration_minutes
            plan.append(SectionPlanItem(section_id=section_id, allocated_minutes=minutes, order=idx))
        return plan

    def _build_selection(self, items: Iterable[Any]) -> list[QuestionSelectionItem]:
        selection: list[QuestionSelectionItem] = []
        seen: set[str] = set()
        for idx, item in enumerate(list(items or []), start=1):
            question_id = str(_field(item, "question_id") or "").strip()
            if self.question_bank.question(question_id) is None:
                raise NotFound(f"Question {question_id!r} not found")
            if question_id in seen:
                continue
            seen.add(question_id)
            order = _field(item, "order")
            selection.append(QuestionSelectionItem(question_id=question_id, order=int(order if order is not None else idx)))
        return selection

    # -------------------------
    # SESSIONS
    # -------------------------

    async def create_session(
        self,
        owner_id: str,
        candidate_label: str,
        section_plan: Iterable[Any],
        question_selection: Iterable[Any],
    ) -> Session:
        now_ts = self.clock()
        session = Session(
            id=str(uuid.uuid4()),
            owner_id=str(owner_id),
            candidate_label=str(candidate_label or "").strip(),
            status=SessionStatus.DRAFT,
            section_plan=self._build_plan(section_plan),
            question_selection=self._build_selection(question_selection),
            created_at=now_ts,
            updated_at=now_ts,
        )
        created = await self.store.create_session(session)
        log_event(
            "service",
            "session_created",
            created.id,
            sections=len(created.section_plan),
            questions=len(created.question_selection),
        )
        return created

    async def get_session(self, session_id: str, caller_id: str) -> Session:
        session = await self.store.get_session(session_id)
        if session is None:
            raise NotFound("Interview not found")
        lifecycle.ensure_owner(session, caller_id)
        return session

    async def list_sessions(self, owner_id: str) -> list[Session]:
        return await self.store.list_sessions(owner_id)

    async def update_session(
        self,
        session_id: str,
        caller_id: str,
        candidate_label: str | None = None,
        section_plan: Iterable[Any] | None = None,
        question_selection: Iterable[Any] | None = None,
    ) -> Session:
        session = await self.get_session(session_id, caller_id)
        lifecycle.ensure_editable(session, caller_id)

        if candidate_label:
            session.candidate_label = str(candidate_label).strip()
        if section_plan is not None:
            session.section_plan = self._build_plan(section_plan)
        if question_selection is not None:
            session.question_selection = self._build_selection(question_selection)
        session.updated_at = self.clock()
        return await self.store.save_session(session)

    async def delete_session(self, session_id: str, caller_id: str) -> None:
        await self.get_session(session_id, caller_id)
        await self.store.delete_session(session_id)
        log_event("service", "session_deleted", session_id)

    async def begin(self, session_id: str, caller_id: str) -> Session:
        session = await self.get_session(session_id, caller_id)
        if session.status == SessionStatus.DRAFT and not session.section_plan:
            # the plan freezes on begin; an empty one could never be run
            raise InvalidState("Interview has no sections to run")
        lifecycle.begin(session, caller_id, now=self.clock())
        return await self.store.save_session(session)

    async def finish(self, session_id: str, caller_id: str) -> Session:
        session = await self.get_session(session_id, caller_id)
        lifecycle.finish(session, caller_id, now=self.clock())
        saved = await self.store.save_session(session)
        increment_metric("sessions_finished")
        return saved

    async def cancel(self, session_id: str, caller_id: str) -> Session:
        session = await self.get_session(session_id, caller_id)
        lifecycle.cancel(session, caller_id, now=self.clock())
        saved = await self.store.save_session(session)
        increment_metric("sessions_cancelled")
        return saved

    # -------------------------
    # SCORES
    # -------------------------

    async def upsert_score(
        self,
        session_id: str,
        caller_id: str,
        question_id: str,
        score: Any,
        notes: str | None = None,
    ) -> ScoreEntry:
        session = await self.get_session(session_id, caller_id)
        validate_score(score)
        if not session.has_question(question_id):
            raise NotFound(f"Question {question_id!r} is not part of this interview")
        lifecycle.ensure_scorable(session, caller_id)

        entry = await self.store.upsert_score(
            session_id=session.id,
            question_id=question_id,
            score=score,
            notes=notes,
            updated_at=self.clock(),
        )
        increment_metric("scores_upserted")
        return entry

    async def list_scores(self, session_id: str, caller_id: str) -> list[ScoreEntry]:
        await self.get_session(session_id, caller_id)
        return await self.store.list_scores(session_id)

    async def get_aggregate(self, session_id: str, caller_id: str) -> AggregateResult:
        session = await self.get_session(session_id, caller_id)
        entries = await self.store.list_scores(session_id)
        return compute_aggregate(
            session.section_plan,
            session.question_selection,
            scores_by_question(entries),
            self.section_of,
        )
