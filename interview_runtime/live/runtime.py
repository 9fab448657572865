from __future__ import annotations

import logging
import time
from typing import Any, Callable

from interview_runtime.core.config import AUTOSAVE_INTERVAL_SEC
from interview_runtime.core.logger import log_event
from interview_runtime.core.state import SessionStatus
from interview_runtime.errors import InvalidState
from interview_runtime.live.autosave import AutosaveCoordinator, PendingScore
from interview_runtime.live.cursor import PlannedSection, ScoringCursor
from interview_runtime.live.timer import SectionTimer, format_elapsed
from interview_runtime.models import ScoreEntry, Session
from interview_runtime.scoring import compute_aggregate, runnable_questions
from interview_runtime.session.service import InterviewService


class LiveInterview:
    """
    Everything one interviewer needs while a session is running: the cursor
    and its buffer, the section timer and the autosave coordinator, wired
    against the durable service.
    """

    def __init__(
        self,
        service: InterviewService,
        session: Session,
        caller_id: str,
        entries: list[ScoreEntry],
        clock: Callable[[], float] = time.time,
        interval_sec: float = AUTOSAVE_INTERVAL_SEC,
        anchor_at: float | None = None,
    ):
        self.service = service
        self.session = session
        self.caller_id = caller_id
        self._clock = clock

        sections = [
            PlannedSection(plan_item=plan_item, question_ids=tuple(question_ids))
            for plan_item, question_ids in runnable_questions(
                session.section_plan,
                session.question_selection,
                service.section_of,
            )
        ]
        self.timer = SectionTimer(allocated_minutes=0, clock=clock)
        self.coordinator = AutosaveCoordinator(
            session_id=session.id,
            snapshot=self._pending_scores,
            write=self._write_score,
            interval_sec=interval_sec,
            clock=clock,
        )
        self.cursor = ScoringCursor(
            sections=sections,
            timer=self.timer,
            flush=self.coordinator.flush,
            finish=self._finish,
            entries=entries,
            anchor_at=anchor_at,
        )

    @classmethod
    async def open(
        cls,
        service: InterviewService,
        session_id: str,
        caller_id: str,
        clock: Callable[[], float] | None = None,
        interval_sec: float = AUTOSAVE_INTERVAL_SEC,
        autostart: bool = True,
    ) -> "LiveInterview":
        session = await service.get_session(session_id, caller_id)
        anchor_at = None
        if session.status == SessionStatus.DRAFT:
            session = await service.begin(session_id, caller_id)
            anchor_at = session.started_at
        elif session.status != SessionStatus.RUNNING:
            raise InvalidState(f"Interview is {session.status.value}; it cannot be run")

        # reopening a running session restarts from its first section
        entries = await service.list_scores(session_id, caller_id)
        live = cls(
            service=service,
            session=session,
            caller_id=caller_id,
            entries=entries,
            clock=clock or service.clock,
            interval_sec=interval_sec,
            anchor_at=anchor_at,
        )
        if autostart:
            live.coordinator.start()
        log_event("live", "opened", session_id, seeded_scores=len(entries), status=session.status.value)
        return live

    # -------------------------
    # PERSISTENCE HOOKS
    # -------------------------

    def _pending_scores(self) -> list[PendingScore]:
        return [(question_id, item.score, item.notes) for question_id, item in self.cursor.scored_items()]

    async def _write_score(self, question_id: str, score: int, notes: str) -> ScoreEntry:
        return await self.service.upsert_score(
            self.session.id,
            self.caller_id,
            question_id,
            score,
            notes=notes,
        )

    async def _finish(self) -> Session:
        self.session = await self.service.finish(self.session.id, self.caller_id)
        await self.coordinator.stop(final_flush=False)
        return self.session

    # -------------------------
    # OPERATIONS
    # -------------------------

    def select_question(self, index: int) -> bool:
        return self.cursor.select_question(index)

    def set_score(self, question_id: str, score: Any):
        return self.cursor.set_score(question_id, score)

    def set_notes(self, question_id: str, text: str):
        return self.cursor.set_notes(question_id, text)

    async def advance_section(self) -> bool:
        return await self.cursor.advance_section()

    async def end_early(self) -> None:
        await self.cursor.end_early()

    async def close(self) -> bool:
        """Best-effort final flush when the interviewer leaves a running session."""
        if self.cursor.finished:
            await self.coordinator.stop(final_flush=False)
            return True
        saved = await self.coordinator.stop(final_flush=True)
        if not saved:
            log_event("live", "close_flush_failed", self.session.id, level=logging.WARNING)
        return saved

    @property
    def finished(self) -> bool:
        return self.cursor.finished

    # -------------------------
    # VIEW
    # -------------------------

    def interview_elapsed_seconds(self) -> int:
        started_at = self.session.started_at or self.timer.anchor_ts
        return max(0, int(self._clock() - float(started_at)))

    def snapshot(self) -> dict:
        cursor = self.cursor
        section = cursor.active_section
        section_info = self.service.question_bank.section(section.section_id)
        question_id = cursor.active_question_id
        question_info = self.service.question_bank.question(question_id) if question_id else None
        buffered = cursor.buffer.get(question_id) if question_id else None
        aggregate = compute_aggregate(
            self.session.section_plan,
            self.session.question_selection,
            cursor.score_map(),
            self.service.section_of,
        )
        elapsed = self.interview_elapsed_seconds()

        return {
            "session_id": self.session.id,
            "status": self.session.status.value,
            "candidate_label": self.session.candidate_label,
            "section": {
                "index": cursor.active_section_index,
                "count": len(cursor.sections),
                "section_id": section.section_id,
                "name": section_info.name if section_info else section.section_id,
                "allocated_minutes": section.allocated_minutes,
                "question_count": len(section.question_ids),
                "is_last": cursor.is_last_section,
            },
            "question": {
                "index": cursor.active_question_index,
                "question_id": question_id,
                "text": question_info.text if question_info else "",
                "answer": question_info.answer if question_info else "",
                "score": buffered.score if buffered else 0,
                "notes": buffered.notes if buffered else "",
            } if question_id else None,
            "progress": cursor.section_progress(),
            "timer": self.timer.read().to_dict(),
            "interview_elapsed_sec": elapsed,
            "interview_elapsed": format_elapsed(elapsed),
            "aggregate": aggregate.to_dict(),
            "autosave": self.coordinator.status_payload(),
        }
