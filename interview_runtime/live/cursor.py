from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable

from interview_runtime.errors import InvalidState, NotFound, SaveFailed
from interview_runtime.live.timer import SectionTimer
from interview_runtime.models import ScoreEntry, SectionPlanItem, validate_score


@dataclass
class BufferedScore:
    score: int = 0
    notes: str = ""

    @property
    def answered(self) -> bool:
        return bool(self.score) and self.score > 0


@dataclass(frozen=True)
class PlannedSection:
    plan_item: SectionPlanItem
    question_ids: tuple[str, ...]

    @property
    def section_id(self) -> str:
        return self.plan_item.section_id

    @property
    def allocated_minutes(self) -> int:
        return self.plan_item.allocated_minutes


class ScoringCursor:
    """
    Position inside the running interview plus the unsaved score buffer.

    Sections only move forward. Scores and notes are written to the buffer
    synchronously; durability belongs to whoever `flush` delegates to.
    """

    def __init__(
        self,
        sections: Iterable[PlannedSection],
        timer: SectionTimer,
        flush: Callable[[], Awaitable[bool]],
        finish: Callable[[], Awaitable[Any]],
        entries: Iterable[ScoreEntry] = (),
        anchor_at: float | None = None,
    ):
        self.sections: list[PlannedSection] = list(sections)
        if not self.sections:
            raise InvalidState("Interview has no sections to run")

        self.timer = timer
        self._flush = flush
        self._finish = finish
        self.active_section_index = 0
        self.active_question_index = 0
        self.finished = False

        self._known_questions = {
            question_id
            for section in self.sections
            for question_id in section.question_ids
        }
        self.buffer: dict[str, BufferedScore] = {}
        for entry in entries:
            if entry.question_id in self._known_questions:
                self.buffer[entry.question_id] = BufferedScore(score=entry.score, notes=entry.notes or "")

        self.timer.anchor(allocated_minutes=self.active_section.allocated_minutes, at=anchor_at)

    # -------------------------
    # POSITION
    # -------------------------

    @property
    def active_section(self) -> PlannedSection:
        return self.sections[self.active_section_index]

    @property
    def is_last_section(self) -> bool:
        return self.active_section_index >= len(self.sections) - 1

    @property
    def active_question_id(self) -> str | None:
        question_ids = self.active_section.question_ids
        if 0 <= self.active_question_index < len(question_ids):
            return question_ids[self.active_question_index]
        return None

    def select_question(self, index: int) -> bool:
        if isinstance(index, bool) or not isinstance(index, int):
            return False
        if index < 0 or index >= len(self.active_section.question_ids):
            return False
        self.active_question_index = index
        return True

    def next_question(self) -> bool:
        return self.select_question(self.active_question_index + 1)

    def previous_question(self) -> bool:
        return self.select_question(self.active_question_index - 1)

    # -------------------------
    # BUFFER
    # -------------------------

    def _ensure_open(self, question_id: str) -> None:
        if self.finished:
            raise InvalidState("Interview is no longer running")
        if question_id not in self._known_questions:
            raise NotFound(f"Question {question_id!r} is not part of this interview")

    def set_score(self, question_id: str, score: Any) -> BufferedScore:
        self._ensure_open(question_id)
        validate_score(score)
        current = self.buffer.get(question_id) or BufferedScore()
        updated = BufferedScore(score=score, notes=current.notes)
        self.buffer[question_id] = updated
        return updated

    def set_notes(self, question_id: str, text: str) -> BufferedScore:
        self._ensure_open(question_id)
        current = self.buffer.get(question_id) or BufferedScore()
        updated = BufferedScore(score=current.score, notes=str(text or ""))
        self.buffer[question_id] = updated
        return updated

    def is_answered(self, question_id: str) -> bool:
        item = self.buffer.get(question_id)
        return bool(item and item.answered)

    def scored_items(self) -> list[tuple[str, BufferedScore]]:
        return [(question_id, item) for question_id, item in self.buffer.items() if item.answered]

    def score_map(self) -> dict[str, int]:
        return {question_id: item.score for question_id, item in self.scored_items()}

    def section_progress(self) -> list[dict]:
        progress = []
        for idx, question_id in enumerate(self.active_section.question_ids):
            if idx == self.active_question_index:
                state = "active"
            elif self.is_answered(question_id):
                state = "done"
            else:
                state = "pending"
            progress.append({
                "index": idx,
                "question_id": question_id,
                "answered": self.is_answered(question_id),
                "state": state,
            })
        return progress

    # -------------------------
    # NAVIGATION
    # -------------------------

    async def advance_section(self) -> bool:
        """Move to the next section, or finish the interview from the last one.

        Returns True when a new section became active.
        """
        if self.finished:
            raise InvalidState("Interview is no longer running")
        if self.is_last_section:
            await self.end_early()
            return False

        # the buffer covers every section, so a failed flush loses nothing;
        # the next scheduled save retries it
        await self._flush()
        self.active_section_index += 1
        self.active_question_index = 0
        self.timer.anchor(allocated_minutes=self.active_section.allocated_minutes)
        return True

    async def end_early(self) -> None:
        """Flush, then finish the interview from any section.

        A failed flush raises SaveFailed and the interview stays running, so
        nothing buffered is lost to a terminal status.
        """
        if self.finished:
            raise InvalidState("Interview is no longer running")
        saved = await self._flush()
        if not saved:
            raise SaveFailed("Scores could not be saved; the interview is still running")
        await self._finish()
        self.finished = True
