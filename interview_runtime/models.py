from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from interview_runtime.core.state import SessionStatus
from interview_runtime.errors import InvalidScore

MIN_SCORE = 1
MAX_SCORE = 5

SCORE_LABELS = {
    1: "Poor",
    2: "Need Improvement",
    3: "Average",
    4: "Good",
    5: "Excellent",
}


def validate_score(value: Any) -> int:
    # bool is an int subclass; True must not pass as a 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidScore(f"score must be an integer between {MIN_SCORE} and {MAX_SCORE}")
    if value < MIN_SCORE or value > MAX_SCORE:
        raise InvalidScore(f"score must be an integer between {MIN_SCORE} and {MAX_SCORE}")
    return value


def score_label(score: Optional[int]) -> str:
    if not score:
        return "Not scored"
    return SCORE_LABELS.get(int(score), "Not scored")


@dataclass
class SectionPlanItem:
    section_id: str
    allocated_minutes: int
    order: int


@dataclass
class QuestionSelectionItem:
    question_id: str
    order: int


@dataclass(frozen=True)
class ScoreEntry:
    """
    The interviewer's rating of ONE question within ONE session.

    Range checking happens here so that no out-of-range value can exist
    anywhere past the boundary that constructed it.
    """
    session_id: str
    question_id: str
    score: int
    notes: Optional[str] = None
    updated_at: float = 0.0

    def __post_init__(self):
        validate_score(self.score)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ScoreEntry":
        return cls(
            session_id=str(data.get("session_id") or ""),
            question_id=str(data.get("question_id") or ""),
            score=data.get("score"),
            notes=data.get("notes"),
            updated_at=float(data.get("updated_at") or 0.0),
        )


@dataclass
class Session:
    id: str
    owner_id: str
    candidate_label: str
    status: SessionStatus = SessionStatus.DRAFT
    section_plan: list[SectionPlanItem] = field(default_factory=list)
    question_selection: list[QuestionSelectionItem] = field(default_factory=list)
    created_at: float = 0.0
    updated_at: float = 0.0
    started_at: Optional[float] = None
    finished_at: Optional[float] = None

    def ordered_plan(self) -> list[SectionPlanItem]:
        return sorted(self.section_plan, key=lambda item: item.order)

    def ordered_selection(self) -> list[QuestionSelectionItem]:
        return sorted(self.question_selection, key=lambda item: item.order)

    def has_question(self, question_id: str) -> bool:
        return any(item.question_id == question_id for item in self.question_selection)

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["status"] = self.status.value
        return payload

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        return cls(
            id=str(data.get("id") or ""),
            owner_id=str(data.get("owner_id") or ""),
            candidate_label=str(data.get("candidate_label") or ""),
            status=SessionStatus(data.get("status") or SessionStatus.DRAFT.value),
            section_plan=[
                SectionPlanItem(
                    section_id=str(item.get("section_id") or ""),
                    allocated_minutes=int(item.get("allocated_minutes") or 0),
                    order=int(item.get("order") or 0),
                )
                for item in list(data.get("section_plan") or [])
                if isinstance(item, dict)
            ],
            question_selection=[
                QuestionSelectionItem(
                    question_id=str(item.get("question_id") or ""),
                    order=int(item.get("order") or 0),
                )
                for item in list(data.get("question_selection") or [])
                if isinstance(item, dict)
            ],
            created_at=float(data.get("created_at") or 0.0),
            updated_at=float(data.get("updated_at") or 0.0),
            started_at=data.get("started_at"),
            finished_at=data.get("finished_at"),
        )


@dataclass(frozen=True)
class QuestionScore:
    question_id: str
    score: int


@dataclass(frozen=True)
class SectionResult:
    section_id: str
    average_score: float
    question_scores: tuple[QuestionScore, ...] = ()


@dataclass(frozen=True)
class AggregateResult:
    overall_score: Optional[float]
    section_results: tuple[SectionResult, ...]
    questions_scored: int
    questions_total: int

    @property
    def has_data(self) -> bool:
        return self.overall_score is not None

    def section(self, section_id: str) -> Optional[SectionResult]:
        for result in self.section_results:
            if result.section_id == section_id:
                return result
        return None

    def to_dict(self) -> dict:
        return {
            "overall_score": self.overall_score,
            "section_results": [
                {
                    "section_id": result.section_id,
                    "average_score": result.average_score,
                    "question_scores": [asdict(item) for item in result.question_scores],
                }
                for result in self.section_results
            ],
            "questions_scored": self.questions_scored,
            "questions_total": self.questions_total,
        }
