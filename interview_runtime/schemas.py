from typing import Any

from pydantic import BaseModel, Field


class SectionPlanInput(BaseModel):
    section_id: str
    allocated_minutes: int | None = Field(default=None, gt=0)


class QuestionSelectionInput(BaseModel):
    question_id: str
    order: int | None = None


class CreateSessionRequest(BaseModel):
    candidate_label: str = Field(min_length=1)
    section_plan: list[SectionPlanInput] = Field(min_length=1)
    question_selection: list[QuestionSelectionInput]


class UpdateSessionRequest(BaseModel):
    candidate_label: str | None = None
    section_plan: list[SectionPlanInput] | None = Field(default=None, min_length=1)
    question_selection: list[QuestionSelectionInput] | None = None


class ScoreUpsertRequest(BaseModel):
    session_id: str
    question_id: str
    # range/type checks happen in the domain so every surface reports InvalidScore the same way
    score: Any
    notes: str | None = None


class LiveQuestionUpdate(BaseModel):
    score: Any = None
    notes: str | None = None


class SelectQuestionRequest(BaseModel):
    index: int


class SectionPlanResponse(BaseModel):
    section_id: str
    allocated_minutes: int
    order: int


class QuestionSelectionResponse(BaseModel):
    question_id: str
    order: int


class SessionResponse(BaseModel):
    id: str
    owner_id: str
    candidate_label: str
    status: str
    section_plan: list[SectionPlanResponse]
    question_selection: list[QuestionSelectionResponse]
    created_at: float
    updated_at: float
    started_at: float | None = None
    finished_at: float | None = None


class ScoreEntryResponse(BaseModel):
    session_id: str
    question_id: str
    score: int
    notes: str | None = None
    updated_at: float


class QuestionScoreResponse(BaseModel):
    question_id: str
    score: int


class SectionResultResponse(BaseModel):
    section_id: str
    average_score: float
    question_scores: list[QuestionScoreResponse]


class AggregateResultResponse(BaseModel):
    overall_score: float | None = None
    section_results: list[SectionResultResponse]
    questions_scored: int
    questions_total: int
