from __future__ import annotations

from typing import Callable, Iterable, Mapping, Optional

from interview_runtime.models import (
    AggregateResult,
    QuestionScore,
    QuestionSelectionItem,
    ScoreEntry,
    SectionPlanItem,
    SectionResult,
)

SectionLookup = Callable[[str], Optional[str]]


def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


def scores_by_question(entries: Iterable[ScoreEntry]) -> dict[str, int]:
    return {entry.question_id: entry.score for entry in entries}


def runnable_questions(
    section_plan: Iterable[SectionPlanItem],
    question_selection: Iterable[QuestionSelectionItem],
    section_of: SectionLookup,
) -> list[tuple[SectionPlanItem, list[str]]]:
    """
    Group the selected questions under their plan section, both in order.

    Questions whose section is not part of the plan are not runnable and are
    left out.
    """
    ordered_selection = sorted(question_selection, key=lambda item: item.order)
    grouped = []
    for plan_item in sorted(section_plan, key=lambda item: item.order):
        question_ids = [
            item.question_id
            for item in ordered_selection
            if section_of(item.question_id) == plan_item.section_id
        ]
        grouped.append((plan_item, question_ids))
    return grouped


def compute_aggregate(
    section_plan: Iterable[SectionPlanItem],
    question_selection: Iterable[QuestionSelectionItem],
    scores: Mapping[str, int],
    section_of: SectionLookup,
) -> AggregateResult:
    """
    Overall score is the unweighted mean of section averages.

    A section with no scored question contributes nothing; when no section
    is scored the overall score is None rather than 0. Callers pass either
    persisted entries (via scores_by_question) or the live buffer.
    """
    section_results: list[SectionResult] = []
    questions_total = 0
    questions_scored = 0

    for plan_item, question_ids in runnable_questions(section_plan, question_selection, section_of):
        questions_total += len(question_ids)
        scored = [
            QuestionScore(question_id=question_id, score=int(scores[question_id]))
            for question_id in question_ids
            if (scores.get(question_id) or 0) > 0
        ]
        if not scored:
            continue
        questions_scored += len(scored)
        section_results.append(
            SectionResult(
                section_id=plan_item.section_id,
                average_score=_mean([float(item.score) for item in scored]),
                question_scores=tuple(scored),
            )
        )

    overall_score = _mean([result.average_score for result in section_results]) if section_results else None

    return AggregateResult(
        overall_score=overall_score,
        section_results=tuple(section_results),
        questions_scored=questions_scored,
        questions_total=questions_total,
    )


def format_score(value: Optional[float], empty: str = "N/A") -> str:
    if value is None:
        return empty
    return f"{value:.1f}"
