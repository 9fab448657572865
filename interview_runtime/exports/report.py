from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass
from datetime import date
from typing import Any

from interview_runtime.models import (
    AggregateResult,
    QuestionSelectionItem,
    ScoreEntry,
    SectionPlanItem,
    Session,
    score_label,
)
from interview_runtime.question_bank import QuestionBank
from interview_runtime.scoring import compute_aggregate, format_score, runnable_questions, scores_by_question
from interview_runtime.session.service import InterviewService


@dataclass(frozen=True)
class ExportBundle:
    """What every renderer receives: the shared aggregate plus the raw tuples."""
    session: Session
    aggregate: AggregateResult
    section_plan: tuple[SectionPlanItem, ...]
    question_selection: tuple[QuestionSelectionItem, ...]
    scores: tuple[ScoreEntry, ...]


async def build_export_bundle(service: InterviewService, session_id: str, caller_id: str) -> ExportBundle:
    session = await service.get_session(session_id, caller_id)
    entries = await service.list_scores(session_id, caller_id)
    aggregate = compute_aggregate(
        session.section_plan,
        session.question_selection,
        scores_by_question(entries),
        service.section_of,
    )
    return ExportBundle(
        session=session,
        aggregate=aggregate,
        section_plan=tuple(session.ordered_plan()),
        question_selection=tuple(session.ordered_selection()),
        scores=tuple(entries),
    )


def results_payload(bundle: ExportBundle, question_bank: QuestionBank) -> dict[str, Any]:
    entry_by_question = {entry.question_id: entry for entry in bundle.scores}
    sections = []
    for plan_item, question_ids in runnable_questions(bundle.section_plan, bundle.question_selection, question_bank.section_of):
        section_info = question_bank.section(plan_item.section_id)
        result = bundle.aggregate.section(plan_item.section_id)
        questions = []
        for question_id in question_ids:
            info = question_bank.question(question_id)
            entry = entry_by_question.get(question_id)
            questions.append({
                "question_id": question_id,
                "text": info.text if info else "",
                "difficulty": info.difficulty if info else "",
                "score": entry.score if entry else None,
                "rating": score_label(entry.score if entry else None),
                "notes": (entry.notes or "") if entry else "",
            })
        sections.append({
            "section_id": plan_item.section_id,
            "name": section_info.name if section_info else plan_item.section_id,
            "allocated_minutes": plan_item.allocated_minutes,
            "question_count": len(question_ids),
            "average_score": result.average_score if result else None,
            "average_display": format_score(result.average_score if result else None),
            "questions": questions,
        })

    return {
        "session_id": bundle.session.id,
        "candidate_label": bundle.session.candidate_label,
        "status": bundle.session.status.value,
        "overall_score": bundle.aggregate.overall_score,
        "overall_display": format_score(bundle.aggregate.overall_score),
        "questions_scored": bundle.aggregate.questions_scored,
        "questions_total": bundle.aggregate.questions_total,
        "sections": sections,
    }


def render_json(bundle: ExportBundle, question_bank: QuestionBank) -> dict[str, Any]:
    payload = results_payload(bundle, question_bank)
    payload["aggregate"] = bundle.aggregate.to_dict()
    payload["section_plan"] = [
        {"section_id": item.section_id, "allocated_minutes": item.allocated_minutes, "order": item.order}
        for item in bundle.section_plan
    ]
    payload["question_selection"] = [
        {"question_id": item.question_id, "order": item.order}
        for item in bundle.question_selection
    ]
    payload["scores"] = [entry.to_dict() for entry in bundle.scores]
    return payload


def render_csv(bundle: ExportBundle, question_bank: QuestionBank) -> str:
    results = results_payload(bundle, question_bank)
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow([
        "session_id",
        "candidate",
        "status",
        "section",
        "section_average",
        "question",
        "difficulty",
        "score",
        "rating",
        "notes",
    ])
    for section in results["sections"]:
        for question in section["questions"]:
            writer.writerow([
                results["session_id"],
                results["candidate_label"],
                results["status"],
                section["name"],
                section["average_display"],
                question["text"],
                question["difficulty"],
                question["score"] if question["score"] is not None else "",
                question["rating"],
                question["notes"],
            ])
    writer.writerow([])
    writer.writerow(["overall_average", results["overall_display"]])
    writer.writerow(["questions_scored", results["questions_scored"]])
    writer.writerow(["questions_total", results["questions_total"]])
    return output.getvalue()


def export_filename(candidate_label: str, extension: str, on: date | None = None) -> str:
    cleaned = re.sub(r"[^a-zA-Z0-9\-_ ]", "", str(candidate_label or ""))
    cleaned = re.sub(r"\s+", "-", cleaned.strip()) or "candidate"
    day = (on or date.today()).isoformat()
    return f"interview-{cleaned}-{day}.{extension.lstrip('.')}"
