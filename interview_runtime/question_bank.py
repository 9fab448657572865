from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Protocol

from interview_runtime.core.config import QUESTION_BANK_PATH

logger = logging.getLogger("interview_runtime.question_bank")


@dataclass(frozen=True)
class SectionInfo:
    section_id: str
    name: str
    default_duration_minutes: int


@dataclass(frozen=True)
class QuestionInfo:
    question_id: str
    text: str
    answer: str
    section_id: str
    difficulty: str = ""


class QuestionBank(Protocol):
    def question(self, question_id: str) -> QuestionInfo | None:
        ...

    def section(self, section_id: str) -> SectionInfo | None:
        ...

    def section_of(self, question_id: str) -> str | None:
        ...


class StaticQuestionBank:
    """Read-only question bank held in memory, optionally seeded from a JSON file."""

    def __init__(self, sections: Iterable[SectionInfo] = (), questions: Iterable[QuestionInfo] = ()):
        self._sections: dict[str, SectionInfo] = {item.section_id: item for item in sections}
        self._questions: dict[str, QuestionInfo] = {item.question_id: item for item in questions}

    def question(self, question_id: str) -> QuestionInfo | None:
        return self._questions.get(str(question_id or ""))

    def section(self, section_id: str) -> SectionInfo | None:
        return self._sections.get(str(section_id or ""))

    def section_of(self, question_id: str) -> str | None:
        info = self.question(question_id)
        return info.section_id if info else None

    @classmethod
    def from_payload(cls, payload: dict) -> "StaticQuestionBank":
        sections = [
            SectionInfo(
                section_id=str(item.get("id") or ""),
                name=str(item.get("name") or ""),
                default_duration_minutes=max(1, int(item.get("default_duration_minutes") or 1)),
            )
            for item in list(payload.get("sections") or [])
            if isinstance(item, dict) and item.get("id")
        ]
        questions = [
            QuestionInfo(
                question_id=str(item.get("id") or ""),
                text=str(item.get("text") or ""),
                answer=str(item.get("answer") or ""),
                section_id=str(item.get("section_id") or ""),
                difficulty=str(item.get("difficulty") or ""),
            )
            for item in list(payload.get("questions") or [])
            if isinstance(item, dict) and item.get("id")
        ]
        return cls(sections=sections, questions=questions)

    @classmethod
    def from_file(cls, path: str | Path) -> "StaticQuestionBank":
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError("question bank file must contain a JSON object")
        return cls.from_payload(payload)


def build_question_bank() -> StaticQuestionBank:
    if not QUESTION_BANK_PATH:
        logger.warning("QUESTION_BANK_PATH is not set; starting with an empty question bank")
        return StaticQuestionBank()
    return StaticQuestionBank.from_file(QUESTION_BANK_PATH)
