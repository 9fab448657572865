import base64
import json
import sys
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from interview_runtime.question_bank import QuestionInfo, SectionInfo, StaticQuestionBank  # noqa: E402
from interview_runtime.session.service import InterviewService  # noqa: E402
from interview_runtime.session.store import LocalSessionStore  # noqa: E402


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += float(seconds)


@pytest.fixture(autouse=True)
def _test_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("ENV", "development")
    monkeypatch.setenv("ALLOW_UNVERIFIED_JWT_DEV", "true")
    monkeypatch.delenv("AUTH_JWT_SECRET", raising=False)
    monkeypatch.delenv("AUTH_VERIFY_URL", raising=False)


def make_dev_token(sub: str) -> str:
    def _enc(obj: dict) -> str:
        raw = json.dumps(obj, separators=(",", ":")).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")

    header = _enc({"alg": "none", "typ": "JWT"})
    payload = _enc({"sub": sub, "iat": 0})
    return f"{header}.{payload}."


@pytest.fixture
def dev_jwt_token() -> str:
    return make_dev_token("pytest-user")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def question_bank() -> StaticQuestionBank:
    sections = [
        SectionInfo(section_id="sec-a", name="Coding", default_duration_minutes=20),
        SectionInfo(section_id="sec-b", name="System Design", default_duration_minutes=15),
        SectionInfo(section_id="sec-c", name="Behavioral", default_duration_minutes=10),
    ]
    questions = [
        QuestionInfo(question_id="a1", text="Reverse a linked list", answer="Iterate with three pointers", section_id="sec-a", difficulty="EASY"),
        QuestionInfo(question_id="a2", text="Find a cycle", answer="Floyd", section_id="sec-a", difficulty="MEDIUM"),
        QuestionInfo(question_id="a3", text="LRU cache", answer="Hash map + list", section_id="sec-a", difficulty="HARD"),
        QuestionInfo(question_id="b1", text="Design a URL shortener", answer="Hashing, storage", section_id="sec-b", difficulty="MEDIUM"),
        QuestionInfo(question_id="b2", text="Design a rate limiter", answer="Token bucket", section_id="sec-b", difficulty="MEDIUM"),
        QuestionInfo(question_id="c1", text="Tell me about a conflict", answer="STAR", section_id="sec-c", difficulty="EASY"),
    ]
    return StaticQuestionBank(sections=sections, questions=questions)


@pytest.fixture
def store() -> LocalSessionStore:
    return LocalSessionStore()


@pytest.fixture
def service(store, question_bank, clock) -> InterviewService:
    return InterviewService(store, question_bank, clock=clock)


TWO_SECTION_PLAN = [
    {"section_id": "sec-a", "allocated_minutes": 20},
    {"section_id": "sec-b", "allocated_minutes": 1},
]

TWO_SECTION_SELECTION = [
    {"question_id": "a1", "order": 1},
    {"question_id": "a2", "order": 2},
    {"question_id": "a3", "order": 3},
    {"question_id": "b1", "order": 4},
    {"question_id": "b2", "order": 5},
]
