from __future__ import annotations

import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Protocol

from interview_runtime.core.config import SESSION_STORE_PATH
from interview_runtime.errors import InterviewRuntimeError
from interview_runtime.models import ScoreEntry, Session

logger = logging.getLogger("interview_runtime.session.store")


def _copy_session(session: Session) -> Session:
    return Session.from_dict(session.to_dict())


class SessionStore(Protocol):
    async def create_session(self, session: Session) -> Session:
        ...

    async def get_session(self, session_id: str) -> Session | None:
        ...

    async def save_session(self, session: Session) -> Session:
        ...

    async def delete_session(self, session_id: str) -> bool:
        ...

    async def list_sessions(self, owner_id: str) -> list[Session]:
        ...

    async def upsert_score(
        self,
        session_id: str,
        question_id: str,
        score: int,
        notes: str | None = None,
        updated_at: float | None = None,
    ) -> ScoreEntry:
        ...

    async def list_scores(self, session_id: str) -> list[ScoreEntry]:
        ...


class LocalSessionStore:
    """In-process durable store.

    Score entries are keyed by (session_id, question_id), so an upsert can
    never produce a second row for the same question. When a path is given
    every mutation is written through to a JSON file (atomic replace).
    """

    def __init__(self, path: str | Path | None = None):
        self._lock = asyncio.Lock()
        self._path = Path(path) if path else None
        self._sessions: dict[str, Session] = {}
        self._scores: dict[str, dict[str, ScoreEntry]] = {}
        self._load()

    def _load(self) -> None:
        if self._path is None or not self._path.exists():
            return
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("session store unreadable | path=%s err=%s", self._path, exc)
            return
        if not isinstance(payload, dict):
            return

        for raw in list(payload.get("sessions") or []):
            if not isinstance(raw, dict) or not raw.get("id"):
                continue
            try:
                session = Session.from_dict(raw)
            except (InterviewRuntimeError, ValueError, TypeError) as exc:
                logger.warning("skipping unreadable session row | id=%s err=%s", raw.get("id"), exc)
                continue
            self._sessions[session.id] = session

        for raw in list(payload.get("scores") or []):
            if not isinstance(raw, dict):
                continue
            try:
                entry = ScoreEntry.from_dict(raw)
            except (InterviewRuntimeError, ValueError, TypeError) as exc:
                logger.warning(
                    "skipping unreadable score row | session_id=%s question_id=%s err=%s",
                    raw.get("session_id"),
                    raw.get("question_id"),
                    exc,
                )
                continue
            if entry.session_id not in self._sessions:
                continue
            self._scores.setdefault(entry.session_id, {})[entry.question_id] = entry

    def _persist(self) -> None:
        if self._path is None:
            return
        payload = {
            "sessions": [session.to_dict() for session in self._sessions.values()],
            "scores": [
                entry.to_dict()
                for entries in self._scores.values()
                for entry in entries.values()
            ],
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._path.with_suffix(".tmp")
        temp_path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
        temp_path.replace(self._path)

    async def create_session(self, session: Session) -> Session:
        async with self._lock:
            self._sessions[session.id] = _copy_session(session)
            self._scores.setdefault(session.id, {})
            self._persist()
            return _copy_session(session)

    async def get_session(self, session_id: str) -> Session | None:
        async with self._lock:
            session = self._sessions.get(str(session_id or ""))
            return _copy_session(session) if session else None

    async def save_session(self, session: Session) -> Session:
        async with self._lock:
            if session.id not in self._sessions:
                raise KeyError(session.id)
            self._sessions[session.id] = _copy_session(session)
            self._persist()
            return _copy_session(session)

    async def delete_session(self, session_id: str) -> bool:
        async with self._lock:
            removed = self._sessions.pop(str(session_id or ""), None)
            self._scores.pop(str(session_id or ""), None)
            if removed is not None:
                self._persist()
            return removed is not None

    async def list_sessions(self, owner_id: str) -> list[Session]:
        async with self._lock:
            rows = [
                _copy_session(session)
                for session in self._sessions.values()
                if session.owner_id == str(owner_id or "")
            ]
        rows.sort(key=lambda session: session.created_at, reverse=True)
        return rows

    async def upsert_score(
        self,
        session_id: str,
        question_id: str,
        score: int,
        notes: str | None = None,
        updated_at: float | None = None,
    ) -> ScoreEntry:
        entry = ScoreEntry(
            session_id=str(session_id),
            question_id=str(question_id),
            score=score,
            notes=notes,
            updated_at=float(updated_at if updated_at is not None else time.time()),
        )
        async with self._lock:
            if entry.session_id not in self._sessions:
                raise KeyError(entry.session_id)
            self._scores.setdefault(entry.session_id, {})[entry.question_id] = entry
            self._persist()
        return entry

    async def list_scores(self, session_id: str) -> list[ScoreEntry]:
        async with self._lock:
            entries = list((self._scores.get(str(session_id or "")) or {}).values())
        entries.sort(key=lambda entry: entry.question_id)
        return entries


def build_session_store() -> LocalSessionStore:
    if not SESSION_STORE_PATH:
        return LocalSessionStore()
    return LocalSessionStore(SESSION_STORE_PATH)
