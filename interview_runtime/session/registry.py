from __future__ import annotations

import time
from threading import Lock
from typing import Any


class LiveSessionRegistry:
    def __init__(self):
        self._lock = Lock()
        self._sessions: dict[str, dict] = {}

    def register(self, session_id: str, live_interview: Any, owner_id: str) -> None:
        with self._lock:
            self._sessions[session_id] = {
                "live_interview": live_interview,
                "owner_id": owner_id,
                "created_at": time.time(),
                "updated_at": time.time(),
                "active": True,
            }

    def touch(self, session_id: str) -> None:
        with self._lock:
            if session_id in self._sessions:
                self._sessions[session_id]["updated_at"] = time.time()

    def mark_inactive(self, session_id: str) -> None:
        with self._lock:
            if session_id in self._sessions:
                self._sessions[session_id]["active"] = False
                self._sessions[session_id]["updated_at"] = time.time()

    def get(self, session_id: str) -> dict | None:
        with self._lock:
            item = self._sessions.get(session_id)
            return dict(item) if item else None

    def pop(self, session_id: str) -> dict | None:
        with self._lock:
            return self._sessions.pop(session_id, None)

    def session_ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions.keys())

    def count_active(self) -> int:
        with self._lock:
            return sum(1 for data in self._sessions.values() if bool((data or {}).get("active", False)))

    def idle_active(self, ttl_sec: float) -> list[str]:
        """Ids of live sessions nobody has touched within ttl_sec."""
        cutoff = time.time() - max(30.0, float(ttl_sec or 1800.0))
        with self._lock:
            return [
                session_id
                for session_id, data in self._sessions.items()
                if bool((data or {}).get("active", False)) and float((data or {}).get("updated_at") or 0.0) <= cutoff
            ]

    def cleanup_inactive(self, ttl_sec: float) -> int:
        now_ts = time.time()
        cutoff = now_ts - max(30.0, float(ttl_sec or 900.0))
        removed = 0
        with self._lock:
            for session_id, data in list(self._sessions.items()):
                if bool((data or {}).get("active", False)):
                    continue
                updated_at = float((data or {}).get("updated_at") or 0.0)
                if updated_at <= cutoff:
                    self._sessions.pop(session_id, None)
                    removed += 1
        return removed


live_session_registry = LiveSessionRegistry()
