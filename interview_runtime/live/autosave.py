from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable

from interview_runtime.core.config import AUTOSAVE_INTERVAL_SEC
from interview_runtime.core.logger import log_event
from interview_runtime.system_metrics import increment_metric, observe_save_duration_ms

PendingScore = tuple[str, int, str]
SnapshotFn = Callable[[], list[PendingScore]]
WriteFn = Callable[[str, int, str], Awaitable[Any]]


class AutosaveCoordinator:
    """
    Single write path for one live session.

    Both the periodic tick and navigation flushes go through request_save().
    While a cycle is in flight a new request does not start a second writer;
    it marks the running drain to go around once more and shares its task,
    so writes for a session never interleave. A failed cycle ends the drain
    and is retried by the next tick, never immediately.
    """

    def __init__(
        self,
        session_id: str,
        snapshot: SnapshotFn,
        write: WriteFn,
        interval_sec: float = AUTOSAVE_INTERVAL_SEC,
        clock: Callable[[], float] = time.time,
    ):
        self.session_id = session_id
        self._snapshot = snapshot
        self._write = write
        self.interval_sec = max(0.01, float(interval_sec))
        self._clock = clock

        self.saving = False
        self.last_saved_at: float | None = None
        self.last_error: str | None = None
        self.cycles_completed = 0

        self._drain_task: asyncio.Task | None = None
        self._rerun = False
        self._loop_task: asyncio.Task | None = None

    @property
    def status(self) -> str:
        if self.saving:
            return "saving"
        if self.last_error:
            return "failed"
        return "idle"

    def status_payload(self) -> dict:
        return {
            "status": self.status,
            "saving": self.saving,
            "last_saved_at": self.last_saved_at,
            "message": "Saving failed, will retry" if self.last_error and not self.saving else None,
        }

    # -------------------------
    # SAVE CYCLES
    # -------------------------

    async def _run_cycle(self) -> bool:
        items = self._snapshot()
        self.saving = True
        started = time.perf_counter()
        increment_metric("saves_started")
        try:
            for question_id, score, notes in items:
                await self._write(question_id, score, notes)
        except Exception as exc:
            self.last_error = str(exc) or exc.__class__.__name__
            increment_metric("saves_failed")
            log_event(
                "autosave",
                "save_failed",
                self.session_id,
                level=logging.WARNING,
                error=self.last_error,
                entries=len(items),
            )
            return False
        finally:
            self.saving = False
            observe_save_duration_ms((time.perf_counter() - started) * 1000.0)

        self.last_error = None
        self.last_saved_at = self._clock()
        self.cycles_completed += 1
        log_event("autosave", "save_succeeded", self.session_id, entries=len(items))
        return True

    async def _drain(self) -> bool:
        while True:
            self._rerun = False
            saved = await self._run_cycle()
            if not saved or not self._rerun:
                return saved

    def request_save(self) -> asyncio.Task:
        if self._drain_task is not None and not self._drain_task.done():
            self._rerun = True
            increment_metric("saves_coalesced")
            log_event("autosave", "save_coalesced", self.session_id)
            return self._drain_task
        self._drain_task = asyncio.create_task(self._drain())
        return self._drain_task

    async def flush(self) -> bool:
        """Save now and wait for the outcome; never raises on a failed save."""
        task = self.request_save()
        # the caller may go away; the write itself must still complete
        return await asyncio.shield(task)

    # -------------------------
    # PERIODIC TICK
    # -------------------------

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_sec)
            await self.flush()

    def start(self) -> None:
        if self._loop_task is not None and not self._loop_task.done():
            return
        self._loop_task = asyncio.create_task(self._tick_loop())

    async def stop(self, final_flush: bool = True) -> bool:
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            finally:
                self._loop_task = None

        if not final_flush:
            return True
        return await self.flush()
