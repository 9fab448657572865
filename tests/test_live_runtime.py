import asyncio

import pytest

from conftest import TWO_SECTION_PLAN, TWO_SECTION_SELECTION
from interview_runtime.core.state import SessionStatus
from interview_runtime.errors import InvalidState, SaveFailed
from interview_runtime.live.runtime import LiveInterview


async def _open(service, clock, autostart=False):
    session = await service.create_session("owner-1", "Ada Lovelace", TWO_SECTION_PLAN, TWO_SECTION_SELECTION)
    clock.advance(5)
    live = await LiveInterview.open(service, session.id, "owner-1", clock=clock, interval_sec=3600, autostart=autostart)
    return session, live


@pytest.mark.asyncio
async def test_open_begins_draft_session_and_anchors_first_section(service, clock):
    session, live = await _open(service, clock)
    try:
        stored = await service.get_session(session.id, "owner-1")
        assert stored.status == SessionStatus.RUNNING
        assert stored.started_at == clock.now
        assert live.timer.anchor_ts == stored.started_at

        view = live.snapshot()
        assert view["status"] == "running"
        assert view["section"]["section_id"] == "sec-a"
        assert view["section"]["name"] == "Coding"
        assert view["section"]["allocated_minutes"] == 20
        assert view["section"]["count"] == 2
        assert view["question"]["question_id"] == "a1"
        assert view["question"]["text"] == "Reverse a linked list"
        assert view["timer"]["display"] == "20:00"
        assert view["aggregate"]["overall_score"] is None
        assert view["autosave"]["status"] == "idle"
    finally:
        await live.close()


@pytest.mark.asyncio
async def test_only_scored_buffer_entries_are_written(service, clock):
    session, live = await _open(service, clock)
    try:
        live.set_notes("a1", "still thinking")
        live.set_score("a2", 4)
        live.set_notes("a2", "tidy")

        assert await live.coordinator.flush() is True

        entries = await service.list_scores(session.id, "owner-1")
        assert [(item.question_id, item.score, item.notes) for item in entries] == [("a2", 4, "tidy")]
    finally:
        await live.close()


@pytest.mark.asyncio
async def test_running_through_every_section_finishes_the_session(service, clock):
    session, live = await _open(service, clock)
    try:
        live.set_score("a1", 5)
        live.set_score("a2", 3)
        live.set_score("a3", 4)
        clock.advance(600)

        assert await live.advance_section() is True
        view = live.snapshot()
        assert view["section"]["section_id"] == "sec-b"
        assert view["section"]["is_last"] is True
        assert view["timer"]["display"] == "1:00"

        # running out of time only raises flags; scoring still works
        clock.advance(70)
        view = live.snapshot()
        assert view["timer"]["remaining_ms"] == 0
        assert view["timer"]["low_time"] is True
        assert view["timer"]["overrun"] is True
        live.set_score("b1", 1)
        live.set_score("b2", 1)
        assert live.snapshot()["aggregate"]["overall_score"] == pytest.approx(2.5)

        assert await live.advance_section() is False
        assert live.finished is True

        stored = await service.get_session(session.id, "owner-1")
        assert stored.status == SessionStatus.FINISHED
        assert stored.finished_at == clock.now

        entries = await service.list_scores(session.id, "owner-1")
        assert {item.question_id: item.score for item in entries} == {"a1": 5, "a2": 3, "a3": 4, "b1": 1, "b2": 1}

        with pytest.raises(InvalidState):
            await service.upsert_score(session.id, "owner-1", "a1", 2)
        with pytest.raises(InvalidState):
            live.set_score("a1", 2)

        aggregate = await service.get_aggregate(session.id, "owner-1")
        assert aggregate.overall_score == pytest.approx(2.5)
    finally:
        await live.close()


@pytest.mark.asyncio
async def test_end_early_keeps_session_running_when_save_fails(service, clock, monkeypatch):
    session, live = await _open(service, clock)
    try:
        live.set_score("a1", 4)

        async def offline(*args, **kwargs):
            raise RuntimeError("store offline")

        monkeypatch.setattr(service, "upsert_score", offline)

        with pytest.raises(SaveFailed):
            await live.end_early()

        assert live.finished is False
        assert live.snapshot()["autosave"]["status"] == "failed"
        assert (await service.get_session(session.id, "owner-1")).status == SessionStatus.RUNNING

        monkeypatch.undo()
        await live.end_early()
        assert live.finished is True
        entries = await service.list_scores(session.id, "owner-1")
        assert [(item.question_id, item.score) for item in entries] == [("a1", 4)]
    finally:
        await live.close()


@pytest.mark.asyncio
async def test_racing_tick_and_navigation_flush_never_overlap(service, clock, monkeypatch):
    session, live = await _open(service, clock)
    real_upsert = service.upsert_score
    in_flight = 0
    peak = 0

    async def tracked(*args, **kwargs):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        try:
            await asyncio.sleep(0)
            return await real_upsert(*args, **kwargs)
        finally:
            in_flight -= 1

    monkeypatch.setattr(service, "upsert_score", tracked)
    try:
        for question_id, score in (("a1", 2), ("a2", 3), ("a3", 4)):
            live.set_score(question_id, score)

        results = await asyncio.gather(
            live.coordinator.flush(),
            live.coordinator.flush(),
            live.advance_section(),
        )

        assert results[0] is True
        assert results[1] is True
        assert results[2] is True
        assert peak == 1
        entries = await service.list_scores(session.id, "owner-1")
        assert [item.question_id for item in entries] == ["a1", "a2", "a3"]
    finally:
        await live.close()


@pytest.mark.asyncio
async def test_reopening_running_session_restarts_at_first_section(service, clock):
    session, live = await _open(service, clock)
    live.set_score("a2", 5)
    await live.advance_section()
    assert await live.close() is True

    clock.advance(300)
    reopened = await LiveInterview.open(service, session.id, "owner-1", clock=clock, interval_sec=3600, autostart=False)
    try:
        assert reopened.cursor.active_section_index == 0
        assert reopened.cursor.buffer["a2"].score == 5
        assert reopened.timer.anchor_ts == clock.now
        assert reopened.snapshot()["interview_elapsed"] == "05:00"
    finally:
        await reopened.close()


@pytest.mark.asyncio
async def test_finished_or_cancelled_sessions_cannot_be_run(service, clock):
    session = await service.create_session("owner-1", "Ada", TWO_SECTION_PLAN, TWO_SECTION_SELECTION)
    await service.cancel(session.id, "owner-1")

    with pytest.raises(InvalidState):
        await LiveInterview.open(service, session.id, "owner-1", clock=clock, interval_sec=3600, autostart=False)


@pytest.mark.asyncio
async def test_autostarted_tick_loop_saves_in_background(service, clock):
    session = await service.create_session("owner-1", "Ada", TWO_SECTION_PLAN, TWO_SECTION_SELECTION)
    live = await LiveInterview.open(service, session.id, "owner-1", clock=clock, interval_sec=0.01)
    try:
        live.set_score("b2", 3)
        for _ in range(50):
            if await service.list_scores(session.id, "owner-1"):
                break
            await asyncio.sleep(0.01)

        entries = await service.list_scores(session.id, "owner-1")
        assert [(item.question_id, item.score) for item in entries] == [("b2", 3)]
    finally:
        await live.close()


@pytest.mark.asyncio
async def test_open_without_sections_leaves_session_in_draft(service, clock):
    session = await service.create_session("owner-1", "Ada", TWO_SECTION_PLAN, TWO_SECTION_SELECTION)
    await service.update_session(session.id, "owner-1", section_plan=[])

    with pytest.raises(InvalidState):
        await LiveInterview.open(service, session.id, "owner-1", clock=clock, interval_sec=3600, autostart=False)

    stored = await service.get_session(session.id, "owner-1")
    assert stored.status == SessionStatus.DRAFT
    assert stored.started_at is None

    # the draft can still be fixed and run
    await service.update_session(session.id, "owner-1", section_plan=[{"section_id": "sec-c"}])
    live = await LiveInterview.open(service, session.id, "owner-1", clock=clock, interval_sec=3600, autostart=False)
    try:
        assert live.snapshot()["section"]["section_id"] == "sec-c"
    finally:
        await live.close()
