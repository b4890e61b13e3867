from datetime import datetime, timedelta

import pytest

import lifecycle
from conftest import NOW, OTHER_USER_ID, USER_ID, make_session
from errors import InvalidInput, InvalidState, NotFound
from models import Exercise, SessionStatus, SessionUpdate, SessionUpsert

LATER = NOW + timedelta(minutes=45)


async def _stored(store, **fields):
    return await store.upsert_session(make_session(**fields))


@pytest.mark.asyncio
async def test_start_marks_in_progress(store):
    session = await _stored(store)

    started, events = await lifecycle.start(store, session.id, USER_ID, NOW)

    assert started.status == SessionStatus.IN_PROGRESS
    assert started.started_at == NOW
    assert store.sessions[session.id].status == "in-progress"
    assert len(events) == 1
    assert events[0].title == "Workout Started!"
    assert not events[0].send_email


@pytest.mark.asyncio
async def test_second_start_keeps_first_timestamp(store):
    session = await _stored(store)

    await lifecycle.start(store, session.id, USER_ID, NOW)
    again, _ = await lifecycle.start(store, session.id, USER_ID, LATER)

    assert again.started_at == NOW


@pytest.mark.asyncio
async def test_operations_on_foreign_or_missing_session_are_not_found(store):
    session = await _stored(store, user_id=OTHER_USER_ID)

    with pytest.raises(NotFound):
        await lifecycle.start(store, session.id, USER_ID, NOW)
    with pytest.raises(NotFound):
        await lifecycle.complete(store, session.id, USER_ID, NOW)
    with pytest.raises(NotFound):
        await lifecycle.skip(store, "not-an-id", USER_ID, NOW)


@pytest.mark.asyncio
async def test_complete_marks_every_exercise(store):
    exercises = [Exercise(name="Squats", completed=True), Exercise(name="Plank"), Exercise(name="Lunges")]
    session = await _stored(store, exercises=exercises, calories=200, duration=30)
    await lifecycle.start(store, session.id, USER_ID, NOW)

    done, events = await lifecycle.complete(store, session.id, USER_ID, LATER)

    assert done.status == SessionStatus.COMPLETED
    assert done.completed_at == LATER
    assert done.started_at == NOW
    assert all(ex.completed for ex in done.exercises)
    assert all(ex.completed for ex in store.sessions[session.id].exercises)
    assert events[0].title == "Workout Completed!"
    assert events[0].send_email
    assert "burned 200 calories" in events[0].message


@pytest.mark.asyncio
async def test_complete_without_overrides_keeps_recorded_values(store):
    session = await _stored(store, calories=250, duration=40)

    done, _ = await lifecycle.complete(store, session.id, USER_ID, NOW)

    assert done.calories == 250
    assert done.duration == 40


@pytest.mark.asyncio
async def test_complete_with_explicit_zero_overrides(store):
    session = await _stored(store, calories=250, duration=40)

    done, _ = await lifecycle.complete(store, session.id, USER_ID, NOW, duration=0, calories_burned=0)

    assert done.calories == 0
    assert done.duration == 0


@pytest.mark.asyncio
async def test_complete_straight_from_scheduled(store):
    session = await _stored(store)
    done, _ = await lifecycle.complete(store, session.id, USER_ID, NOW, duration=35, calories_burned=310)
    assert done.status == "completed"
    assert done.started_at is None
    assert (done.duration, done.calories) == (35, 310)


@pytest.mark.asyncio
async def test_skip_changes_status_only(store):
    session = await _stored(store)

    skipped = await lifecycle.skip(store, session.id, USER_ID, NOW)

    assert skipped.status == SessionStatus.SKIPPED
    assert skipped.started_at is None
    assert skipped.completed_at is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "first, then",
    [
        ("skip", "complete"),
        ("skip", "start"),
        ("complete", "skip"),
        ("complete", "start"),
    ],
)
async def test_terminal_states_do_not_regress(store, first, then):
    session = await _stored(store)
    await getattr(lifecycle, first)(store, session.id, USER_ID, NOW)
    before = store.sessions[session.id].status

    with pytest.raises(InvalidState):
        await getattr(lifecycle, then)(store, session.id, USER_ID, LATER)

    assert store.sessions[session.id].status == before


@pytest.mark.asyncio
async def test_repeating_a_terminal_action_is_allowed(store):
    session = await _stored(store)
    await lifecycle.skip(store, session.id, USER_ID, NOW)
    assert (await lifecycle.skip(store, session.id, USER_ID, LATER)).status == "skipped"

    other = await _stored(store, day=NOW + timedelta(days=1))
    await lifecycle.complete(store, other.id, USER_ID, NOW)
    again, _ = await lifecycle.complete(store, other.id, USER_ID, LATER, calories_burned=123)
    assert again.completed_at == LATER
    assert again.calories == 123
    assert store.sessions[other.id].completed_at == LATER


@pytest.mark.asyncio
async def test_upsert_creates_session_with_defaults(store):
    session = await lifecycle.upsert_for_date(
        store, USER_ID, SessionUpsert(workout_name="Evening Swim", date=datetime(2026, 10, 20, 19, 15)), NOW
    )

    assert session.id is not None
    assert session.date == datetime(2026, 10, 20)
    assert session.status == "scheduled"
    assert (session.duration, session.calories, session.difficulty) == (0, 0, "Beginner")
    assert session.started_at is None and session.completed_at is None


@pytest.mark.asyncio
async def test_upsert_defaults_to_today(store):
    session = await lifecycle.upsert_for_date(store, USER_ID, SessionUpsert(workout_name="Walk"), NOW)
    assert session.date == datetime(2026, 10, 21)


@pytest.mark.asyncio
async def test_upsert_new_completed_session_is_stamped(store):
    session = await lifecycle.upsert_for_date(
        store, USER_ID, SessionUpsert(workout_name="Ride", status="completed", calories=400), NOW
    )
    assert session.completed_at == NOW
    assert session.calories == 400


@pytest.mark.asyncio
async def test_upsert_merges_only_supplied_fields(store):
    existing = await _stored(store, calories=200, duration=30, difficulty="Intermediate")

    merged = await lifecycle.upsert_for_date(store, USER_ID, SessionUpsert(date=NOW, duration=45), NOW)

    assert merged.id == existing.id
    assert merged.duration == 45
    assert merged.calories == 200
    assert merged.difficulty == "Intermediate"
    assert merged.workout_name == existing.workout_name
    assert len(store.sessions) == 1


@pytest.mark.asyncio
async def test_upsert_in_progress_stamps_start_once(store):
    await _stored(store)

    first = await lifecycle.upsert_for_date(store, USER_ID, SessionUpsert(status="in-progress"), NOW)
    second = await lifecycle.upsert_for_date(store, USER_ID, SessionUpsert(status="in-progress"), LATER)

    assert first.started_at == NOW
    assert second.started_at == NOW


@pytest.mark.asyncio
async def test_upsert_cannot_reopen_completed_session(store):
    session = await _stored(store)
    await lifecycle.complete(store, session.id, USER_ID, NOW)

    with pytest.raises(InvalidState):
        await lifecycle.upsert_for_date(store, USER_ID, SessionUpsert(status="scheduled"), LATER)


@pytest.mark.asyncio
async def test_upsert_new_session_requires_name(store):
    with pytest.raises(InvalidInput):
        await lifecycle.upsert_for_date(store, USER_ID, SessionUpsert(duration=20), NOW)


@pytest.mark.asyncio
async def test_upsert_merges_into_concurrent_winner(store, monkeypatch):
    winner = await _stored(store, name="Winner", calories=100)
    real_find = store.find_session_by_date
    calls = []

    async def racing_find(user_id, day):
        calls.append(day)
        if len(calls) == 1:
            return None  # our read happened before the other request's insert
        return await real_find(user_id, day)

    monkeypatch.setattr(store, "find_session_by_date", racing_find)

    merged = await lifecycle.upsert_for_date(
        store, USER_ID, SessionUpsert(workout_name="Loser", calories=300), NOW
    )

    assert merged.id == winner.id
    assert merged.workout_name == "Loser"
    assert merged.calories == 300
    assert len(store.sessions) == 1


@pytest.mark.asyncio
async def test_update_session_by_id(store):
    session = await _stored(store)

    updated = await lifecycle.update_session(
        store, session.id, USER_ID, SessionUpdate(exercises=[Exercise(name="Rows", sets="4", reps="8")]), NOW
    )

    assert [ex.name for ex in updated.exercises] == ["Rows"]
    assert updated.workout_name == session.workout_name

    with pytest.raises(NotFound):
        await lifecycle.update_session(store, session.id, OTHER_USER_ID, SessionUpdate(duration=5), NOW)


@pytest.mark.asyncio
async def test_upsert_completed_twice_restamps_completion(store):
    first = await lifecycle.upsert_for_date(
        store, USER_ID, SessionUpsert(workout_name="Ride", status="completed"), NOW
    )
    second = await lifecycle.upsert_for_date(store, USER_ID, SessionUpsert(status="completed"), LATER)

    assert first.completed_at == NOW
    assert second.id == first.id
    assert second.completed_at == LATER
