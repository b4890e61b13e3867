"""Session lifecycle: scheduled -> in-progress -> completed, or skipped.

``completed`` and ``skipped`` are terminal. Staying in the current state is
always allowed, which makes repeated start/skip calls harmless.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from dates import start_of_day
from errors import DuplicateSession, InvalidInput, InvalidState, NotFound
from models import SessionStatus, SessionUpdate, SessionUpsert, WorkoutSession
from notifications import NotificationEvent, workout_completed, workout_started
from store import Store

log = logging.getLogger(__name__)

TRANSITIONS = {
    SessionStatus.SCHEDULED: {SessionStatus.IN_PROGRESS, SessionStatus.COMPLETED, SessionStatus.SKIPPED},
    SessionStatus.IN_PROGRESS: {SessionStatus.COMPLETED, SessionStatus.SKIPPED},
    SessionStatus.COMPLETED: set(),
    SessionStatus.SKIPPED: set(),
}


def check_transition(current: str, requested: str) -> None:
    current, requested = SessionStatus(current), SessionStatus(requested)
    if current != requested and requested not in TRANSITIONS[current]:
        raise InvalidState(current.value, requested.value)


def apply_status(session: WorkoutSession, status: str, now: datetime) -> None:
    """Move ``session`` to ``status`` and stamp the matching timestamp."""
    check_transition(session.status, status)
    status = SessionStatus(status)

    if status == SessionStatus.IN_PROGRESS and session.started_at is None:
        session.started_at = now
    if status == SessionStatus.COMPLETED:
        session.completed_at = now
    session.status = status


async def _load(store: Store, session_id: str, user_id: str) -> WorkoutSession:
    session = await store.find_session_by_id(session_id, user_id)
    if session is None:
        raise NotFound("Workout session")
    return session


async def start(
    store: Store, session_id: str, user_id: str, now: datetime
) -> Tuple[WorkoutSession, List[NotificationEvent]]:
    session = await _load(store, session_id, user_id)
    apply_status(session, SessionStatus.IN_PROGRESS, now)
    session = await store.upsert_session(session)
    return session, [workout_started(session)]


async def complete(
    store: Store,
    session_id: str,
    user_id: str,
    now: datetime,
    duration: Optional[int] = None,
    calories_burned: Optional[float] = None,
) -> Tuple[WorkoutSession, List[NotificationEvent]]:
    """Finish a session. ``None`` overrides keep the recorded values; ``0`` is a real value."""
    session = await _load(store, session_id, user_id)
    apply_status(session, SessionStatus.COMPLETED, now)

    if duration is not None:
        session.duration = duration
    if calories_burned is not None:
        session.calories = calories_burned
    session.exercises = [ex.model_copy(update={"completed": True}) for ex in session.exercises]

    session = await store.upsert_session(session)
    log.info("User %s completed session %s (%s)", user_id, session.id, session.workout_name)
    return session, [workout_completed(session)]


async def skip(store: Store, session_id: str, user_id: str, now: datetime) -> WorkoutSession:
    session = await _load(store, session_id, user_id)
    apply_status(session, SessionStatus.SKIPPED, now)
    return await store.upsert_session(session)


def _merge(session: WorkoutSession, fields: dict, now: datetime) -> WorkoutSession:
    status = fields.pop("status", None)
    for key, value in fields.items():
        setattr(session, key, value)
    if status is not None:
        apply_status(session, status, now)
    return session


def _new_session(user_id: str, day: datetime, fields: dict, now: datetime) -> WorkoutSession:
    if not fields.get("workout_name"):
        raise InvalidInput("workout_name is required for a new session")

    status = fields.pop("status", SessionStatus.SCHEDULED)
    session = WorkoutSession(user_id=user_id, date=day, created_at=now, updated_at=now, **fields)
    apply_status(session, status, now)
    return session


async def upsert_for_date(store: Store, user_id: str, data: SessionUpsert, now: datetime) -> WorkoutSession:
    """Create the session for ``data.date`` (default today) or merge into the existing one.

    Only fields that were supplied overwrite stored values.
    """
    day = start_of_day(data.date or now)
    fields = data.model_dump(exclude_none=True, exclude={"date"})

    existing = await store.find_session_by_date(user_id, day)
    if existing is None:
        try:
            return await store.upsert_session(_new_session(user_id, day, dict(fields), now))
        except DuplicateSession:
            # Lost the (user, date) race: merge into the winner instead.
            existing = await store.find_session_by_date(user_id, day)
            if existing is None:
                raise

    return await store.upsert_session(_merge(existing, fields, now))


async def update_session(
    store: Store, session_id: str, user_id: str, data: SessionUpdate, now: datetime
) -> WorkoutSession:
    session = await _load(store, session_id, user_id)
    return await store.upsert_session(_merge(session, data.model_dump(exclude_none=True), now))
