"""Workout plan scheduling.

Turns the active plan's week/day template into dated ``scheduled`` sessions,
one week at a time. Rest days are never stored: a slot with no template row
and a slot whose row is a "Rest Day" both produce no session.
"""

import logging
import math
from datetime import datetime
from typing import List, Optional, Tuple

from analytics import round_half_up
from dates import DAY_NAMES, day_index, end_of_week, start_of_week, week_days, weeks_elapsed
from errors import DuplicateSession, NotFound
from models import (
    Exercise,
    PlanCreate,
    PlanProgress,
    PlanWorkout,
    ScheduleDay,
    SessionStatus,
    UserOwnedPlan,
    WorkoutPlan,
    WorkoutSession,
)
from notifications import NotificationEvent, plan_activated, workout_scheduled
from store import Store

log = logging.getLogger(__name__)


def current_week(plan: WorkoutPlan, reference: datetime) -> int:
    """1-based plan week for ``reference``.

    Clamped to the plan's duration: once the plan has run its course the
    final week keeps being used rather than cycling back to week 1.
    """
    elapsed = weeks_elapsed(reference, plan.created_at)
    return max(1, min(elapsed + 1, plan.duration))


def template_for(plan: WorkoutPlan, week: int, day: int) -> Optional[PlanWorkout]:
    """The workout planned for (week, day), or None for a rest slot."""
    for row in plan.workouts:
        if row.week == week and row.day == day:
            return None if row.is_rest_day else row
    return None


def count_workouts(rows: List[PlanWorkout]) -> int:
    return sum(1 for row in rows if not row.is_rest_day)


def session_from_template(
    user_id: str, plan: WorkoutPlan, row: PlanWorkout, day: datetime, now: datetime
) -> WorkoutSession:
    return WorkoutSession(
        user_id=user_id,
        workout_plan_id=plan.id,
        workout_name=row.name,
        date=day,
        duration=row.duration,
        calories=row.calories,
        difficulty=row.difficulty,
        status=SessionStatus.SCHEDULED,
        exercises=[
            Exercise(name=ex.name, sets=ex.sets, reps=ex.reps, duration=ex.duration, notes=ex.notes)
            for ex in row.exercises
        ],
        created_at=now,
        updated_at=now,
    )


async def ensure_week_scheduled(
    store: Store,
    user_id: str,
    plan: WorkoutPlan,
    week_start: datetime,
    today: datetime,
) -> Tuple[List[WorkoutSession], List[NotificationEvent]]:
    """Create the missing sessions of the week containing ``week_start``.

    Days that already hold a session, whatever its origin, are left alone, so
    running this again for the same week creates nothing. Each day is
    inserted on its own; if another request wins the (user, date) race the
    day is skipped.
    """
    week_start = start_of_week(week_start)
    week = current_week(plan, week_start)

    existing = await store.find_sessions_in_range(user_id, week_start, end_of_week(week_start))
    taken = {session.date.date() for session in existing}

    created: List[WorkoutSession] = []
    events: List[NotificationEvent] = []
    for day in week_days(week_start):
        if day.date() in taken:
            continue

        row = template_for(plan, week, day_index(day))
        if row is None:
            continue

        try:
            session = await store.upsert_session(session_from_template(user_id, plan, row, day, today))
        except DuplicateSession:
            log.info("Session for user %s on %s created concurrently; skipping", user_id, day.date())
            continue

        created.append(session)
        if day.date() == today.date():
            events.append(workout_scheduled(session))

    if created:
        log.info(
            "Scheduled %d session(s) for user %s from plan %s (week %d of %d)",
            len(created), user_id, plan.id, week, plan.duration,
        )
    return created, events


def _visible_to(plan: WorkoutPlan, user_id: str) -> bool:
    return plan.is_public or (isinstance(plan, UserOwnedPlan) and plan.user_id == user_id)


async def list_plans(store: Store, user_id: str) -> List[WorkoutPlan]:
    return await store.find_visible_plans(user_id)


async def get_plan(store: Store, user_id: str, plan_id: str) -> WorkoutPlan:
    plan = await store.find_plan_by_id(plan_id)
    if plan is None or not _visible_to(plan, user_id):
        raise NotFound("Workout plan")
    return plan


async def create_plan(store: Store, user_id: str, data: PlanCreate, now: datetime) -> UserOwnedPlan:
    plan = UserOwnedPlan(
        **data.model_dump(),
        user_id=user_id,
        total_workouts=count_workouts(data.workouts),
        is_active=False,
        is_public=False,
        created_at=now,
        updated_at=now,
    )
    return await store.create_plan(plan)


async def activate_plan(
    store: Store, user_id: str, plan_id: str, now: datetime
) -> Tuple[UserOwnedPlan, List[NotificationEvent]]:
    """Make ``plan_id`` the user's only active plan and schedule this week.

    Plans the user does not own (shared templates, or public plans of other
    users) are copied; the copy's creation time becomes week 1. An owned plan
    is reactivated in place and keeps its original anchor.
    """
    plan = await get_plan(store, user_id, plan_id)
    await store.deactivate_all_plans(user_id)

    if isinstance(plan, UserOwnedPlan) and plan.user_id == user_id:
        owned = await store.save_plan(plan.model_copy(update={"is_active": True}))
    else:
        owned = await store.create_plan(plan.activate_for(user_id, now))
    log.info("User %s activated plan %s (%s)", user_id, owned.id, owned.name)

    _, events = await ensure_week_scheduled(store, user_id, owned, start_of_week(now), now)
    events.append(plan_activated(owned))
    return owned, events


async def get_current_plan(
    store: Store, user_id: str, now: datetime
) -> Tuple[Optional[UserOwnedPlan], Optional[PlanProgress]]:
    plan = await store.find_active_plan(user_id)
    if plan is None:
        return None, None

    week = current_week(plan, now)
    completed = await store.count_completed_sessions(user_id, plan.id)
    expected = math.floor(week / plan.duration * plan.total_workouts)

    progress = PlanProgress(
        current_week=week,
        total_weeks=plan.duration,
        workouts_completed=completed,
        total_workouts=plan.total_workouts,
        progress_percentage=round_half_up(completed / plan.total_workouts * 100) if plan.total_workouts else 0,
        consistency=round_half_up(completed / expected * 100) if expected > 0 else 0,
    )
    return plan, progress


async def get_today_workout(
    store: Store, user_id: str, now: datetime
) -> Tuple[Optional[WorkoutSession], List[NotificationEvent]]:
    """Today's session, scheduling the current week first if it is missing."""
    session = await store.find_session_by_date(user_id, now)
    if session is not None:
        return session, []

    plan = await store.find_active_plan(user_id)
    if plan is None:
        return None, []

    _, events = await ensure_week_scheduled(store, user_id, plan, start_of_week(now), now)
    return await store.find_session_by_date(user_id, now), events


async def get_week_schedule(
    store: Store, user_id: str, now: datetime
) -> Tuple[List[ScheduleDay], Optional[int]]:
    plan = await store.find_active_plan(user_id)
    if plan is None:
        return [], None

    week_start = start_of_week(now)
    week = current_week(plan, week_start)
    sessions = await store.find_sessions_in_range(user_id, week_start, end_of_week(week_start))
    by_date = {session.date.date(): session for session in sessions}

    schedule = []
    for day in week_days(week_start):
        row = template_for(plan, week, day_index(day))
        session = by_date.get(day.date())
        completed = session is not None and session.status == SessionStatus.COMPLETED

        if row is not None:
            workout, minutes = row.name, row.duration
        elif session is not None:
            workout, minutes = session.workout_name, session.duration
        else:
            workout, minutes = "Rest Day", 0

        schedule.append(
            ScheduleDay(
                day=DAY_NAMES[day_index(day)],
                workout=workout,
                duration=f"{minutes} min" if minutes else "-",
                completed=completed,
                active=day.date() == now.date() and not completed,
            )
        )
    return schedule, week
