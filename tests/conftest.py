import itertools
from datetime import datetime

import pytest

from dates import end_of_day, start_of_day
from errors import DuplicateSession
from models import (
    Exercise,
    PlanExercise,
    PlanWorkout,
    SessionStatus,
    SharedTemplate,
    User,
    UserOwnedPlan,
    WorkoutSession,
)

# A Wednesday; its week starts on Sunday 2026-10-18.
NOW = datetime(2026, 10, 21, 9, 30)
USER_ID = "64b7f0c2a1b2c3d4e5f60001"
OTHER_USER_ID = "64b7f0c2a1b2c3d4e5f60002"


class InMemoryStore:
    """Store protocol over plain dicts, with the (user, date) session uniqueness of the real index."""

    def __init__(self):
        self._ids = itertools.count(1)
        self.sessions = {}
        self.plans = {}
        self.users = {}
        self.meals = []
        self.tracker = []
        self.fail_reads = False

    def _new_id(self) -> str:
        return f"{next(self._ids):024x}"

    def add_user(self, user_id: str, **fields) -> User:
        user = User(id=user_id, **fields)
        self.users[user_id] = user
        return user

    # sessions

    async def find_session_by_date(self, user_id, day):
        start, end = start_of_day(day), end_of_day(day)
        for session in self.sessions.values():
            if session.user_id == user_id and start <= session.date <= end:
                return session.model_copy(deep=True)
        return None

    async def find_sessions_in_range(self, user_id, start, end):
        if self.fail_reads:
            raise RuntimeError("store unavailable")
        found = [s for s in self.sessions.values() if s.user_id == user_id and start <= s.date <= end]
        return [s.model_copy(deep=True) for s in sorted(found, key=lambda s: s.date)]

    async def find_session_by_id(self, session_id, user_id):
        session = self.sessions.get(session_id)
        if session is None or session.user_id != user_id:
            return None
        return session.model_copy(deep=True)

    async def upsert_session(self, session):
        if session.id is None:
            for existing in self.sessions.values():
                if existing.user_id == session.user_id and existing.date.date() == session.date.date():
                    raise DuplicateSession(session.date.isoformat())
            session = session.model_copy(update={"id": self._new_id()}, deep=True)
        self.sessions[session.id] = session.model_copy(deep=True)
        return session

    async def count_completed_sessions(self, user_id, plan_id):
        return sum(
            1
            for s in self.sessions.values()
            if s.user_id == user_id and s.workout_plan_id == plan_id and s.status == SessionStatus.COMPLETED
        )

    # plans

    async def find_active_plan(self, user_id):
        for plan in self.plans.values():
            if isinstance(plan, UserOwnedPlan) and plan.user_id == user_id and plan.is_active:
                return plan.model_copy(deep=True)
        return None

    async def find_plan_by_id(self, plan_id):
        plan = self.plans.get(plan_id)
        return plan.model_copy(deep=True) if plan else None

    async def find_visible_plans(self, user_id):
        visible = [
            p for p in self.plans.values()
            if p.is_public or (isinstance(p, UserOwnedPlan) and p.user_id == user_id)
        ]
        return sorted(visible, key=lambda p: p.created_at, reverse=True)

    async def deactivate_all_plans(self, user_id):
        changed = 0
        for plan_id, plan in self.plans.items():
            if isinstance(plan, UserOwnedPlan) and plan.user_id == user_id and plan.is_active:
                self.plans[plan_id] = plan.model_copy(update={"is_active": False})
                changed += 1
        return changed

    async def create_plan(self, plan):
        plan = plan.model_copy(update={"id": self._new_id()}, deep=True)
        self.plans[plan.id] = plan
        return plan.model_copy(deep=True)

    async def save_plan(self, plan):
        self.plans[plan.id] = plan.model_copy(deep=True)
        return plan

    # history

    async def find_meals_in_range(self, user_id, start, end):
        if self.fail_reads:
            raise RuntimeError("store unavailable")
        return [m for m in self.meals if m.user_id == user_id and start <= m.date <= end]

    async def find_tracker_entries_in_range(self, user_id, start, end):
        if self.fail_reads:
            raise RuntimeError("store unavailable")
        found = [t for t in self.tracker if t.user_id == user_id and start <= t.date <= end]
        return sorted(found, key=lambda t: t.date)

    async def find_user_profile(self, user_id):
        return self.users.get(user_id)


class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.events = []
        self.fail = fail

    async def emit(self, event):
        if self.fail:
            raise RuntimeError("mail server down")
        self.events.append(event)


def workout_row(week, day, name, duration=30, calories=200):
    return PlanWorkout(
        week=week,
        day=day,
        name=name,
        duration=duration,
        calories=calories,
        exercises=[
            PlanExercise(name="Warm-up", type="warmup", duration="5 min"),
            PlanExercise(name="Push-ups", sets="3", reps="10"),
        ],
    )


def weekly_rows(duration):
    """Monday strength, Wednesday cardio, rest on Sunday and Friday, for every week."""
    rows = []
    for week in range(1, duration + 1):
        rows += [
            PlanWorkout(week=week, day=0, name="REST DAY"),
            workout_row(week, 1, f"Strength W{week}"),
            workout_row(week, 3, f"Cardio W{week}", duration=20, calories=150),
            PlanWorkout(week=week, day=5, name="Rest Day"),
        ]
    return rows


def make_session(user_id=USER_ID, day=NOW, name="Full Body", **fields):
    fields.setdefault("exercises", [Exercise(name="Squats", sets="3", reps="10"), Exercise(name="Plank")])
    return WorkoutSession(user_id=user_id, workout_name=name, date=start_of_day(day), **fields)


@pytest.fixture
def store():
    store = InMemoryStore()
    store.add_user(USER_ID, email="runner@example.com", full_name="Sam Runner")
    store.add_user(OTHER_USER_ID, email="other@example.com")
    return store


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def template():
    return SharedTemplate(
        name="Beginner Full Body",
        duration=4,
        workouts=weekly_rows(4),
        total_workouts=8,
        created_at=datetime(2026, 1, 1),
    )
