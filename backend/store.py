"""Document store access for sessions, plans and the history analytics reads.

``Store`` is the interface the core depends on; ``MongoStore`` implements it
on Motor. Documents keep snake_case field names and a string ``id`` is
exposed in place of ``_id``.
"""

from datetime import datetime
from typing import List, Optional, Protocol

from bson import ObjectId
from pydantic import TypeAdapter
from pymongo.errors import DuplicateKeyError

from dates import end_of_day, start_of_day
from errors import DuplicateSession
from models import (
    Meal,
    SessionStatus,
    SharedTemplate,
    TrackerEntry,
    User,
    UserOwnedPlan,
    WorkoutPlan,
    WorkoutSession,
)

PLAN_ADAPTER = TypeAdapter(WorkoutPlan)


class Store(Protocol):
    async def find_session_by_date(self, user_id: str, day: datetime) -> Optional[WorkoutSession]: ...

    async def find_sessions_in_range(self, user_id: str, start: datetime, end: datetime) -> List[WorkoutSession]: ...

    async def find_session_by_id(self, session_id: str, user_id: str) -> Optional[WorkoutSession]: ...

    async def upsert_session(self, session: WorkoutSession) -> WorkoutSession:
        """Insert when ``session.id`` is unset, replace otherwise.

        Raises DuplicateSession when an insert collides on (user_id, date).
        """
        ...

    async def count_completed_sessions(self, user_id: str, plan_id: str) -> int: ...

    async def find_active_plan(self, user_id: str) -> Optional[UserOwnedPlan]: ...

    async def find_plan_by_id(self, plan_id: str) -> Optional[WorkoutPlan]: ...

    async def find_visible_plans(self, user_id: str) -> List[WorkoutPlan]: ...

    async def deactivate_all_plans(self, user_id: str) -> int: ...

    async def create_plan(self, plan: WorkoutPlan) -> WorkoutPlan: ...

    async def save_plan(self, plan: WorkoutPlan) -> WorkoutPlan: ...

    async def find_meals_in_range(self, user_id: str, start: datetime, end: datetime) -> List[Meal]: ...

    async def find_tracker_entries_in_range(self, user_id: str, start: datetime, end: datetime) -> List[TrackerEntry]: ...

    async def find_user_profile(self, user_id: str) -> Optional[User]: ...


def _with_id(doc: dict) -> dict:
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return doc


def _object_id(value: Optional[str]) -> Optional[ObjectId]:
    if value is None or not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


def plan_from_document(doc: dict) -> WorkoutPlan:
    doc = _with_id(doc)
    doc["kind"] = "user" if doc.get("user_id") else "shared"
    return PLAN_ADAPTER.validate_python(doc)


def plan_to_document(plan: WorkoutPlan) -> dict:
    doc = plan.model_dump(exclude={"id", "kind"})
    if isinstance(plan, SharedTemplate):
        # Shared templates are stored with no owner and are never active.
        doc["user_id"] = None
        doc["is_active"] = False
    return doc


class MongoStore:
    def __init__(self, db):
        self.db = db

    # ------------------------- SESSIONS -------------------------

    async def find_session_by_date(self, user_id: str, day: datetime) -> Optional[WorkoutSession]:
        doc = await self.db.workout_sessions.find_one(
            {"user_id": user_id, "date": {"$gte": start_of_day(day), "$lte": end_of_day(day)}}
        )
        return WorkoutSession(**_with_id(doc)) if doc else None

    async def find_sessions_in_range(self, user_id: str, start: datetime, end: datetime) -> List[WorkoutSession]:
        cursor = self.db.workout_sessions.find({"user_id": user_id, "date": {"$gte": start, "$lte": end}}).sort("date", 1)
        return [WorkoutSession(**_with_id(doc)) for doc in await cursor.to_list(length=None)]

    async def find_session_by_id(self, session_id: str, user_id: str) -> Optional[WorkoutSession]:
        oid = _object_id(session_id)
        if oid is None:
            return None
        doc = await self.db.workout_sessions.find_one({"_id": oid, "user_id": user_id})
        return WorkoutSession(**_with_id(doc)) if doc else None

    async def upsert_session(self, session: WorkoutSession) -> WorkoutSession:
        session = session.model_copy(update={"updated_at": datetime.now()})
        doc = session.model_dump(exclude={"id"})
        if session.id is None:
            try:
                result = await self.db.workout_sessions.insert_one(doc)
            except DuplicateKeyError as exc:
                raise DuplicateSession(f"Session already exists for {session.user_id} on {session.date:%Y-%m-%d}") from exc
            return session.model_copy(update={"id": str(result.inserted_id)})

        await self.db.workout_sessions.replace_one({"_id": ObjectId(session.id)}, doc)
        return session

    async def count_completed_sessions(self, user_id: str, plan_id: str) -> int:
        return await self.db.workout_sessions.count_documents(
            {"user_id": user_id, "workout_plan_id": plan_id, "status": SessionStatus.COMPLETED.value}
        )

    # ------------------------- PLANS -------------------------

    async def find_active_plan(self, user_id: str) -> Optional[UserOwnedPlan]:
        doc = await self.db.workout_plans.find_one({"user_id": user_id, "is_active": True})
        return plan_from_document(doc) if doc else None

    async def find_plan_by_id(self, plan_id: str) -> Optional[WorkoutPlan]:
        oid = _object_id(plan_id)
        if oid is None:
            return None
        doc = await self.db.workout_plans.find_one({"_id": oid})
        return plan_from_document(doc) if doc else None

    async def find_visible_plans(self, user_id: str) -> List[WorkoutPlan]:
        cursor = self.db.workout_plans.find({"$or": [{"is_public": True}, {"user_id": user_id}]}).sort("created_at", -1)
        return [plan_from_document(doc) for doc in await cursor.to_list(length=None)]

    async def deactivate_all_plans(self, user_id: str) -> int:
        result = await self.db.workout_plans.update_many(
            {"user_id": user_id, "is_active": True},
            {"$set": {"is_active": False, "updated_at": datetime.now()}},
        )
        return result.modified_count

    async def create_plan(self, plan: WorkoutPlan) -> WorkoutPlan:
        result = await self.db.workout_plans.insert_one(plan_to_document(plan))
        return plan.model_copy(update={"id": str(result.inserted_id)})

    async def save_plan(self, plan: WorkoutPlan) -> WorkoutPlan:
        plan = plan.model_copy(update={"updated_at": datetime.now()})
        await self.db.workout_plans.replace_one({"_id": ObjectId(plan.id)}, plan_to_document(plan))
        return plan

    # ------------------------- HISTORY -------------------------

    async def find_meals_in_range(self, user_id: str, start: datetime, end: datetime) -> List[Meal]:
        cursor = self.db.meals.find({"user_id": user_id, "date": {"$gte": start, "$lte": end}}).sort("date", 1)
        return [Meal(**_with_id(doc)) for doc in await cursor.to_list(length=None)]

    async def find_tracker_entries_in_range(self, user_id: str, start: datetime, end: datetime) -> List[TrackerEntry]:
        cursor = self.db.health_trackers.find({"user_id": user_id, "date": {"$gte": start, "$lte": end}}).sort("date", 1)
        return [TrackerEntry(**_with_id(doc)) for doc in await cursor.to_list(length=None)]

    async def find_user_profile(self, user_id: str) -> Optional[User]:
        oid = _object_id(user_id)
        if oid is None:
            return None
        doc = await self.db.users.find_one({"_id": oid}, {"password_hash": 0})
        return User(**_with_id(doc)) if doc else None
