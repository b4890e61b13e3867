"""Notification events raised by scheduling and the session lifecycle.

Core operations return events next to their result instead of sending
anything themselves; the API layer hands them to ``dispatch`` once the
primary write has succeeded. Delivery is best-effort.
"""

import logging
from datetime import datetime
from typing import Iterable, Literal, Optional, Protocol

from bson import ObjectId
from pydantic import BaseModel, Field

from analytics import round_half_up
from models import NotificationPreferences, UserOwnedPlan, WorkoutSession

log = logging.getLogger(__name__)

NotificationKind = Literal["workout", "meal", "achievement", "goal", "system"]


class NotificationEvent(BaseModel):
    user_id: str
    kind: NotificationKind = "workout"
    title: str
    message: str
    send_email: bool = True
    action_url: str = ""
    scheduled_time: str = "Now"
    priority: Literal["low", "medium", "high"] = "medium"
    created_at: datetime = Field(default_factory=datetime.now)


def workout_scheduled(session: WorkoutSession) -> NotificationEvent:
    return NotificationEvent(
        user_id=session.user_id,
        title=f"Workout Scheduled: {session.workout_name}",
        message=f'Your workout "{session.workout_name}" is scheduled for today. Time to get moving!',
        scheduled_time="Today",
        action_url="/workouts/today",
    )


def plan_activated(plan: UserOwnedPlan) -> NotificationEvent:
    return NotificationEvent(
        user_id=plan.user_id,
        title="Workout Plan Activated!",
        message=(
            f'Your workout plan "{plan.name}" has been successfully activated. '
            "Get ready to achieve your fitness goals!"
        ),
        action_url="/workouts",
    )


def workout_started(session: WorkoutSession) -> NotificationEvent:
    return NotificationEvent(
        user_id=session.user_id,
        title="Workout Started!",
        message=f'You\'ve started "{session.workout_name}". Keep up the great work!',
        send_email=False,
        action_url="/workouts",
    )


def workout_completed(session: WorkoutSession) -> NotificationEvent:
    return NotificationEvent(
        user_id=session.user_id,
        title="Workout Completed!",
        message=(
            f'Congratulations! You\'ve completed "{session.workout_name}" and burned '
            f"{round_half_up(session.calories)} calories. Keep crushing your fitness goals!"
        ),
        action_url="/analytics",
    )


def email_allowed(kind: str, prefs: NotificationPreferences) -> bool:
    if kind == "workout":
        return prefs.workout_reminders
    if kind == "meal":
        return prefs.meal_reminders
    if kind in ("achievement", "goal"):
        return prefs.progress_updates
    return True


class Notifier(Protocol):
    async def emit(self, event: NotificationEvent) -> None: ...


class MongoNotifier:
    """Stores in-app notifications; email transport lives outside this service."""

    def __init__(self, db):
        self.db = db

    async def emit(self, event: NotificationEvent) -> None:
        await self.db.notifications.insert_one(
            {
                "user_id": event.user_id,
                "type": event.kind,
                "title": event.title,
                "message": event.message,
                "priority": event.priority,
                "action_url": event.action_url,
                "is_read": False,
                "created_at": event.created_at,
            }
        )
        if not event.send_email:
            return

        prefs = NotificationPreferences()
        if ObjectId.is_valid(event.user_id):
            user = await self.db.users.find_one(
                {"_id": ObjectId(event.user_id)}, {"notification_preferences": 1}
            )
            if user and user.get("notification_preferences"):
                prefs = NotificationPreferences(**user["notification_preferences"])

        if email_allowed(event.kind, prefs):
            log.info("Email requested for user %s: %s (%s)", event.user_id, event.title, event.scheduled_time)


async def dispatch(notifier: Optional[Notifier], events: Iterable[NotificationEvent]) -> int:
    """Deliver events one by one; failures are logged and never raised. Returns the delivered count."""
    if notifier is None:
        return 0

    delivered = 0
    for event in events:
        try:
            await notifier.emit(event)
        except Exception:
            log.exception("Failed to deliver %r notification to user %s", event.title, event.user_id)
            continue
        delivered += 1
    return delivered
