"""Seed the shared workout plan templates.

Usage: python backend/seed.py
"""

import asyncio
import logging

from database import db
from logging_setup import configure_logging
from models import PlanExercise, PlanWorkout, SharedTemplate
from scheduler import count_workouts
from store import MongoStore, Store

log = logging.getLogger(__name__)


def _rest(week: int, day: int) -> PlanWorkout:
    return PlanWorkout(week=week, day=day, name="Rest Day", description="Rest and recovery")


def _beginner_week(week: int) -> list[PlanWorkout]:
    warmup = PlanExercise(name="Warm-up", type="warmup", duration="5 min")
    cooldown = PlanExercise(name="Cool down", type="cooldown", duration="5 min")
    return [
        _rest(week, 0),
        PlanWorkout(
            week=week, day=1, name="Full Body Strength", description="Monday workout",
            duration=30, calories=200,
            exercises=[
                warmup,
                PlanExercise(name="Bodyweight Squats", sets="3", reps="10"),
                PlanExercise(name="Push-ups", sets="3", reps="8"),
                PlanExercise(name="Plank", duration="3x30s"),
                cooldown,
            ],
        ),
        _rest(week, 2),
        PlanWorkout(
            week=week, day=3, name="Cardio Light", description="Wednesday cardio",
            duration=20, calories=150,
            exercises=[warmup, PlanExercise(name="Walking/Jogging", duration="10 min"), cooldown],
        ),
        _rest(week, 4),
        PlanWorkout(
            week=week, day=5, name="Full Body Strength", description="Friday workout",
            duration=30, calories=200,
            exercises=[
                warmup,
                PlanExercise(name="Lunges", sets="3", reps="8 each leg"),
                PlanExercise(name="Modified Push-ups", sets="3", reps="8"),
                PlanExercise(name="Leg Raises", sets="3", reps="10"),
                cooldown,
            ],
        ),
        PlanWorkout(
            week=week, day=6, name="Active Recovery", description="Light activity",
            duration=15, calories=100,
            exercises=[PlanExercise(name="Gentle Stretching", duration="15 min")],
        ),
    ]


def _weight_loss_week(week: int) -> list[PlanWorkout]:
    warmup = PlanExercise(name="Warm-up", type="warmup", duration="5 min")
    cooldown = PlanExercise(name="Cool down", type="cooldown", duration="5 min")
    return [
        _rest(week, 0),
        PlanWorkout(
            week=week, day=1, name="Upper Body Strength", description="Monday upper body",
            duration=45, calories=320, difficulty="Intermediate",
            exercises=[
                warmup,
                PlanExercise(name="Push-ups", sets="4", reps="12"),
                PlanExercise(name="Dumbbell Rows", sets="4", reps="12"),
                PlanExercise(name="Shoulder Press", sets="3", reps="10"),
                cooldown,
            ],
        ),
        PlanWorkout(
            week=week, day=2, name="HIIT Cardio", description="Tuesday intervals",
            duration=30, calories=350, difficulty="Intermediate",
            exercises=[warmup, PlanExercise(name="Burpees / Sprint intervals", duration="8x30s"), cooldown],
        ),
        PlanWorkout(
            week=week, day=3, name="Lower Body Strength", description="Wednesday lower body",
            duration=45, calories=330, difficulty="Intermediate",
            exercises=[
                warmup,
                PlanExercise(name="Goblet Squats", sets="4", reps="12"),
                PlanExercise(name="Romanian Deadlifts", sets="4", reps="10"),
                PlanExercise(name="Walking Lunges", sets="3", reps="12 each leg"),
                cooldown,
            ],
        ),
        _rest(week, 4),
        PlanWorkout(
            week=week, day=5, name="Core & Conditioning", description="Friday core",
            duration=40, calories=300, difficulty="Intermediate",
            exercises=[
                warmup,
                PlanExercise(name="Mountain Climbers", duration="4x40s"),
                PlanExercise(name="Russian Twists", sets="3", reps="20"),
                PlanExercise(name="Plank", duration="3x60s"),
                cooldown,
            ],
        ),
        _rest(week, 6),
    ]


def shared_templates() -> list[SharedTemplate]:
    templates = []
    for name, description, weeks, difficulty, goal, week_builder in (
        (
            "Beginner Full Body",
            "Perfect for beginners looking to build strength and endurance with full-body workouts",
            8, "Beginner", "overall-fitness", _beginner_week,
        ),
        (
            "Weight Loss & Toning",
            "High-intensity workouts designed to burn calories and tone your body",
            12, "Intermediate", "weight-loss", _weight_loss_week,
        ),
    ):
        workouts = [row for week in range(1, weeks + 1) for row in week_builder(week)]
        templates.append(
            SharedTemplate(
                name=name,
                description=description,
                duration=weeks,
                difficulty=difficulty,
                goal=goal,
                workouts=workouts,
                total_workouts=count_workouts(workouts),
            )
        )
    return templates


async def seed(store: Store) -> int:
    existing = {plan.name for plan in await store.find_visible_plans(user_id="") if isinstance(plan, SharedTemplate)}
    created = 0
    for template in shared_templates():
        if template.name in existing:
            log.info("Template %r already present, skipping", template.name)
            continue
        await store.create_plan(template)
        created += 1
        log.info("Seeded template %r (%d workouts)", template.name, template.total_workouts)
    return created


if __name__ == "__main__":
    configure_logging()
    asyncio.run(seed(MongoStore(db)))
