"""Progress analytics over a lookback window.

Everything below ``get_analytics`` is a pure function of the meals, sessions
and tracker entries of the window. Nothing is stored; the report is rebuilt
on every request.
"""

import logging
import math
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from config import REFERENCE_CALORIES
from dates import end_of_day, start_of_day, subtract_months, week_key
from errors import RetrievalError
from models import (
    AnalyticsReport,
    BodyCompositionWeek,
    CalorieBalanceWeek,
    GoalResult,
    GoalsAchieved,
    Meal,
    NutritionWeek,
    RiskFactors,
    SessionStatus,
    TrackerEntry,
    User,
    WorkoutPerformance,
    WorkoutSession,
)
from store import Store

log = logging.getLogger(__name__)

DEFAULT_PERIOD = "4weeks"
PERIOD_DAYS = {"1week": 7, "2weeks": 14, "4weeks": 28}
PERIOD_MONTHS = {"3months": 3, "6months": 6}

BASE_SCORE = 50
# The consistency score always looks at four weeks, whatever period was asked for.
CONSISTENCY_WINDOW_DAYS = 28
WORKOUTS_PER_WEEK_GOAL = 3
STEPS_GOAL = 8000
WATER_GOAL = 8
NO_RISK = "No significant risk factors detected"
GOAL_COUNT = 5


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _average(values: List[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def resolve_period(period: str, now: datetime) -> Tuple[datetime, datetime]:
    """(start, end) of the window: midnight N days (or months) back through the end of today."""
    end = end_of_day(now)
    if period in PERIOD_MONTHS:
        start = subtract_months(end, PERIOD_MONTHS[period])
    else:
        start = end - timedelta(days=PERIOD_DAYS.get(period, PERIOD_DAYS[DEFAULT_PERIOD]))
    return start_of_day(start), end


def period_days(start: datetime, end: datetime) -> int:
    return math.ceil((end - start) / timedelta(days=1))


def _completed(sessions: Iterable[WorkoutSession]) -> List[WorkoutSession]:
    return [s for s in sessions if s.status == SessionStatus.COMPLETED]


def _active_days(meals: List[Meal], sessions: List[WorkoutSession]) -> int:
    return len({m.date.date() for m in meals} | {s.date.date() for s in sessions})


def _within(value: float, target: float, tolerance: float) -> bool:
    return target * (1 - tolerance) <= value <= target * (1 + tolerance)


# ------------------------- SCORE & RISK -------------------------


def health_score(
    meals: List[Meal],
    sessions: List[WorkoutSession],
    tracker: List[TrackerEntry],
    reference_calories: float = REFERENCE_CALORIES,
) -> int:
    """Composite 0-100 score: base 50 plus nutrition, activity, daily metrics and consistency."""
    score = float(BASE_SCORE)

    # Nutrition (0-30)
    avg_calories = _average([m.calories for m in meals])
    if avg_calories is not None:
        if _within(avg_calories, reference_calories, 0.10):
            score += 30
        elif _within(avg_calories, reference_calories, 0.20):
            score += 20
        else:
            score += 10

    # Activity (0-30), completed workouts per week of tracked days
    frequency = len(_completed(sessions)) / max(len(tracker), 1) * 7
    if frequency >= 5:
        score += 30
    elif frequency >= 3:
        score += 20
    elif frequency >= 1:
        score += 10

    # Daily metrics (0-20)
    if tracker:
        avg_steps = _average([t.steps for t in tracker])
        avg_water = _average([t.water for t in tracker])
        avg_sleep = _average([t.sleep for t in tracker])

        if avg_steps >= 8000:
            score += 7
        elif avg_steps >= 5000:
            score += 5
        elif avg_steps >= 3000:
            score += 3

        if avg_water >= 8:
            score += 7
        elif avg_water >= 6:
            score += 5
        elif avg_water >= 4:
            score += 3

        if 7 <= avg_sleep <= 9:
            score += 6
        elif 6 <= avg_sleep <= 10:
            score += 4
        else:
            score += 2

    # Consistency (0-20)
    score += min(20.0, _active_days(meals, sessions) / CONSISTENCY_WINDOW_DAYS * 20)

    return max(0, min(100, round_half_up(score)))


def risk_factors(meals: List[Meal], sessions: List[WorkoutSession], tracker: List[TrackerEntry]) -> RiskFactors:
    factors = []
    level = "Low"

    avg_calories = _average([m.calories for m in meals])
    if avg_calories is not None:
        if avg_calories < 1200:
            factors.append("Very low calorie intake")
            level = "Moderate"
        elif avg_calories > 3500:
            factors.append("Very high calorie intake")
            level = "Moderate"

    if not _completed(sessions) and len(tracker) >= 7:
        factors.append("No workouts completed")
        if level == "Low":
            level = "Moderate"

    avg_sleep = _average([t.sleep for t in tracker])
    if avg_sleep is not None and avg_sleep < 5:
        factors.append("Insufficient sleep")
        level = "High"

    status = {"Low": "Healthy", "Moderate": "Moderate", "High": "High Risk"}[level]
    return RiskFactors(level=level, factors=factors or [NO_RISK], status=status)


# ------------------------- GOALS -------------------------


def _daily_goal(name: str, hits: int, tracked: int) -> GoalResult:
    """Goal met on at least 70% of tracked days."""
    if not tracked:
        return GoalResult(name=name, achieved=False)
    needed = math.ceil(tracked * 7 / 10)
    if hits >= needed:
        return GoalResult(name=name, achieved=True)
    return GoalResult(name=name, achieved=False, progress=f"{hits}/{needed} days")


def goals_achieved(
    meals: List[Meal],
    sessions: List[WorkoutSession],
    tracker: List[TrackerEntry],
    start: datetime,
    end: datetime,
    reference_calories: float = REFERENCE_CALORIES,
) -> GoalsAchieved:
    days = period_days(start, end)
    goals = []

    completed = len(_completed(sessions))
    target = math.ceil(days / 7) * WORKOUTS_PER_WEEK_GOAL
    if completed >= target:
        goals.append(GoalResult(name="Complete weekly workouts", achieved=True))
    else:
        goals.append(GoalResult(name="Complete weekly workouts", achieved=False, progress=f"{completed}/{target}"))

    avg_calories = _average([m.calories for m in meals])
    goals.append(
        GoalResult(
            name="Maintain nutrition goals",
            achieved=avg_calories is not None and _within(avg_calories, reference_calories, 0.10),
        )
    )

    goals.append(_daily_goal("Daily step goal", sum(1 for t in tracker if t.steps >= STEPS_GOAL), len(tracker)))
    goals.append(_daily_goal("Daily water intake", sum(1 for t in tracker if t.water >= WATER_GOAL), len(tracker)))

    rate = _active_days(meals, sessions) / days if days else 0.0
    if rate >= 0.7:
        goals.append(GoalResult(name="Maintain consistency", achieved=True))
    else:
        goals.append(
            GoalResult(name="Maintain consistency", achieved=False, progress=f"{round_half_up(rate * 100)}%")
        )

    achieved = sum(1 for goal in goals if goal.achieved)
    return GoalsAchieved(
        achieved=achieved,
        total=GOAL_COUNT,
        percentage=achieved * 100 // GOAL_COUNT,
        goals=goals,
    )


# ------------------------- WEEKLY SERIES -------------------------


def body_composition_trends(tracker: List[TrackerEntry]) -> List[BodyCompositionWeek]:
    weeks = defaultdict(lambda: {"weight": [], "steps": [], "calories": []})
    for entry in tracker:
        week = weeks[week_key(entry.date)]
        # Zero means "not logged" for all three metrics.
        if entry.weight:
            week["weight"].append(entry.weight)
        if entry.steps:
            week["steps"].append(entry.steps)
        if entry.calories_burned:
            week["calories"].append(entry.calories_burned)

    trends = []
    for key in sorted(weeks):
        week = weeks[key]
        steps = _average(week["steps"])
        calories = _average(week["calories"])
        trends.append(
            BodyCompositionWeek(
                week=key,
                weight=_average(week["weight"]),
                steps=round_half_up(steps) if steps is not None else 0,
                calories=round_half_up(calories) if calories is not None else 0,
            )
        )
    return trends


def calorie_balance(meals: List[Meal], sessions: List[WorkoutSession]) -> List[CalorieBalanceWeek]:
    """Weekly meal intake against the calories of every session in range, whatever its status."""
    weeks = defaultdict(lambda: {"intake": 0.0, "expenditure": 0.0})
    for meal in meals:
        weeks[week_key(meal.date)]["intake"] += meal.calories
    for session in sessions:
        weeks[week_key(session.date)]["expenditure"] += session.calories

    return [
        CalorieBalanceWeek(
            week=key,
            intake=round_half_up(weeks[key]["intake"]),
            expenditure=round_half_up(weeks[key]["expenditure"]),
            balance=round_half_up(weeks[key]["intake"] - weeks[key]["expenditure"]),
        )
        for key in sorted(weeks)
    ]


def nutrition_trends(meals: List[Meal]) -> List[NutritionWeek]:
    weeks = defaultdict(list)
    for meal in meals:
        weeks[week_key(meal.date)].append(meal)

    trends = []
    for key in sorted(weeks):
        week = weeks[key]
        trends.append(
            NutritionWeek(
                week=key,
                calories=round_half_up(_average([m.calories for m in week])),
                protein=round_half_up(_average([m.protein for m in week])),
                carbs=round_half_up(_average([m.carbs for m in week])),
                fats=round_half_up(_average([m.fats for m in week])),
            )
        )
    return trends


def workout_performance(sessions: List[WorkoutSession]) -> WorkoutPerformance:
    completed = _completed(sessions)
    total_duration = sum(s.duration for s in completed)
    total_calories = sum(s.calories for s in completed)
    count = len(completed)
    return WorkoutPerformance(
        total_workouts=count,
        total_duration=total_duration,
        total_calories_burned=total_calories,
        avg_duration=round_half_up(total_duration / count) if count else 0,
        avg_calories_burned=round_half_up(total_calories / count) if count else 0,
    )


# ------------------------- REPORT -------------------------


def reference_calories(user: Optional[User]) -> float:
    """Daily intake target: the user's own when set, else the configured default."""
    if user is not None and user.profile.daily_calorie_target:
        return user.profile.daily_calorie_target
    return REFERENCE_CALORIES


def build_report(
    period: str,
    start: datetime,
    end: datetime,
    meals: List[Meal],
    sessions: List[WorkoutSession],
    tracker: List[TrackerEntry],
    user: Optional[User] = None,
) -> AnalyticsReport:
    tracker = sorted(tracker, key=lambda entry: entry.date)
    calories = reference_calories(user)
    return AnalyticsReport(
        overall_health_score=health_score(meals, sessions, tracker, calories),
        risk_factors=risk_factors(meals, sessions, tracker),
        goals_achieved=goals_achieved(meals, sessions, tracker, start, end, calories),
        body_composition_trends=body_composition_trends(tracker),
        calorie_balance=calorie_balance(meals, sessions),
        workout_performance=workout_performance(sessions),
        nutrition_trends=nutrition_trends(meals),
        period=period,
    )


async def get_analytics(store: Store, user_id: str, period: str, now: datetime) -> AnalyticsReport:
    start, end = resolve_period(period, now)
    try:
        meals = await store.find_meals_in_range(user_id, start, end)
        sessions = await store.find_sessions_in_range(user_id, start, end)
        tracker = await store.find_tracker_entries_in_range(user_id, start, end)
        user = await store.find_user_profile(user_id)
    except Exception as exc:
        log.exception("Failed to read analytics history for user %s", user_id)
        raise RetrievalError("Failed to fetch analytics data") from exc

    return build_report(period, start, end, meals, sessions, tracker, user)
