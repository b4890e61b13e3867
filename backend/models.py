from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

Difficulty = Literal["Beginner", "Intermediate", "Advanced"]
PlanGoal = Literal["weight-loss", "muscle-gain", "overall-fitness", "endurance", "flexibility"]

REST_DAY = "rest day"


# Embedded Data Model: Profile lives inside User
class UserProfile(BaseModel):
    age: Optional[int] = None
    gender: Optional[str] = None
    weight: Optional[float] = None
    height: Optional[float] = None
    activity_level: Optional[str] = None
    goals: Optional[str] = "Stay fit"
    daily_calorie_target: Optional[float] = Field(None, gt=0)


class NotificationPreferences(BaseModel):
    workout_reminders: bool = True
    meal_reminders: bool = True
    progress_updates: bool = True


class User(BaseModel):
    id: str
    email: Optional[EmailStr] = None
    full_name: Optional[str] = None
    profile: UserProfile = Field(default_factory=UserProfile)
    notification_preferences: NotificationPreferences = Field(default_factory=NotificationPreferences)


# ------------------------- PLANS -------------------------


class PlanExercise(BaseModel):
    name: str
    type: Literal["warmup", "exercise", "cooldown"] = "exercise"
    sets: str = ""
    reps: str = ""
    duration: str = ""  # e.g. "5 min", "3x60s"
    rest: str = ""
    notes: str = ""


class PlanWorkout(BaseModel):
    """One template row: what to do on ``day`` (Sunday=0) of plan week ``week``."""

    week: int = Field(ge=1)
    day: int = Field(ge=0, le=6)
    name: str
    description: str = ""
    duration: int = 0  # minutes
    calories: float = 0
    difficulty: Difficulty = "Beginner"
    exercises: List[PlanExercise] = []

    @property
    def is_rest_day(self) -> bool:
        return self.name.strip().lower() == REST_DAY


class _PlanBase(BaseModel):
    id: Optional[str] = None
    name: str
    description: str = ""
    duration: int = Field(4, ge=1)  # weeks
    difficulty: Difficulty = "Beginner"
    goal: PlanGoal = "overall-fitness"
    image: str = ""
    total_workouts: int = 0
    workouts: List[PlanWorkout] = []
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    def activate_for(self, user_id: str, now: datetime) -> "UserOwnedPlan":
        """Private active copy whose ``created_at`` anchors week 1 for this user."""
        data = self.model_dump(
            exclude={"id", "kind", "user_id", "is_active", "is_public", "created_at", "updated_at"}
        )
        return UserOwnedPlan(
            **data,
            user_id=user_id,
            is_active=True,
            is_public=False,
            created_at=now,
            updated_at=now,
        )


class SharedTemplate(_PlanBase):
    """System plan with no owner. Never activated in place."""

    kind: Literal["shared"] = "shared"
    is_public: bool = True


class UserOwnedPlan(_PlanBase):
    kind: Literal["user"] = "user"
    user_id: str
    is_active: bool = False
    is_public: bool = False


WorkoutPlan = Annotated[Union[SharedTemplate, UserOwnedPlan], Field(discriminator="kind")]


class PlanCreate(BaseModel):
    name: str
    description: str = ""
    duration: int = Field(4, ge=1)
    difficulty: Difficulty = "Beginner"
    goal: PlanGoal = "overall-fitness"
    image: str = ""
    workouts: List[PlanWorkout] = []


class PlanProgress(BaseModel):
    current_week: int
    total_weeks: int
    workouts_completed: int
    total_workouts: int
    progress_percentage: int
    consistency: int


class ScheduleDay(BaseModel):
    day: str
    workout: str
    duration: str
    completed: bool
    active: bool


# ------------------------- SESSIONS -------------------------


class SessionStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class Exercise(BaseModel):
    name: str
    sets: str = ""
    reps: str = ""
    duration: str = ""
    completed: bool = False
    notes: str = ""


class WorkoutSession(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)

    id: Optional[str] = None
    user_id: str
    workout_plan_id: Optional[str] = None
    workout_name: str
    date: datetime  # midnight of the calendar day
    duration: int = 0  # minutes
    calories: float = 0
    difficulty: Difficulty = "Beginner"
    status: SessionStatus = Field(SessionStatus.SCHEDULED, validate_default=True)
    exercises: List[Exercise] = []
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class SessionUpdate(BaseModel):
    """Partial session fields; ``None`` means "leave as is"."""

    workout_plan_id: Optional[str] = None
    workout_name: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0)
    calories: Optional[float] = Field(None, ge=0)
    difficulty: Optional[Difficulty] = None
    exercises: Optional[List[Exercise]] = None
    status: Optional[SessionStatus] = None


class SessionUpsert(SessionUpdate):
    date: Optional[datetime] = None


class SessionComplete(BaseModel):
    duration: Optional[int] = Field(None, ge=0)
    calories_burned: Optional[float] = Field(None, ge=0)


# ------------------------- COLLABORATOR DATA -------------------------


class Meal(BaseModel):
    id: Optional[str] = None
    user_id: str
    name: str = ""
    type: str = "lunch"
    date: datetime
    calories: float = Field(0, ge=0)
    protein: float = Field(0, ge=0)
    carbs: float = Field(0, ge=0)
    fats: float = Field(0, ge=0)


class TrackerEntry(BaseModel):
    id: Optional[str] = None
    user_id: str
    date: datetime
    steps: int = Field(0, ge=0)
    steps_goal: int = 10000
    water: float = Field(0, ge=0)  # glasses
    water_goal: float = 8
    sleep: float = Field(0, ge=0, le=24)  # hours
    sleep_goal: float = 8
    weight: Optional[float] = None  # kg
    active_minutes: int = 0
    active_minutes_goal: int = 60
    calories_burned: float = 0
    notes: str = ""


# ------------------------- ANALYTICS REPORT -------------------------


class _ReportModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RiskFactors(_ReportModel):
    level: Literal["Low", "Moderate", "High"]
    factors: List[str]
    status: Literal["Healthy", "Moderate", "High Risk"]


class GoalResult(_ReportModel):
    name: str
    achieved: bool
    progress: Optional[str] = None


class GoalsAchieved(_ReportModel):
    achieved: int
    total: int
    percentage: int
    goals: List[GoalResult]


class BodyCompositionWeek(_ReportModel):
    week: str
    weight: Optional[float]
    steps: int
    calories: int


class CalorieBalanceWeek(_ReportModel):
    week: str
    intake: int
    expenditure: int
    balance: int


class WorkoutPerformance(_ReportModel):
    total_workouts: int
    total_duration: int
    total_calories_burned: float
    avg_duration: int
    avg_calories_burned: int


class NutritionWeek(_ReportModel):
    week: str
    calories: int
    protein: int
    carbs: int
    fats: int


class AnalyticsReport(_ReportModel):
    overall_health_score: int
    risk_factors: RiskFactors
    goals_achieved: GoalsAchieved
    body_composition_trends: List[BodyCompositionWeek]
    calorie_balance: List[CalorieBalanceWeek]
    workout_performance: WorkoutPerformance
    nutrition_trends: List[NutritionWeek]
    period: str
