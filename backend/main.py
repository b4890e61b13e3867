from __future__ import annotations

import logging
from datetime import datetime

from fastapi import BackgroundTasks, Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import analytics
import lifecycle
import scheduler
from config import CORS_ALLOW_ORIGINS
from database import check_db, create_indexes
from deps import get_current_user, get_notifier, get_store
from errors import InvalidInput, InvalidState, NotFound, RetrievalError
from logging_setup import configure_logging
from models import PlanCreate, SessionComplete, SessionUpdate, SessionUpsert, User
from notifications import Notifier, dispatch
from store import Store

configure_logging()
log = logging.getLogger(__name__)

app = FastAPI(title="Fitness Tracking API")


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _fail(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return _fail(status.HTTP_404_NOT_FOUND, str(exc))


@app.exception_handler(InvalidState)
async def invalid_state_handler(request: Request, exc: InvalidState):
    return _fail(status.HTTP_409_CONFLICT, str(exc))


@app.exception_handler(InvalidInput)
async def invalid_input_handler(request: Request, exc: InvalidInput):
    return _fail(status.HTTP_400_BAD_REQUEST, str(exc))


@app.exception_handler(RetrievalError)
async def retrieval_error_handler(request: Request, exc: RetrievalError):
    return _fail(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _fail(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


@app.on_event("startup")
async def startup_db_client():
    await check_db()
    await create_indexes()


def _ok(**data) -> dict:
    return {"success": True, "data": data}


def _dump(model):
    return model.model_dump(mode="json") if model is not None else None


@app.get("/")
async def root():
    return {"message": "Fitness API is running"}


# ------------------------- PLANS -------------------------


@app.get("/workouts/plans")
async def get_workout_plans(current_user: User = Depends(get_current_user), store: Store = Depends(get_store)):
    plans = await scheduler.list_plans(store, current_user.id)
    return _ok(plans=[_dump(plan) for plan in plans])


@app.get("/workouts/plans/{plan_id}")
async def get_workout_plan(
    plan_id: str,
    current_user: User = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    plan = await scheduler.get_plan(store, current_user.id, plan_id)
    return _ok(plan=_dump(plan))


@app.post("/workouts/plans", status_code=201)
async def create_workout_plan(
    data: PlanCreate,
    current_user: User = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    plan = await scheduler.create_plan(store, current_user.id, data, datetime.now())
    return _ok(plan=_dump(plan))


@app.post("/workouts/plans/{plan_id}/activate")
async def activate_plan(
    plan_id: str,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    store: Store = Depends(get_store),
    notifier: Notifier = Depends(get_notifier),
):
    plan, events = await scheduler.activate_plan(store, current_user.id, plan_id, datetime.now())
    background_tasks.add_task(dispatch, notifier, events)
    return _ok(plan=_dump(plan))


@app.get("/workouts/current")
async def get_current_plan(current_user: User = Depends(get_current_user), store: Store = Depends(get_store)):
    plan, progress = await scheduler.get_current_plan(store, current_user.id, datetime.now())
    return _ok(plan=_dump(plan), progress=_dump(progress))


@app.get("/workouts/today")
async def get_today_workout(
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    store: Store = Depends(get_store),
    notifier: Notifier = Depends(get_notifier),
):
    session, events = await scheduler.get_today_workout(store, current_user.id, datetime.now())
    background_tasks.add_task(dispatch, notifier, events)
    return _ok(workout=_dump(session))


@app.get("/workouts/week")
async def get_week_schedule(current_user: User = Depends(get_current_user), store: Store = Depends(get_store)):
    schedule, current_week = await scheduler.get_week_schedule(store, current_user.id, datetime.now())
    return _ok(schedule=[_dump(day) for day in schedule], current_week=current_week)


# ------------------------- SESSIONS -------------------------


@app.post("/workouts/sessions")
async def upsert_workout_session(
    data: SessionUpsert,
    current_user: User = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    session = await lifecycle.upsert_for_date(store, current_user.id, data, datetime.now())
    return _ok(session=_dump(session))


@app.put("/workouts/sessions/{session_id}")
async def update_workout_session(
    session_id: str,
    data: SessionUpdate,
    current_user: User = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    session = await lifecycle.update_session(store, session_id, current_user.id, data, datetime.now())
    return _ok(session=_dump(session))


@app.post("/workouts/sessions/{session_id}/start")
async def start_workout(
    session_id: str,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    store: Store = Depends(get_store),
    notifier: Notifier = Depends(get_notifier),
):
    session, events = await lifecycle.start(store, session_id, current_user.id, datetime.now())
    background_tasks.add_task(dispatch, notifier, events)
    return _ok(session=_dump(session))


@app.post("/workouts/sessions/{session_id}/complete")
async def complete_workout(
    session_id: str,
    background_tasks: BackgroundTasks,
    data: SessionComplete | None = None,
    current_user: User = Depends(get_current_user),
    store: Store = Depends(get_store),
    notifier: Notifier = Depends(get_notifier),
):
    data = data or SessionComplete()
    session, events = await lifecycle.complete(
        store,
        session_id,
        current_user.id,
        datetime.now(),
        duration=data.duration,
        calories_burned=data.calories_burned,
    )
    background_tasks.add_task(dispatch, notifier, events)
    return _ok(session=_dump(session))


@app.post("/workouts/sessions/{session_id}/skip")
async def skip_workout(
    session_id: str,
    current_user: User = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    session = await lifecycle.skip(store, session_id, current_user.id, datetime.now())
    return _ok(session=_dump(session))


# ------------------------- ANALYTICS -------------------------


@app.get("/analytics")
async def get_analytics(
    period: str = analytics.DEFAULT_PERIOD,
    current_user: User = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    report = await analytics.get_analytics(store, current_user.id, period, datetime.now())
    return {"success": True, "data": report.model_dump(mode="json", by_alias=True)}
