import logging

from motor.motor_asyncio import AsyncIOMotorClient

from config import DB_NAME, MONGODB_URL

log = logging.getLogger(__name__)

client = AsyncIOMotorClient(MONGODB_URL)
db = client[DB_NAME]


async def check_db() -> None:
    """Fail-fast check so you instantly know Mongo is reachable."""
    await client.admin.command("ping")
    log.info("MongoDB connection successful (%s)", DB_NAME)


async def create_indexes() -> None:
    """Indexes the engine relies on; (user_id, date) is the session natural key."""
    await db.workout_sessions.create_index([("user_id", 1), ("date", 1)], unique=True)
    await db.workout_sessions.create_index([("user_id", 1), ("status", 1)])
    await db.workout_plans.create_index([("user_id", 1), ("is_active", 1)])
    await db.meals.create_index([("user_id", 1), ("date", -1)])
    await db.health_trackers.create_index([("user_id", 1), ("date", 1)], unique=True)
    await db.users.create_index("email", unique=True)
    log.info("Indexes created.")
