"""Database models and connection setup."""

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING
from typing import Optional
from config.settings import settings
from utils.logger import setup_logger

logger = setup_logger(__name__)


class Database:
    """Database connection manager."""

    client: Optional[AsyncIOMotorClient] = None


db = Database()


async def connect_to_mongo():
    """Create database connection."""
    db.client = AsyncIOMotorClient(settings.mongodb_url)
    logger.info(f"Connected to MongoDB database '{settings.mongodb_db}'")


async def close_mongo_connection():
    """Close database connection."""
    if db.client:
        db.client.close()
        db.client = None
        logger.info("Disconnected from MongoDB")


async def create_indexes():
    """Create the indexes every collection relies on."""
    database = get_database()

    # Users collection
    await database.users.create_index([("email", ASCENDING)], unique=True)

    # Goals collection
    goals = database.goals
    await goals.create_index([("owner_id", ASCENDING)])
    await goals.create_index([("is_shared", ASCENDING)])
    await goals.create_index([("owner_id", ASCENDING), ("target_date", ASCENDING)])
    await goals.create_index([("members.user_id", ASCENDING)])

    # Invites collection
    invites = database.invites
    await invites.create_index([("token", ASCENDING)], unique=True)
    await invites.create_index([("goal_id", ASCENDING), ("email", ASCENDING)], unique=True)
    await invites.create_index([("email", ASCENDING), ("created_at", DESCENDING)])

    # Contributions collection
    contributions = database.contributions
    await contributions.create_index(
        [("goal_id", ASCENDING), ("user_id", ASCENDING), ("period", ASCENDING)],
        unique=True,
    )
    await contributions.create_index([("user_id", ASCENDING), ("period", DESCENDING)])

    # One-time codes
    otp_codes = database.otp_codes
    await otp_codes.create_index([("email", ASCENDING), ("code", ASCENDING)], unique=True)
    await otp_codes.create_index([("expires_at", ASCENDING)], expireAfterSeconds=0)
    await database.otp_request_counters.create_index([("email", ASCENDING)], unique=True)

    # Analytics events expire after the retention window
    await database.analytics_events.create_index(
        [("recorded_at", ASCENDING)],
        expireAfterSeconds=settings.analytics_retention_days * 24 * 60 * 60,
    )


async def init_mongo():
    """Initialize MongoDB connection and all collections with indexes."""
    await connect_to_mongo()
    await create_indexes()
    logger.info("MongoDB initialized: All collections created with indexes")


async def ping_database() -> bool:
    """Return True when the database answers a ping."""
    if not db.client:
        return False
    try:
        await get_database().command("ping")
        return True
    except Exception as e:
        logger.warning(f"MongoDB ping failed: {e}")
        return False


def get_database():
    """Get database instance."""
    return db.client[settings.mongodb_db]


# Helper functions to get collections
def get_users_collection():
    """Get users collection."""
    return get_database().users


def get_goals_collection():
    """Get goals collection."""
    return get_database().goals


def get_invites_collection():
    """Get invites collection."""
    return get_database().invites


def get_contributions_collection():
    """Get contributions collection."""
    return get_database().contributions


def get_otp_codes_collection():
    """Get one-time codes collection."""
    return get_database().otp_codes


def get_otp_request_counters_collection():
    """Get one-time code rate limit counters collection."""
    return get_database().otp_request_counters


def get_analytics_events_collection():
    """Get analytics events collection."""
    return get_database().analytics_events
