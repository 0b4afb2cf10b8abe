"""Recreate the demo accounts and their fixed sign-in codes. Development only."""

import asyncio
import sys
from pathlib import Path

# Ensure repo root is on sys.path even when running from scripts/
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config.settings import settings
from models.database import (
    close_mongo_connection,
    get_otp_codes_collection,
    get_users_collection,
    init_mongo,
)
from services.otp import DEMO_OTP_CODE, DEMO_OTP_EXPIRY, DEMO_USERS
from utils.helpers import utcnow
from utils.logger import setup_logger

logger = setup_logger("scripts.seed_test_users")


async def seed_test_users() -> None:
    if settings.is_production:
        raise RuntimeError("scripts/seed_test_users.py is development-only and cannot run in production.")

    await init_mongo()
    try:
        logger.info("Clearing existing users and one-time codes...")
        await get_users_collection().delete_many({})
        await get_otp_codes_collection().delete_many({})

        now = utcnow()
        for user in DEMO_USERS:
            logger.info(f"Creating user {user['email']}...")
            await get_users_collection().insert_one(
                {"email": user["email"], "name": user["name"], "created_at": now, "updated_at": now}
            )
            await get_otp_codes_collection().insert_one(
                {
                    "email": user["email"],
                    "code": DEMO_OTP_CODE,
                    "expires_at": now + DEMO_OTP_EXPIRY,
                    "consumed": False,
                    "created_at": now,
                    "updated_at": now,
                }
            )
    finally:
        await close_mongo_connection()


def main() -> int:
    try:
        asyncio.run(seed_test_users())
    except Exception as e:
        logger.error(f"Failed to seed test users: {e}", exc_info=True)
        return 1

    print("Demo users created. Sign in with:")
    for user in DEMO_USERS:
        print(f"  {user['email']} -> code {DEMO_OTP_CODE}")
    print("Codes expire in about 100 days.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
