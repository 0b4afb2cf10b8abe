"""One-time sign-in codes and their per-email rate limit."""

import math
import secrets
from datetime import timedelta
from typing import Optional

from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from config.settings import settings
from models.database import get_otp_codes_collection, get_otp_request_counters_collection
from utils.helpers import utcnow
from utils.logger import setup_logger

logger = setup_logger(__name__)

OTP_GENERATION_ATTEMPTS = 5

DEMO_USERS = (
    {"email": "demo1@example.com", "name": "Demo One"},
    {"email": "demo2@example.com", "name": "Demo Two"},
    {"email": "demo3@example.com", "name": "Demo Three"},
    {"email": "demo4@example.com", "name": "Demo Four"},
    {"email": "demo5@example.com", "name": "Demo Five"},
)
DEMO_OTP_CODE = "123456"
DEMO_OTP_EXPIRY = timedelta(days=100)


class OtpGenerationError(Exception):
    """Raised when no unique code could be stored."""


def is_demo_email(email: str) -> bool:
    return any(user["email"] == email for user in DEMO_USERS)


def demo_logins_allowed() -> bool:
    return settings.demo_logins_enabled and not settings.is_production


def generate_otp_code() -> str:
    return f"{secrets.randbelow(900000) + 100000}"


async def check_rate_limit(email: str) -> Optional[int]:
    """Count a code request; return seconds to wait when the limit is exhausted."""
    counters = get_otp_request_counters_collection()
    now = utcnow()
    window = timedelta(seconds=settings.otp_rate_limit_window_seconds)
    counter = await counters.find_one({"email": email})

    if not counter or counter["window_started_at"] + window <= now:
        await counters.update_one(
            {"email": email},
            {"$set": {"email": email, "window_started_at": now, "request_count": 1, "updated_at": now}},
            upsert=True,
        )
        return None

    if counter.get("request_count", 0) >= settings.otp_rate_limit_max_requests:
        remaining = (counter["window_started_at"] + window - now).total_seconds()
        return max(1, math.ceil(remaining))

    await counters.update_one({"email": email}, {"$inc": {"request_count": 1}, "$set": {"updated_at": now}})
    return None


async def issue_demo_code(email: str) -> dict:
    """Store the fixed demo code for a demo account."""
    otp_codes = get_otp_codes_collection()
    now = utcnow()

    await otp_codes.update_many(
        {"email": email, "code": {"$ne": DEMO_OTP_CODE}, "consumed": False},
        {"$set": {"consumed": True, "updated_at": now}},
    )
    return await otp_codes.find_one_and_update(
        {"email": email, "code": DEMO_OTP_CODE},
        {
            "$set": {"expires_at": now + DEMO_OTP_EXPIRY, "consumed": False, "updated_at": now},
            "$setOnInsert": {"created_at": now},
        },
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )


async def issue_code(email: str) -> dict:
    """Consume outstanding codes for ``email`` and store a fresh one."""
    otp_codes = get_otp_codes_collection()
    now = utcnow()
    expires_at = now + timedelta(seconds=settings.otp_expiry_seconds)

    await otp_codes.update_many(
        {"email": email, "consumed": False},
        {"$set": {"consumed": True, "updated_at": now}},
    )

    for _ in range(OTP_GENERATION_ATTEMPTS):
        document = {
            "email": email,
            "code": generate_otp_code(),
            "expires_at": expires_at,
            "consumed": False,
            "created_at": now,
            "updated_at": now,
        }
        try:
            result = await otp_codes.insert_one(document)
        except DuplicateKeyError:
            logger.debug("One-time code collision, retrying")
            continue
        document["_id"] = result.inserted_id
        return document

    raise OtpGenerationError("Unable to generate OTP")


async def consume_code(email: str, code: str) -> Optional[dict]:
    """Mark a live matching code consumed and return it, or None."""
    now = utcnow()
    return await get_otp_codes_collection().find_one_and_update(
        {"email": email, "code": code, "consumed": False, "expires_at": {"$gt": now}},
        {"$set": {"consumed": True, "updated_at": now}},
        sort=[("created_at", DESCENDING)],
        return_document=ReturnDocument.AFTER,
    )


async def find_code(email: str, code: str) -> Optional[dict]:
    return await get_otp_codes_collection().find_one(
        {"email": email, "code": code},
        sort=[("created_at", DESCENDING)],
    )
