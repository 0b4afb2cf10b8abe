"""Helper utility functions."""

import hashlib
import math
from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching what MongoDB returns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def isoformat_z(value: datetime) -> str:
    """Serialize a datetime as an ISO-8601 UTC string with millisecond precision."""
    value = to_naive_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def normalise_email(email: str) -> str:
    return email.strip().lower()


def hash_identifier(identifier: str) -> str:
    """Stable, non-reversible identifier for logs."""
    return hashlib.sha256(identifier.encode("utf-8")).hexdigest()


def object_id_to_string(value: Any) -> str:
    return value if isinstance(value, str) else str(value)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Return an ObjectId for ``value`` or None when it is not a valid identifier."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def round_half_up(value: float) -> int:
    """Round halves away from negative infinity, like JavaScript's Math.round."""
    return int(math.floor(value + 0.5))
