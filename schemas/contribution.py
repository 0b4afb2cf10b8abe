"""Contribution schemas."""

import math
from datetime import datetime
from typing import List

from pydantic import field_serializer, field_validator

from schemas.common import ApiModel
from utils.helpers import isoformat_z, to_naive_utc, to_object_id

MONTH_FORMAT = "%Y-%m"


def parse_period(value) -> datetime:
    """Parse an ISO date, datetime or ``YYYY-MM`` month into the first day of that UTC month."""
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip() if isinstance(value, str) else ""
        if not text:
            raise ValueError("Contribution period is required")
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            try:
                parsed = datetime.strptime(text, MONTH_FORMAT)
            except ValueError:
                raise ValueError("Choose a valid contribution month to continue.")
    parsed = to_naive_utc(parsed)
    return datetime(parsed.year, parsed.month, 1)


class ContributionUpsert(ApiModel):
    goal_id: str
    amount: float
    period: datetime

    @field_validator("goal_id", mode="before")
    @classmethod
    def check_goal_id(cls, value):
        value = value.strip() if isinstance(value, str) else ""
        if not value:
            raise ValueError("Goal identifier is required")
        if to_object_id(value) is None:
            raise ValueError("Invalid goal identifier supplied")
        return value

    @field_validator("amount")
    @classmethod
    def check_amount(cls, value: float) -> float:
        if not math.isfinite(value) or value <= 0:
            raise ValueError("Enter an amount greater than zero so we can track your progress.")
        return value

    @field_validator("period", mode="before")
    @classmethod
    def check_period(cls, value):
        return parse_period(value)


class ContributionResponse(ApiModel):
    id: str
    goal_id: str
    user_id: str
    amount: float
    period: datetime
    created_at: datetime
    updated_at: datetime

    @field_serializer("period", "created_at", "updated_at")
    def serialize_dates(self, value: datetime) -> str:
        return isoformat_z(value)


class ContributionListResponse(ApiModel):
    data: List[ContributionResponse]
