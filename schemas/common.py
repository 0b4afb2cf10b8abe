"""Shared API schemas."""

import re
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def check_email(value: str, missing_message: str, invalid_message: str) -> str:
    """Trim, validate and lower-case an email address."""
    value = (value or "").strip()
    if not value:
        raise ValueError(missing_message)
    if not EMAIL_PATTERN.match(value):
        raise ValueError(invalid_message)
    return value.lower()


class ApiModel(BaseModel):
    """Base model serialised with camelCase keys on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BackoffHint(ApiModel):
    """Tells the client how long to wait before retrying."""
    strategy: Literal["retry-after"] = "retry-after"
    reason: Literal["RATE_LIMIT"] = "RATE_LIMIT"
    retry_after_seconds: int = Field(..., gt=0)


class ApiErrorBody(ApiModel):
    code: str
    message: str
    locale: Literal["en"] = "en"
    hint: Optional[str] = None
    backoff: Optional[BackoffHint] = None


class ApiErrorResponse(ApiModel):
    error: ApiErrorBody
