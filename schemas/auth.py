"""Authentication request and response schemas."""

import re
from typing import Optional

from pydantic import field_validator

from schemas.common import ApiModel, check_email

OTP_CODE_PATTERN = re.compile(r"^\d{6}$")


class RequestOtpInput(ApiModel):
    email: str

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, value):
        return check_email(
            value if isinstance(value, str) else "",
            "Please enter your email address so we can send a code.",
            "That email looks incorrect. Check the address and try again.",
        )


class VerifyOtpInput(ApiModel):
    email: str
    code: str

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, value):
        return check_email(
            value if isinstance(value, str) else "",
            "Please enter your email address so we can verify the code.",
            "That email looks incorrect. Check the address and try again.",
        )

    @field_validator("code", mode="before")
    @classmethod
    def check_code(cls, value):
        value = value.strip() if isinstance(value, str) else ""
        if len(value) != 6:
            raise ValueError("Enter the 6-digit code from your email.")
        if not OTP_CODE_PATTERN.match(value):
            raise ValueError("Use only digits in your 6-digit code.")
        return value


class AuthUser(ApiModel):
    id: str
    email: str
    name: Optional[str] = None


class AuthUserResponse(ApiModel):
    user: AuthUser
