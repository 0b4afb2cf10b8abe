"""Signed session tokens (HS256, compact JWT layout)."""

import base64
import binascii
import hashlib
import hmac
import json
import math
import time
from typing import Literal, Optional

from pydantic import BaseModel

from config.settings import settings

SESSION_COOKIE_NAME = "session"
MIN_SESSION_AGE_SECONDS = 60

_HEADER = {"alg": "HS256", "typ": "JWT"}


class ValidSession(BaseModel):
    user_id: str
    email: Optional[str] = None
    issued_at: int
    expires_at: int


class SessionValidationResult(BaseModel):
    success: bool
    session: Optional[ValidSession] = None
    reason: Optional[Literal["missing", "invalid", "expired"]] = None


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(segment: str) -> bytes:
    padding = "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(segment + padding)


def _sign(data: str) -> str:
    digest = hmac.new(settings.jwt_secret.encode("utf-8"), data.encode("utf-8"), hashlib.sha256).digest()
    return _b64encode(digest)


def _encode_json(payload: dict) -> str:
    return _b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def create_session_token(user_id: str, email: Optional[str] = None, max_age_seconds: Optional[int] = None) -> str:
    """Issue a token for ``user_id`` that expires after ``max_age_seconds`` (at least a minute)."""
    issued_at = int(time.time())
    max_age = max(MIN_SESSION_AGE_SECONDS, max_age_seconds or settings.session_max_age_seconds)

    payload = {"sub": user_id, "iat": issued_at, "exp": issued_at + max_age}
    if email:
        payload["email"] = email

    data = f"{_encode_json(_HEADER)}.{_encode_json(payload)}"
    return f"{data}.{_sign(data)}"


def _parse_payload(segment: str) -> Optional[dict]:
    try:
        data = json.loads(_b64decode(segment).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None

    if not isinstance(data, dict) or not isinstance(data.get("sub"), str):
        return None
    if not _is_number(data.get("iat")) or not _is_number(data.get("exp")):
        return None
    return data


def validate_session_token(token: Optional[str]) -> SessionValidationResult:
    """Check signature and expiry of a session token."""
    if not token:
        return SessionValidationResult(success=False, reason="missing")

    segments = token.split(".")
    if len(segments) != 3 or not all(segments):
        return SessionValidationResult(success=False, reason="invalid")

    header_segment, payload_segment, signature_segment = segments
    expected = _sign(f"{header_segment}.{payload_segment}")
    if not hmac.compare_digest(signature_segment.encode("ascii", "replace"), expected.encode("ascii")):
        return SessionValidationResult(success=False, reason="invalid")

    payload = _parse_payload(payload_segment)
    if payload is None:
        return SessionValidationResult(success=False, reason="invalid")

    if payload["exp"] <= int(time.time()):
        return SessionValidationResult(success=False, reason="expired")

    email = payload.get("email")
    return SessionValidationResult(
        success=True,
        session=ValidSession(
            user_id=payload["sub"],
            email=email if isinstance(email, str) else None,
            issued_at=int(payload["iat"]),
            expires_at=int(payload["exp"]),
        ),
    )


def session_cookie_options(max_age: Optional[int] = None) -> dict:
    """Keyword arguments for ``Response.set_cookie``."""
    return {
        "httponly": True,
        "samesite": "strict",
        "secure": settings.is_production,
        "path": "/",
        "max_age": settings.session_max_age_seconds if max_age is None else max_age,
    }
