"""Request dependencies shared by the routers."""

from typing import Optional

from bson import ObjectId
from fastapi import Request
from pydantic import BaseModel, ConfigDict

from api.errors import ApiError
from services.session import SESSION_COOKIE_NAME, validate_session_token
from utils.helpers import to_object_id


class CurrentUser(BaseModel):
    """Caller resolved from the session token."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: ObjectId
    email: Optional[str] = None


def _request_token(request: Request) -> Optional[str]:
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if token:
        return token

    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


class SessionUser:
    """Dependency resolving the signed-in user, raising ``<prefix>_UNAUTHORIZED``."""

    def __init__(self, code_prefix: str):
        self.code = f"{code_prefix}_UNAUTHORIZED"

    async def __call__(self, request: Request) -> CurrentUser:
        result = validate_session_token(_request_token(request))

        if not result.success:
            if result.reason == "expired":
                raise ApiError(
                    self.code,
                    "Your session has expired. Please sign in again to keep going.",
                    401,
                    hint="Request a fresh sign-in code to continue.",
                    log_level="info",
                    context={"reason": result.reason},
                )
            raise ApiError(
                self.code,
                "We could not find your session. Please sign in to continue.",
                401,
                hint="Request a new sign-in code to continue.",
                log_level="warn" if result.reason == "invalid" else "info",
                context={"reason": result.reason},
            )

        user_id = to_object_id(result.session.user_id)
        if user_id is None:
            raise ApiError(
                self.code,
                "Your session looks unusual. Please sign in again to keep things secure.",
                401,
                hint="Sign in again to refresh your session.",
                context={"reason": "invalid-object-id"},
            )

        return CurrentUser(id=user_id, email=result.session.email)


def parse_object_id(value: str, code_prefix: str, message: str = "Invalid identifier supplied") -> ObjectId:
    """Convert a path or body identifier, raising ``<prefix>_VALIDATION_ERROR`` when malformed."""
    object_id = to_object_id(value)
    if object_id is None:
        raise ApiError(f"{code_prefix}_VALIDATION_ERROR", message, 400)
    return object_id


goal_user = SessionUser("GOAL")
auth_user = SessionUser("AUTH")
contribution_user = SessionUser("CONTRIBUTION")
