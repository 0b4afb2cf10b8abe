"""Passwordless sign-in routes."""

from fastapi import APIRouter, Depends, Response
from pymongo import ReturnDocument

from api.deps import CurrentUser, auth_user
from api.errors import ApiError
from models.database import get_users_collection
from schemas.auth import AuthUser, AuthUserResponse, RequestOtpInput, VerifyOtpInput
from schemas.common import BackoffHint
from services.otp import (
    check_rate_limit,
    consume_code,
    demo_logins_allowed,
    find_code,
    is_demo_email,
    issue_code,
    issue_demo_code,
)
from services.session import SESSION_COOKIE_NAME, create_session_token, session_cookie_options
from utils.helpers import hash_identifier, utcnow
from utils.logger import setup_logger

logger = setup_logger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


def _auth_user(user: dict) -> AuthUser:
    return AuthUser(id=str(user["_id"]), email=user["email"], name=user.get("name"))


@router.post("/auth/request-otp", status_code=204, response_class=Response)
async def request_otp(payload: RequestOtpInput):
    """Send (store) a sign-in code for an email address."""
    email = payload.email
    try:
        retry_after_seconds = await check_rate_limit(email)
        if retry_after_seconds:
            raise ApiError(
                "AUTH_RATE_LIMITED",
                "We have sent the maximum number of codes to this email in the last hour.",
                429,
                hint="Please wait a little while before requesting another code.",
                backoff=BackoffHint(retry_after_seconds=retry_after_seconds),
                context={"email_hash": hash_identifier(email)},
            )

        if demo_logins_allowed() and is_demo_email(email):
            await issue_demo_code(email)
        else:
            await issue_code(email)
            logger.info(f"Issued sign-in code for {hash_identifier(email)[:12]}")

        return Response(status_code=204)

    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error issuing sign-in code: {e}", exc_info=True)
        raise ApiError(
            "AUTH_INTERNAL_ERROR",
            "We could not send a sign-in code right now.",
            500,
            hint="Please try again shortly.",
            context={"operation": "request-otp"},
            error=e,
        )


@router.post("/auth/verify-otp", response_model=AuthUserResponse)
async def verify_otp(payload: VerifyOtpInput, response: Response):
    """Exchange a sign-in code for a session cookie."""
    email = payload.email
    try:
        otp_code = await consume_code(email, payload.code)

        if not otp_code:
            if not await find_code(email, payload.code):
                raise ApiError(
                    "AUTH_INVALID_CODE",
                    "That code isn't quite right. Please check your email and try again.",
                    400,
                    hint="If you no longer have the code, request a new one.",
                    context={"email_hash": hash_identifier(email)},
                )
            raise ApiError(
                "AUTH_EXPIRED_CODE",
                "This code has expired. Request a new one to keep going.",
                401,
                hint="Tap \"Send a new code\" to receive another email.",
                context={"email_hash": hash_identifier(email)},
            )

        now = utcnow()
        user = await get_users_collection().find_one_and_update(
            {"email": email},
            {"$setOnInsert": {"email": email, "created_at": now}, "$set": {"updated_at": now}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

        token = create_session_token(str(user["_id"]), email=user["email"])
        response.set_cookie(SESSION_COOKIE_NAME, token, **session_cookie_options())

        return AuthUserResponse(user=_auth_user(user))

    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error verifying sign-in code: {e}", exc_info=True)
        raise ApiError(
            "AUTH_INTERNAL_ERROR",
            "We could not verify that code right now.",
            500,
            hint="Please try again shortly.",
            context={"operation": "verify-otp"},
            error=e,
        )


@router.api_route("/auth/logout", methods=["POST", "DELETE"])
async def logout(response: Response):
    """Clear the session cookie."""
    response.set_cookie(SESSION_COOKIE_NAME, "", **session_cookie_options(max_age=0))
    response.headers["Cache-Control"] = "no-store"
    return {"status": "signed-out"}


@router.get("/me", response_model=AuthUserResponse)
async def get_me(current_user: CurrentUser = Depends(auth_user)):
    """Return the signed-in user."""
    try:
        user = await get_users_collection().find_one({"_id": current_user.id})
        if not user:
            raise ApiError(
                "AUTH_UNAUTHORIZED",
                "We could not find your account. Please sign in again.",
                401,
                hint="Request a fresh sign-in code to continue.",
                context={"operation": "me", "reason": "user-not-found"},
            )
        return AuthUserResponse(user=_auth_user(user))

    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error loading current user: {e}", exc_info=True)
        raise ApiError(
            "AUTH_INTERNAL_ERROR",
            "We could not load your account details right now.",
            500,
            hint="Please refresh in a moment.",
            context={"operation": "me"},
            error=e,
        )
