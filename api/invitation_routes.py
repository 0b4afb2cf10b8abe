"""Invitation inbox routes and token-based acceptance."""

from typing import List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, Query

from api.deps import CurrentUser, goal_user, parse_object_id
from api.errors import ApiError
from models.database import get_goals_collection, get_invites_collection, get_users_collection
from schemas.enums import InvitationStatus
from schemas.invitation import (
    AcceptInviteInput,
    AcceptedGoalResponse,
    InvitationAction,
    InvitationDetailResponse,
    InvitationListResponse,
)
from services.goals import collaborator_member, is_goal_member, rebalance_percentages, serialize_goal
from services.invitations import (
    build_goal_preview,
    list_invitations_for_email,
    mark_expired_if_needed,
    serialize_invitation,
    set_invite_status,
)
from utils.helpers import normalise_email, utcnow
from utils.logger import setup_logger

logger = setup_logger(__name__)

router = APIRouter(prefix="/api", tags=["invitations"])


async def _current_user_document(user_id: ObjectId) -> dict:
    user = await get_users_collection().find_one({"_id": user_id})
    if not user:
        raise ApiError(
            "GOAL_UNAUTHORIZED",
            "We could not verify your account.",
            401,
            hint="Please sign in again and try once more.",
        )
    return user


async def _load_own_invitation(invite_id: str, user_id: ObjectId, operation: str) -> dict:
    object_id = parse_object_id(invite_id, "GOAL")
    invite = await get_invites_collection().find_one({"_id": object_id})

    if not invite:
        raise ApiError(
            "GOAL_NOT_FOUND",
            "We couldn't find that invitation.",
            404,
            hint="It may have been removed.",
            log_level="info",
            context={"invite_id": invite_id, "operation": operation},
        )

    user = await _current_user_document(user_id)
    if normalise_email(invite["email"]) != normalise_email(user["email"]):
        raise ApiError(
            "GOAL_FORBIDDEN",
            "This invitation belongs to a different account.",
            403,
            hint="Sign in with the email address that received the invite.",
            context={"invite_id": invite_id, "operation": operation},
        )
    return invite


async def _add_collaborator(goal: dict, user_id: ObjectId, invite: dict) -> dict:
    """Append the invitee to the goal, mark it shared and rebalance the split."""
    members = list(goal.get("members", []))
    members.append(collaborator_member(user_id, invite))
    rebalance_percentages(members)

    changes = {"members": members, "is_shared": True, "updated_at": utcnow()}
    await get_goals_collection().update_one({"_id": goal["_id"]}, {"$set": changes})
    goal.update(changes)
    return goal


@router.get("/invitations", response_model=InvitationListResponse)
async def list_invitations(
    status: Optional[List[str]] = Query(None),
    current_user: CurrentUser = Depends(goal_user),
):
    """Invitations sent to the caller's email address."""
    try:
        statuses = None
        if status and "all" not in status:
            try:
                statuses = [InvitationStatus(value) for value in status]
            except ValueError:
                raise ApiError(
                    "GOAL_VALIDATION_ERROR",
                    "Choose pending, accepted, declined, expired or all.",
                    400,
                )

        user = await _current_user_document(current_user.id)
        invites = await list_invitations_for_email(normalise_email(user["email"]), statuses)

        return InvitationListResponse(invitations=[serialize_invitation(invite) for invite in invites])

    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error listing invitations: {e}", exc_info=True)
        raise ApiError(
            "GOAL_INTERNAL_ERROR",
            "We couldn't load your invitations.",
            500,
            hint="Please refresh and try again.",
            context={"operation": "list-invitations"},
            error=e,
        )


@router.get("/invitations/{invite_id}", response_model=InvitationDetailResponse)
async def get_invitation(invite_id: str, current_user: CurrentUser = Depends(goal_user)):
    """One invitation with a preview of its goal."""
    try:
        invite = await _load_own_invitation(invite_id, current_user.id, "get-invitation")
        invite = await mark_expired_if_needed(invite)

        return InvitationDetailResponse(
            invitation=serialize_invitation(invite),
            goal=await build_goal_preview(invite["goal_id"]),
        )

    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error fetching invitation: {e}", exc_info=True)
        raise ApiError(
            "GOAL_INTERNAL_ERROR",
            "We couldn't load that invitation.",
            500,
            hint="Please refresh and try again.",
            context={"invite_id": invite_id, "operation": "get-invitation"},
            error=e,
        )


@router.patch("/invitations/{invite_id}", response_model=InvitationDetailResponse)
async def respond_to_invitation(
    invite_id: str,
    payload: InvitationAction,
    current_user: CurrentUser = Depends(goal_user),
):
    """Accept or decline an invitation."""
    context = {"invite_id": invite_id, "operation": "update-invitation"}
    try:
        invite = await _load_own_invitation(invite_id, current_user.id, "update-invitation")
        invite = await mark_expired_if_needed(invite)

        conflicts = {
            InvitationStatus.ACCEPTED.value: (
                "You've already joined this goal.",
                "Open the goal from your dashboard to collaborate.",
            ),
            InvitationStatus.DECLINED.value: (
                "You already declined this invitation.",
                "Ask the owner to send a new invite if you've changed your mind.",
            ),
            InvitationStatus.EXPIRED.value: (
                "This invitation has expired.",
                "Ask the goal owner to send a fresh invitation.",
            ),
        }
        if invite.get("status") in conflicts:
            message, hint = conflicts[invite["status"]]
            raise ApiError("GOAL_CONFLICT", message, 409, hint=hint, log_level="info", context=context)

        if payload.action == "decline":
            invite = await set_invite_status(invite, InvitationStatus.DECLINED)
            return InvitationDetailResponse(
                invitation=serialize_invitation(invite),
                goal=await build_goal_preview(invite["goal_id"]),
            )

        goal = await get_goals_collection().find_one({"_id": invite["goal_id"]})
        if not goal:
            await set_invite_status(invite, InvitationStatus.EXPIRED)
            raise ApiError(
                "GOAL_NOT_FOUND",
                "We couldn't find that goal anymore.",
                404,
                hint="It may have been removed.",
                log_level="info",
                context=context,
            )

        if not is_goal_member(goal, current_user.id):
            await _add_collaborator(goal, current_user.id, invite)

        invite = await set_invite_status(invite, InvitationStatus.ACCEPTED, accepted=True)
        logger.info(f"Invitation {invite_id} accepted")

        return InvitationDetailResponse(
            invitation=serialize_invitation(invite),
            goal=await build_goal_preview(goal["_id"]),
        )

    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error updating invitation: {e}", exc_info=True)
        raise ApiError(
            "GOAL_INTERNAL_ERROR",
            "We couldn't update that invitation.",
            500,
            hint="Please try again in a moment.",
            context=context,
            error=e,
        )


@router.post("/shared/accept", response_model=AcceptedGoalResponse)
async def accept_shared_invite(payload: AcceptInviteInput, current_user: CurrentUser = Depends(goal_user)):
    """Join a goal through the token of an invitation link."""
    try:
        invite = await get_invites_collection().find_one({"token": payload.token.strip()})
        if not invite:
            raise ApiError("GOAL_NOT_FOUND", "Invitation not found", 404)

        if invite.get("accepted_at") or invite.get("status") == InvitationStatus.ACCEPTED.value:
            raise ApiError("GOAL_CONFLICT", "Invitation has already been accepted", 409)

        if invite["expires_at"] <= utcnow():
            await mark_expired_if_needed(invite)
            raise ApiError("GOAL_CONFLICT", "Invitation has expired", 409)

        goal = await get_goals_collection().find_one({"_id": invite["goal_id"]})
        if not goal:
            raise ApiError("GOAL_NOT_FOUND", "Goal not found", 404)

        user = await get_users_collection().find_one({"_id": current_user.id})
        if not user:
            raise ApiError("GOAL_UNAUTHORIZED", "User context is invalid", 401)

        if normalise_email(user["email"]) != normalise_email(invite["email"]):
            raise ApiError("GOAL_FORBIDDEN", "This invitation is not assigned to your email address", 403)

        if is_goal_member(goal, current_user.id):
            raise ApiError("GOAL_CONFLICT", "You are already a member of this goal", 409)

        goal = await _add_collaborator(goal, current_user.id, invite)
        await set_invite_status(invite, InvitationStatus.ACCEPTED, accepted=True)

        return AcceptedGoalResponse(goal=serialize_goal(goal))

    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error accepting invitation: {e}", exc_info=True)
        raise ApiError("GOAL_INTERNAL_ERROR", "Unable to accept invitation", 500, error=e)
