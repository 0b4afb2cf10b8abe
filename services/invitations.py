"""Invitation lifecycle helpers."""

import secrets
from datetime import timedelta
from typing import List, Optional

from bson import ObjectId

from config.settings import settings
from models.database import get_goals_collection, get_invites_collection, get_users_collection
from schemas.enums import InvitationStatus
from schemas.goal import GoalInviteCreate
from schemas.invitation import InvitationGoalPreview, InvitationResponse
from utils.helpers import object_id_to_string, utcnow

INVITE_TOKEN_BYTES = 32


def generate_invite_token() -> str:
    """64 hexadecimal characters."""
    return secrets.token_hex(INVITE_TOKEN_BYTES)


def invite_url(token: str) -> str:
    return f"{settings.app_url.rstrip('/')}/shared/accept?token={token}"


def serialize_invitation(invite: dict) -> InvitationResponse:
    now = utcnow()
    return InvitationResponse(
        id=object_id_to_string(invite["_id"]),
        goal_id=object_id_to_string(invite["goal_id"]),
        goal_title=invite.get("goal_title", ""),
        inviter_name=invite.get("inviter_name"),
        inviter_email=invite.get("inviter_email"),
        invitee_email=invite["email"],
        message=invite.get("message"),
        status=invite.get("status", InvitationStatus.PENDING.value),
        created_at=invite.get("created_at") or now,
        expires_at=invite["expires_at"],
        responded_at=invite.get("responded_at"),
    )


async def create_invite(goal: dict, inviter_id: ObjectId, payload: GoalInviteCreate) -> dict:
    """Store a pending invitation, replacing any earlier one for the same email."""
    invites = get_invites_collection()
    inviter = await get_users_collection().find_one({"_id": inviter_id})
    now = utcnow()

    await invites.delete_one({"goal_id": goal["_id"], "email": payload.email})

    document = {
        "goal_id": goal["_id"],
        "goal_title": goal["title"],
        "email": payload.email,
        "token": generate_invite_token(),
        "expires_at": now + timedelta(minutes=payload.expires_in_minutes),
        "created_by": inviter_id,
        "inviter_name": inviter.get("name") if inviter else None,
        "inviter_email": inviter.get("email") if inviter else None,
        "message": payload.message,
        "status": InvitationStatus.PENDING.value,
        "responded_at": None,
        "default_split_percent": payload.default_split_percent,
        "fixed_amount": payload.fixed_amount,
        "created_at": now,
        "updated_at": now,
    }
    result = await invites.insert_one(document)
    document["_id"] = result.inserted_id
    return document


async def set_invite_status(invite: dict, status: InvitationStatus, accepted: bool = False) -> dict:
    """Persist a status change and return the updated invite."""
    now = utcnow()
    changes = {
        "status": status.value,
        "responded_at": invite.get("responded_at") or now,
        "updated_at": now,
    }
    if status == InvitationStatus.DECLINED:
        changes["responded_at"] = now
        changes["accepted_at"] = None
    if accepted:
        changes["accepted_at"] = invite.get("accepted_at") or now

    await get_invites_collection().update_one({"_id": invite["_id"]}, {"$set": changes})
    invite.update(changes)
    return invite


async def mark_expired_if_needed(invite: dict) -> dict:
    """Flip a pending invitation past its expiry to ``expired``."""
    if invite.get("status", InvitationStatus.PENDING.value) != InvitationStatus.PENDING.value:
        return invite
    if invite["expires_at"] > utcnow():
        return invite
    return await set_invite_status(invite, InvitationStatus.EXPIRED)


async def list_invitations_for_email(email: str, statuses: Optional[List[InvitationStatus]] = None) -> List[dict]:
    """Invitations addressed to ``email``, newest first, with expiry applied."""
    cursor = get_invites_collection().find({"email": email}).sort("created_at", -1)
    invites = await cursor.to_list(length=None)
    invites = [await mark_expired_if_needed(invite) for invite in invites]

    if statuses:
        wanted = {status.value for status in statuses}
        invites = [invite for invite in invites if invite.get("status") in wanted]
    return invites


async def build_goal_preview(goal_id: ObjectId) -> Optional[InvitationGoalPreview]:
    goal = await get_goals_collection().find_one({"_id": goal_id})
    if not goal:
        return None

    owner = await get_users_collection().find_one({"_id": goal["owner_id"]})
    return InvitationGoalPreview(
        title=goal["title"],
        target_amount=goal["target_amount"],
        currency=goal["currency"],
        target_date=goal["target_date"],
        expected_rate=goal["expected_rate"],
        owner_name=owner.get("name") if owner else None,
    )
