"""Goal document helpers shared by the goal and invitation routes."""

from typing import Dict, Iterable, List, Optional

from bson import ObjectId

from models.database import get_users_collection
from schemas.enums import MemberRole
from schemas.goal import Goal, GoalCreate, GoalMember
from services.plan import member_details_from_users
from utils.helpers import object_id_to_string, utcnow


def serialize_goal(document: dict) -> Goal:
    """Convert a stored goal document into the API model."""
    members = [
        GoalMember(
            user_id=object_id_to_string(member["user_id"]),
            role=member["role"],
            split_percent=member.get("split_percent"),
            fixed_amount=member.get("fixed_amount"),
        )
        for member in document.get("members", [])
    ]

    created_at = document.get("created_at") or utcnow()
    updated_at = document.get("updated_at") or created_at
    is_shared = document.get("is_shared")

    return Goal(
        id=object_id_to_string(document["_id"]),
        owner_id=object_id_to_string(document["owner_id"]),
        title=document["title"],
        target_amount=document["target_amount"],
        currency=document["currency"],
        target_date=document["target_date"],
        expected_rate=document["expected_rate"],
        compounding=document["compounding"],
        contribution_frequency=document["contribution_frequency"],
        existing_savings=document.get("existing_savings"),
        is_shared=is_shared if isinstance(is_shared, bool) else len(members) > 1,
        members=members,
        created_at=created_at,
        updated_at=updated_at,
    )


def build_goal_document(payload: GoalCreate, owner_id: ObjectId) -> dict:
    """New goal owned by ``owner_id``, who starts as the only member at 100%."""
    now = utcnow()
    document = {
        "owner_id": owner_id,
        "title": payload.title,
        "target_amount": payload.target_amount,
        "currency": payload.currency,
        "target_date": payload.target_date,
        "expected_rate": payload.expected_rate,
        "compounding": payload.compounding.value,
        "contribution_frequency": payload.contribution_frequency.value,
        "is_shared": False,
        "members": [{"user_id": owner_id, "role": MemberRole.OWNER.value, "split_percent": 100}],
        "created_at": now,
        "updated_at": now,
    }
    if payload.existing_savings is not None:
        document["existing_savings"] = payload.existing_savings
    return document


def goal_access_filter(goal_id: ObjectId, user_id: ObjectId) -> dict:
    """Mongo filter matching ``goal_id`` only when ``user_id`` owns it or is a member."""
    return {"_id": goal_id, "$or": [{"owner_id": user_id}, {"members.user_id": user_id}]}


def accessible_goals_filter(user_id: ObjectId) -> dict:
    return {"$or": [{"owner_id": user_id}, {"members.user_id": user_id}]}


def is_goal_owner(document: dict, user_id: ObjectId) -> bool:
    return object_id_to_string(document["owner_id"]) == object_id_to_string(user_id)


def is_goal_member(document: dict, user_id: ObjectId) -> bool:
    if is_goal_owner(document, user_id):
        return True
    user_key = object_id_to_string(user_id)
    return any(object_id_to_string(member["user_id"]) == user_key for member in document.get("members", []))


def has_collaborators(members: Iterable[dict], owner_id: ObjectId) -> bool:
    owner_key = object_id_to_string(owner_id)
    return any(object_id_to_string(member["user_id"]) != owner_key for member in members)


def rebalance_percentages(members: List[dict]) -> None:
    """Give the owner whatever share the percentage collaborators leave over.

    Works in place on member dicts. Members with a fixed amount are ignored.
    Collaborator shares above 100% in total are scaled down proportionally.
    """
    percent_members = [member for member in members if member.get("fixed_amount") is None]
    owner = next((member for member in percent_members if member["role"] == MemberRole.OWNER.value), None)

    if owner is None:
        return

    collaborators = [member for member in percent_members if member["role"] != MemberRole.OWNER.value]
    if not collaborators:
        owner["split_percent"] = 100
        return

    collaborator_total = sum(member.get("split_percent") or 0 for member in collaborators)
    if collaborator_total > 100:
        scale = 100 / collaborator_total
        for member in collaborators:
            member["split_percent"] = (member.get("split_percent") or 0) * scale

    adjusted_total = sum(member.get("split_percent") or 0 for member in collaborators)
    owner["split_percent"] = max(0, 100 - adjusted_total)


def collaborator_member(user_id: ObjectId, invite: dict) -> dict:
    """Member entry for a user joining through ``invite``."""
    member = {"user_id": user_id, "role": MemberRole.COLLABORATOR.value}
    if invite.get("fixed_amount") is None:
        member["split_percent"] = invite.get("default_split_percent") or 0
    else:
        member["fixed_amount"] = invite["fixed_amount"]
    return member


async def fetch_member_details(goal: Goal) -> Dict[str, Dict[str, Optional[str]]]:
    """Look up email and display name for every member of ``goal``."""
    member_ids = [ObjectId(member.user_id) for member in goal.members if ObjectId.is_valid(member.user_id)]
    if not member_ids:
        return {}
    users = await get_users_collection().find({"_id": {"$in": member_ids}}).to_list(length=None)
    return member_details_from_users(users)
