"""Goal routes for goal management, membership and planning."""

import math
from typing import List

from fastapi import APIRouter, Depends, Query, Response

from api.deps import CurrentUser, goal_user, parse_object_id
from api.errors import ApiError
from models.database import (
    get_contributions_collection,
    get_goals_collection,
    get_invites_collection,
)
from schemas.enums import GoalSortField, MemberRole, SortOrder
from schemas.goal import (
    Goal,
    GoalCreate,
    GoalInviteCreate,
    GoalListResponse,
    GoalMembersUpdate,
    GoalUpdate,
    InviteCreatedResponse,
    Pagination,
    SortInfo,
)
from schemas.plan import GoalPlan, GoalSummary
from services.goals import (
    accessible_goals_filter,
    build_goal_document,
    fetch_member_details,
    goal_access_filter,
    has_collaborators,
    is_goal_member,
    is_goal_owner,
    rebalance_percentages,
    serialize_goal,
)
from services.invitations import create_invite, invite_url
from services.plan import build_goal_plan
from services.summary import build_goal_summary
from utils.helpers import object_id_to_string, to_object_id, utcnow
from utils.logger import setup_logger

logger = setup_logger(__name__)

router = APIRouter(prefix="/api/goals", tags=["goals"])


def _goal_not_found(goal_id: str, operation: str, hint: str = "It may have been removed or you might not have access.") -> ApiError:
    return ApiError(
        "GOAL_NOT_FOUND",
        "We could not find that goal.",
        404,
        hint=hint,
        log_level="info",
        context={"goal_id": goal_id, "operation": operation},
    )


async def _find_owned_goal(goal_id: str, user: CurrentUser, operation: str, forbidden_message: str, forbidden_hint: str) -> dict:
    """Load a goal owned by ``user``; 403 when it exists but belongs to someone else."""
    object_id = parse_object_id(goal_id, "GOAL")
    goals = get_goals_collection()
    goal = await goals.find_one({"_id": object_id, "owner_id": user.id})

    if not goal:
        if await goals.count_documents({"_id": object_id}, limit=1):
            raise ApiError(
                "GOAL_FORBIDDEN",
                forbidden_message,
                403,
                hint=forbidden_hint,
                context={"goal_id": goal_id, "operation": operation},
            )
        raise _goal_not_found(goal_id, operation)

    return goal


@router.get("", response_model=GoalListResponse)
async def list_goals(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    sort_by: GoalSortField = Query(GoalSortField.CREATED_AT, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
    current_user: CurrentUser = Depends(goal_user),
):
    """List goals the caller owns or collaborates on."""
    try:
        goals = get_goals_collection()
        query = accessible_goals_filter(current_user.id)
        direction = 1 if sort_order == SortOrder.ASC else -1

        cursor = (
            goals.find(query)
            .sort(sort_by.document_field, direction)
            .skip((page - 1) * page_size)
            .limit(page_size)
        )
        documents = await cursor.to_list(length=page_size)
        total_items = await goals.count_documents(query)

        return GoalListResponse(
            data=[serialize_goal(document) for document in documents],
            pagination=Pagination(
                page=page,
                page_size=page_size,
                total_items=total_items,
                total_pages=math.ceil(total_items / page_size),
            ),
            sort=SortInfo(by=sort_by, order=sort_order),
        )

    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error listing goals: {e}", exc_info=True)
        raise ApiError("GOAL_INTERNAL_ERROR", "Unable to fetch goals", 500, error=e)


@router.get("/summaries", response_model=List[GoalSummary])
async def list_goal_summaries(current_user: CurrentUser = Depends(goal_user)):
    """Dashboard summary of every accessible goal, soonest target first."""
    try:
        cursor = get_goals_collection().find(accessible_goals_filter(current_user.id)).sort("target_date", 1)
        documents = await cursor.to_list(length=None)
        now = utcnow()
        return [build_goal_summary(serialize_goal(document), now=now) for document in documents]

    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error building goal summaries: {e}", exc_info=True)
        raise ApiError(
            "GOAL_INTERNAL_ERROR",
            "We could not load your goals right now.",
            500,
            hint="Please refresh in a moment.",
            context={"operation": "summaries"},
            error=e,
        )


@router.post("", response_model=Goal, status_code=201)
async def create_goal(payload: GoalCreate, current_user: CurrentUser = Depends(goal_user)):
    """Create a goal owned by the caller."""
    try:
        document = build_goal_document(payload, current_user.id)
        result = await get_goals_collection().insert_one(document)
        document["_id"] = result.inserted_id

        logger.info(f"Created goal {result.inserted_id}")
        return serialize_goal(document)

    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error creating goal: {e}", exc_info=True)
        raise ApiError("GOAL_INTERNAL_ERROR", "Unable to create goal", 500, error=e)


@router.get("/{goal_id}", response_model=Goal)
async def get_goal(goal_id: str, current_user: CurrentUser = Depends(goal_user)):
    """Get a goal the caller can access."""
    try:
        object_id = parse_object_id(goal_id, "GOAL")
        goal = await get_goals_collection().find_one({"_id": object_id})

        if not goal:
            raise _goal_not_found(goal_id, "get")

        if not is_goal_member(goal, current_user.id):
            raise ApiError(
                "GOAL_FORBIDDEN",
                "This goal belongs to someone else.",
                403,
                hint="Ask the owner to share access with you.",
                context={"goal_id": goal_id, "operation": "get"},
            )

        return serialize_goal(goal)

    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error fetching goal: {e}", exc_info=True)
        raise ApiError(
            "GOAL_INTERNAL_ERROR",
            "We had trouble retrieving that goal just now.",
            500,
            hint="Please refresh in a moment.",
            context={"goal_id": goal_id, "operation": "get"},
            error=e,
        )


@router.patch("/{goal_id}", response_model=Goal)
async def update_goal(goal_id: str, payload: GoalUpdate, current_user: CurrentUser = Depends(goal_user)):
    """Update goal fields; owner only."""
    try:
        object_id = parse_object_id(goal_id, "GOAL")
        goals = get_goals_collection()
        goal = await goals.find_one({"_id": object_id})

        if not goal:
            raise _goal_not_found(goal_id, "patch")

        if not is_goal_owner(goal, current_user.id):
            raise ApiError(
                "GOAL_FORBIDDEN",
                "Only the owner can update this goal.",
                403,
                hint="Ask the owner to apply these changes.",
                context={"goal_id": goal_id, "operation": "patch"},
            )

        changes = payload.changes()
        changes["updated_at"] = utcnow()
        await goals.update_one({"_id": object_id}, {"$set": changes})
        goal.update(changes)

        return serialize_goal(goal)

    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error updating goal: {e}", exc_info=True)
        raise ApiError(
            "GOAL_INTERNAL_ERROR",
            "We could not update that goal right now.",
            500,
            hint="Please try again shortly.",
            context={"goal_id": goal_id, "operation": "patch"},
            error=e,
        )


@router.delete("/{goal_id}", status_code=204, response_class=Response)
async def delete_goal(goal_id: str, current_user: CurrentUser = Depends(goal_user)):
    """Delete a goal with its invitations and contributions; owner only."""
    try:
        object_id = parse_object_id(goal_id, "GOAL")
        goals = get_goals_collection()
        goal = await goals.find_one({"_id": object_id})

        if not goal:
            raise _goal_not_found(goal_id, "delete", hint="It may have already been removed.")

        if not is_goal_owner(goal, current_user.id):
            raise ApiError(
                "GOAL_FORBIDDEN",
                "Only the owner can delete this goal.",
                403,
                hint="Ask the owner to remove it for you.",
                context={"goal_id": goal_id, "operation": "delete"},
            )

        await goals.delete_one({"_id": object_id})
        await get_invites_collection().delete_many({"goal_id": object_id})
        await get_contributions_collection().delete_many({"goal_id": object_id})

        logger.info(f"Deleted goal {goal_id}")
        return Response(status_code=204)

    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error deleting goal: {e}", exc_info=True)
        raise ApiError(
            "GOAL_INTERNAL_ERROR",
            "We could not delete that goal right now.",
            500,
            hint="Please try again shortly.",
            context={"goal_id": goal_id, "operation": "delete"},
            error=e,
        )


@router.get("/{goal_id}/plan", response_model=GoalPlan)
async def get_goal_plan(goal_id: str, current_user: CurrentUser = Depends(goal_user)):
    """Contribution plan for a goal, with member email and name."""
    try:
        object_id = parse_object_id(goal_id, "GOAL")
        goals = get_goals_collection()
        goal = await goals.find_one(goal_access_filter(object_id, current_user.id))

        if not goal:
            if await goals.count_documents({"_id": object_id}, limit=1):
                raise ApiError(
                    "GOAL_FORBIDDEN",
                    "This goal belongs to someone else.",
                    403,
                    hint="Ask the owner to share access with you.",
                    context={"goal_id": goal_id, "operation": "plan"},
                )
            raise _goal_not_found(goal_id, "plan", hint="It may have been removed.")

        serialized = serialize_goal(goal)
        member_details = await fetch_member_details(serialized)
        return build_goal_plan(serialized, member_details)

    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error building goal plan: {e}", exc_info=True)
        raise ApiError(
            "GOAL_INTERNAL_ERROR",
            "We could not build that plan right now.",
            500,
            hint="Please try again shortly.",
            context={"goal_id": goal_id, "operation": "plan"},
            error=e,
        )


@router.patch("/{goal_id}/members", response_model=Goal)
async def update_goal_members(goal_id: str, payload: GoalMembersUpdate, current_user: CurrentUser = Depends(goal_user)):
    """Replace the member list and its contribution split; owner only."""
    try:
        goal = await _find_owned_goal(
            goal_id,
            current_user,
            "update-members",
            "Only the owner can update members for this goal.",
            "Ask the goal owner to apply these changes.",
        )

        issues = []
        members = []
        for member in payload.members:
            member_id = to_object_id(member.user_id)
            if member_id is None:
                issues.append("We couldn't identify that collaborator. Refresh the page and try again.")
                continue
            entry = {"user_id": member_id, "role": member.role.value}
            if member.split_percent is not None:
                entry["split_percent"] = member.split_percent
            if member.fixed_amount is not None:
                entry["fixed_amount"] = member.fixed_amount
            members.append(entry)

        if not issues:
            owner_key = object_id_to_string(goal["owner_id"])
            if not any(object_id_to_string(member["user_id"]) == owner_key for member in members):
                issues.append("Keep the goal owner in the members list.")
            for member in members:
                is_owner = object_id_to_string(member["user_id"]) == owner_key
                if is_owner and member["role"] != MemberRole.OWNER.value:
                    issues.append("List the goal owner as an owner.")
                if not is_owner and member["role"] == MemberRole.OWNER.value:
                    issues.append("Only the goal owner can be marked as owner.")

        if issues:
            raise ApiError(
                "GOAL_VALIDATION_ERROR",
                "; ".join(issues),
                400,
                context={"goal_id": goal_id, "operation": "update-members"},
            )

        rebalance_percentages(members)
        changes = {
            "members": members,
            "is_shared": has_collaborators(members, goal["owner_id"]),
            "updated_at": utcnow(),
        }
        await get_goals_collection().update_one({"_id": goal["_id"]}, {"$set": changes})
        goal.update(changes)

        return serialize_goal(goal)

    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error updating goal members: {e}", exc_info=True)
        raise ApiError(
            "GOAL_INTERNAL_ERROR",
            "We could not update these contributions right now.",
            500,
            hint="Please try again shortly.",
            context={"goal_id": goal_id, "operation": "update-members"},
            error=e,
        )


@router.delete("/{goal_id}/members/{user_id}", response_model=Goal)
async def remove_goal_member(goal_id: str, user_id: str, current_user: CurrentUser = Depends(goal_user)):
    """Remove a collaborator from a goal; owner only."""
    context = {"goal_id": goal_id, "member_id": user_id, "operation": "remove-member"}
    try:
        parse_object_id(goal_id, "GOAL")
        member_id = parse_object_id(user_id, "GOAL")
        goal = await _find_owned_goal(
            goal_id,
            current_user,
            "remove-member",
            "Only the owner can remove collaborators from this goal.",
            "Ask the goal owner to manage members for you.",
        )

        owner_key = object_id_to_string(goal["owner_id"])
        member_key = object_id_to_string(member_id)

        if member_key == owner_key:
            raise ApiError(
                "GOAL_VALIDATION_ERROR",
                "You cannot remove the goal owner.",
                422,
                hint="Transfer ownership before leaving the goal.",
                log_level="info",
                context=context,
            )

        members = list(goal.get("members", []))
        remaining = [member for member in members if object_id_to_string(member["user_id"]) != member_key]
        if len(remaining) == len(members):
            raise ApiError(
                "GOAL_NOT_FOUND",
                "That collaborator is not part of this goal.",
                404,
                hint="Refresh the members list and try again.",
                log_level="info",
                context=context,
            )

        if not any(object_id_to_string(member["user_id"]) == owner_key for member in remaining):
            remaining.insert(0, {"user_id": goal["owner_id"], "role": MemberRole.OWNER.value, "split_percent": 100})

        rebalance_percentages(remaining)
        changes = {
            "members": remaining,
            "is_shared": has_collaborators(remaining, goal["owner_id"]),
            "updated_at": utcnow(),
        }
        await get_goals_collection().update_one({"_id": goal["_id"]}, {"$set": changes})
        goal.update(changes)

        return serialize_goal(goal)

    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error removing goal member: {e}", exc_info=True)
        raise ApiError(
            "GOAL_INTERNAL_ERROR",
            "We could not remove that collaborator right now.",
            500,
            hint="Please try again shortly.",
            context=context,
            error=e,
        )


@router.post("/{goal_id}/invite", response_model=InviteCreatedResponse, status_code=201)
async def invite_to_goal(goal_id: str, payload: GoalInviteCreate, current_user: CurrentUser = Depends(goal_user)):
    """Invite a collaborator by email; owner only."""
    try:
        goal = await _find_owned_goal(
            goal_id,
            current_user,
            "invite",
            "Only the owner may invite collaborators",
            "Ask the goal owner to send the invitation.",
        )

        invite = await create_invite(goal, current_user.id, payload)
        logger.info(f"Created invitation {invite['_id']} for goal {goal_id}")

        return InviteCreatedResponse(invite_url=invite_url(invite["token"]))

    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error creating invitation: {e}", exc_info=True)
        raise ApiError(
            "GOAL_INTERNAL_ERROR",
            "Unable to create invitation",
            500,
            context={"goal_id": goal_id, "operation": "invite"},
            error=e,
        )
