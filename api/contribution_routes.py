"""Contribution tracking routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pymongo import ReturnDocument

from api.deps import CurrentUser, contribution_user, parse_object_id
from api.errors import ApiError
from models.database import get_contributions_collection, get_goals_collection
from schemas.contribution import (
    ContributionListResponse,
    ContributionResponse,
    ContributionUpsert,
    parse_period,
)
from services.goals import goal_access_filter
from utils.helpers import object_id_to_string, utcnow
from utils.logger import setup_logger

logger = setup_logger(__name__)

router = APIRouter(prefix="/api/contributions", tags=["contributions"])


def serialize_contribution(document: dict) -> ContributionResponse:
    created_at = document.get("created_at") or utcnow()
    return ContributionResponse(
        id=object_id_to_string(document["_id"]),
        goal_id=object_id_to_string(document["goal_id"]),
        user_id=object_id_to_string(document["user_id"]),
        amount=document["amount"],
        period=document["period"],
        created_at=created_at,
        updated_at=document.get("updated_at") or created_at,
    )


@router.get("", response_model=ContributionListResponse)
async def list_contributions(
    goal_id: Optional[str] = Query(None, alias="goalId"),
    period: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(contribution_user),
):
    """The caller's contributions, newest month first."""
    try:
        query = {"user_id": current_user.id}

        if goal_id is not None:
            query["goal_id"] = parse_object_id(goal_id, "CONTRIBUTION", "Invalid goal identifier supplied")

        if period is not None:
            try:
                query["period"] = parse_period(period)
            except ValueError as e:
                raise ApiError("CONTRIBUTION_VALIDATION_ERROR", str(e), 400)

        cursor = get_contributions_collection().find(query).sort("period", -1)
        documents = await cursor.to_list(length=None)

        return ContributionListResponse(data=[serialize_contribution(document) for document in documents])

    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error fetching contributions: {e}", exc_info=True)
        raise ApiError("CONTRIBUTION_INTERNAL_ERROR", "Unable to fetch contributions", 500, error=e)


@router.post("", response_model=ContributionResponse)
async def upsert_contribution(payload: ContributionUpsert, current_user: CurrentUser = Depends(contribution_user)):
    """Record the caller's contribution to a goal for one month."""
    try:
        goal_id = parse_object_id(payload.goal_id, "CONTRIBUTION", "Invalid goal identifier supplied")
        goals = get_goals_collection()

        if not await goals.count_documents(goal_access_filter(goal_id, current_user.id), limit=1):
            if await goals.count_documents({"_id": goal_id}, limit=1):
                raise ApiError(
                    "CONTRIBUTION_FORBIDDEN",
                    "You can only record contributions for goals you belong to.",
                    403,
                    hint="Ask the goal owner to invite you first.",
                    context={"goal_id": payload.goal_id},
                )
            raise ApiError(
                "CONTRIBUTION_NOT_FOUND",
                "We could not find that goal.",
                404,
                hint="It may have been removed.",
                log_level="info",
                context={"goal_id": payload.goal_id},
            )

        now = utcnow()
        document = await get_contributions_collection().find_one_and_update(
            {"user_id": current_user.id, "goal_id": goal_id, "period": payload.period},
            {
                "$set": {"amount": payload.amount, "period": payload.period, "updated_at": now},
                "$setOnInsert": {"user_id": current_user.id, "goal_id": goal_id, "created_at": now},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

        if not document:
            raise ApiError("CONTRIBUTION_INTERNAL_ERROR", "Unable to save contribution", 500)

        return serialize_contribution(document)

    except ApiError:
        raise
    except Exception as e:
        logger.error(f"Error saving contribution: {e}", exc_info=True)
        raise ApiError("CONTRIBUTION_INTERNAL_ERROR", "Unable to save contribution", 500, error=e)
