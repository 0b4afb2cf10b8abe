"""Invitation schemas."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, field_serializer

from schemas.common import ApiModel
from schemas.enums import InvitationStatus
from schemas.goal import Goal
from utils.helpers import isoformat_z


class InvitationResponse(ApiModel):
    id: str
    goal_id: str
    goal_title: str
    inviter_name: Optional[str] = None
    inviter_email: Optional[str] = None
    invitee_email: str
    message: Optional[str] = None
    status: InvitationStatus
    created_at: datetime
    expires_at: datetime
    responded_at: Optional[datetime] = None

    @field_serializer("created_at", "expires_at", "responded_at")
    def serialize_dates(self, value: Optional[datetime]) -> Optional[str]:
        return isoformat_z(value) if value is not None else None


class InvitationGoalPreview(ApiModel):
    title: str
    target_amount: float = Field(..., ge=0)
    currency: str
    target_date: datetime
    expected_rate: float = Field(..., ge=0)
    owner_name: Optional[str] = None

    @field_serializer("target_date")
    def serialize_target_date(self, value: datetime) -> str:
        return isoformat_z(value)


class InvitationDetailResponse(ApiModel):
    invitation: InvitationResponse
    goal: Optional[InvitationGoalPreview] = None


class InvitationListResponse(ApiModel):
    invitations: List[InvitationResponse]


class InvitationAction(ApiModel):
    action: Literal["accept", "decline"]


class AcceptInviteInput(ApiModel):
    token: str = Field(..., min_length=1)


class AcceptedGoalResponse(ApiModel):
    goal: Goal
