"""Goal collection and request schemas."""

import math
from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import AfterValidator, Field, field_serializer, field_validator, model_validator

from config.settings import settings
from schemas.common import ApiModel, check_email
from schemas.enums import Frequency, GoalSortField, MemberRole, SortOrder
from utils.helpers import isoformat_z, to_naive_utc, utcnow


class GoalMember(ApiModel):
    """Member entry nested in a goal document."""
    user_id: str = Field(..., description="User identifier")
    role: MemberRole = Field(..., description="owner or collaborator")
    split_percent: Optional[float] = Field(None, ge=0, le=100, description="Share of the non-fixed contribution")
    fixed_amount: Optional[float] = Field(None, ge=0, description="Flat per-period contribution")


class Goal(ApiModel):
    """Goal as returned by the API and consumed by the planner."""
    id: str = Field("", description="Goal identifier")
    owner_id: str = Field("", description="Owner user identifier")
    title: str = Field(..., description="Name of the goal")
    target_amount: float = Field(..., ge=0, description="Amount needed at the target date")
    currency: str = Field("USD", description="ISO currency code")
    target_date: datetime = Field(..., description="When the amount is needed")
    expected_rate: float = Field(..., ge=0, description="Expected annual return in percent")
    compounding: Frequency = Field(..., description="How often returns compound")
    contribution_frequency: Frequency = Field(..., description="How often members contribute")
    existing_savings: Optional[float] = Field(None, ge=0, description="Amount already saved")
    is_shared: bool = Field(False, description="Whether the goal has collaborators")
    members: List[GoalMember] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer("target_date", "created_at", "updated_at")
    def serialize_dates(self, value: Optional[datetime]) -> Optional[str]:
        return isoformat_z(value) if value is not None else None


def _check_title(value: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError("Add a descriptive title.")
    if len(value) > 200:
        raise ValueError("Keep the title under 200 characters.")
    return value


def _check_target_amount(value: float) -> float:
    if not math.isfinite(value):
        raise ValueError("Enter how much the goal costs.")
    if value <= 0:
        raise ValueError("Set a target amount greater than zero to plan your savings.")
    return value


def _check_currency(value: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError("Pick a currency.")
    if len(value) > 10:
        raise ValueError("Pick a valid currency code.")
    return value.upper()


def _check_target_date(value: datetime) -> datetime:
    value = to_naive_utc(value)
    if value <= utcnow():
        raise ValueError("Choose a future target date so we can map each step for you.")
    return value


def _check_expected_rate(value: float) -> float:
    if not math.isfinite(value) or value <= 0 or value > 100:
        raise ValueError("Use a rate between 0 and 100%.")
    return value


def _check_existing_savings(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    if not math.isfinite(value) or value < 0:
        raise ValueError("Savings can't be negative.")
    return value


Title = Annotated[str, AfterValidator(_check_title)]
TargetAmount = Annotated[float, AfterValidator(_check_target_amount)]
Currency = Annotated[str, AfterValidator(_check_currency)]
TargetDate = Annotated[datetime, AfterValidator(_check_target_date)]
ExpectedRate = Annotated[float, AfterValidator(_check_expected_rate)]
ExistingSavings = Annotated[float, AfterValidator(_check_existing_savings)]


class GoalCreate(ApiModel):
    """Request body for creating a goal."""
    title: Title
    target_amount: TargetAmount
    currency: Currency
    target_date: TargetDate
    expected_rate: ExpectedRate
    compounding: Frequency
    contribution_frequency: Frequency
    existing_savings: Optional[ExistingSavings] = None


class GoalUpdate(ApiModel):
    """Partial update of a goal; null values are ignored."""
    title: Optional[Title] = None
    target_amount: Optional[TargetAmount] = None
    currency: Optional[Currency] = None
    target_date: Optional[TargetDate] = None
    expected_rate: Optional[ExpectedRate] = None
    compounding: Optional[Frequency] = None
    contribution_frequency: Optional[Frequency] = None
    existing_savings: Optional[ExistingSavings] = None

    @model_validator(mode="after")
    def check_not_empty(self):
        if not self.changes():
            raise ValueError("At least one field must be supplied")
        return self

    def changes(self) -> dict:
        """Document fields to set, keyed by their stored (snake_case) names."""
        values = self.model_dump(exclude_unset=True, exclude_none=True)
        return {
            key: value.value if isinstance(value, Frequency) else value
            for key, value in values.items()
        }


class Pagination(ApiModel):
    page: int
    page_size: int
    total_items: int
    total_pages: int


class SortInfo(ApiModel):
    by: GoalSortField
    order: SortOrder


class GoalListResponse(ApiModel):
    data: List[Goal]
    pagination: Pagination
    sort: SortInfo


class MemberContribution(ApiModel):
    """One member entry in a members update request."""
    user_id: str
    role: MemberRole
    split_percent: Optional[float] = None
    fixed_amount: Optional[float] = None

    @field_validator("user_id")
    @classmethod
    def check_user_id(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("Each member needs an identifier.")
        return value

    @field_validator("split_percent")
    @classmethod
    def check_split_percent(cls, value):
        if value is None:
            return None
        if value < 0:
            raise ValueError("Split percent must be at least 0%.")
        if value > 100:
            raise ValueError("Split percent cannot exceed 100%.")
        return value

    @field_validator("fixed_amount")
    @classmethod
    def check_fixed_amount(cls, value):
        if value is not None and value < 0:
            raise ValueError("Fixed amount cannot be negative.")
        return value

    @model_validator(mode="after")
    def check_allocation(self):
        if self.split_percent is None and self.fixed_amount is None:
            raise ValueError("Enter a split percent or fixed amount.")
        if self.split_percent is not None and self.fixed_amount is not None:
            raise ValueError("Choose either a percent or a fixed amount for each member.")
        return self


class GoalMembersUpdate(ApiModel):
    members: List[MemberContribution]

    @field_validator("members")
    @classmethod
    def check_members(cls, value: List[MemberContribution]) -> List[MemberContribution]:
        if not value:
            raise ValueError("Include at least one member to update.")
        if not any(member.role == MemberRole.OWNER for member in value):
            raise ValueError("Keep the goal owner in the members list.")
        return value


class GoalInviteCreate(ApiModel):
    """Request body for inviting a collaborator."""
    email: str
    message: Optional[str] = None
    expires_in_minutes: int = Field(default_factory=lambda: settings.invite_default_expiry_minutes)
    default_split_percent: Optional[float] = None
    fixed_amount: Optional[float] = None

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, value):
        if not isinstance(value, str):
            raise ValueError("Enter the collaborator's email address.")
        return check_email(value, "Enter the collaborator's email address.", "Enter a valid email address.")

    @field_validator("message")
    @classmethod
    def check_message(cls, value):
        if value is None:
            return None
        value = value.strip()
        if len(value) > 500:
            raise ValueError("Keep the invitation message under 500 characters.")
        return value or None

    @field_validator("expires_in_minutes")
    @classmethod
    def check_expiry(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Invite expiry must be at least one minute.")
        return value

    @field_validator("default_split_percent")
    @classmethod
    def check_default_split(cls, value):
        if value is None:
            return None
        if not math.isfinite(value):
            raise ValueError("Enter a default split percentage.")
        if value < 0:
            raise ValueError("Split percent must be at least 0%.")
        if value > 100:
            raise ValueError("Split percent cannot exceed 100%.")
        return value

    @field_validator("fixed_amount")
    @classmethod
    def check_fixed_amount(cls, value):
        if value is None:
            return None
        if not math.isfinite(value):
            raise ValueError("Enter a fixed amount using numbers only.")
        if value < 0:
            raise ValueError("Fixed amount cannot be negative.")
        return value

    @model_validator(mode="after")
    def check_allocation(self):
        if self.default_split_percent is None and self.fixed_amount is None:
            raise ValueError("Set a default split percent or fixed amount for the invite.")
        if self.default_split_percent is not None and self.fixed_amount is not None:
            raise ValueError("Choose either a percent or a fixed amount for the invite.")
        return self


class InviteCreatedResponse(ApiModel):
    invite_url: str
