"""Contribution plan and dashboard summary schemas."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, field_serializer, model_serializer

from schemas.common import ApiModel
from schemas.enums import Frequency, MemberRole
from utils.helpers import isoformat_z


class PlanGoal(ApiModel):
    """Planning fields of the goal a plan was built for."""
    id: str
    title: str
    currency: str
    target_amount: float
    target_date: datetime
    expected_rate: float
    compounding: Frequency
    contribution_frequency: Frequency
    existing_savings: float
    is_shared: bool

    @field_serializer("target_date")
    def serialize_target_date(self, value: datetime) -> str:
        return isoformat_z(value)


class PlanHorizon(ApiModel):
    years: int = Field(..., ge=0)
    months: int = Field(..., ge=0, le=11)
    total_periods: float = Field(..., ge=0)
    n_per_year: Literal[1, 12]


class PlanTotals(ApiModel):
    per_period: float = Field(..., description="Required recurring contribution")
    lump_sum_now: float = Field(..., description="One-off payment today that reaches the target")


class PlanMember(ApiModel):
    user_id: str
    role: MemberRole
    split_percent: Optional[float] = None
    fixed_amount: Optional[float] = None
    per_period: float = 0.0
    email: Optional[str] = None
    name: Optional[str] = None


class PlanAssumptions(ApiModel):
    expected_rate: float
    compounding: Frequency
    contribution_frequency: Frequency


class GoalPlan(ApiModel):
    goal: PlanGoal
    horizon: PlanHorizon
    totals: PlanTotals
    members: List[PlanMember]
    assumptions: PlanAssumptions
    warnings: Optional[List[str]] = None

    @model_serializer(mode="wrap")
    def drop_empty_warnings(self, handler):
        data = handler(self)
        if not self.warnings:
            data.pop("warnings", None)
        return data


class GoalSummary(ApiModel):
    """Reduced plan output for dashboard listings."""
    id: str
    title: str
    target_amount: float
    target_date: datetime
    contribution_amount: float
    contribution_label: Literal["per month", "per year"]
    collaborative: bool
    progress: int = Field(..., ge=0, le=100)

    @field_serializer("target_date")
    def serialize_target_date(self, value: datetime) -> str:
        return isoformat_z(value)
