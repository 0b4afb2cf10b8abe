"""Contribution plan builder.

Turns a goal into the recurring amount each member has to put aside, using
the primitives in ``services.financial``. The builder is pure: it never
touches the database and never mutates the goal it is given.
"""

import math
from datetime import datetime
from typing import Dict, List, Mapping, Optional

from schemas.goal import Goal
from schemas.plan import GoalPlan, PlanAssumptions, PlanGoal, PlanHorizon, PlanMember, PlanTotals
from services.financial import (
    net_target_after_existing,
    required_lump_sum_for_future_value,
    required_payment_for_future_value,
    year_fraction,
)
from utils.helpers import round_half_up, to_naive_utc, utcnow

EPSILON = 1e-6
SPLIT_TOLERANCE = 0.5

WARNING_PAST_TARGET = "Target date is in the past or today; recurring contributions may not be feasible."
WARNING_NO_PERIODS = "No contribution periods remain; recurring contribution amount is undefined."
WARNING_FIXED_EXCEEDS = "Fixed contributions exceed the required per-period amount; review splits."
WARNING_MISSING_PERCENTAGES = "Percentage allocations are missing; unable to distribute contributions."
WARNING_SPLIT_NOT_100 = "Split percentages do not sum to 100%; allocations normalised."
WARNING_NO_RECIPIENTS = "No members available to receive the remaining contribution requirement."

MemberDetails = Mapping[str, Mapping[str, Optional[str]]]


def planning_years(goal: Goal, now: Optional[datetime] = None) -> tuple:
    """Return ``(raw_years, t_years)`` until the goal's target date.

    ``t_years`` is clamped at zero, NaN included.
    """
    now = to_naive_utc(now) if now is not None else utcnow()
    raw_years = year_fraction(now, to_naive_utc(goal.target_date))
    t_years = raw_years if raw_years > 0 else 0.0
    return raw_years, t_years


def _plan_horizon(t_years: float, n_per_year: int) -> PlanHorizon:
    contribution_months = t_years * 12
    years = math.floor(contribution_months / 12)
    months = round_half_up(contribution_months - years * 12)

    if months == 12:
        years += 1
        months = 0

    return PlanHorizon(
        years=years,
        months=months,
        total_periods=n_per_year * t_years,
        n_per_year=n_per_year,
    )


def _clean_name(name: Optional[str]) -> Optional[str]:
    if isinstance(name, str) and name.strip():
        return name.strip()
    return None


def _needs_recipient(remaining: float) -> bool:
    return remaining > EPSILON if math.isfinite(remaining) else True


def build_goal_plan(
    goal: Goal,
    member_details: Optional[MemberDetails] = None,
    now: Optional[datetime] = None,
) -> GoalPlan:
    """Compute the per-period contribution plan for ``goal``.

    Args:
        goal: Goal to plan for.
        member_details: Optional map of user id to ``{"email", "name"}``.
        now: Instant to plan from; defaults to the current UTC time.

    Returns:
        GoalPlan whose amounts are always finite. When no contribution periods
        remain the recurring total is reported as 0 alongside a warning.
    """
    member_details = member_details or {}

    members: List[PlanMember] = []
    for member in goal.members:
        details = member_details.get(member.user_id) or {}
        members.append(
            PlanMember(
                user_id=member.user_id,
                role=member.role,
                split_percent=member.split_percent,
                fixed_amount=member.fixed_amount,
                per_period=0.0,
                email=details.get("email") or None,
                name=_clean_name(details.get("name")),
            )
        )

    raw_years, t_years = planning_years(goal, now)
    compounding_n = goal.compounding.n_per_year
    contribution_n = goal.contribution_frequency.n_per_year
    existing_savings = goal.existing_savings or 0.0

    net_future_value = net_target_after_existing(
        goal.target_amount, existing_savings, goal.expected_rate, compounding_n, t_years
    )
    total_per_period = required_payment_for_future_value(
        net_future_value, goal.expected_rate, contribution_n, t_years
    )
    lump_sum_now = required_lump_sum_for_future_value(
        net_future_value, goal.expected_rate, compounding_n, t_years
    )
    total_is_finite = math.isfinite(total_per_period)

    warnings: List[str] = []

    if raw_years <= 0:
        warnings.append(WARNING_PAST_TARGET)

    if not total_is_finite:
        warnings.append(WARNING_NO_PERIODS)

    fixed_total = 0.0
    for member in members:
        if member.fixed_amount is not None:
            member.per_period = member.fixed_amount
            fixed_total += member.fixed_amount

    remaining = total_per_period - fixed_total
    if total_is_finite and remaining < -EPSILON:
        warnings.append(WARNING_FIXED_EXCEEDS)
        remaining = 0.0

    # Members with a fixed amount never take part in percentage allocation
    percentage_eligible = [member for member in members if member.fixed_amount is None]
    percent_sum = sum(member.split_percent or 0.0 for member in percentage_eligible)

    if percentage_eligible:
        if percent_sum <= EPSILON:
            if _needs_recipient(remaining):
                warnings.append(WARNING_MISSING_PERCENTAGES)
        else:
            if abs(percent_sum - 100) > SPLIT_TOLERANCE:
                warnings.append(WARNING_SPLIT_NOT_100)

            if total_is_finite:
                for member in percentage_eligible:
                    member.per_period += remaining * (member.split_percent or 0.0) / percent_sum
    elif _needs_recipient(remaining):
        warnings.append(WARNING_NO_RECIPIENTS)

    return GoalPlan(
        goal=PlanGoal(
            id=goal.id,
            title=goal.title,
            currency=goal.currency,
            target_amount=goal.target_amount,
            target_date=goal.target_date,
            expected_rate=goal.expected_rate,
            compounding=goal.compounding,
            contribution_frequency=goal.contribution_frequency,
            existing_savings=existing_savings,
            is_shared=goal.is_shared,
        ),
        horizon=_plan_horizon(t_years, contribution_n),
        totals=PlanTotals(
            per_period=total_per_period if total_is_finite else 0.0,
            lump_sum_now=lump_sum_now,
        ),
        members=members,
        assumptions=PlanAssumptions(
            expected_rate=goal.expected_rate,
            compounding=goal.compounding,
            contribution_frequency=goal.contribution_frequency,
        ),
        warnings=warnings or None,
    )


def member_details_from_users(users: List[dict]) -> Dict[str, Dict[str, Optional[str]]]:
    """Map user documents to the ``member_details`` shape used by the builder."""
    details: Dict[str, Dict[str, Optional[str]]] = {}
    for user in users:
        details[str(user["_id"])] = {
            "email": user.get("email"),
            "name": _clean_name(user.get("name")),
        }
    return details
