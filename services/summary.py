"""Dashboard summaries of goals."""

import math
from datetime import datetime
from typing import Optional

from schemas.enums import Frequency
from schemas.goal import Goal
from schemas.plan import GoalSummary
from services.financial import net_target_after_existing, required_payment_for_future_value
from services.plan import planning_years
from utils.helpers import round_half_up


def _clamp_percent(value: float) -> float:
    if not math.isfinite(value):
        return 0.0
    return min(max(value, 0.0), 100.0)


def build_goal_summary(goal: Goal, now: Optional[datetime] = None) -> GoalSummary:
    """Recurring amount and progress of a goal, without member allocation."""
    _, years = planning_years(goal, now)
    existing = goal.existing_savings or 0.0
    target = goal.target_amount

    net_target = net_target_after_existing(
        target, existing, goal.expected_rate, goal.compounding.n_per_year, years
    )
    per_period = required_payment_for_future_value(
        net_target, goal.expected_rate, goal.contribution_frequency.n_per_year, years
    )

    contribution_amount = max(per_period, 0.0) if math.isfinite(per_period) else 0.0
    progress = _clamp_percent(existing / target * 100) if target > 0 else 0.0

    return GoalSummary(
        id=goal.id,
        title=goal.title,
        target_amount=target,
        target_date=goal.target_date,
        contribution_amount=contribution_amount,
        contribution_label="per month" if goal.contribution_frequency == Frequency.MONTHLY else "per year",
        collaborative=goal.is_shared,
        progress=round_half_up(progress),
    )
