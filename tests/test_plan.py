import math
from datetime import datetime, timedelta

import pytest

from schemas.goal import Goal, GoalMember
from services.plan import (
    WARNING_FIXED_EXCEEDS,
    WARNING_MISSING_PERCENTAGES,
    WARNING_NO_PERIODS,
    WARNING_NO_RECIPIENTS,
    WARNING_PAST_TARGET,
    WARNING_SPLIT_NOT_100,
    build_goal_plan,
)

NOW = datetime(2025, 1, 1)
ONE_YEAR = timedelta(days=365.25)


def make_goal(**overrides) -> Goal:
    values = {
        "id": "goal-1",
        "owner_id": "user-1",
        "title": "Holiday",
        "target_amount": 8400,
        "currency": "USD",
        "target_date": NOW + ONE_YEAR,
        "expected_rate": 0,
        "compounding": "monthly",
        "contribution_frequency": "monthly",
        "existing_savings": 0,
        "is_shared": False,
        "members": [GoalMember(user_id="user-1", role="owner", split_percent=100)],
    }
    values.update(overrides)
    return Goal(**values)


def test_single_owner_takes_whole_contribution():
    plan = build_goal_plan(make_goal(), now=NOW)

    assert plan.totals.per_period == pytest.approx(700)
    assert plan.members[0].per_period == pytest.approx(700)
    assert plan.warnings is None
    assert plan.horizon.years == 1
    assert plan.horizon.months == 0
    assert plan.horizon.total_periods == pytest.approx(12)
    assert plan.horizon.n_per_year == 12


def test_past_target_reports_zero_with_warnings():
    goal = make_goal(target_date=datetime(2000, 1, 1), expected_rate=5, target_amount=10000)
    plan = build_goal_plan(goal, now=NOW)

    assert math.isfinite(plan.totals.per_period)
    assert plan.totals.per_period == 0
    assert all(math.isfinite(member.per_period) for member in plan.members)
    assert plan.members[0].per_period == 0
    assert WARNING_PAST_TARGET in plan.warnings
    assert WARNING_NO_PERIODS in plan.warnings
    assert plan.warnings.index(WARNING_PAST_TARGET) < plan.warnings.index(WARNING_NO_PERIODS)
    assert plan.horizon.years == 0
    assert plan.horizon.months == 0


def test_target_today_counts_as_past():
    plan = build_goal_plan(make_goal(target_date=NOW), now=NOW)
    assert plan.warnings[:2] == [WARNING_PAST_TARGET, WARNING_NO_PERIODS]


def test_existing_savings_covering_target_needs_nothing():
    goal = make_goal(expected_rate=5, target_amount=10000, existing_savings=20000)
    plan = build_goal_plan(goal, now=NOW)

    assert plan.totals.per_period == 0
    assert plan.totals.lump_sum_now == 0
    assert plan.warnings is None


def test_fixed_contribution_exceeding_requirement():
    goal = make_goal(
        target_amount=6000,
        members=[
            GoalMember(user_id="user-1", role="owner", split_percent=100),
            GoalMember(user_id="user-2", role="collaborator", fixed_amount=1000),
        ],
    )
    plan = build_goal_plan(goal, now=NOW)

    assert plan.totals.per_period == pytest.approx(500)
    assert plan.members[1].per_period == 1000
    assert plan.members[0].per_period == 0
    assert WARNING_FIXED_EXCEEDS in plan.warnings


def test_split_percentages_are_normalised():
    goal = make_goal(
        members=[
            GoalMember(user_id="user-1", role="owner", split_percent=30),
            GoalMember(user_id="user-2", role="collaborator", split_percent=40),
        ],
    )
    plan = build_goal_plan(goal, now=NOW)

    assert plan.members[0].per_period == pytest.approx(300)
    assert plan.members[1].per_period == pytest.approx(400)
    assert plan.warnings == [WARNING_SPLIT_NOT_100]


def test_small_split_drift_is_tolerated():
    goal = make_goal(
        members=[
            GoalMember(user_id="user-1", role="owner", split_percent=66.7),
            GoalMember(user_id="user-2", role="collaborator", split_percent=33.3),
        ],
    )
    assert build_goal_plan(goal, now=NOW).warnings is None


def test_fixed_members_skip_percentage_allocation():
    goal = make_goal(
        members=[
            GoalMember(user_id="user-1", role="owner", split_percent=100),
            GoalMember(user_id="user-2", role="collaborator", split_percent=50, fixed_amount=200),
        ],
    )
    plan = build_goal_plan(goal, now=NOW)

    assert plan.members[1].per_period == 200
    assert plan.members[0].per_period == pytest.approx(500)
    assert plan.warnings is None


def test_missing_percentages_warns():
    goal = make_goal(members=[GoalMember(user_id="user-1", role="owner")])
    plan = build_goal_plan(goal, now=NOW)

    assert plan.members[0].per_period == 0
    assert plan.warnings == [WARNING_MISSING_PERCENTAGES]


def test_goal_without_members():
    plan = build_goal_plan(make_goal(members=[]), now=NOW)

    assert plan.members == []
    assert plan.warnings == [WARNING_NO_RECIPIENTS]


def test_horizon_month_rounding_carries_into_years():
    goal = make_goal(target_date=NOW + timedelta(days=365.25 * 1.99))
    plan = build_goal_plan(goal, now=NOW)

    assert plan.horizon.years == 2
    assert plan.horizon.months == 0


def test_horizon_years_and_months():
    goal = make_goal(target_date=NOW + timedelta(days=365.25 * 2.5))
    plan = build_goal_plan(goal, now=NOW)

    assert (plan.horizon.years, plan.horizon.months) == (2, 6)


def test_yearly_contributions_use_yearly_periods():
    goal = make_goal(contribution_frequency="yearly", target_date=NOW + ONE_YEAR * 2)
    plan = build_goal_plan(goal, now=NOW)

    assert plan.horizon.n_per_year == 1
    assert plan.horizon.total_periods == pytest.approx(2)
    assert plan.totals.per_period == pytest.approx(4200)


def test_member_details_are_attached():
    details = {"user-1": {"email": "owner@example.com", "name": "  "}}
    plan = build_goal_plan(make_goal(), member_details=details, now=NOW)

    assert plan.members[0].email == "owner@example.com"
    assert plan.members[0].name is None


def test_goal_echo_and_assumptions():
    goal = make_goal(existing_savings=None, expected_rate=4)
    plan = build_goal_plan(goal, now=NOW)

    assert plan.goal.existing_savings == 0
    assert plan.assumptions.expected_rate == 4
    assert plan.assumptions.compounding == "monthly"


def test_builder_does_not_mutate_goal():
    goal = make_goal()
    before = goal.model_dump()
    build_goal_plan(goal, now=NOW)
    assert goal.model_dump() == before


def test_plan_serialises_without_empty_warnings():
    data = build_goal_plan(make_goal(), now=NOW).model_dump(by_alias=True)

    assert "warnings" not in data
    assert data["totals"]["perPeriod"] == pytest.approx(700)
    assert data["goal"]["targetDate"].endswith("Z")


def test_past_target_without_members_needs_recipients():
    plan = build_goal_plan(make_goal(target_date=datetime(2000, 1, 1), members=[]), now=NOW)

    assert plan.totals.per_period == 0
    assert plan.warnings == [WARNING_PAST_TARGET, WARNING_NO_PERIODS, WARNING_NO_RECIPIENTS]


def test_past_target_with_missing_percentages():
    goal = make_goal(target_date=datetime(2000, 1, 1), members=[GoalMember(user_id="user-1", role="owner")])
    plan = build_goal_plan(goal, now=NOW)

    assert plan.members[0].per_period == 0
    assert plan.warnings == [WARNING_PAST_TARGET, WARNING_NO_PERIODS, WARNING_MISSING_PERCENTAGES]


def test_past_target_keeps_fixed_amounts_and_zeroes_percentages():
    goal = make_goal(
        target_date=datetime(2000, 1, 1),
        members=[
            GoalMember(user_id="user-1", role="owner", split_percent=100),
            GoalMember(user_id="user-2", role="collaborator", fixed_amount=50),
        ],
    )
    plan = build_goal_plan(goal, now=NOW)

    assert [member.per_period for member in plan.members] == [0.0, 50.0]
    assert plan.warnings == [WARNING_PAST_TARGET, WARNING_NO_PERIODS]
