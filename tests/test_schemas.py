from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from schemas.auth import RequestOtpInput, VerifyOtpInput
from schemas.contribution import ContributionUpsert, parse_period
from schemas.goal import GoalCreate, GoalInviteCreate, GoalMembersUpdate, GoalUpdate, MemberContribution
from schemas.analytics import AnalyticsBatch
from conftest import goal_payload


def test_goal_create_accepts_camel_case_and_normalises():
    goal = GoalCreate.model_validate(goal_payload(title="  Boat  "))

    assert goal.title == "Boat"
    assert goal.currency == "USD"
    assert goal.target_date.tzinfo is None
    assert goal.compounding == "monthly"


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"title": "   "}, "Add a descriptive title"),
        ({"targetAmount": 0}, "Set a target amount greater than zero"),
        ({"expectedRate": 0}, "Use a rate between 0 and 100%"),
        ({"expectedRate": 150}, "Use a rate between 0 and 100%"),
        ({"existingSavings": -1}, "Savings can't be negative"),
        ({"targetDate": "2001-01-01T00:00:00Z"}, "Choose a future target date"),
        ({"compounding": "weekly"}, "compounding"),
    ],
)
def test_goal_create_rejects_invalid_fields(overrides, message):
    with pytest.raises(ValidationError, match=message):
        GoalCreate.model_validate(goal_payload(**overrides))


def test_goal_update_requires_a_field():
    with pytest.raises(ValidationError, match="At least one field must be supplied"):
        GoalUpdate.model_validate({})
    with pytest.raises(ValidationError, match="At least one field must be supplied"):
        GoalUpdate.model_validate({"title": None})


def test_goal_update_changes_use_stored_names():
    update = GoalUpdate.model_validate({"targetAmount": 500, "contributionFrequency": "yearly"})
    assert update.changes() == {"target_amount": 500, "contribution_frequency": "yearly"}


def test_member_contribution_needs_exactly_one_allocation():
    with pytest.raises(ValidationError, match="Enter a split percent or fixed amount"):
        MemberContribution.model_validate({"userId": "abc", "role": "owner"})
    with pytest.raises(ValidationError, match="Choose either a percent or a fixed amount"):
        MemberContribution.model_validate({"userId": "abc", "role": "owner", "splitPercent": 10, "fixedAmount": 5})
    with pytest.raises(ValidationError, match="Split percent cannot exceed 100%"):
        MemberContribution.model_validate({"userId": "abc", "role": "owner", "splitPercent": 120})


def test_members_update_must_keep_owner():
    with pytest.raises(ValidationError, match="Keep the goal owner in the members list"):
        GoalMembersUpdate.model_validate({"members": [{"userId": "abc", "role": "collaborator", "splitPercent": 50}]})
    with pytest.raises(ValidationError, match="Include at least one member to update"):
        GoalMembersUpdate.model_validate({"members": []})


def test_invite_create_defaults_and_allocation():
    invite = GoalInviteCreate.model_validate({"email": " Friend@Example.com ", "defaultSplitPercent": 25})
    assert invite.email == "friend@example.com"
    assert invite.expires_in_minutes == 60 * 24 * 7

    with pytest.raises(ValidationError, match="Set a default split percent or fixed amount"):
        GoalInviteCreate.model_validate({"email": "friend@example.com"})
    with pytest.raises(ValidationError, match="Enter a valid email address"):
        GoalInviteCreate.model_validate({"email": "nope", "fixedAmount": 10})


def test_otp_inputs():
    assert RequestOtpInput.model_validate({"email": "ANA@example.com"}).email == "ana@example.com"

    with pytest.raises(ValidationError, match="Please enter your email address"):
        RequestOtpInput.model_validate({"email": "  "})
    with pytest.raises(ValidationError, match="Enter the 6-digit code from your email"):
        VerifyOtpInput.model_validate({"email": "ana@example.com", "code": "123"})
    with pytest.raises(ValidationError, match="Use only digits in your 6-digit code"):
        VerifyOtpInput.model_validate({"email": "ana@example.com", "code": "12a456"})


def test_parse_period_variants():
    assert parse_period("2025-03") == datetime(2025, 3, 1)
    assert parse_period("2025-03-17T10:00:00Z") == datetime(2025, 3, 1)
    assert parse_period(datetime(2025, 3, 31, 23, 0, tzinfo=timezone(timedelta(hours=-5)))) == datetime(2025, 4, 1)

    with pytest.raises(ValueError, match="Contribution period is required"):
        parse_period("")
    with pytest.raises(ValueError, match="Choose a valid contribution month"):
        parse_period("March")


def test_contribution_upsert_validation():
    payload = {"goalId": "64b7f0c2a1b2c3d4e5f60718", "amount": 50, "period": "2025-02"}
    assert ContributionUpsert.model_validate(payload).period == datetime(2025, 2, 1)

    with pytest.raises(ValidationError, match="Enter an amount greater than zero"):
        ContributionUpsert.model_validate({**payload, "amount": 0})
    with pytest.raises(ValidationError, match="Invalid goal identifier supplied"):
        ContributionUpsert.model_validate({**payload, "goalId": "not-an-id"})


def test_analytics_batch_limits():
    event = {"event": "goal_created", "timestamp": "2025-01-01T00:00:00Z", "properties": {"count": 1}}

    assert len(AnalyticsBatch.model_validate({"events": [event]}).events) == 1
    with pytest.raises(ValidationError):
        AnalyticsBatch.model_validate({"events": []})
    with pytest.raises(ValidationError):
        AnalyticsBatch.model_validate({"events": [event] * 51})
    with pytest.raises(ValidationError):
        AnalyticsBatch.model_validate({"events": [{**event, "properties": {"nested": {"a": 1}}}]})
