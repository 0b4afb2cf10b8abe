"""Request, response and document schemas."""

from schemas.enums import Frequency, GoalSortField, InvitationStatus, MemberRole, SortOrder
from schemas.goal import Goal, GoalCreate, GoalMember, GoalUpdate
from schemas.plan import GoalPlan, GoalSummary

__all__ = [
    "Frequency",
    "GoalSortField",
    "InvitationStatus",
    "MemberRole",
    "SortOrder",
    "Goal",
    "GoalCreate",
    "GoalMember",
    "GoalUpdate",
    "GoalPlan",
    "GoalSummary",
]
