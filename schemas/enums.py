"""Enums for collection fields."""

from enum import Enum


class Frequency(str, Enum):
    """Compounding or contribution frequency."""
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @property
    def n_per_year(self) -> int:
        return 12 if self is Frequency.MONTHLY else 1


class MemberRole(str, Enum):
    """Role of a member within a goal."""
    OWNER = "owner"
    COLLABORATOR = "collaborator"


class InvitationStatus(str, Enum):
    """Lifecycle state of an invitation."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class GoalSortField(str, Enum):
    CREATED_AT = "createdAt"
    TARGET_DATE = "targetDate"
    TITLE = "title"

    @property
    def document_field(self) -> str:
        return {
            GoalSortField.CREATED_AT: "created_at",
            GoalSortField.TARGET_DATE: "target_date",
            GoalSortField.TITLE: "title",
        }[self]


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"
