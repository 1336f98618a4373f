from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Closed set of roles a principal may hold (a principal holds a set)."""

    STAFF = "staff"
    MANAGER = "manager"
    FINANCE = "finance"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class SubmissionStatus(str, Enum):
    """Shared approval states for claims and overtime requests."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class SubmissionKind(str, Enum):
    CLAIM = "claim"
    OVERTIME = "overtime"

    @property
    def collection(self) -> str:
        """Collection name used as the audit target."""
        return "claims" if self is SubmissionKind.CLAIM else "overtime"


class RateKind(str, Enum):
    MILEAGE = "mileage"
    OVERTIME_MULTIPLIER = "overtime_multiplier"


class DayType(str, Enum):
    WEEKDAY = "weekday"
    WEEKEND = "weekend"
    HOLIDAY = "holiday"


class TripMode(str, Enum):
    ONE_WAY = "ONE_WAY"
    RETURN = "RETURN"
    CUSTOM = "CUSTOM"


class SalaryStatus(str, Enum):
    """Verification state of a self-reported salary submission."""

    NONE = "none"
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"
