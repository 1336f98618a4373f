from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import Role, SalaryStatus


def _s(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


@dataclass(frozen=True)
class SalarySubmission:
    """Pay figures a user reported about themselves.

    They stay here until a manager or admin verifies them; only then does the
    hourly rate move onto the profile and into overtime payouts.
    """

    status: SalaryStatus = SalaryStatus.NONE
    monthly_salary: Optional[Decimal] = None
    hourly_rate: Optional[Decimal] = None
    submitted_at: Optional[datetime] = None
    verified_by: Optional[int] = None
    verified_at: Optional[datetime] = None
    remarks: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "status": self.status.value,
            "monthly_salary": _s(self.monthly_salary),
            "hourly_rate": _s(self.hourly_rate),
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "verified_by": self.verified_by,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
            "remarks": self.remarks,
        }


@dataclass(frozen=True)
class User:
    """Domain entity: User profile.

    Note: plain data object (no DB access code). ``hourly_rate`` is read at
    overtime approval time, so a correction affects only pending requests.
    """

    user_id: int
    full_name: str
    username: str
    password_hash: str
    roles: frozenset[Role] = field(default_factory=frozenset)
    department: Optional[str] = None
    designation: Optional[str] = None
    hourly_rate: Optional[Decimal] = None
    monthly_salary: Optional[Decimal] = None
    salary: SalarySubmission = field(default_factory=SalarySubmission)
    is_active: bool = True

    def as_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "full_name": self.full_name,
            "username": self.username,
            "roles": sorted(r.value for r in self.roles),
            "department": self.department,
            "designation": self.designation,
            "hourly_rate": _s(self.hourly_rate),
            "monthly_salary": _s(self.monthly_salary),
            "salary": self.salary.as_dict(),
            "is_active": self.is_active,
        }
