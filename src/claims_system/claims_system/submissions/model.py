from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from ..core.enums import SubmissionKind, SubmissionStatus, TripMode


@dataclass(frozen=True)
class ClaimExpenses:
    """Itemized non-mileage expenses of a claim."""

    toll: Decimal = Decimal("0")
    petrol: Decimal = Decimal("0")
    meal: Decimal = Decimal("0")
    others: Decimal = Decimal("0")

    def itemized_total(self) -> Decimal:
        return self.toll + self.petrol + self.meal + self.others

    def as_dict(self) -> dict:
        return {k: str(getattr(self, k)) for k in ("toll", "petrol", "meal", "others")}


@dataclass(frozen=True)
class Claim:
    submission_id: int
    owner_id: int
    work_date: date
    status: SubmissionStatus
    created_at: datetime
    project: Optional[str] = None
    description: Optional[str] = None
    trip_mode: Optional[TripMode] = None
    origin: Optional[str] = None
    destination: Optional[str] = None
    calculated_mileage: Optional[Decimal] = None
    expenses: ClaimExpenses = field(default_factory=ClaimExpenses)
    mileage_rate: Optional[Decimal] = None
    total_claim: Optional[Decimal] = None
    submitted_at: Optional[datetime] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    paid_by: Optional[int] = None
    paid_at: Optional[datetime] = None
    remarks: Optional[str] = None

    kind = SubmissionKind.CLAIM

    def as_dict(self) -> dict:
        return {
            "id": self.submission_id,
            "kind": self.kind.value,
            "owner_id": self.owner_id,
            "date": self.work_date.isoformat(),
            "status": self.status.value,
            "project": self.project,
            "description": self.description,
            "trip_mode": self.trip_mode.value if self.trip_mode else None,
            "origin": self.origin,
            "destination": self.destination,
            "calculated_mileage": _s(self.calculated_mileage),
            "expenses": self.expenses.as_dict(),
            "mileage_rate": _s(self.mileage_rate),
            "total_claim": _s(self.total_claim),
            "submitted_at": _iso(self.submitted_at),
            "approved_by": self.approved_by,
            "approved_at": _iso(self.approved_at),
            "paid_by": self.paid_by,
            "paid_at": _iso(self.paid_at),
            "remarks": self.remarks,
            "created_at": _iso(self.created_at),
        }


@dataclass(frozen=True)
class Overtime:
    submission_id: int
    owner_id: int
    work_date: date
    start_time: time
    end_time: time
    reason: str
    hours_worked: Decimal
    status: SubmissionStatus
    created_at: datetime
    rate_multiplier: Optional[Decimal] = None
    hourly_rate: Optional[Decimal] = None
    total_payout: Optional[Decimal] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    paid_by: Optional[int] = None
    paid_at: Optional[datetime] = None
    remarks: Optional[str] = None

    kind = SubmissionKind.OVERTIME

    def as_dict(self) -> dict:
        return {
            "id": self.submission_id,
            "kind": self.kind.value,
            "owner_id": self.owner_id,
            "date": self.work_date.isoformat(),
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
            "reason": self.reason,
            "hours_worked": _s(self.hours_worked),
            "status": self.status.value,
            "rate_multiplier": _s(self.rate_multiplier),
            "hourly_rate": _s(self.hourly_rate),
            "total_payout": _s(self.total_payout),
            "approved_by": self.approved_by,
            "approved_at": _iso(self.approved_at),
            "paid_by": self.paid_by,
            "paid_at": _iso(self.paid_at),
            "remarks": self.remarks,
            "created_at": _iso(self.created_at),
        }


def _s(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
