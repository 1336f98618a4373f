from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from ..core.enums import DayType, RateKind
from ..core.exceptions import NotConfiguredError, ValidationError
from .model import RateCondition, RateConfig


class RateResolver:
    """Effective-dated lookup over one snapshot of the rate configuration.

    Selection: entries of the requested kind (and exact condition for
    multipliers) with ``effective_date <= reference_date``; the latest
    effective date wins, ties go to the most recently created entry. No
    qualifying entry raises ``NotConfiguredError``; there is no default.
    """

    def __init__(self, entries: Iterable[RateConfig]):
        self._entries = tuple(entries)

    def select(
        self,
        kind: RateKind,
        reference_date: date,
        condition: Optional[RateCondition] = None,
    ) -> RateConfig:
        candidates = [
            e
            for e in self._entries
            if e.kind == kind
            and (kind != RateKind.OVERTIME_MULTIPLIER or e.condition == condition)
            and e.effective_date <= reference_date
        ]
        if not candidates:
            raise NotConfiguredError(self._describe_missing(kind, reference_date, condition))
        return max(candidates, key=lambda e: (e.effective_date, e.created_at, e.config_id))

    def resolve_mileage_rate(self, reference_date: date) -> Decimal:
        return self.select(RateKind.MILEAGE, reference_date).value

    def resolve_overtime_multiplier(self, reference_date: date, day_type: DayType | str, designation: str) -> Decimal:
        condition = make_condition(day_type, designation)
        return self.select(RateKind.OVERTIME_MULTIPLIER, reference_date, condition).multiplier

    def resolve(self, kind: RateKind | str, reference_date: date, context: Optional[Mapping[str, str]] = None) -> Decimal:
        try:
            kind = RateKind(kind)
        except ValueError:
            raise ValidationError("Unknown rate kind")
        if kind == RateKind.MILEAGE:
            return self.resolve_mileage_rate(reference_date)
        context = context or {}
        return self.resolve_overtime_multiplier(
            reference_date,
            context.get("day_type") or "",
            context.get("designation") or "",
        )

    @staticmethod
    def _describe_missing(kind: RateKind, reference_date: date, condition: Optional[RateCondition]) -> str:
        if kind == RateKind.MILEAGE:
            return f"No mileage rate is configured for {reference_date.isoformat()}"
        return (
            f"No overtime multiplier is configured for {condition.day_type.value}/{condition.designation} "
            f"on {reference_date.isoformat()}"
        )


def make_condition(day_type: DayType | str, designation: Optional[str]) -> RateCondition:
    """Validate and build a multiplier condition; both parts are required."""
    try:
        dt = DayType(day_type)
    except ValueError:
        raise ValidationError("Rate condition requires a valid day type")
    if designation is not None and not isinstance(designation, str):
        raise ValidationError("Rate condition designation must be text")
    designation = (designation or "").strip()
    if not designation:
        raise ValidationError("Rate condition requires a designation")
    return RateCondition(day_type=dt, designation=designation)
