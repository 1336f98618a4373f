from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import DayType, RateKind


@dataclass(frozen=True)
class RateCondition:
    """Key of an overtime multiplier entry; matched exactly, never partially."""

    day_type: DayType
    designation: str


@dataclass(frozen=True)
class RateConfig:
    """Effective-dated configuration entry.

    Mileage entries carry ``value`` (rate per distance unit); overtime entries
    carry ``multiplier`` and ``condition``.
    """

    config_id: int
    kind: RateKind
    effective_date: date
    created_at: datetime
    value: Optional[Decimal] = None
    multiplier: Optional[Decimal] = None
    condition: Optional[RateCondition] = None

    def same_key(self, other: "RateConfig") -> bool:
        return self.kind == other.kind and self.condition == other.condition

    def as_dict(self) -> dict:
        return {
            "config_id": self.config_id,
            "kind": self.kind.value,
            "value": str(self.value) if self.value is not None else None,
            "multiplier": str(self.multiplier) if self.multiplier is not None else None,
            "condition": (
                {"day_type": self.condition.day_type.value, "designation": self.condition.designation}
                if self.condition
                else None
            ),
            "effective_date": self.effective_date.isoformat(),
            "created_at": self.created_at.isoformat(),
        }
