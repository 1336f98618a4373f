from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from ..core.enums import DayType


@dataclass(frozen=True)
class DayTypeCalendar:
    """Classify a work date for overtime multiplier lookup.

    A configured holiday wins over a weekend.
    """

    holidays: frozenset[date] = field(default_factory=frozenset)

    def classify(self, work_date: date) -> DayType:
        if work_date in self.holidays:
            return DayType.HOLIDAY
        if work_date.weekday() >= 5:
            return DayType.WEEKEND
        return DayType.WEEKDAY
