from __future__ import annotations

from datetime import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ...core.constants import HOURS_QUANTUM, MONEY_QUANTUM
from ...core.enums import TripMode
from ...submissions.model import ClaimExpenses
from .base import PayoutCalculator

_MINUTES_PER_DAY = 24 * 60


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def trip_distance(one_way_distance: Decimal, trip_mode: Optional[TripMode]) -> Decimal:
    """A return trip covers the one-way distance twice."""
    if trip_mode == TripMode.RETURN:
        return one_way_distance * 2
    return one_way_distance


class StandardPayoutCalculator(PayoutCalculator):
    """Standard rules, in Decimal, rounded half-up to cents at the final step only.

    - overtime: hours x hourly rate x multiplier
    - claim: mileage x rate + toll + petrol + meal + others
    """

    def worked_hours(self, start: time, end: time) -> Decimal:
        # End before start means the shift ran past midnight.
        minutes = (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)
        if minutes < 0:
            minutes += _MINUTES_PER_DAY
        return (Decimal(minutes) / Decimal(60)).quantize(HOURS_QUANTUM, rounding=ROUND_HALF_UP)

    def mileage_cost(self, calculated_mileage: Optional[Decimal], mileage_rate: Optional[Decimal]) -> Decimal:
        if not calculated_mileage:
            return Decimal("0")
        return Decimal(calculated_mileage) * Decimal(mileage_rate or 0)

    def overtime_payout(self, hours: Decimal, hourly_rate: Decimal, multiplier: Decimal) -> Decimal:
        return round_money(Decimal(hours) * Decimal(hourly_rate) * Decimal(multiplier))

    def claim_total(
        self,
        calculated_mileage: Optional[Decimal],
        mileage_rate: Optional[Decimal],
        expenses: ClaimExpenses,
    ) -> Decimal:
        total = self.mileage_cost(calculated_mileage, mileage_rate) + expenses.itemized_total()
        return round_money(total)
