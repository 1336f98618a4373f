from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import time
from decimal import Decimal
from typing import Optional

from ...submissions.model import ClaimExpenses


class PayoutCalculator(ABC):
    """Calculator interface (Strategy Pattern for payouts)."""

    @abstractmethod
    def worked_hours(self, start: time, end: time) -> Decimal:
        raise NotImplementedError

    @abstractmethod
    def overtime_payout(self, hours: Decimal, hourly_rate: Decimal, multiplier: Decimal) -> Decimal:
        raise NotImplementedError

    @abstractmethod
    def claim_total(
        self,
        calculated_mileage: Optional[Decimal],
        mileage_rate: Optional[Decimal],
        expenses: ClaimExpenses,
    ) -> Decimal:
        raise NotImplementedError
