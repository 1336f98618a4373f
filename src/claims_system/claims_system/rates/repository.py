from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from ..core.enums import RateKind
from .model import RateCondition, RateConfig


class RateConfigRepository(Protocol):
    def list_all(self) -> Sequence[RateConfig]:
        """Full configuration set as of now (a consistent snapshot)."""

        raise NotImplementedError

    def get(self, config_id: int) -> Optional[RateConfig]:
        raise NotImplementedError

    def create(
        self,
        *,
        kind: RateKind,
        effective_date: date,
        value: Optional[Decimal] = None,
        multiplier: Optional[Decimal] = None,
        condition: Optional[RateCondition] = None,
    ) -> RateConfig:
        raise NotImplementedError

    def update(
        self,
        config_id: int,
        *,
        effective_date: date,
        value: Optional[Decimal] = None,
        multiplier: Optional[Decimal] = None,
    ) -> bool:
        raise NotImplementedError

    def delete(self, config_id: int) -> bool:
        raise NotImplementedError

    def restore(self, entry: RateConfig) -> None:
        """Re-insert a deleted entry with its original id and creation time."""

        raise NotImplementedError
