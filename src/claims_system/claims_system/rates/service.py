from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional, Sequence

from ..audit.model import AuditTarget
from ..audit.recorder import AuditRecorder
from ..common.datetime_utils import now_local
from ..common.validators import optional_mapping, parse_date_value, require_positive
from ..core.constants import RATE_PLACES
from ..core.enums import RateKind
from ..core.exceptions import AuditWriteError, ConflictError, NotFoundError, ValidationError
from ..core.logging_config import get_logger
from ..rbac.evaluator import Principal, require
from ..rbac.permissions import Permission
from .model import RateCondition, RateConfig
from .repository import RateConfigRepository
from .resolver import RateResolver, make_condition

logger = get_logger("rates.service")

RATES_COLLECTION = "rate_configs"


class RateConfigService:
    """Use cases: administer effective-dated rates and resolve them."""

    def __init__(
        self,
        rates: RateConfigRepository,
        audit: AuditRecorder,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._rates = rates
        self._audit = audit
        self._clock = clock

    def snapshot(self) -> RateResolver:
        """Resolver over the configuration set as of now."""
        return RateResolver(self._rates.list_all())

    def list_rates(self, principal: Optional[Principal]) -> Sequence[RateConfig]:
        require(principal, Permission.RATES_READ)
        return sorted(self._rates.list_all(), key=lambda e: (e.kind.value, e.effective_date, e.created_at))

    def resolve_rate(
        self,
        principal: Optional[Principal],
        kind: RateKind | str,
        reference_date: Any,
        context: Optional[Mapping[str, str]] = None,
    ) -> Decimal:
        require(principal, Permission.RATES_READ)
        return self.snapshot().resolve(kind, parse_date_value(reference_date, "Reference date"), context)

    def create_rate(
        self,
        principal: Optional[Principal],
        *,
        kind: RateKind | str,
        effective_date: Any,
        value: Any = None,
        multiplier: Any = None,
        condition: Optional[Mapping[str, str]] = None,
    ) -> RateConfig:
        principal = require(principal, Permission.RATES_CREATE)
        kind = _parse_kind(kind)
        effective = parse_date_value(effective_date, "Effective date")

        amount_value: Optional[Decimal] = None
        amount_multiplier: Optional[Decimal] = None
        rate_condition: Optional[RateCondition] = None
        if kind == RateKind.MILEAGE:
            amount_value = require_positive(value, "Mileage rate", places=RATE_PLACES)
        else:
            amount_multiplier = require_positive(multiplier, "Multiplier", places=RATE_PLACES)
            condition = optional_mapping(condition, "Rate condition")
            rate_condition = make_condition(condition.get("day_type") or "", condition.get("designation"))

        entry = self._rates.create(
            kind=kind,
            effective_date=effective,
            value=amount_value,
            multiplier=amount_multiplier,
            condition=rate_condition,
        )
        try:
            self._audit.must_record(
                principal.subject_id,
                "created_rate_config",
                AuditTarget(RATES_COLLECTION, entry.config_id),
                _describe(entry),
            )
        except AuditWriteError:
            # Unaudited entries must never be resolved; take it back out.
            self._rates.delete(entry.config_id)
            self._log_undo("create", entry)
            raise
        logger.info("rate_config_created", extra={"config_id": entry.config_id, "kind": kind.value})
        return entry

    def update_rate(
        self,
        principal: Optional[Principal],
        config_id: int,
        *,
        effective_date: Any = None,
        value: Any = None,
        multiplier: Any = None,
    ) -> RateConfig:
        principal = require(principal, Permission.RATES_UPDATE)
        entry, snapshot = self._load(config_id)
        if self._is_superseded(entry, snapshot):
            raise ConflictError("A superseded rate configuration cannot be changed")

        effective = parse_date_value(effective_date, "Effective date") if effective_date else entry.effective_date
        new_value = entry.value
        new_multiplier = entry.multiplier
        if entry.kind == RateKind.MILEAGE and value is not None:
            new_value = require_positive(value, "Mileage rate", places=RATE_PLACES)
        if entry.kind == RateKind.OVERTIME_MULTIPLIER and multiplier is not None:
            new_multiplier = require_positive(multiplier, "Multiplier", places=RATE_PLACES)

        if not self._rates.update(entry.config_id, effective_date=effective, value=new_value, multiplier=new_multiplier):
            raise NotFoundError("Rate configuration not found")
        updated = self._rates.get(entry.config_id)
        try:
            self._audit.must_record(
                principal.subject_id,
                "updated_rate_config",
                AuditTarget(RATES_COLLECTION, entry.config_id),
                f"{_describe(entry)} -> {_describe(updated)}",
            )
        except AuditWriteError:
            self._rates.update(
                entry.config_id,
                effective_date=entry.effective_date,
                value=entry.value,
                multiplier=entry.multiplier,
            )
            self._log_undo("update", entry)
            raise
        return updated

    def delete_rate(self, principal: Optional[Principal], config_id: int) -> None:
        principal = require(principal, Permission.RATES_DELETE)
        entry, snapshot = self._load(config_id)
        if self._is_superseded(entry, snapshot):
            raise ConflictError("A superseded rate configuration cannot be deleted")
        if entry.effective_date <= self._clock().date():
            raise ConflictError("A rate configuration already in effect cannot be deleted")

        if not self._rates.delete(entry.config_id):
            raise NotFoundError("Rate configuration not found")
        try:
            self._audit.must_record(
                principal.subject_id,
                "deleted_rate_config",
                AuditTarget(RATES_COLLECTION, entry.config_id),
                _describe(entry),
            )
        except AuditWriteError:
            self._rates.restore(entry)
            self._log_undo("delete", entry)
            raise

    @staticmethod
    def _log_undo(operation: str, entry: RateConfig) -> None:
        logger.error("rate_config_change_undone", extra={"operation": operation, "config_id": entry.config_id})

    def _load(self, config_id: int) -> tuple[RateConfig, Sequence[RateConfig]]:
        snapshot = self._rates.list_all()
        for entry in snapshot:
            if entry.config_id == int(config_id):
                return entry, snapshot
        raise NotFoundError("Rate configuration not found")

    @staticmethod
    def _is_superseded(entry: RateConfig, snapshot: Sequence[RateConfig]) -> bool:
        rank = (entry.effective_date, entry.created_at, entry.config_id)
        return any(
            other.config_id != entry.config_id
            and other.same_key(entry)
            and (other.effective_date, other.created_at, other.config_id) > rank
            for other in snapshot
        )


def _parse_kind(kind: RateKind | str) -> RateKind:
    try:
        return RateKind(kind)
    except ValueError:
        raise ValidationError("Rate kind must be 'mileage' or 'overtime_multiplier'")


def _describe(entry: RateConfig) -> str:
    if entry.kind == RateKind.MILEAGE:
        return f"mileage {entry.value} from {entry.effective_date.isoformat()}"
    return (
        f"overtime_multiplier {entry.multiplier} for {entry.condition.day_type.value}/"
        f"{entry.condition.designation} from {entry.effective_date.isoformat()}"
    )
