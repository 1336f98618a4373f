from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import DayType, RateKind
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, to_decimal
from .model import RateCondition, RateConfig
from .repository import RateConfigRepository

_COLUMNS = "config_id, kind, value, multiplier, day_type, designation, effective_date, created_at"


def _row_to_config(r: dict) -> RateConfig:
    condition = None
    if r.get("day_type") and r.get("designation"):
        condition = RateCondition(day_type=DayType(r["day_type"]), designation=r["designation"])
    return RateConfig(
        config_id=int(r["config_id"]),
        kind=RateKind(r["kind"]),
        value=to_decimal(r.get("value")),
        multiplier=to_decimal(r.get("multiplier")),
        condition=condition,
        effective_date=r["effective_date"],
        created_at=r["created_at"],
    )


class MySQLRateConfigRepository(RateConfigRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[RateConfig]:
        # One SELECT so the resolver sees a single consistent snapshot.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM rate_configs ORDER BY kind, effective_date, created_at")
            return [_row_to_config(r) for r in fetchall(cur)]

    def get(self, config_id: int) -> Optional[RateConfig]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM rate_configs WHERE config_id=%s", (int(config_id),))
            r = fetchone(cur)
            return _row_to_config(r) if r else None

    def create(
        self,
        *,
        kind: RateKind,
        effective_date: date,
        value: Optional[Decimal] = None,
        multiplier: Optional[Decimal] = None,
        condition: Optional[RateCondition] = None,
    ) -> RateConfig:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO rate_configs(kind, value, multiplier, day_type, designation, effective_date)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    kind.value,
                    value,
                    multiplier,
                    condition.day_type.value if condition else None,
                    condition.designation if condition else None,
                    effective_date,
                ),
            )
            config_id = int(cur.lastrowid)
            cur.execute(f"SELECT {_COLUMNS} FROM rate_configs WHERE config_id=%s", (config_id,))
            return _row_to_config(fetchone(cur))

    def update(
        self,
        config_id: int,
        *,
        effective_date: date,
        value: Optional[Decimal] = None,
        multiplier: Optional[Decimal] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE rate_configs
                SET value=%s, multiplier=%s, effective_date=%s
                WHERE config_id=%s
                """,
                (value, multiplier, effective_date, int(config_id)),
            )
            return cur.rowcount > 0

    def delete(self, config_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM rate_configs WHERE config_id=%s", (int(config_id),))
            return cur.rowcount > 0

    def restore(self, entry: RateConfig) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO rate_configs(config_id, kind, value, multiplier, day_type, designation, effective_date, created_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    entry.config_id,
                    entry.kind.value,
                    entry.value,
                    entry.multiplier,
                    entry.condition.day_type.value if entry.condition else None,
                    entry.condition.designation if entry.condition else None,
                    entry.effective_date,
                    entry.created_at,
                ),
            )
