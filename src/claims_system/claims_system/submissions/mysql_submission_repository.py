from __future__ import annotations

from datetime import date, time
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

from ..core.enums import SubmissionKind, SubmissionStatus, TripMode
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_set_clause, db_cursor, fetchall, fetchone, normalize_mysql_time, to_decimal
from .model import Claim, ClaimExpenses, Overtime
from .repository import Submission, SubmissionRepository

_CLAIM_COLUMNS = """
    claim_id, user_id, work_date, project, description, trip_mode, origin, destination,
    calculated_mileage, toll, petrol, meal, others, mileage_rate, total_claim,
    status, created_at, submitted_at, approved_by, approved_at, paid_by, paid_at, remarks
"""

_OVERTIME_COLUMNS = """
    overtime_id, user_id, work_date, start_time, end_time, reason, hours_worked,
    rate_multiplier, hourly_rate, total_payout,
    status, created_at, approved_by, approved_at, paid_by, paid_at, remarks
"""

# Columns a status transition may write, per kind.
_TRANSITION_COLUMNS = {
    SubmissionKind.CLAIM: {
        "submitted_at", "approved_by", "approved_at", "paid_by", "paid_at", "remarks",
        "mileage_rate", "total_claim",
    },
    SubmissionKind.OVERTIME: {
        "approved_by", "approved_at", "paid_by", "paid_at", "remarks",
        "rate_multiplier", "hourly_rate", "total_payout",
    },
}

_DRAFT_COLUMNS = {
    "work_date", "project", "description", "trip_mode", "origin", "destination",
    "calculated_mileage", "toll", "petrol", "meal", "others",
}

_SUBMITTED_OVERTIME_COLUMNS = {"work_date", "start_time", "end_time", "reason", "hours_worked"}

_TABLES = {
    SubmissionKind.CLAIM: ("claims", "claim_id", _CLAIM_COLUMNS),
    SubmissionKind.OVERTIME: ("overtime_requests", "overtime_id", _OVERTIME_COLUMNS),
}


def _row_to_claim(r: dict) -> Claim:
    return Claim(
        submission_id=int(r["claim_id"]),
        owner_id=int(r["user_id"]),
        work_date=r["work_date"],
        project=r.get("project"),
        description=r.get("description"),
        trip_mode=TripMode(r["trip_mode"]) if r.get("trip_mode") else None,
        origin=r.get("origin"),
        destination=r.get("destination"),
        calculated_mileage=to_decimal(r.get("calculated_mileage")),
        expenses=ClaimExpenses(
            toll=to_decimal(r.get("toll")) or Decimal("0"),
            petrol=to_decimal(r.get("petrol")) or Decimal("0"),
            meal=to_decimal(r.get("meal")) or Decimal("0"),
            others=to_decimal(r.get("others")) or Decimal("0"),
        ),
        mileage_rate=to_decimal(r.get("mileage_rate")),
        total_claim=to_decimal(r.get("total_claim")),
        status=SubmissionStatus(r["status"]),
        created_at=r["created_at"],
        submitted_at=r.get("submitted_at"),
        approved_by=r.get("approved_by"),
        approved_at=r.get("approved_at"),
        paid_by=r.get("paid_by"),
        paid_at=r.get("paid_at"),
        remarks=r.get("remarks"),
    )


def _row_to_overtime(r: dict) -> Overtime:
    return Overtime(
        submission_id=int(r["overtime_id"]),
        owner_id=int(r["user_id"]),
        work_date=r["work_date"],
        start_time=normalize_mysql_time(r["start_time"]),
        end_time=normalize_mysql_time(r["end_time"]),
        reason=r["reason"],
        hours_worked=to_decimal(r["hours_worked"]),
        rate_multiplier=to_decimal(r.get("rate_multiplier")),
        hourly_rate=to_decimal(r.get("hourly_rate")),
        total_payout=to_decimal(r.get("total_payout")),
        status=SubmissionStatus(r["status"]),
        created_at=r["created_at"],
        approved_by=r.get("approved_by"),
        approved_at=r.get("approved_at"),
        paid_by=r.get("paid_by"),
        paid_at=r.get("paid_at"),
        remarks=r.get("remarks"),
    )


def _to_model(kind: SubmissionKind, row: dict) -> Submission:
    return _row_to_claim(row) if kind == SubmissionKind.CLAIM else _row_to_overtime(row)


class MySQLSubmissionRepository(SubmissionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # -------- Claims --------
    def create_claim(
        self,
        *,
        owner_id: int,
        work_date: date,
        project: Optional[str],
        description: Optional[str],
        trip_mode: Optional[TripMode],
        origin: Optional[str],
        destination: Optional[str],
        calculated_mileage: Optional[Decimal],
        expenses: ClaimExpenses,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO claims(
                    user_id, work_date, project, description, trip_mode, origin, destination,
                    calculated_mileage, toll, petrol, meal, others, status
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(owner_id),
                    work_date,
                    project,
                    description,
                    trip_mode.value if trip_mode else None,
                    origin,
                    destination,
                    calculated_mileage,
                    expenses.toll,
                    expenses.petrol,
                    expenses.meal,
                    expenses.others,
                    SubmissionStatus.DRAFT.value,
                ),
            )
            return int(cur.lastrowid)

    def update_draft_claim(self, *, claim_id: int, changes: Mapping[str, Any]) -> bool:
        flat = dict(changes)
        expenses = flat.pop("expenses", None)
        if expenses is not None:
            flat.update(toll=expenses.toll, petrol=expenses.petrol, meal=expenses.meal, others=expenses.others)
        if not flat:
            return True

        clause, params = build_set_clause(flat, _DRAFT_COLUMNS)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE claims SET {clause} WHERE claim_id=%s AND status=%s",
                tuple(params + [int(claim_id), SubmissionStatus.DRAFT.value]),
            )
            return cur.rowcount > 0

    # -------- Overtime --------
    def create_overtime(
        self,
        *,
        owner_id: int,
        work_date: date,
        start_time: time,
        end_time: time,
        reason: str,
        hours_worked: Decimal,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO overtime_requests(user_id, work_date, start_time, end_time, reason, hours_worked, status)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(owner_id),
                    work_date,
                    start_time,
                    end_time,
                    reason,
                    hours_worked,
                    SubmissionStatus.SUBMITTED.value,
                ),
            )
            return int(cur.lastrowid)

    def update_submitted_overtime(self, *, overtime_id: int, changes: Mapping[str, Any]) -> bool:
        if not changes:
            return True
        clause, params = build_set_clause(dict(changes), _SUBMITTED_OVERTIME_COLUMNS)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE overtime_requests SET {clause} WHERE overtime_id=%s AND status=%s",
                tuple(params + [int(overtime_id), SubmissionStatus.SUBMITTED.value]),
            )
            return cur.rowcount > 0

    # -------- Shared --------
    def get(self, kind: SubmissionKind, submission_id: int) -> Optional[Submission]:
        table, id_col, columns = _TABLES[kind]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {columns} FROM {table} WHERE {id_col}=%s", (int(submission_id),))
            r = fetchone(cur)
            return _to_model(kind, r) if r else None

    def list_for_owner(self, *, kind: SubmissionKind, owner_id: int, limit: int = 200) -> Sequence[Submission]:
        table, _, columns = _TABLES[kind]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {columns} FROM {table} WHERE user_id=%s ORDER BY created_at DESC LIMIT %s",
                (int(owner_id), int(limit)),
            )
            return [_to_model(kind, r) for r in fetchall(cur)]

    def list_by_status(self, *, kind: SubmissionKind, status: SubmissionStatus, limit: int = 200) -> Sequence[Submission]:
        table, _, columns = _TABLES[kind]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {columns} FROM {table} WHERE status=%s ORDER BY created_at ASC LIMIT %s",
                (status.value, int(limit)),
            )
            return [_to_model(kind, r) for r in fetchall(cur)]

    def compare_and_set(
        self,
        kind: SubmissionKind,
        submission_id: int,
        *,
        expected_status: SubmissionStatus,
        new_status: SubmissionStatus,
        changes: Mapping[str, Any],
    ) -> bool:
        table, id_col, _ = _TABLES[kind]
        set_clause = "status=%s"
        params: list[object] = [new_status.value]
        if changes:
            clause, extra = build_set_clause(dict(changes), _TRANSITION_COLUMNS[kind])
            set_clause = f"{set_clause}, {clause}"
            params.extend(extra)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE {table} SET {set_clause} WHERE {id_col}=%s AND status=%s",
                tuple(params + [int(submission_id), expected_status.value]),
            )
            return cur.rowcount > 0
