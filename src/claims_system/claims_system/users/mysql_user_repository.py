from __future__ import annotations

from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import Role, SalaryStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, to_decimal
from .model import SalarySubmission, User
from .repository import UserRepository

_USER_COLUMNS = """
    user_id, full_name, username, password_hash, department, designation, hourly_rate, monthly_salary,
    salary_status, submitted_monthly_salary, submitted_hourly_rate, salary_submitted_at,
    salary_verified_by, salary_verified_at, salary_remarks, is_active
"""


def _row_to_user(row: dict, roles: frozenset[Role]) -> User:
    return User(
        user_id=int(row["user_id"]),
        full_name=row["full_name"],
        username=row["username"],
        password_hash=row["password_hash"],
        roles=roles,
        department=row.get("department"),
        designation=row.get("designation"),
        hourly_rate=to_decimal(row.get("hourly_rate")),
        monthly_salary=to_decimal(row.get("monthly_salary")),
        salary=SalarySubmission(
            status=SalaryStatus(row.get("salary_status") or SalaryStatus.NONE.value),
            monthly_salary=to_decimal(row.get("submitted_monthly_salary")),
            hourly_rate=to_decimal(row.get("submitted_hourly_rate")),
            submitted_at=row.get("salary_submitted_at"),
            verified_by=row.get("salary_verified_by"),
            verified_at=row.get("salary_verified_at"),
            remarks=row.get("salary_remarks"),
        ),
        is_active=bool(row.get("is_active", True)),
    )


def _roles(cur, user_id: int) -> frozenset[Role]:
    cur.execute("SELECT role FROM user_roles WHERE user_id=%s", (int(user_id),))
    return frozenset(Role(r["role"]) for r in fetchall(cur))


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _load(self, where: str, value: object) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE {where}=%s", (value,))
            row = fetchone(cur)
            if not row:
                return None
            return _row_to_user(row, _roles(cur, row["user_id"]))

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._load("user_id", int(user_id))

    def get_by_username(self, username: str) -> Optional[User]:
        return self._load("username", username)

    def create_user(
        self,
        *,
        full_name: str,
        username: str,
        password_hash: str,
        roles: frozenset[Role],
        department: Optional[str],
        designation: Optional[str],
        hourly_rate: Optional[Decimal],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(full_name, username, password_hash, department, designation, hourly_rate, is_active)
                VALUES(%s,%s,%s,%s,%s,%s,1)
                """,
                (full_name, username, password_hash, department, designation, hourly_rate),
            )
            user_id = int(cur.lastrowid)
            cur.executemany(
                "INSERT INTO user_roles(user_id, role) VALUES(%s,%s)",
                [(user_id, r.value) for r in sorted(roles, key=lambda r: r.value)],
            )
            return user_id

    def set_roles(self, user_id: int, roles: frozenset[Role]) -> bool:
        # Replace the whole set inside one transaction.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT user_id FROM users WHERE user_id=%s FOR UPDATE", (int(user_id),))
            if not fetchone(cur):
                return False
            cur.execute("DELETE FROM user_roles WHERE user_id=%s", (int(user_id),))
            cur.executemany(
                "INSERT INTO user_roles(user_id, role) VALUES(%s,%s)",
                [(int(user_id), r.value) for r in sorted(roles, key=lambda r: r.value)],
            )
            return True

    def set_hourly_rate(self, user_id: int, hourly_rate: Optional[Decimal]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET hourly_rate=%s WHERE user_id=%s", (hourly_rate, int(user_id)))
            return cur.rowcount > 0

    def list_by_salary_status(self, status: SalaryStatus, *, limit: int = 200) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE salary_status=%s ORDER BY salary_submitted_at ASC LIMIT %s",
                (status.value, int(limit)),
            )
            rows = fetchall(cur)
            return [_row_to_user(row, _roles(cur, row["user_id"])) for row in rows]

    def save_salary(
        self,
        user_id: int,
        salary: SalarySubmission,
        *,
        expected_status: SalaryStatus,
        monthly_salary: Optional[Decimal],
        hourly_rate: Optional[Decimal],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE users
                SET salary_status=%s, submitted_monthly_salary=%s, submitted_hourly_rate=%s,
                    salary_submitted_at=%s, salary_verified_by=%s, salary_verified_at=%s, salary_remarks=%s,
                    monthly_salary=%s, hourly_rate=%s
                WHERE user_id=%s AND salary_status=%s
                """,
                (
                    salary.status.value,
                    salary.monthly_salary,
                    salary.hourly_rate,
                    salary.submitted_at,
                    salary.verified_by,
                    salary.verified_at,
                    salary.remarks,
                    monthly_salary,
                    hourly_rate,
                    int(user_id),
                    expected_status.value,
                ),
            )
            return cur.rowcount > 0
