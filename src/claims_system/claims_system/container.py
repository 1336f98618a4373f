from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .audit.mysql_audit_repository import MySQLAuditRepository
from .audit.recorder import AuditRecorder
from .audit.service import AuditLogService
from .common.datetime_utils import parse_date_list
from .core.constants import DEFAULT_DESIGNATION
from .database.connection import DBConfig, DatabaseConnection
from .payroll.calculator.standard_calculator import StandardPayoutCalculator
from .rates.day_types import DayTypeCalendar
from .rates.mysql_rate_repository import MySQLRateConfigRepository
from .rates.service import RateConfigService
from .submissions.mysql_submission_repository import MySQLSubmissionRepository
from .submissions.service import SubmissionService
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService, UserService
from .workflow.state_machine import ApprovalStateMachine


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    users_repo: MySQLUserRepository
    submissions_repo: MySQLSubmissionRepository
    rates_repo: MySQLRateConfigRepository
    audit_repo: MySQLAuditRepository

    audit_recorder: AuditRecorder
    auth_service: AuthService
    user_service: UserService
    rate_service: RateConfigService
    submission_service: SubmissionService
    audit_log_service: AuditLogService


def build_container(
    *,
    db_config: dict,
    holidays: str | Iterable[str] | None = None,
    default_designation: str = DEFAULT_DESIGNATION,
) -> Container:
    conn = DatabaseConnection(DBConfig.from_dict(db_config))

    users_repo = MySQLUserRepository(conn)
    submissions_repo = MySQLSubmissionRepository(conn)
    rates_repo = MySQLRateConfigRepository(conn)
    audit_repo = MySQLAuditRepository(conn)

    audit_recorder = AuditRecorder(audit_repo)
    calculator = StandardPayoutCalculator()
    state_machine = ApprovalStateMachine(
        calculator,
        calendar=DayTypeCalendar(parse_date_list(holidays)),
        default_designation=default_designation or DEFAULT_DESIGNATION,
    )

    return Container(
        conn=conn,
        users_repo=users_repo,
        submissions_repo=submissions_repo,
        rates_repo=rates_repo,
        audit_repo=audit_repo,
        audit_recorder=audit_recorder,
        auth_service=AuthService(users_repo, audit_recorder),
        user_service=UserService(users_repo, audit_recorder),
        rate_service=RateConfigService(rates_repo, audit_recorder),
        submission_service=SubmissionService(
            submissions_repo,
            users_repo,
            rates_repo,
            audit_recorder,
            state_machine=state_machine,
            calculator=calculator,
        ),
        audit_log_service=AuditLogService(audit_repo),
    )
