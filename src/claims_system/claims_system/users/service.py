from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Iterable, Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..audit.model import AuditTarget
from ..audit.recorder import AuditRecorder
from ..common.datetime_utils import now_local
from ..common.validators import optional_text, parse_amount, require_min_length, require_non_empty, require_positive
from ..core.constants import DEFAULT_LIST_LIMIT, MIN_PASSWORD_LENGTH, MONEY_PLACES
from ..core.enums import Role, SalaryStatus
from ..core.exceptions import (
    AuditWriteError,
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)
from ..core.logging_config import get_logger
from ..rbac.evaluator import Principal, require
from ..rbac.permissions import Permission, parse_roles
from .model import SalarySubmission, User
from .repository import UserRepository

logger = get_logger("users.service")

USERS_COLLECTION = "users"


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: int
    full_name: str
    roles: frozenset[Role]


def parse_role_names(values: Iterable[Any]) -> frozenset[Role]:
    if isinstance(values, (str, bytes)) or not isinstance(values, (list, tuple, set, frozenset)):
        raise ValidationError("Roles must be a list of role names")
    try:
        return parse_roles(values)
    except ValueError:
        raise ValidationError("Invalid role specified")


def validate_role_assignment(roles: frozenset[Role]) -> frozenset[Role]:
    """Business rules for a role set assigned to a user."""
    if not roles:
        raise ValidationError("At least one role must be assigned")
    if Role.STAFF not in roles:
        raise ValidationError("Staff role is required for all users")
    if Role.SUPERADMIN in roles and Role.ADMIN in roles:
        raise ValidationError("Superadmin role already includes admin permissions")
    return roles


def _fmt_roles(roles: Iterable[Role]) -> str:
    return ",".join(sorted(r.value for r in roles)) or "-"


class AuthService:
    """Use case: authenticate a user and resolve the per-request principal."""

    def __init__(self, users: UserRepository, audit: Optional[AuditRecorder] = None):
        self._users = users
        self._audit = audit

    def authenticate(self, username: str, password: str) -> SessionUser:
        if not isinstance(username, str) or not isinstance(password, str):
            raise AuthenticationError("Invalid username or password")
        user = self._users.get_by_username((username or "").strip())
        if not user or not user.is_active:
            raise AuthenticationError("Invalid username or password")

        try:
            ok = check_password_hash(user.password_hash, password)
        except ValueError:
            # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
            ok = False

        if not ok:
            raise AuthenticationError("Invalid username or password")

        if self._audit:
            self._audit.record_best_effort(user.user_id, "signed_in", AuditTarget(USERS_COLLECTION, user.user_id))

        return SessionUser(user_id=user.user_id, full_name=user.full_name, roles=user.roles)

    def principal_for(self, user_id: Optional[int]) -> Principal:
        """Principal with the user's *current* role set (roles are re-read per request)."""
        if user_id is None:
            raise UnauthenticatedError()
        user = self._users.get_by_id(int(user_id))
        if not user or not user.is_active:
            raise UnauthenticatedError()
        return Principal(subject_id=user.user_id, roles=user.roles)


class UserService:
    """Use case: manage users, roles and pay profiles (admin)."""

    def __init__(self, users: UserRepository, audit: AuditRecorder, *, clock: Callable[[], datetime] = now_local):
        self._users = users
        self._audit = audit
        self._clock = clock

    def get_profile(self, principal: Optional[Principal], user_id: int) -> User:
        if principal is None:
            raise UnauthenticatedError()
        if principal.subject_id != int(user_id):
            require(principal, Permission.USERS_READ_ALL)
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found")
        return user

    def create_account(
        self,
        principal: Optional[Principal],
        *,
        full_name: str,
        username: str,
        password: str,
        roles: Iterable[Any] = (Role.STAFF,),
        department: Optional[str] = None,
        designation: Optional[str] = None,
        hourly_rate: Any = None,
    ) -> int:
        principal = require(principal, Permission.USERS_CREATE)
        full_name = require_non_empty(full_name, "Full name")
        username = require_non_empty(username, "Username")
        require_min_length(password, "Password", MIN_PASSWORD_LENGTH)

        role_set = validate_role_assignment(parse_role_names(roles))
        if Role.SUPERADMIN in role_set and not principal.is_superadmin:
            raise ValidationError("Only a superadmin can create another superadmin")

        if self._users.get_by_username(username):
            raise ValidationError("Username already exists")

        rate = require_positive(hourly_rate, "Hourly rate", places=MONEY_PLACES) if hourly_rate not in (None, "") else None

        user_id = self._users.create_user(
            full_name=full_name,
            username=username,
            password_hash=generate_password_hash(password),
            roles=role_set,
            department=optional_text(department, "Department"),
            designation=optional_text(designation, "Designation"),
            hourly_rate=rate,
        )
        self._audit.must_record(
            principal.subject_id,
            "created_user",
            AuditTarget(USERS_COLLECTION, user_id),
            f"roles={_fmt_roles(role_set)}",
        )
        return user_id

    def change_roles(self, principal: Optional[Principal], *, user_id: int, roles: Iterable[Any]) -> User:
        principal = require(principal, Permission.ROLES_MANAGE)
        target = self._users.get_by_id(int(user_id))
        if not target:
            raise NotFoundError("User not found")

        new_roles = validate_role_assignment(parse_role_names(roles))
        if new_roles == target.roles:
            return target

        if not self._users.set_roles(target.user_id, new_roles):
            raise NotFoundError("User not found")

        try:
            self._audit.must_record(
                principal.subject_id,
                "updated_roles",
                AuditTarget(USERS_COLLECTION, target.user_id),
                f"{_fmt_roles(target.roles)} -> {_fmt_roles(new_roles)}",
            )
        except AuditWriteError:
            # The role change is reported failed; put the previous set back.
            self._users.set_roles(target.user_id, target.roles)
            raise

        logger.info("roles_updated", extra={"actor_id": principal.subject_id, "user_id": target.user_id})
        return self._users.get_by_id(target.user_id)

    def update_hourly_rate(self, principal: Optional[Principal], *, user_id: int, hourly_rate: Any) -> User:
        principal = require(principal, Permission.USERS_UPDATE_ALL)
        target = self._users.get_by_id(int(user_id))
        if not target:
            raise NotFoundError("User not found")

        rate = require_positive(hourly_rate, "Hourly rate", places=MONEY_PLACES)
        if not self._users.set_hourly_rate(target.user_id, rate):
            raise NotFoundError("User not found")

        try:
            self._audit.must_record(
                principal.subject_id,
                "updated_hourly_rate",
                AuditTarget(USERS_COLLECTION, target.user_id),
                f"{target.hourly_rate if target.hourly_rate is not None else '-'} -> {rate}",
            )
        except AuditWriteError:
            # Restores None too: an unaudited first rate must not reach payouts.
            self._users.set_hourly_rate(target.user_id, target.hourly_rate)
            raise
        return self._users.get_by_id(target.user_id)

    # -------- Salary self-submission and verification --------
    def submit_salary(self, principal: Optional[Principal], *, monthly_salary: Any = None, hourly_rate: Any = None) -> User:
        """The signed-in user reports their pay; it waits for verification."""
        principal = require(principal, Permission.PROFILE_UPDATE_OWN)
        monthly = parse_amount(monthly_salary, "Monthly salary", places=MONEY_PLACES)
        rate = parse_amount(hourly_rate, "Hourly rate", places=MONEY_PLACES)
        if not (monthly and monthly > 0) and not (rate and rate > 0):
            raise ValidationError("Either monthly salary or hourly rate must be greater than zero")

        user = self._users.get_by_id(principal.subject_id)
        if not user:
            raise NotFoundError("User not found")

        submission = SalarySubmission(
            status=SalaryStatus.PENDING,
            monthly_salary=monthly,
            hourly_rate=rate,
            submitted_at=self._clock(),
        )
        self._save_salary(user, submission, monthly_salary=user.monthly_salary, hourly_rate=user.hourly_rate)
        self._record_salary_change(
            principal,
            user,
            SalaryStatus.PENDING,
            "salary_submission",
            f"monthly={monthly if monthly is not None else '-'} hourly={rate if rate is not None else '-'}",
        )
        logger.info("salary_submitted", extra={"user_id": user.user_id})
        return self._users.get_by_id(user.user_id)

    def verify_salary(
        self,
        principal: Optional[Principal],
        *,
        user_id: int,
        status: Any,
        remarks: Any = None,
    ) -> User:
        principal = require(principal, Permission.SALARY_VERIFY)
        try:
            decision = SalaryStatus(status)
        except ValueError:
            decision = None
        if decision not in (SalaryStatus.VERIFIED, SalaryStatus.REJECTED):
            raise ValidationError("Status must be 'verified' or 'rejected'")
        remarks = optional_text(remarks, "Remarks")

        target = self._users.get_by_id(int(user_id))
        if not target:
            raise NotFoundError("User not found")
        if target.user_id == principal.subject_id:
            raise ForbiddenError("Reviewers cannot verify their own salary")
        if target.salary.status != SalaryStatus.PENDING:
            raise ConflictError(
                f"Salary is not awaiting verification (status: {target.salary.status.value})",
                current_status=target.salary.status.value,
            )

        reviewed = replace(
            target.salary,
            status=decision,
            verified_by=principal.subject_id,
            verified_at=self._clock(),
            remarks=remarks,
        )
        monthly, rate = target.monthly_salary, target.hourly_rate
        if decision == SalaryStatus.VERIFIED:
            # Only figures that were actually reported replace the profile values.
            if target.salary.monthly_salary:
                monthly = target.salary.monthly_salary
            if target.salary.hourly_rate:
                rate = target.salary.hourly_rate

        self._save_salary(target, reviewed, monthly_salary=monthly, hourly_rate=rate)
        self._record_salary_change(
            principal,
            target,
            decision,
            f"salary_verification_{decision.value}",
            f"hourly {target.hourly_rate if target.hourly_rate is not None else '-'} -> "
            f"{rate if rate is not None else '-'}. Reason: {remarks or 'N/A'}",
        )
        logger.info(
            "salary_reviewed",
            extra={"actor_id": principal.subject_id, "user_id": target.user_id, "action": decision.value},
        )
        return self._users.get_by_id(target.user_id)

    def list_pending_salaries(self, principal: Optional[Principal], *, limit: int = DEFAULT_LIST_LIMIT) -> Sequence[User]:
        principal = require(principal, Permission.SALARY_VERIFY)
        pending = self._users.list_by_salary_status(SalaryStatus.PENDING, limit=limit)
        return [u for u in pending if u.user_id != principal.subject_id]

    def _save_salary(self, user: User, salary: SalarySubmission, *, monthly_salary, hourly_rate) -> None:
        if not self._users.save_salary(
            user.user_id,
            salary,
            expected_status=user.salary.status,
            monthly_salary=monthly_salary,
            hourly_rate=hourly_rate,
        ):
            latest = self._users.get_by_id(user.user_id)
            raise ConflictError(
                "Salary was modified concurrently",
                current_status=latest.salary.status.value if latest else None,
            )

    def _record_salary_change(
        self,
        principal: Principal,
        before: User,
        written: SalaryStatus,
        action: str,
        details: str,
    ) -> None:
        try:
            self._audit.must_record(principal.subject_id, action, AuditTarget(USERS_COLLECTION, before.user_id), details)
        except AuditWriteError:
            restored = self._users.save_salary(
                before.user_id,
                before.salary,
                expected_status=written,
                monthly_salary=before.monthly_salary,
                hourly_rate=before.hourly_rate,
            )
            logger.error(
                "salary_change_undone" if restored else "salary_change_undo_failed",
                extra={"user_id": before.user_id, "action": action},
            )
            raise
