from __future__ import annotations

from decimal import Decimal

import pytest
from werkzeug.security import generate_password_hash

from src.claims_system.claims_system.audit.recorder import AuditRecorder
from src.claims_system.claims_system.core.enums import Role, SalaryStatus
from src.claims_system.claims_system.core.exceptions import (
    AuditWriteError,
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    UnauthenticatedError,
    ValidationError,
)
from src.claims_system.claims_system.users.model import SalarySubmission, User
from src.claims_system.claims_system.users.service import AuthService, UserService

from tests.fakes import NOW, FakeAuditRepo, FakeUsersRepo, principal

SUPERADMIN = principal(1, "staff", "superadmin")
ADMIN = principal(2, "staff", "admin")


def _users():
    return FakeUsersRepo(
        User(
            user_id=5,
            full_name="Staff Demo",
            username="staff",
            password_hash=generate_password_hash("staff123"),
            roles=frozenset({Role.STAFF}),
            hourly_rate=Decimal("25.50"),
        ),
        User(
            user_id=6,
            full_name="Gone",
            username="gone",
            password_hash=generate_password_hash("gone123"),
            roles=frozenset({Role.STAFF}),
            is_active=False,
        ),
    )


def _service(users, audit):
    return UserService(users, AuditRecorder(audit, clock=lambda: NOW), clock=lambda: NOW)


def test_authenticate_and_record_sign_in():
    audit = FakeAuditRepo()
    auth = AuthService(_users(), AuditRecorder(audit))
    s_user = auth.authenticate("staff", "staff123")
    assert s_user.user_id == 5
    assert audit.actions() == ["signed_in"]

    with pytest.raises(AuthenticationError):
        auth.authenticate("staff", "wrong")
    with pytest.raises(AuthenticationError):
        auth.authenticate("gone", "gone123")


def test_principal_reads_current_roles():
    users = _users()
    auth = AuthService(users)
    assert auth.principal_for(5).roles == frozenset({Role.STAFF})

    users.set_roles(5, frozenset({Role.STAFF, Role.FINANCE}))
    assert auth.principal_for(5).roles == frozenset({Role.STAFF, Role.FINANCE})

    with pytest.raises(UnauthenticatedError):
        auth.principal_for(None)
    with pytest.raises(UnauthenticatedError):
        auth.principal_for(6)


def test_superadmin_changes_roles_with_audit():
    users, audit = _users(), FakeAuditRepo()
    updated = _service(users, audit).change_roles(SUPERADMIN, user_id=5, roles=["staff", "manager"])

    assert updated.roles == frozenset({Role.STAFF, Role.MANAGER})
    assert audit.entries[0].action == "updated_roles"
    assert audit.entries[0].details == "staff -> manager,staff"


def test_admin_cannot_change_roles():
    with pytest.raises(ForbiddenError):
        _service(_users(), FakeAuditRepo()).change_roles(ADMIN, user_id=5, roles=["staff", "manager"])


@pytest.mark.parametrize(
    "roles",
    [[], ["manager"], ["staff", "admin", "superadmin"], ["staff", "owner"]],
)
def test_role_assignment_rules(roles):
    with pytest.raises(ValidationError):
        _service(_users(), FakeAuditRepo()).change_roles(SUPERADMIN, user_id=5, roles=roles)


def test_role_change_is_undone_when_audit_fails():
    users, audit = _users(), FakeAuditRepo()
    audit.fail = True
    with pytest.raises(AuditWriteError):
        _service(users, audit).change_roles(SUPERADMIN, user_id=5, roles=["staff", "finance"])
    assert users.get_by_id(5).roles == frozenset({Role.STAFF})


def test_admin_creates_account_and_updates_hourly_rate():
    users, audit = _users(), FakeAuditRepo()
    service = _service(users, audit)

    user_id = service.create_account(
        ADMIN, full_name="New Hire", username="newhire", password="secret1", hourly_rate="30"
    )
    assert users.get_by_id(user_id).roles == frozenset({Role.STAFF})

    updated = service.update_hourly_rate(ADMIN, user_id=user_id, hourly_rate="31.25")
    assert updated.hourly_rate == Decimal("31.25")
    assert audit.actions() == ["created_user", "updated_hourly_rate"]


def test_account_validation():
    service = _service(_users(), FakeAuditRepo())
    with pytest.raises(ValidationError):
        service.create_account(ADMIN, full_name="X", username="staff", password="secret1")
    with pytest.raises(ValidationError):
        service.create_account(ADMIN, full_name="X", username="x", password="123")
    with pytest.raises(ValidationError):
        service.create_account(ADMIN, full_name="X", username="x", password="secret1", roles=["staff", "superadmin"])
    with pytest.raises(ValidationError):
        service.update_hourly_rate(ADMIN, user_id=5, hourly_rate="0")


def test_non_text_credentials_are_refused():
    auth = AuthService(_users())
    with pytest.raises(AuthenticationError):
        auth.authenticate(5, "staff123")
    with pytest.raises(AuthenticationError):
        auth.authenticate("staff", ["staff123"])


def test_roles_must_be_a_list():
    with pytest.raises(ValidationError):
        _service(_users(), FakeAuditRepo()).change_roles(SUPERADMIN, user_id=5, roles="staff")


def test_first_hourly_rate_is_cleared_when_audit_fails():
    users, audit = _users(), FakeAuditRepo()
    service = _service(users, audit)
    user_id = service.create_account(ADMIN, full_name="No Rate", username="norate", password="secret1")
    audit.fail = True

    with pytest.raises(AuditWriteError):
        service.update_hourly_rate(ADMIN, user_id=user_id, hourly_rate="50")
    assert users.get_by_id(user_id).hourly_rate is None


def test_hourly_rate_correction_is_undone_when_audit_fails():
    users, audit = _users(), FakeAuditRepo()
    audit.fail = True
    with pytest.raises(AuditWriteError):
        _service(users, audit).update_hourly_rate(ADMIN, user_id=5, hourly_rate="50")
    assert users.get_by_id(5).hourly_rate == Decimal("25.50")


def test_hourly_rate_rejects_sub_cent_precision():
    with pytest.raises(ValidationError):
        _service(_users(), FakeAuditRepo()).update_hourly_rate(ADMIN, user_id=5, hourly_rate="25.505")


# -------- Salary self-submission --------
STAFF = principal(5, "staff")
MANAGER = principal(7, "staff", "manager")
FINANCE = principal(8, "staff", "finance")


def test_submitted_salary_waits_for_verification():
    users, audit = _users(), FakeAuditRepo()
    user = _service(users, audit).submit_salary(STAFF, monthly_salary="5200", hourly_rate="30")

    assert user.salary.status == SalaryStatus.PENDING
    assert user.salary.hourly_rate == Decimal("30")
    assert user.salary.submitted_at == NOW
    assert user.hourly_rate == Decimal("25.50")
    assert audit.actions() == ["salary_submission"]


def test_salary_submission_needs_a_positive_figure():
    service = _service(_users(), FakeAuditRepo())
    with pytest.raises(ValidationError):
        service.submit_salary(STAFF, monthly_salary="0", hourly_rate="0")
    with pytest.raises(ValidationError):
        service.submit_salary(STAFF, hourly_rate="-3")
    with pytest.raises(UnauthenticatedError):
        service.submit_salary(None, hourly_rate="30")


def test_verified_salary_becomes_the_payout_rate():
    users, audit = _users(), FakeAuditRepo()
    service = _service(users, audit)
    service.submit_salary(STAFF, hourly_rate="30")
    assert [u.user_id for u in service.list_pending_salaries(MANAGER)] == [5]

    user = service.verify_salary(MANAGER, user_id=5, status="verified")

    assert user.hourly_rate == Decimal("30")
    assert user.salary.status == SalaryStatus.VERIFIED
    assert user.salary.verified_by == 7
    assert audit.actions() == ["salary_submission", "salary_verification_verified"]
    assert service.list_pending_salaries(MANAGER) == []


def test_rejected_salary_keeps_the_old_rate():
    users, audit = _users(), FakeAuditRepo()
    service = _service(users, audit)
    service.submit_salary(STAFF, hourly_rate="90")

    user = service.verify_salary(MANAGER, user_id=5, status="rejected", remarks="Not matching contract")

    assert user.hourly_rate == Decimal("25.50")
    assert user.salary.status == SalaryStatus.REJECTED
    assert audit.entries[-1].action == "salary_verification_rejected"
    assert "Not matching contract" in audit.entries[-1].details


def test_salary_verification_rules():
    users, audit = _users(), FakeAuditRepo()
    service = _service(users, audit)

    with pytest.raises(ConflictError) as exc:
        service.verify_salary(MANAGER, user_id=5, status="verified")
    assert exc.value.current_status == "none"

    service.submit_salary(STAFF, hourly_rate="30")
    with pytest.raises(ForbiddenError):
        service.verify_salary(FINANCE, user_id=5, status="verified")
    with pytest.raises(ForbiddenError):
        service.verify_salary(principal(5, "staff", "manager"), user_id=5, status="verified")
    with pytest.raises(ValidationError):
        service.verify_salary(MANAGER, user_id=5, status="pending")

    service.verify_salary(MANAGER, user_id=5, status="verified")
    with pytest.raises(ConflictError):
        service.verify_salary(ADMIN, user_id=5, status="rejected")


def test_salary_verification_is_undone_when_audit_fails():
    users, audit = _users(), FakeAuditRepo()
    service = _service(users, audit)
    service.submit_salary(STAFF, hourly_rate="30")
    audit.fail = True

    with pytest.raises(AuditWriteError):
        service.verify_salary(MANAGER, user_id=5, status="verified")

    user = users.get_by_id(5)
    assert user.hourly_rate == Decimal("25.50")
    assert user.salary.status == SalaryStatus.PENDING
    assert user.salary.verified_by is None


def test_salary_submission_is_undone_when_audit_fails():
    users, audit = _users(), FakeAuditRepo()
    audit.fail = True
    with pytest.raises(AuditWriteError):
        _service(users, audit).submit_salary(STAFF, hourly_rate="30")
    assert users.get_by_id(5).salary == SalarySubmission()
