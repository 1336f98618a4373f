from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from src.claims_system.claims_system.audit.recorder import AuditRecorder
from src.claims_system.claims_system.core.enums import RateKind, SubmissionKind, SubmissionStatus, TripMode
from src.claims_system.claims_system.core.exceptions import (
    AuditWriteError,
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from src.claims_system.claims_system.payroll.calculator.standard_calculator import StandardPayoutCalculator
from src.claims_system.claims_system.submissions.service import SubmissionService
from src.claims_system.claims_system.users.model import User
from src.claims_system.claims_system.workflow.state_machine import ApprovalStateMachine

from tests.fakes import (
    NOW,
    FakeAuditRepo,
    FakeRatesRepo,
    FakeSubmissionsRepo,
    FakeUsersRepo,
    mileage,
    multiplier,
    principal,
)

STAFF = principal(10, "staff")
MANAGER = principal(20, "staff", "manager")
ADMIN = principal(25, "staff", "admin")
FINANCE = principal(30, "staff", "finance")


class Env:
    def __init__(self):
        self.submissions = FakeSubmissionsRepo()
        self.users = FakeUsersRepo(
            User(
                user_id=10,
                full_name="Staff Demo",
                username="staff",
                password_hash="x",
                designation="standard",
                hourly_rate=Decimal("42.50"),
            )
        )
        self.rates = FakeRatesRepo(
            mileage(1, "0.55", date(2024, 1, 1)),
            multiplier(2, "1.5", "weekday", date(2024, 1, 1)),
        )
        self.audit = FakeAuditRepo()
        calculator = StandardPayoutCalculator()
        self.service = SubmissionService(
            self.submissions,
            self.users,
            self.rates,
            AuditRecorder(self.audit, clock=lambda: NOW),
            state_machine=ApprovalStateMachine(calculator),
            calculator=calculator,
            clock=lambda: NOW,
        )

    def submitted_claim(self):
        claim = self.service.create_claim(
            STAFF,
            work_date="2024-06-03",
            project="Site visit",
            trip_mode="ONE_WAY",
            calculated_mileage="120",
            expenses={"toll": "5", "meal": "12.50"},
        )
        return self.service.submit_claim(STAFF, claim.submission_id)


@pytest.fixture()
def env():
    return Env()


def test_create_claim_starts_as_draft(env):
    claim = env.service.create_claim(STAFF, work_date="2024-06-03", trip_mode="RETURN", one_way_distance="12.5")
    assert claim.status == SubmissionStatus.DRAFT
    assert claim.trip_mode == TripMode.RETURN
    assert claim.calculated_mileage == Decimal("25.0")
    assert env.audit.actions() == ["created_claim"]


def test_negative_expense_is_rejected(env):
    with pytest.raises(ValidationError):
        env.service.create_claim(STAFF, work_date="2024-06-03", expenses={"meal": "-1"})


def test_claim_creation_survives_audit_outage(env):
    env.audit.fail = True
    claim = env.service.create_claim(STAFF, work_date="2024-06-03")
    assert claim.status == SubmissionStatus.DRAFT
    assert env.audit.entries == []


def test_draft_edit_is_owner_only_and_draft_only(env):
    claim = env.service.create_claim(STAFF, work_date="2024-06-03", project="A")
    updated = env.service.update_draft_claim(STAFF, claim.submission_id, project="B")
    assert updated.project == "B"

    with pytest.raises(ForbiddenError):
        env.service.update_draft_claim(principal(11, "staff"), claim.submission_id, project="C")

    env.service.submit_claim(STAFF, claim.submission_id)
    with pytest.raises(InvalidTransitionError):
        env.service.update_draft_claim(STAFF, claim.submission_id, project="D")


def test_full_claim_lifecycle(env):
    claim = env.submitted_claim()
    approved = env.service.approve(MANAGER, "claim", claim.submission_id)
    assert approved.status == SubmissionStatus.APPROVED
    assert approved.total_claim == Decimal("83.50")
    assert approved.mileage_rate == Decimal("0.55")

    paid = env.service.mark_paid(FINANCE, SubmissionKind.CLAIM, claim.submission_id)
    assert paid.status == SubmissionStatus.PAID
    assert paid.paid_by == 30
    assert env.audit.actions() == ["created_claim", "submitted_claim", "approved_claim", "paid_claim"]


def test_overtime_is_created_submitted_and_approved_with_payout(env):
    overtime = env.service.create_overtime(
        STAFF, work_date="2024-06-05", start_time="18:00", end_time="21:24", reason="Release night"
    )
    assert overtime.status == SubmissionStatus.SUBMITTED
    assert overtime.hours_worked == Decimal("3.40")

    approved = env.service.approve(MANAGER, "overtime", overtime.submission_id)
    assert approved.total_payout == Decimal("216.75")


def test_overtime_requires_reason_and_valid_times(env):
    with pytest.raises(ValidationError):
        env.service.create_overtime(STAFF, work_date="2024-06-05", start_time="18:00", end_time="21:00", reason=" ")
    with pytest.raises(ValidationError):
        env.service.create_overtime(STAFF, work_date="2024-06-05", start_time="6pm", end_time="21:00", reason="x")


def test_second_reviewer_gets_conflict(env):
    claim = env.submitted_claim()
    observed = claim.status.value

    env.service.transition_submission("claim", claim.submission_id, "approved", MANAGER, observed_status=observed)
    with pytest.raises(ConflictError) as exc:
        env.service.transition_submission("claim", claim.submission_id, "rejected", ADMIN,
                                          remarks="duplicate", observed_status=observed)
    assert exc.value.current_status == "approved"
    assert env.submissions.get(SubmissionKind.CLAIM, claim.submission_id).status == SubmissionStatus.APPROVED


def test_lost_compare_and_set_is_a_conflict(env, monkeypatch):
    claim = env.submitted_claim()
    original = env.submissions.compare_and_set

    def racing_cas(kind, submission_id, **kwargs):
        # Another reviewer wins between our read and our write.
        original(kind, submission_id, expected_status=SubmissionStatus.SUBMITTED,
                 new_status=SubmissionStatus.REJECTED, changes={"remarks": "other"})
        return original(kind, submission_id, **kwargs)

    monkeypatch.setattr(env.submissions, "compare_and_set", racing_cas)
    with pytest.raises(ConflictError):
        env.service.approve(MANAGER, "claim", claim.submission_id)
    assert "approved_claim" not in env.audit.actions()


def test_replay_leaves_total_and_audit_untouched(env):
    claim = env.submitted_claim()
    first = env.service.approve(MANAGER, "claim", claim.submission_id)
    audit_count = len(env.audit.entries)

    with pytest.raises(ConflictError):
        env.service.approve(MANAGER, "claim", claim.submission_id)

    again = env.submissions.get(SubmissionKind.CLAIM, claim.submission_id)
    assert again.total_claim == first.total_claim
    assert len(env.audit.entries) == audit_count


def test_approved_total_is_frozen_after_rate_change(env):
    claim = env.submitted_claim()
    env.service.approve(MANAGER, "claim", claim.submission_id)

    env.rates.create(kind=RateKind.MILEAGE, effective_date=date(2024, 1, 2), value=Decimal("0.90"))
    stored = env.service.get_submission(STAFF, "claim", claim.submission_id)
    assert stored.total_claim == Decimal("83.50")


def test_audit_failure_rolls_the_transition_back(env):
    claim = env.submitted_claim()
    env.audit.fail = True

    with pytest.raises(AuditWriteError):
        env.service.approve(MANAGER, "claim", claim.submission_id)

    stored = env.submissions.get(SubmissionKind.CLAIM, claim.submission_id)
    assert stored.status == SubmissionStatus.SUBMITTED
    assert stored.total_claim is None
    assert stored.approved_by is None


def test_get_submission_visibility(env):
    claim = env.submitted_claim()
    assert env.service.get_submission(MANAGER, "claim", claim.submission_id).owner_id == 10
    with pytest.raises(ForbiddenError):
        env.service.get_submission(principal(11, "staff"), "claim", claim.submission_id)
    with pytest.raises(NotFoundError):
        env.service.get_submission(STAFF, "claim", 999)
    with pytest.raises(NotFoundError):
        env.service.get_submission(STAFF, "expense", claim.submission_id)


def test_pending_queue_excludes_own_items(env):
    claim = env.submitted_claim()
    pending = env.service.list_pending(MANAGER)
    assert [c.submission_id for c in pending["claims"]] == [claim.submission_id]

    with pytest.raises(ForbiddenError):
        env.service.list_pending(STAFF)

    manager_as_owner = principal(10, "staff", "manager")
    assert env.service.list_pending(manager_as_owner)["claims"] == []


def test_list_mine_groups_by_kind(env):
    env.submitted_claim()
    env.service.create_overtime(STAFF, work_date="2024-06-05", start_time="18:00", end_time="20:00", reason="x")
    mine = env.service.list_mine(STAFF)
    assert len(mine["claims"]) == 1
    assert len(mine["overtime"]) == 1


def test_reject_records_remarks_and_blocks_payment(env):
    claim = env.submitted_claim()
    rejected = env.service.reject(MANAGER, "claim", claim.submission_id, remarks="No receipt attached")
    assert rejected.status == SubmissionStatus.REJECTED
    assert rejected.remarks == "No receipt attached"
    assert env.audit.entries[-1].details == "No receipt attached"

    with pytest.raises(InvalidTransitionError):
        env.service.mark_paid(FINANCE, "claim", claim.submission_id)


def test_non_text_remarks_and_reason_are_validation_errors(env):
    claim = env.submitted_claim()
    with pytest.raises(ValidationError):
        env.service.reject(MANAGER, "claim", claim.submission_id, remarks=123)
    assert env.submissions.get(SubmissionKind.CLAIM, claim.submission_id).status == SubmissionStatus.SUBMITTED

    with pytest.raises(ValidationError):
        env.service.create_overtime(STAFF, work_date="2024-06-05", start_time="18:00", end_time="20:00", reason=42)


@pytest.mark.parametrize("expenses", ["toll", ["toll", "5"], {"meal": "12.555"}])
def test_malformed_expenses_are_rejected(env, expenses):
    with pytest.raises(ValidationError):
        env.service.create_claim(STAFF, work_date="2024-06-03", expenses=expenses)


def test_mileage_beyond_two_decimals_is_rejected(env):
    with pytest.raises(ValidationError):
        env.service.create_claim(STAFF, work_date="2024-06-03", calculated_mileage="12.345")


def test_hourly_rate_is_read_at_approval_time(env):
    overtime = env.service.create_overtime(
        STAFF, work_date="2024-06-05", start_time="18:00", end_time="21:24", reason="Release night"
    )
    env.users.set_hourly_rate(10, Decimal("50"))

    approved = env.service.approve(MANAGER, "overtime", overtime.submission_id)
    assert approved.hourly_rate == Decimal("50")
    assert approved.rate_multiplier == Decimal("1.5")
    assert approved.total_payout == Decimal("255.00")

    env.users.set_hourly_rate(10, Decimal("80"))
    stored = env.service.get_submission(STAFF, "overtime", overtime.submission_id)
    assert stored.total_payout == Decimal("255.00")
    assert stored.hourly_rate == Decimal("50")


def test_owner_edits_submitted_overtime(env):
    overtime = env.service.create_overtime(
        STAFF, work_date="2024-06-05", start_time="18:00", end_time="20:00", reason="Release night"
    )
    updated = env.service.update_submitted_overtime(
        STAFF, overtime.submission_id, end_time="21:24", reason="Release night and rollback"
    )
    assert updated.hours_worked == Decimal("3.40")
    assert updated.reason == "Release night and rollback"
    assert updated.status == SubmissionStatus.SUBMITTED
    assert env.audit.entries[-1].action == "updated_overtime"

    approved = env.service.approve(MANAGER, "overtime", overtime.submission_id)
    assert approved.total_payout == Decimal("216.75")


def test_overtime_edit_rules(env):
    overtime = env.service.create_overtime(
        STAFF, work_date="2024-06-05", start_time="18:00", end_time="20:00", reason="x"
    )
    with pytest.raises(ForbiddenError):
        env.service.update_submitted_overtime(principal(11, "staff"), overtime.submission_id, reason="mine now")
    with pytest.raises(ValidationError):
        env.service.update_submitted_overtime(STAFF, overtime.submission_id, end_time="18:00")
    with pytest.raises(ValidationError):
        env.service.update_submitted_overtime(STAFF, overtime.submission_id, reason=" ")

    env.service.approve(MANAGER, "overtime", overtime.submission_id)
    with pytest.raises(InvalidTransitionError) as exc:
        env.service.update_submitted_overtime(STAFF, overtime.submission_id, reason="late edit")
    assert exc.value.current_status == "approved"


def test_overtime_edit_loses_to_a_concurrent_review(env, monkeypatch):
    overtime = env.service.create_overtime(
        STAFF, work_date="2024-06-05", start_time="18:00", end_time="20:00", reason="x"
    )
    original = env.submissions.update_submitted_overtime

    def reviewed_first(**kwargs):
        env.service.approve(MANAGER, "overtime", overtime.submission_id)
        return original(**kwargs)

    monkeypatch.setattr(env.submissions, "update_submitted_overtime", reviewed_first)
    with pytest.raises(ConflictError) as exc:
        env.service.update_submitted_overtime(STAFF, overtime.submission_id, reason="too late")
    assert exc.value.current_status == "approved"
    assert env.submissions.get(SubmissionKind.OVERTIME, overtime.submission_id).reason == "x"
