"""Approval state machine shared by claims and overtime requests.

    draft ──submit──▶ submitted ──approve──▶ approved ──pay──▶ paid
                          │
                          └──reject──▶ rejected

``draft`` exists for claims only; overtime requests start in ``submitted``.
The machine is stateless: ``plan`` looks at the persisted status it is given
and returns the new status plus derived fields, or raises a typed error. It
never writes anything.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional

from ..common.validators import optional_text
from ..core.constants import DEFAULT_DESIGNATION
from ..core.enums import Role, SubmissionKind, SubmissionStatus
from ..core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    UnauthenticatedError,
    ValidationError,
)
from ..payroll.calculator.base import PayoutCalculator
from ..rates.day_types import DayTypeCalendar
from ..rates.resolver import RateResolver
from ..rbac.evaluator import Principal, evaluate, evaluate_any
from ..submissions.model import Claim, Overtime
from ..users.model import User

S = SubmissionStatus


class Guard(str, Enum):
    OWNER = "owner"
    REVIEWER = "reviewer"
    FINANCE = "finance"


REVIEWER_ROLES = (Role.MANAGER, Role.FINANCE, Role.ADMIN)


@dataclass(frozen=True)
class TransitionRule:
    source: SubmissionStatus
    target: SubmissionStatus
    verb: str
    guard: Guard
    kinds: frozenset[SubmissionKind] = frozenset(SubmissionKind)


TRANSITIONS: Mapping[tuple[SubmissionStatus, SubmissionStatus], TransitionRule] = {
    (rule.source, rule.target): rule
    for rule in (
        TransitionRule(S.DRAFT, S.SUBMITTED, "submit", Guard.OWNER, frozenset({SubmissionKind.CLAIM})),
        TransitionRule(S.SUBMITTED, S.APPROVED, "approve", Guard.REVIEWER),
        TransitionRule(S.SUBMITTED, S.REJECTED, "reject", Guard.REVIEWER),
        TransitionRule(S.APPROVED, S.PAID, "pay", Guard.FINANCE),
    )
}

# Every rule into a target status shares one guard.
_TARGET_GUARDS: Mapping[SubmissionStatus, Guard] = {rule.target: rule.guard for rule in TRANSITIONS.values()}
_TARGET_VERBS: Mapping[SubmissionStatus, str] = {rule.target: rule.verb for rule in TRANSITIONS.values()}

_PAST_TENSE = {"submit": "submitted", "approve": "approved", "reject": "rejected", "pay": "paid"}


@dataclass(frozen=True)
class TransitionPlan:
    kind: SubmissionKind
    submission_id: int
    source: SubmissionStatus
    target: SubmissionStatus
    changes: Mapping[str, Any] = field(default_factory=dict)
    audit_action: str = ""
    audit_details: str = ""


class ApprovalStateMachine:
    def __init__(
        self,
        calculator: PayoutCalculator,
        *,
        calendar: Optional[DayTypeCalendar] = None,
        default_designation: str = DEFAULT_DESIGNATION,
    ):
        self._calculator = calculator
        self._calendar = calendar or DayTypeCalendar()
        self._default_designation = default_designation

    def rule_for(self, kind: SubmissionKind, current: SubmissionStatus, requested: SubmissionStatus) -> TransitionRule:
        verb = _TARGET_VERBS.get(requested, f"move to {requested.value}")
        if current == requested:
            raise ConflictError(
                f"{kind.value.capitalize()} is already {current.value}",
                current_status=current.value,
            )
        rule = TRANSITIONS.get((current, requested))
        if rule is None or kind not in rule.kinds:
            raise InvalidTransitionError(
                f"Cannot {verb} a {kind.value} in status: {current.value}",
                current_status=current.value,
                target_status=requested.value,
            )
        return rule

    def authorize(self, submission: Claim | Overtime, requested: SubmissionStatus, principal: Optional[Principal]) -> None:
        if principal is None:
            raise UnauthenticatedError()
        guard = _TARGET_GUARDS.get(requested)
        if guard is None:
            return
        is_owner = principal.subject_id == submission.owner_id
        if guard == Guard.OWNER:
            allowed = is_owner
        elif guard == Guard.REVIEWER:
            allowed = evaluate_any(principal.roles, REVIEWER_ROLES)
        else:
            allowed = evaluate(principal.roles, Role.FINANCE)
        if not allowed:
            raise ForbiddenError()
        if guard != Guard.OWNER and is_owner:
            raise ForbiddenError("Reviewers cannot act on their own submissions")

    def plan(
        self,
        submission: Claim | Overtime,
        requested: SubmissionStatus | str,
        principal: Optional[Principal],
        *,
        rates: RateResolver,
        owner: Optional[User] = None,
        remarks: Optional[str] = None,
        now: datetime,
    ) -> TransitionPlan:
        try:
            requested = SubmissionStatus(requested)
        except ValueError:
            raise ValidationError("Unknown status requested")

        self.authorize(submission, requested, principal)
        rule = self.rule_for(submission.kind, submission.status, requested)
        remarks = optional_text(remarks, "Remarks")

        changes: dict[str, Any] = {}
        if rule.target == S.SUBMITTED:
            changes["submitted_at"] = now
        elif rule.target == S.APPROVED:
            changes.update(self._approval_changes(submission, rates=rates, owner=owner))
            changes.update(approved_by=principal.subject_id, approved_at=now)
            if remarks:
                changes["remarks"] = remarks
        elif rule.target == S.REJECTED:
            if not remarks:
                raise ValidationError("Remarks are required when rejecting")
            changes.update(approved_by=principal.subject_id, approved_at=now, remarks=remarks)
        elif rule.target == S.PAID:
            changes.update(paid_by=principal.subject_id, paid_at=now)

        kind = submission.kind
        return TransitionPlan(
            kind=kind,
            submission_id=submission.submission_id,
            source=rule.source,
            target=rule.target,
            changes=changes,
            audit_action=f"{_PAST_TENSE[rule.verb]}_{kind.value}",
            audit_details=remarks or _default_details(kind, rule, changes),
        )

    def _approval_changes(self, submission: Claim | Overtime, *, rates: RateResolver, owner: Optional[User]) -> dict[str, Any]:
        if isinstance(submission, Claim):
            return self._claim_totals(submission, rates)
        return self._overtime_payout(submission, rates, owner)

    def _claim_totals(self, claim: Claim, rates: RateResolver) -> dict[str, Any]:
        mileage_rate: Optional[Decimal] = None
        if claim.calculated_mileage:
            mileage_rate = rates.resolve_mileage_rate(claim.work_date)
        total = self._calculator.claim_total(claim.calculated_mileage, mileage_rate, claim.expenses)
        return {"mileage_rate": mileage_rate, "total_claim": total}

    def _overtime_payout(self, overtime: Overtime, rates: RateResolver, owner: Optional[User]) -> dict[str, Any]:
        if owner is None or not owner.hourly_rate or owner.hourly_rate <= 0:
            raise ValidationError("Submitter has no hourly rate on file")
        day_type = self._calendar.classify(overtime.work_date)
        designation = (owner.designation or "").strip() or self._default_designation
        multiplier = rates.resolve_overtime_multiplier(overtime.work_date, day_type, designation)
        payout = self._calculator.overtime_payout(overtime.hours_worked, owner.hourly_rate, multiplier)
        return {"rate_multiplier": multiplier, "hourly_rate": owner.hourly_rate, "total_payout": payout}


def _default_details(kind: SubmissionKind, rule: TransitionRule, changes: Mapping[str, Any]) -> str:
    text = f"{kind.value.capitalize()} {_PAST_TENSE[rule.verb]}"
    total = changes.get("total_claim", changes.get("total_payout"))
    if total is not None:
        text = f"{text} (total {total})"
    return text
