from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional, Sequence

from ..audit.model import AuditTarget
from ..audit.recorder import AuditRecorder
from ..common.datetime_utils import now_local
from ..common.validators import (
    optional_mapping,
    optional_text,
    parse_amount,
    parse_date_value,
    parse_hhmm,
    require_non_empty,
)
from ..core.constants import DEFAULT_LIST_LIMIT, DISTANCE_PLACES, MONEY_PLACES
from ..core.enums import SubmissionKind, SubmissionStatus, TripMode
from ..core.exceptions import (
    AuditWriteError,
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)
from ..core.logging_config import get_logger
from ..payroll.calculator.base import PayoutCalculator
from ..payroll.calculator.standard_calculator import trip_distance
from ..rates.repository import RateConfigRepository
from ..rates.resolver import RateResolver
from ..rbac.evaluator import Principal, require, require_any
from ..rbac.permissions import Permission
from ..users.repository import UserRepository
from ..workflow.state_machine import REVIEWER_ROLES, ApprovalStateMachine, TransitionPlan
from .model import Claim, ClaimExpenses, Overtime
from .repository import Submission, SubmissionRepository

logger = get_logger("submissions.service")

_READ_ANY = {
    SubmissionKind.CLAIM: (Permission.CLAIMS_READ_ALL, Permission.CLAIMS_APPROVE),
    SubmissionKind.OVERTIME: (Permission.OVERTIME_READ_ALL, Permission.OVERTIME_APPROVE),
}


def parse_kind(kind: SubmissionKind | str) -> SubmissionKind:
    try:
        return SubmissionKind(kind)
    except ValueError:
        raise NotFoundError("Unknown submission kind")


def parse_trip_mode(value: Any) -> Optional[TripMode]:
    if value in (None, ""):
        return None
    try:
        return TripMode(str(value).strip().upper())
    except ValueError:
        raise ValidationError("Trip mode must be ONE_WAY, RETURN or CUSTOM")


def parse_expenses(values: Optional[Mapping[str, Any]]) -> ClaimExpenses:
    values = optional_mapping(values, "Expenses")
    return ClaimExpenses(
        **{
            k: parse_amount(values.get(k), k.capitalize(), places=MONEY_PLACES) or Decimal("0")
            for k in ("toll", "petrol", "meal", "others")
        }
    )


def _mileage(trip_mode: Optional[TripMode], calculated_mileage: Any, one_way_distance: Any) -> Optional[Decimal]:
    if calculated_mileage not in (None, ""):
        return parse_amount(calculated_mileage, "Calculated mileage", places=DISTANCE_PLACES)
    one_way = parse_amount(one_way_distance, "One-way distance", places=DISTANCE_PLACES)
    if one_way is None:
        return None
    return trip_distance(one_way, trip_mode)


class SubmissionService:
    """Use cases: intake of claims/overtime and every status change on them.

    All status changes go through ``transition_submission``. The persisted
    status is re-read, the plan is computed against a fresh rate snapshot and
    the write is a compare-and-swap on the status that was read.
    """

    def __init__(
        self,
        submissions: SubmissionRepository,
        users: UserRepository,
        rates: RateConfigRepository,
        audit: AuditRecorder,
        *,
        state_machine: ApprovalStateMachine,
        calculator: PayoutCalculator,
        clock: Callable[[], datetime] = now_local,
    ):
        self._submissions = submissions
        self._users = users
        self._rates = rates
        self._audit = audit
        self._machine = state_machine
        self._calculator = calculator
        self._clock = clock

    # -------- Intake --------
    def create_claim(
        self,
        principal: Optional[Principal],
        *,
        work_date: Any,
        project: Optional[str] = None,
        description: Optional[str] = None,
        trip_mode: Any = None,
        origin: Optional[str] = None,
        destination: Optional[str] = None,
        calculated_mileage: Any = None,
        one_way_distance: Any = None,
        expenses: Optional[Mapping[str, Any]] = None,
    ) -> Claim:
        principal = require(principal, Permission.CLAIMS_CREATE)
        mode = parse_trip_mode(trip_mode)
        claim_id = self._submissions.create_claim(
            owner_id=principal.subject_id,
            work_date=parse_date_value(work_date, "Date"),
            project=optional_text(project, "Project"),
            description=optional_text(description, "Description"),
            trip_mode=mode,
            origin=optional_text(origin, "Origin"),
            destination=optional_text(destination, "Destination"),
            calculated_mileage=_mileage(mode, calculated_mileage, one_way_distance),
            expenses=parse_expenses(expenses),
        )
        self._audit.record_best_effort(
            principal.subject_id, "created_claim", AuditTarget(SubmissionKind.CLAIM.collection, claim_id)
        )
        return self._submissions.get(SubmissionKind.CLAIM, claim_id)

    def update_draft_claim(self, principal: Optional[Principal], claim_id: int, **fields: Any) -> Claim:
        principal = require(principal, Permission.CLAIMS_UPDATE_OWN)
        claim = self._load(SubmissionKind.CLAIM, claim_id)
        if claim.owner_id != principal.subject_id:
            raise ForbiddenError()
        if claim.status != SubmissionStatus.DRAFT:
            raise InvalidTransitionError(
                f"Cannot edit a claim in status: {claim.status.value}",
                current_status=claim.status.value,
            )

        changes: dict[str, Any] = {}
        if "work_date" in fields:
            changes["work_date"] = parse_date_value(fields["work_date"], "Date")
        for name in ("project", "description", "origin", "destination"):
            if name in fields:
                changes[name] = optional_text(fields[name], name.capitalize())
        mode = claim.trip_mode
        if "trip_mode" in fields:
            mode = changes["trip_mode"] = parse_trip_mode(fields["trip_mode"])
        if "calculated_mileage" in fields or "one_way_distance" in fields:
            changes["calculated_mileage"] = _mileage(
                mode, fields.get("calculated_mileage"), fields.get("one_way_distance")
            )
        if "expenses" in fields:
            changes["expenses"] = parse_expenses(fields["expenses"])

        if not self._submissions.update_draft_claim(claim_id=claim.submission_id, changes=changes):
            # Submitted between our read and the write.
            raise ConflictError("Claim is no longer a draft", current_status=self._current_status(claim))
        return self._submissions.get(SubmissionKind.CLAIM, claim.submission_id)

    def create_overtime(
        self,
        principal: Optional[Principal],
        *,
        work_date: Any,
        start_time: Optional[str],
        end_time: Optional[str],
        reason: Optional[str],
    ) -> Overtime:
        principal = require(principal, Permission.OVERTIME_CREATE)
        start = parse_hhmm(start_time, "Start time")
        end = parse_hhmm(end_time, "End time")
        hours = self._calculator.worked_hours(start, end)
        if hours <= 0:
            raise ValidationError("End time must differ from start time")

        overtime_id = self._submissions.create_overtime(
            owner_id=principal.subject_id,
            work_date=parse_date_value(work_date, "Date"),
            start_time=start,
            end_time=end,
            reason=require_non_empty(reason, "Reason"),
            hours_worked=hours,
        )
        self._audit.record_best_effort(
            principal.subject_id, "created_overtime", AuditTarget(SubmissionKind.OVERTIME.collection, overtime_id)
        )
        return self._submissions.get(SubmissionKind.OVERTIME, overtime_id)

    def update_submitted_overtime(self, principal: Optional[Principal], overtime_id: int, **fields: Any) -> Overtime:
        """Owner edits a request that no reviewer has acted on yet."""
        principal = require(principal, Permission.OVERTIME_UPDATE_OWN)
        overtime = self._load(SubmissionKind.OVERTIME, overtime_id)
        if overtime.owner_id != principal.subject_id:
            raise ForbiddenError()
        if overtime.status != SubmissionStatus.SUBMITTED:
            raise InvalidTransitionError(
                f"Cannot edit an overtime request in status: {overtime.status.value}",
                current_status=overtime.status.value,
            )

        changes: dict[str, Any] = {}
        if "work_date" in fields:
            changes["work_date"] = parse_date_value(fields["work_date"], "Date")
        if "reason" in fields:
            changes["reason"] = require_non_empty(fields["reason"], "Reason")
        if "start_time" in fields or "end_time" in fields:
            start = parse_hhmm(fields["start_time"], "Start time") if "start_time" in fields else overtime.start_time
            end = parse_hhmm(fields["end_time"], "End time") if "end_time" in fields else overtime.end_time
            hours = self._calculator.worked_hours(start, end)
            if hours <= 0:
                raise ValidationError("End time must differ from start time")
            changes.update(start_time=start, end_time=end, hours_worked=hours)

        if not self._submissions.update_submitted_overtime(overtime_id=overtime.submission_id, changes=changes):
            # Reviewed between our read and the write.
            raise ConflictError(
                "Overtime request is no longer awaiting review",
                current_status=self._current_status(overtime),
            )
        self._audit.record_best_effort(
            principal.subject_id,
            "updated_overtime",
            AuditTarget(SubmissionKind.OVERTIME.collection, overtime.submission_id),
            ", ".join(sorted(changes)) or None,
        )
        return self._submissions.get(SubmissionKind.OVERTIME, overtime.submission_id)

    # -------- Transitions --------
    def transition_submission(
        self,
        kind: SubmissionKind | str,
        submission_id: int,
        requested_status: SubmissionStatus | str,
        principal: Optional[Principal],
        *,
        remarks: Optional[str] = None,
        observed_status: Optional[SubmissionStatus | str] = None,
    ) -> Submission:
        if principal is None:
            raise UnauthenticatedError()
        kind = parse_kind(kind)
        current = self._load(kind, submission_id)

        if observed_status not in (None, "") and str(getattr(observed_status, "value", observed_status)) != current.status.value:
            raise ConflictError(
                f"{kind.value.capitalize()} was modified concurrently",
                current_status=current.status.value,
            )

        try:
            plan = self._machine.plan(
                current,
                requested_status,
                principal,
                rates=RateResolver(self._rates.list_all()),
                owner=self._users.get_by_id(current.owner_id),
                remarks=remarks,
                now=self._clock(),
            )
        except ConflictError as e:
            logger.info(
                "transition_refused",
                extra={"kind": kind.value, "submission_id": current.submission_id, "code": e.code},
            )
            raise

        if not self._submissions.compare_and_set(
            kind,
            plan.submission_id,
            expected_status=plan.source,
            new_status=plan.target,
            changes=plan.changes,
        ):
            logger.info(
                "transition_conflict",
                extra={"kind": kind.value, "submission_id": plan.submission_id, "expected": plan.source.value},
            )
            raise ConflictError(
                f"{kind.value.capitalize()} was modified concurrently",
                current_status=self._current_status(current),
            )

        try:
            self._audit.must_record(
                principal.subject_id,
                plan.audit_action,
                AuditTarget(kind.collection, plan.submission_id),
                plan.audit_details,
            )
        except AuditWriteError:
            self._compensate(current, plan)
            raise

        logger.info(
            "transition_applied",
            extra={
                "kind": kind.value,
                "submission_id": plan.submission_id,
                "from": plan.source.value,
                "to": plan.target.value,
                "actor_id": principal.subject_id,
            },
        )
        return self._submissions.get(kind, plan.submission_id)

    def submit_claim(self, principal: Optional[Principal], claim_id: int) -> Claim:
        return self.transition_submission(SubmissionKind.CLAIM, claim_id, SubmissionStatus.SUBMITTED, principal)

    def approve(
        self,
        principal: Optional[Principal],
        kind: SubmissionKind | str,
        submission_id: int,
        *,
        remarks: Optional[str] = None,
    ) -> Submission:
        return self.transition_submission(kind, submission_id, SubmissionStatus.APPROVED, principal, remarks=remarks)

    def reject(
        self,
        principal: Optional[Principal],
        kind: SubmissionKind | str,
        submission_id: int,
        *,
        remarks: Optional[str],
    ) -> Submission:
        return self.transition_submission(kind, submission_id, SubmissionStatus.REJECTED, principal, remarks=remarks)

    def mark_paid(self, principal: Optional[Principal], kind: SubmissionKind | str, submission_id: int) -> Submission:
        return self.transition_submission(kind, submission_id, SubmissionStatus.PAID, principal)

    # -------- Queries --------
    def get_submission(self, principal: Optional[Principal], kind: SubmissionKind | str, submission_id: int) -> Submission:
        if principal is None:
            raise UnauthenticatedError()
        kind = parse_kind(kind)
        submission = self._load(kind, submission_id)
        if submission.owner_id != principal.subject_id:
            require_any(principal, _READ_ANY[kind])
        return submission

    def list_mine(self, principal: Optional[Principal], *, limit: int = DEFAULT_LIST_LIMIT) -> dict[str, Sequence[Submission]]:
        if principal is None:
            raise UnauthenticatedError()
        return {
            kind.collection: self._submissions.list_for_owner(kind=kind, owner_id=principal.subject_id, limit=limit)
            for kind in SubmissionKind
        }

    def list_pending(self, principal: Optional[Principal], *, limit: int = DEFAULT_LIST_LIMIT) -> dict[str, Sequence[Submission]]:
        principal = require_any(principal, REVIEWER_ROLES)
        pending = {}
        for kind in SubmissionKind:
            items = self._submissions.list_by_status(kind=kind, status=SubmissionStatus.SUBMITTED, limit=limit)
            # Reviewers never see their own items in the queue.
            pending[kind.collection] = [s for s in items if s.owner_id != principal.subject_id]
        return pending

    # -------- Internals --------
    def _load(self, kind: SubmissionKind, submission_id: int) -> Submission:
        submission = self._submissions.get(kind, int(submission_id))
        if submission is None:
            raise NotFoundError(f"{kind.value.capitalize()} not found")
        return submission

    def _current_status(self, submission: Submission) -> Optional[str]:
        latest = self._submissions.get(submission.kind, submission.submission_id)
        return latest.status.value if latest else None

    def _compensate(self, previous: Submission, plan: TransitionPlan) -> None:
        restore = {name: getattr(previous, name) for name in plan.changes}
        restored = self._submissions.compare_and_set(
            plan.kind,
            plan.submission_id,
            expected_status=plan.target,
            new_status=plan.source,
            changes=restore,
        )
        logger.error(
            "transition_compensated" if restored else "transition_compensation_failed",
            extra={
                "kind": plan.kind.value,
                "submission_id": plan.submission_id,
                "from": plan.target.value,
                "to": plan.source.value,
            },
        )
