from __future__ import annotations

from datetime import date, time
from decimal import Decimal
from typing import Any, Mapping, Optional, Protocol, Sequence, Union

from ..core.enums import SubmissionKind, SubmissionStatus, TripMode
from .model import Claim, ClaimExpenses, Overtime

Submission = Union[Claim, Overtime]


class SubmissionRepository(Protocol):
    """Storage collaborator for claims and overtime requests.

    Status changes go only through ``compare_and_set``: the write applies iff
    the persisted status still equals ``expected_status``.
    """

    # Claims
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
        raise NotImplementedError

    def update_draft_claim(self, *, claim_id: int, changes: Mapping[str, Any]) -> bool:
        """Apply field changes only while the claim is still a draft."""

        raise NotImplementedError

    # Overtime
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
        raise NotImplementedError

    def update_submitted_overtime(self, *, overtime_id: int, changes: Mapping[str, Any]) -> bool:
        """Apply field changes only while the request is still awaiting review."""

        raise NotImplementedError

    # Shared
    def get(self, kind: SubmissionKind, submission_id: int) -> Optional[Submission]:
        raise NotImplementedError

    def list_for_owner(self, *, kind: SubmissionKind, owner_id: int, limit: int = 200) -> Sequence[Submission]:
        raise NotImplementedError

    def list_by_status(self, *, kind: SubmissionKind, status: SubmissionStatus, limit: int = 200) -> Sequence[Submission]:
        raise NotImplementedError

    def compare_and_set(
        self,
        kind: SubmissionKind,
        submission_id: int,
        *,
        expected_status: SubmissionStatus,
        new_status: SubmissionStatus,
        changes: Mapping[str, Any],
    ) -> bool:
        raise NotImplementedError
