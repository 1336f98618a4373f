from __future__ import annotations

from flask import Flask

from ..common.web import current_principal, json_body, ok, query_int
from ..container import Container
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import SubmissionKind, SubmissionStatus
from ..core.exceptions import ValidationError

_CLAIM_FIELDS = (
    "work_date",
    "project",
    "description",
    "trip_mode",
    "origin",
    "destination",
    "calculated_mileage",
    "one_way_distance",
    "expenses",
)


_OVERTIME_FIELDS = ("work_date", "start_time", "end_time", "reason")


def _listing(groups) -> dict:
    return {name: [s.as_dict() for s in items] for name, items in groups.items()}


def register(app: Flask, container: Container) -> None:
    service = container.submission_service

    def principal():
        return current_principal(container.auth_service.principal_for)

    def review(kind: SubmissionKind, submission_id: int):
        # {status: approved|rejected, remarks}
        data = json_body()
        status = data.get("status") or SubmissionStatus.APPROVED.value
        if not isinstance(status, str):
            raise ValidationError("Status must be 'approved' or 'rejected'")
        status = status.strip().lower()
        if status not in (SubmissionStatus.APPROVED.value, SubmissionStatus.REJECTED.value):
            raise ValidationError("Status must be 'approved' or 'rejected'")
        result = service.transition_submission(
            kind,
            submission_id,
            status,
            principal(),
            remarks=data.get("remarks"),
            observed_status=data.get("observed_status"),
        )
        return ok(result.as_dict())

    # -------- Claims --------
    @app.route("/claims", methods=["GET"], endpoint="list_claims")
    def list_claims():
        mine = service.list_mine(principal(), limit=query_int("limit", DEFAULT_LIST_LIMIT))
        return ok([c.as_dict() for c in mine[SubmissionKind.CLAIM.collection]])

    @app.route("/claims", methods=["POST"], endpoint="create_claim")
    def create_claim():
        data = json_body()
        claim = service.create_claim(principal(), **{k: data.get(k) for k in _CLAIM_FIELDS})
        return ok(claim.as_dict(), 201)

    @app.route("/claims/<int:claim_id>", methods=["GET"], endpoint="get_claim")
    def get_claim(claim_id: int):
        return ok(service.get_submission(principal(), SubmissionKind.CLAIM, claim_id).as_dict())

    @app.route("/claims/<int:claim_id>", methods=["PATCH"], endpoint="update_claim")
    def update_claim(claim_id: int):
        data = json_body()
        fields = {k: data[k] for k in _CLAIM_FIELDS if k in data}
        return ok(service.update_draft_claim(principal(), claim_id, **fields).as_dict())

    @app.route("/claims/<int:claim_id>/submit", methods=["POST"], endpoint="submit_claim")
    def submit_claim(claim_id: int):
        return ok(service.submit_claim(principal(), claim_id).as_dict())

    @app.route("/claims/<int:claim_id>/approve", methods=["POST"], endpoint="review_claim")
    def review_claim(claim_id: int):
        return review(SubmissionKind.CLAIM, claim_id)

    @app.route("/claims/<int:claim_id>/pay", methods=["POST"], endpoint="pay_claim")
    def pay_claim(claim_id: int):
        return ok(service.mark_paid(principal(), SubmissionKind.CLAIM, claim_id).as_dict())

    # -------- Overtime --------
    @app.route("/overtime", methods=["GET"], endpoint="list_overtime")
    def list_overtime():
        mine = service.list_mine(principal(), limit=query_int("limit", DEFAULT_LIST_LIMIT))
        return ok([o.as_dict() for o in mine[SubmissionKind.OVERTIME.collection]])

    @app.route("/overtime", methods=["POST"], endpoint="create_overtime")
    def create_overtime():
        data = json_body()
        overtime = service.create_overtime(
            principal(),
            work_date=data.get("work_date"),
            start_time=data.get("start_time"),
            end_time=data.get("end_time"),
            reason=data.get("reason"),
        )
        return ok(overtime.as_dict(), 201)

    @app.route("/overtime/<int:overtime_id>", methods=["GET"], endpoint="get_overtime")
    def get_overtime(overtime_id: int):
        return ok(service.get_submission(principal(), SubmissionKind.OVERTIME, overtime_id).as_dict())

    @app.route("/overtime/<int:overtime_id>", methods=["PATCH"], endpoint="update_overtime")
    def update_overtime(overtime_id: int):
        data = json_body()
        fields = {k: data[k] for k in _OVERTIME_FIELDS if k in data}
        return ok(service.update_submitted_overtime(principal(), overtime_id, **fields).as_dict())

    @app.route("/overtime/<int:overtime_id>/approve", methods=["POST"], endpoint="review_overtime")
    def review_overtime(overtime_id: int):
        return review(SubmissionKind.OVERTIME, overtime_id)

    @app.route("/overtime/<int:overtime_id>/pay", methods=["POST"], endpoint="pay_overtime")
    def pay_overtime(overtime_id: int):
        return ok(service.mark_paid(principal(), SubmissionKind.OVERTIME, overtime_id).as_dict())

    # -------- Shared --------
    @app.route("/submissions/<kind>/<int:submission_id>/transition", methods=["POST"], endpoint="transition")
    def transition(kind: str, submission_id: int):
        data = json_body()
        result = service.transition_submission(
            kind,
            submission_id,
            data.get("status") or "",
            principal(),
            remarks=data.get("remarks"),
            observed_status=data.get("observed_status"),
        )
        return ok(result.as_dict())

    @app.route("/approvals/pending", methods=["GET"], endpoint="pending_approvals")
    def pending_approvals():
        return ok(_listing(service.list_pending(principal(), limit=query_int("limit", DEFAULT_LIST_LIMIT))))
