from __future__ import annotations

from datetime import timedelta

from flask import Flask, session

from ..common.web import current_principal, json_body, ok, query_int
from ..container import Container
from ..core.constants import DEFAULT_LIST_LIMIT


def register(app: Flask, container: Container) -> None:
    def principal():
        return current_principal(container.auth_service.principal_for)

    @app.route("/login", methods=["POST"], endpoint="login")
    def login():
        data = json_body()
        s_user = container.auth_service.authenticate(data.get("username", ""), data.get("password", ""))

        session.clear()
        session.permanent = bool(data.get("remember_me"))
        app.permanent_session_lifetime = timedelta(days=7)
        session["user_id"] = s_user.user_id
        session["name"] = s_user.full_name

        return ok(
            {
                "user_id": s_user.user_id,
                "full_name": s_user.full_name,
                "roles": sorted(r.value for r in s_user.roles),
            }
        )

    @app.route("/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return ok()

    @app.route("/me", methods=["GET"], endpoint="me")
    def me():
        p = principal()
        return ok(container.user_service.get_profile(p, p.subject_id).as_dict())

    @app.route("/admin/users", methods=["POST"], endpoint="create_user")
    def create_user():
        data = json_body()
        user_id = container.user_service.create_account(
            principal(),
            full_name=data.get("full_name", ""),
            username=data.get("username", ""),
            password=data.get("password", ""),
            roles=data.get("roles") or ["staff"],
            department=data.get("department"),
            designation=data.get("designation"),
            hourly_rate=data.get("hourly_rate"),
        )
        return ok({"user_id": user_id}, 201)

    @app.route("/admin/users/<int:user_id>", methods=["GET"], endpoint="get_user")
    def get_user(user_id: int):
        return ok(container.user_service.get_profile(principal(), user_id).as_dict())

    @app.route("/admin/users/<int:user_id>/roles", methods=["PATCH"], endpoint="change_roles")
    def change_roles(user_id: int):
        data = json_body()
        user = container.user_service.change_roles(principal(), user_id=user_id, roles=data.get("roles") or [])
        return ok(user.as_dict())

    @app.route("/admin/users/<int:user_id>/hourly-rate", methods=["PATCH"], endpoint="update_hourly_rate")
    def update_hourly_rate(user_id: int):
        data = json_body()
        user = container.user_service.update_hourly_rate(
            principal(), user_id=user_id, hourly_rate=data.get("hourly_rate")
        )
        return ok(user.as_dict())

    @app.route("/me/salary", methods=["GET"], endpoint="my_salary")
    def my_salary():
        p = principal()
        user = container.user_service.get_profile(p, p.subject_id)
        return ok({"hourly_rate": user.as_dict()["hourly_rate"], "submission": user.salary.as_dict()})

    @app.route("/me/salary", methods=["POST"], endpoint="submit_salary")
    def submit_salary():
        data = json_body()
        user = container.user_service.submit_salary(
            principal(),
            monthly_salary=data.get("monthly_salary"),
            hourly_rate=data.get("hourly_rate"),
        )
        return ok(user.salary.as_dict())

    @app.route("/admin/salary-verification", methods=["GET"], endpoint="pending_salaries")
    def pending_salaries():
        users = container.user_service.list_pending_salaries(
            principal(), limit=query_int("limit", DEFAULT_LIST_LIMIT)
        )
        return ok([{"user_id": u.user_id, "full_name": u.full_name, **u.salary.as_dict()} for u in users])

    @app.route("/admin/users/<int:user_id>/salary/verify", methods=["PUT"], endpoint="verify_salary")
    def verify_salary(user_id: int):
        # {status: verified|rejected, reason}
        data = json_body()
        user = container.user_service.verify_salary(
            principal(),
            user_id=user_id,
            status=data.get("status"),
            remarks=data.get("reason"),
        )
        return ok(user.as_dict())
