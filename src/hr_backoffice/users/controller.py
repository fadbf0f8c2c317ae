from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import current_actor, date_field, json_body, make_login_required
from ..container import Container


def register(app: Flask, container: Container) -> None:
    login_required = make_login_required(container.auth_service.authenticate)

    @app.route("/api/auth/login", methods=["POST"], endpoint="auth_login")
    def login():
        data = json_body()
        result = container.auth_service.login(str(data.get("email", "")), str(data.get("password", "")))
        return jsonify({"token": result.token, "user": result.user.to_public_dict()})

    @app.route("/api/auth/me", methods=["GET"], endpoint="auth_me")
    @login_required
    def me():
        actor = current_actor()
        user = container.user_service.get_user(actor, actor.user_id)
        return jsonify(
            {
                **user.to_public_dict(),
                "is_system_admin": actor.is_system_admin,
                "permissions": sorted(actor.capabilities.keys),
            }
        )

    @app.route("/api/users", methods=["POST"], endpoint="users_create")
    @login_required
    def create_user():
        data = json_body()
        user_id = container.user_service.create_user(
            current_actor(),
            email=str(data.get("email", "")),
            password=str(data.get("password", "")),
            first_name=str(data.get("first_name", "")),
            last_name=str(data.get("last_name", "")),
            department=data.get("department"),
            employee_code=data.get("employee_code"),
            joining_date=date_field(data, "joining_date", required=False),
            manager_ids=[int(m) for m in data.get("manager_ids") or []],
        )
        return jsonify({"user_id": user_id}), 201

    @app.route("/api/users/<int:user_id>", methods=["GET"], endpoint="users_get")
    @login_required
    def get_user(user_id: int):
        return jsonify(container.user_service.get_user(current_actor(), user_id).to_public_dict())

    @app.route("/api/users/<int:user_id>/roles", methods=["PUT"], endpoint="users_assign_roles")
    @login_required
    def assign_roles(user_id: int):
        data = json_body()
        version = container.user_service.assign_roles(current_actor(), user_id, [int(r) for r in data.get("role_ids") or []])
        return jsonify({"message": "Roles updated; the user must log in again", "token_version": version})

    @app.route("/api/users/<int:user_id>/managers", methods=["PUT"], endpoint="users_set_managers")
    @login_required
    def set_managers(user_id: int):
        data = json_body()
        container.user_service.set_managers(current_actor(), user_id, [int(m) for m in data.get("manager_ids") or []])
        return jsonify({"message": "Reporting managers updated"})
