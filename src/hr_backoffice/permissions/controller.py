from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import current_actor, json_body, make_login_required
from ..container import Container
from .model import Role


def _role_dict(role: Role) -> dict:
    return {
        "role_id": role.role_id,
        "name": role.name,
        "company_id": role.company_id,
        "permissions": list(role.permissions),
        "is_system": role.to_ref().is_system,
        "is_wildcard": role.is_wildcard,
        "is_active": role.is_active,
    }


def register(app: Flask, container: Container) -> None:
    login_required = make_login_required(container.auth_service.authenticate)

    @app.route("/api/admin/permissions", methods=["GET"], endpoint="admin_permissions")
    @login_required
    def list_permissions():
        grouped = container.role_service.list_permissions(current_actor())
        return jsonify(
            {
                module: [{"key": p.key, "description": p.description} for p in perms]
                for module, perms in grouped.items()
            }
        )

    @app.route("/api/admin/roles", methods=["GET"], endpoint="admin_roles")
    @login_required
    def list_roles():
        return jsonify([_role_dict(r) for r in container.role_service.list_roles(current_actor())])

    @app.route("/api/admin/roles", methods=["POST"], endpoint="admin_roles_create")
    @login_required
    def create_role():
        data = json_body()
        role_id = container.role_service.create_role(
            current_actor(), name=str(data.get("name", "")), permissions=list(data.get("permissions") or [])
        )
        return jsonify({"role_id": role_id}), 201

    @app.route("/api/admin/roles/<int:role_id>", methods=["PUT"], endpoint="admin_roles_update")
    @login_required
    def update_role(role_id: int):
        data = json_body()
        invalidated = container.role_service.update_role(
            current_actor(), role_id, name=str(data.get("name", "")), permissions=list(data.get("permissions") or [])
        )
        return jsonify({"message": "Role updated", "sessions_invalidated": invalidated})
