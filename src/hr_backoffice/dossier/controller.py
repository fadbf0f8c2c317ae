from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import current_actor, date_field, int_arg, json_body, make_login_required
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT


def register(app: Flask, container: Container) -> None:
    login_required = make_login_required(container.auth_service.authenticate)
    service = container.dossier_service

    @app.route("/api/dossier/<int:user_id>", methods=["GET"], endpoint="dossier_get")
    @login_required
    def get_profile(user_id: int):
        return jsonify(service.get_profile(current_actor(), user_id))

    @app.route("/api/dossier/<int:user_id>/<section>", methods=["PUT"], endpoint="dossier_update_section")
    @login_required
    def update_section(user_id: int, section: str):
        updates = request.get_json(silent=True)
        if updates is None:
            updates = {}
        return jsonify({section: service.update_section(current_actor(), user_id, section, updates)})

    @app.route("/api/dossier/<int:user_id>/hris", methods=["POST"], endpoint="dossier_submit_hris")
    @login_required
    def submit_hris(user_id: int):
        return jsonify(service.submit_hris(current_actor(), user_id, json_body()))

    @app.route("/api/dossier/<int:user_id>/hris/approve", methods=["PUT"], endpoint="dossier_approve_hris")
    @login_required
    def approve_hris(user_id: int):
        return jsonify(service.approve_hris(current_actor(), user_id).to_dict())

    @app.route("/api/dossier/<int:user_id>/hris/reject", methods=["PUT"], endpoint="dossier_reject_hris")
    @login_required
    def reject_hris(user_id: int):
        data = json_body()
        return jsonify(service.reject_hris(current_actor(), user_id, reason=str(data.get("reason") or "")).to_dict())

    @app.route("/api/dossier/requests", methods=["GET"], endpoint="dossier_hris_requests")
    @login_required
    def hris_requests():
        return jsonify(service.list_hris_requests(current_actor()))

    @app.route("/api/dossier/<int:user_id>/documents", methods=["POST"], endpoint="dossier_add_document")
    @login_required
    def add_document(user_id: int):
        upload = request.files.get("file")
        if upload is not None:
            data = request.form.to_dict()
            filename, blob = upload.filename, upload.read()
        else:
            data = json_body()
            filename, blob = None, None
        documents = service.add_document(
            current_actor(),
            user_id,
            title=str(data.get("title") or ""),
            category=str(data.get("category") or ""),
            filename=filename,
            data=blob,
            url=data.get("url"),
            expiry_date=date_field(data, "expiry_date", required=False),
        )
        return jsonify(documents), 201

    @app.route("/api/dossier/<int:user_id>/documents/<doc_id>", methods=["DELETE"], endpoint="dossier_delete_document")
    @login_required
    def delete_document(user_id: int, doc_id: str):
        return jsonify(service.delete_document(current_actor(), user_id, doc_id))

    @app.route("/api/dossier/<int:user_id>/history", methods=["GET"], endpoint="dossier_history")
    @login_required
    def history(user_id: int):
        rows = service.history(current_actor(), user_id, limit=int_arg("limit", DEFAULT_HISTORY_LIMIT))
        return jsonify([r.to_dict() for r in rows])
