from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import current_actor, date_field, datetime_field, int_arg, json_body, make_login_required
from ..container import Container
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    login_required = make_login_required(container.auth_service.authenticate)
    service = container.attendance_service

    @app.route("/api/attendance/clock-in", methods=["POST"], endpoint="attendance_clock_in")
    @login_required
    def clock_in():
        return jsonify(service.clock_in(current_actor()).to_dict()), 201

    @app.route("/api/attendance/clock-out", methods=["POST"], endpoint="attendance_clock_out")
    @login_required
    def clock_out():
        return jsonify(service.clock_out(current_actor()).to_dict())

    @app.route("/api/attendance/today", methods=["GET"], endpoint="attendance_today")
    @login_required
    def today():
        record = service.today(current_actor())
        return jsonify(record.to_dict() if record else None)

    @app.route("/api/attendance/history", methods=["GET"], endpoint="attendance_history")
    @login_required
    def history():
        rows = service.history(current_actor(), user_id=int_arg("user_id"), limit=int_arg("limit", 30))
        return jsonify([r.to_dict() for r in rows])

    @app.route("/api/attendance/manual", methods=["POST"], endpoint="attendance_manual")
    @login_required
    def manual():
        actor = current_actor()
        data = json_body()
        record = service.create_manual(
            actor,
            user_id=int(data.get("user_id") or actor.user_id),
            work_date=date_field(data, "work_date"),
            clock_in=datetime_field(data, "clock_in"),
            clock_out=datetime_field(data, "clock_out"),
            notes=data.get("notes"),
        )
        return jsonify(record.to_dict()), 201

    @app.route("/api/attendance/<int:attendance_id>", methods=["PUT"], endpoint="attendance_regularize")
    @login_required
    def regularize(attendance_id: int):
        data = json_body()
        record = service.regularize(
            current_actor(),
            attendance_id,
            clock_in=datetime_field(data, "clock_in"),
            clock_out=datetime_field(data, "clock_out"),
            notes=data.get("notes"),
        )
        return jsonify(record.to_dict())

    @app.route("/api/attendance/<int:attendance_id>/decision", methods=["PUT"], endpoint="attendance_decide")
    @login_required
    def decide(attendance_id: int):
        data = json_body()
        status = str(data.get("status", "")).upper()
        if status not in ("APPROVED", "REJECTED"):
            raise ValidationError("status must be APPROVED or REJECTED")
        record = service.decide(
            current_actor(),
            attendance_id,
            approve=status == "APPROVED",
            rejection_reason=data.get("rejection_reason"),
        )
        return jsonify(record.to_dict())

    @app.route("/api/attendance/pending", methods=["GET"], endpoint="attendance_pending")
    @login_required
    def pending():
        return jsonify([r.to_dict() for r in service.list_pending(current_actor())])
