from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import current_actor, date_field, int_arg, json_body, make_login_required
from ..container import Container
from ..core.enums import DecisionType, TimesheetStatus
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    login_required = make_login_required(container.auth_service.authenticate)
    timesheets = container.timesheet_service
    worklogs = container.worklog_service

    @app.route("/api/timesheets/<month>", methods=["GET"], endpoint="timesheets_get")
    @login_required
    def get_timesheet(month: str):
        actor = current_actor()
        view = timesheets.get_timesheet(actor, user_id=int_arg("user_id", actor.user_id), month=month)
        return jsonify(view.to_dict())

    @app.route("/api/timesheets/<month>/submit", methods=["POST"], endpoint="timesheets_submit")
    @login_required
    def submit(month: str):
        sheet = timesheets.submit(current_actor(), month=month, user_id=int_arg("user_id"))
        return jsonify(sheet.to_dict())

    @app.route("/api/timesheets/<int:user_id>/<month>/decision", methods=["PUT"], endpoint="timesheets_decide")
    @login_required
    def decide(user_id: int, month: str):
        data = json_body()
        try:
            status = TimesheetStatus(str(data.get("status", "")).upper())
            decision_type = DecisionType(str(data.get("decision_type") or DecisionType.FULL.value).upper())
        except ValueError:
            raise ValidationError("Invalid status or decision_type")
        view = timesheets.decide(
            current_actor(),
            user_id=user_id,
            month=month,
            status=status,
            decision_type=decision_type,
            rejection_reason=data.get("rejection_reason"),
            rejected_entry_ids=[int(i) for i in data.get("rejected_entry_ids") or []],
        )
        return jsonify(view.to_dict())

    @app.route("/api/timesheets/pending", methods=["GET"], endpoint="timesheets_pending")
    @login_required
    def pending():
        return jsonify([t.to_dict() for t in timesheets.list_pending(current_actor())])

    @app.route("/api/worklogs", methods=["POST"], endpoint="worklogs_create")
    @login_required
    def log_work():
        data = json_body()
        if data.get("task_id") is None:
            raise ValidationError("task_id is required")
        worklog_id = worklogs.log_work(
            current_actor(),
            task_id=int(data["task_id"]),
            work_date=date_field(data, "work_date"),
            hours=data.get("hours"),
            description=str(data.get("description") or ""),
            user_id=data.get("user_id"),
        )
        return jsonify({"worklog_id": worklog_id}), 201

    @app.route("/api/worklogs/<int:worklog_id>", methods=["PUT"], endpoint="worklogs_update")
    @login_required
    def update_entry(worklog_id: int):
        data = json_body()
        entry = worklogs.update_entry(
            current_actor(),
            worklog_id,
            hours=data.get("hours"),
            description=data.get("description"),
        )
        return jsonify(entry.to_dict())

    @app.route("/api/worklogs/<int:worklog_id>", methods=["DELETE"], endpoint="worklogs_delete")
    @login_required
    def delete_entry(worklog_id: int):
        worklogs.delete_entry(current_actor(), worklog_id)
        return jsonify({"message": "Deleted"})
