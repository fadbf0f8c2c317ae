from __future__ import annotations

from flask import Flask, jsonify

from ..common.datetime_utils import org_day
from ..common.http import current_actor, date_field, int_arg, json_body, make_login_required
from ..container import Container
from ..core.enums import AccrualType, HalfDaySession, LeaveStatus
from ..core.exceptions import AuthorizationError, ValidationError
from .model import LeavePolicy


def _policy_from(data: dict) -> LeavePolicy:
    try:
        return LeavePolicy(
            leave_type=str(data.get("leave_type", "")).strip(),
            name=str(data.get("name", "")).strip(),
            description=str(data.get("description") or ""),
            accrual_type=AccrualType(data.get("accrual_type") or AccrualType.MONTHLY.value),
            accrual_amount=float(data.get("accrual_amount") or 0),
            carry_forward=bool(data.get("carry_forward", False)),
            max_carry_forward=float(data.get("max_carry_forward") or 0),
            max_limit_per_year=float(data.get("max_limit_per_year") or 0),
            sandwich_rule=bool(data.get("sandwich_rule", False)),
            allow_negative_balance=bool(data.get("allow_negative_balance", False)),
            allow_backdated=bool(data.get("allow_backdated", True)),
            is_active=bool(data.get("is_active", True)),
        )
    except (TypeError, ValueError):
        raise ValidationError("Invalid leave policy")


def register(app: Flask, container: Container) -> None:
    login_required = make_login_required(container.auth_service.authenticate)
    leaves = container.leave_service
    holidays = container.holiday_service

    @app.route("/api/leaves/apply", methods=["POST"], endpoint="leaves_apply")
    @login_required
    def apply():
        data = json_body()
        session = data.get("half_day_session")
        try:
            half_day_session = HalfDaySession(session) if session else None
        except ValueError:
            raise ValidationError("Invalid half_day_session")
        leave = leaves.apply(
            current_actor(),
            leave_type=str(data.get("leave_type", "")),
            start_date=date_field(data, "start_date"),
            end_date=date_field(data, "end_date"),
            reason=str(data.get("reason") or ""),
            is_half_day=bool(data.get("is_half_day", False)),
            half_day_session=half_day_session,
            documents=[str(d) for d in data.get("documents") or []],
        )
        return jsonify(leave.to_dict()), 201

    @app.route("/api/leaves/requests", methods=["GET"], endpoint="leaves_requests")
    @login_required
    def my_requests():
        return jsonify([r.to_dict() for r in leaves.list_requests(current_actor(), user_id=int_arg("user_id"))])

    @app.route("/api/leaves/balance", methods=["GET"], endpoint="leaves_balance")
    @login_required
    def balances():
        rows = leaves.balances(current_actor(), user_id=int_arg("user_id"), year=int_arg("year"))
        return jsonify([b.to_dict() for b in rows])

    @app.route("/api/leaves/approvals", methods=["GET"], endpoint="leaves_approvals")
    @login_required
    def approvals():
        return jsonify([r.to_dict() for r in leaves.list_pending(current_actor())])

    @app.route("/api/leaves/<int:request_id>/decision", methods=["PUT"], endpoint="leaves_decide")
    @login_required
    def decide(request_id: int):
        data = json_body()
        try:
            status = LeaveStatus(data.get("status"))
        except ValueError:
            raise ValidationError("Status must be Approved or Rejected")
        leave = leaves.decide(current_actor(), request_id, status=status, rejection_reason=data.get("rejection_reason"))
        return jsonify(leave.to_dict())

    @app.route("/api/leaves/<int:request_id>/cancel", methods=["PUT"], endpoint="leaves_cancel")
    @login_required
    def cancel(request_id: int):
        data = json_body()
        return jsonify(leaves.cancel(current_actor(), request_id, comment=str(data.get("comment") or "")).to_dict())

    @app.route("/api/leaves/policies", methods=["GET"], endpoint="leaves_policies")
    @login_required
    def policies():
        return jsonify([p.to_dict() for p in leaves.list_policies()])

    @app.route("/api/leaves/policies", methods=["PUT"], endpoint="leaves_policies_save")
    @login_required
    def save_policy():
        return jsonify(leaves.save_policy(current_actor(), _policy_from(json_body())).to_dict())

    @app.route("/api/leaves/policies/seed", methods=["POST"], endpoint="leaves_policies_seed")
    @login_required
    def seed_policies():
        return jsonify({"created": leaves.seed_default_policies(current_actor())})

    @app.route("/api/holidays", methods=["GET"], endpoint="holidays_list")
    @login_required
    def list_holidays():
        year = int_arg("year") or org_day(container.clock(), container.tz_name).year
        return jsonify([h.to_dict() for h in holidays.list_for_year(current_actor(), year)])

    @app.route("/api/holidays", methods=["POST"], endpoint="holidays_add")
    @login_required
    def add_holiday():
        data = json_body()
        holiday_id = holidays.add(
            current_actor(),
            name=str(data.get("name") or ""),
            holiday_date=date_field(data, "date"),
            is_optional=bool(data.get("is_optional", False)),
        )
        return jsonify({"holiday_id": holiday_id}), 201

    @app.route("/api/holidays/<int:holiday_id>", methods=["PUT"], endpoint="holidays_update")
    @login_required
    def update_holiday(holiday_id: int):
        data = json_body()
        holidays.update(
            current_actor(),
            holiday_id,
            name=data.get("name"),
            holiday_date=date_field(data, "date", required=False),
            is_optional=data.get("is_optional"),
        )
        return jsonify({"message": "Holiday updated"})

    @app.route("/api/holidays/<int:holiday_id>", methods=["DELETE"], endpoint="holidays_delete")
    @login_required
    def delete_holiday(holiday_id: int):
        holidays.delete(current_actor(), holiday_id)
        return jsonify({"message": "Holiday removed"})

    @app.route("/api/admin/accrual/<kind>", methods=["POST"], endpoint="admin_accrual_run")
    @login_required
    def run_accrual(kind: str):
        # Batch runs span every tenant.
        if not current_actor().is_system_admin:
            raise AuthorizationError("Only a system admin can trigger accrual runs")
        if kind == "monthly":
            report = container.accrual_engine.run_monthly_accrual()
        elif kind == "yearly":
            report = container.accrual_engine.run_yearly_processing(int_arg("year"))
        else:
            raise ValidationError("kind must be 'monthly' or 'yearly'")
        return jsonify(report.to_dict()), (200 if report.ok else 207)
