"""Static permission catalog, reconciled into storage at start-up."""

from __future__ import annotations

from typing import Tuple

from .model import PermissionDef


def _p(key: str, module: str, description: str) -> PermissionDef:
    return PermissionDef(key=key, module=module, description=description)


PERMISSION_CATALOG: Tuple[PermissionDef, ...] = (
    # User management
    _p("user.create", "USER", "Create new users"),
    _p("user.read", "USER", "View user details"),
    _p("user.update", "USER", "Update user details and role assignments"),
    _p("user.delete", "USER", "Deactivate or delete users"),
    # Role management
    _p("role.create", "ROLE", "Create new roles"),
    _p("role.read", "ROLE", "View roles and permissions"),
    _p("role.update", "ROLE", "Update roles and permissions"),
    # Timesheet
    _p("timesheet.submit", "TIMESHEET", "Submit own timesheets"),
    _p("timesheet.approve", "TIMESHEET", "View and approve submitted timesheets"),
    _p("timesheet.export", "TIMESHEET", "Export timesheet reports"),
    # Attendance
    _p("attendance.clock_in", "ATTENDANCE", "Clock in and out"),
    _p("attendance.view", "ATTENDANCE", "View attendance of other users"),
    _p("attendance.approve", "ATTENDANCE", "Approve attendance records"),
    _p("attendance.export", "ATTENDANCE", "Export attendance reports"),
    _p("attendance.update_self", "ATTENDANCE", "Edit own attendance time (regularization)"),
    _p("attendance.update", "ATTENDANCE", "Edit attendance of other users"),
    # Tasks / work logs
    _p("task.create", "PROJECT", "Create tasks"),
    _p("task.read", "PROJECT", "View tasks"),
    _p("task.update", "PROJECT", "Update tasks and work logs of other users"),
    # Leave
    _p("leave.apply", "LEAVE", "Apply for leave on behalf of other users"),
    _p("leave.approve", "LEAVE", "Approve or reject leave requests"),
    _p("leave.manage", "LEAVE", "Manage leave policies, holidays and accrual runs"),
    # Dossier
    _p("dossier.view", "DOSSIER", "View employee dossiers"),
    _p("dossier.view.sensitive", "DOSSIER", "View compensation, identity and family sections"),
    _p("dossier.edit", "DOSSIER", "Edit employee dossiers"),
    _p("dossier.edit.sensitive", "DOSSIER", "Edit employment, compensation and identity sections"),
    _p("dossier.approve", "DOSSIER", "Approve or reject HRIS submissions"),
)
