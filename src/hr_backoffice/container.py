from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .audit.mysql_audit_repository import MySQLAuditRepository
from .audit.repository import AuditRepository
from .common.datetime_utils import now_utc
from .core.constants import DEFAULT_ORG_TIMEZONE, DEFAULT_TOKEN_TTL_SECONDS
from .database.connection import DBConfig, DatabaseConnection
from .dossier.mysql_dossier_repository import MySQLDossierRepository
from .dossier.repository import DossierRepository
from .dossier.service import DossierService
from .dossier.storage import FileStore, LocalFileStore
from .leave.accrual import AccrualEngine
from .leave.mysql_leave_repository import (
    MySQLHolidayRepository,
    MySQLLeaveBalanceRepository,
    MySQLLeavePolicyRepository,
    MySQLLeaveRequestRepository,
)
from .leave.repository import (
    HolidayRepository,
    LeaveBalanceRepository,
    LeavePolicyRepository,
    LeaveRequestRepository,
)
from .leave.service import HolidayService, LeaveService
from .permissions.gate import AuthorizationGate
from .permissions.mysql_permission_repository import MySQLPermissionRepository, MySQLRoleRepository
from .permissions.repository import PermissionRepository, RoleRepository
from .permissions.resolver import PermissionResolver
from .permissions.service import RoleService
from .permissions.sync import PermissionSync
from .timesheets.mysql_timesheet_repository import MySQLTimesheetRepository, MySQLWorkLogRepository
from .timesheets.repository import TimesheetRepository, WorkLogRepository
from .timesheets.service import TimesheetLock, TimesheetService, WorkLogService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService, UserService
from .users.tokens import TokenService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    tz_name: str
    clock: Callable[[], datetime]

    users_repo: UserRepository
    permissions_repo: PermissionRepository
    roles_repo: RoleRepository
    audit_repo: AuditRepository
    attendance_repo: AttendanceRepository
    timesheets_repo: TimesheetRepository
    worklogs_repo: WorkLogRepository
    policies_repo: LeavePolicyRepository
    balances_repo: LeaveBalanceRepository
    leave_requests_repo: LeaveRequestRepository
    holidays_repo: HolidayRepository
    profiles_repo: DossierRepository

    gate: AuthorizationGate
    resolver: PermissionResolver
    token_service: TokenService
    permission_sync: PermissionSync
    auth_service: AuthService
    user_service: UserService
    role_service: RoleService
    timesheet_service: TimesheetService
    worklog_service: WorkLogService
    attendance_service: AttendanceService
    leave_service: LeaveService
    holiday_service: HolidayService
    accrual_engine: AccrualEngine
    dossier_service: DossierService


def assemble_container(
    *,
    conn: Optional[DatabaseConnection],
    users_repo: UserRepository,
    permissions_repo: PermissionRepository,
    roles_repo: RoleRepository,
    audit_repo: AuditRepository,
    attendance_repo: AttendanceRepository,
    timesheets_repo: TimesheetRepository,
    worklogs_repo: WorkLogRepository,
    policies_repo: LeavePolicyRepository,
    balances_repo: LeaveBalanceRepository,
    leave_requests_repo: LeaveRequestRepository,
    holidays_repo: HolidayRepository,
    profiles_repo: DossierRepository,
    file_store: FileStore,
    jwt_secret: str,
    jwt_ttl: int = DEFAULT_TOKEN_TTL_SECONDS,
    tz_name: str = DEFAULT_ORG_TIMEZONE,
    clock: Callable[[], datetime] = now_utc,
) -> Container:
    """Wire services over the given repositories (MySQL in production, fakes in tests)."""
    gate = AuthorizationGate()
    resolver = PermissionResolver(catalog_keys=permissions_repo.active_keys)
    tokens = TokenService(jwt_secret, ttl_seconds=jwt_ttl)

    lock = TimesheetLock(timesheets_repo, gate)

    return Container(
        conn=conn,
        tz_name=tz_name,
        clock=clock,
        users_repo=users_repo,
        permissions_repo=permissions_repo,
        roles_repo=roles_repo,
        audit_repo=audit_repo,
        attendance_repo=attendance_repo,
        timesheets_repo=timesheets_repo,
        worklogs_repo=worklogs_repo,
        policies_repo=policies_repo,
        balances_repo=balances_repo,
        leave_requests_repo=leave_requests_repo,
        holidays_repo=holidays_repo,
        profiles_repo=profiles_repo,
        gate=gate,
        resolver=resolver,
        token_service=tokens,
        permission_sync=PermissionSync(permissions_repo, roles_repo),
        auth_service=AuthService(users_repo, roles_repo, tokens, resolver),
        user_service=UserService(users_repo, roles_repo, gate),
        role_service=RoleService(roles_repo, permissions_repo, users_repo, gate),
        timesheet_service=TimesheetService(timesheets_repo, worklogs_repo, users_repo, gate),
        worklog_service=WorkLogService(worklogs_repo, users_repo, lock, gate),
        attendance_service=AttendanceService(attendance_repo, users_repo, lock, gate, tz_name=tz_name, clock=clock),
        leave_service=LeaveService(
            policies_repo,
            balances_repo,
            leave_requests_repo,
            holidays_repo,
            users_repo,
            gate,
            tz_name=tz_name,
            clock=clock,
        ),
        holiday_service=HolidayService(holidays_repo, gate),
        accrual_engine=AccrualEngine(users_repo, policies_repo, balances_repo, tz_name=tz_name, clock=clock),
        dossier_service=DossierService(profiles_repo, users_repo, audit_repo, file_store, gate, clock=clock),
    )


def build_container(
    *,
    db_config: dict,
    jwt_secret: str,
    jwt_ttl: int = DEFAULT_TOKEN_TTL_SECONDS,
    tz_name: str = DEFAULT_ORG_TIMEZONE,
    upload_dir: str = "uploads",
    file_base_url: str = "/files",
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return assemble_container(
        conn=conn,
        users_repo=MySQLUserRepository(conn),
        permissions_repo=MySQLPermissionRepository(conn),
        roles_repo=MySQLRoleRepository(conn),
        audit_repo=MySQLAuditRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        timesheets_repo=MySQLTimesheetRepository(conn),
        worklogs_repo=MySQLWorkLogRepository(conn),
        policies_repo=MySQLLeavePolicyRepository(conn),
        balances_repo=MySQLLeaveBalanceRepository(conn),
        leave_requests_repo=MySQLLeaveRequestRepository(conn),
        holidays_repo=MySQLHolidayRepository(conn),
        profiles_repo=MySQLDossierRepository(conn),
        file_store=LocalFileStore(upload_dir, base_url=file_base_url),
        jwt_secret=jwt_secret,
        jwt_ttl=jwt_ttl,
        tz_name=tz_name,
    )
