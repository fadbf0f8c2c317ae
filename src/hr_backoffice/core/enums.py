from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Derived day status of an attendance record."""

    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    HALF_DAY = "HALF_DAY"
    LEAVE = "LEAVE"


class ApprovalStatus(str, Enum):
    """Manager approval of an attendance record, independent of its day status."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class TimesheetStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class WorkLogStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class LeaveStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"


class AccrualType(str, Enum):
    MONTHLY = "Monthly"
    YEARLY = "Yearly"
    POLICY = "Policy"
    NONE = "None"


class HalfDaySession(str, Enum):
    FIRST_HALF = "First Half"
    SECOND_HALF = "Second Half"


class HrisStatus(str, Enum):
    """Approval sub-state of the employee-declared HRIS section."""

    DRAFT = "Draft"
    PENDING_APPROVAL = "Pending Approval"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class DecisionType(str, Enum):
    FULL = "FULL"
    PARTIAL = "PARTIAL"
