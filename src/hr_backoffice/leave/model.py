from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Tuple

from ..core.enums import AccrualType, HalfDaySession, LeaveStatus


@dataclass(frozen=True)
class LeavePolicy:
    """Global leave configuration for one leave type."""

    leave_type: str
    name: str
    description: str = ""
    accrual_type: AccrualType = AccrualType.MONTHLY
    accrual_amount: float = 0.0
    carry_forward: bool = False
    max_carry_forward: float = 0.0
    max_limit_per_year: float = 0.0
    sandwich_rule: bool = False
    allow_negative_balance: bool = False
    allow_backdated: bool = True
    is_active: bool = True

    def to_dict(self) -> dict:
        return {
            "leave_type": self.leave_type,
            "name": self.name,
            "description": self.description,
            "accrual_type": self.accrual_type.value,
            "accrual_amount": self.accrual_amount,
            "carry_forward": self.carry_forward,
            "max_carry_forward": self.max_carry_forward,
            "max_limit_per_year": self.max_limit_per_year,
            "sandwich_rule": self.sandwich_rule,
            "allow_negative_balance": self.allow_negative_balance,
            "allow_backdated": self.allow_backdated,
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class LeaveBalance:
    user_id: int
    leave_type: str
    year: int
    opening_balance: float = 0.0
    accrued: float = 0.0
    utilized: float = 0.0
    encashed: float = 0.0

    @property
    def available(self) -> float:
        """What a new application may draw on."""
        return self.opening_balance + self.accrued - self.utilized

    @property
    def closing_balance(self) -> float:
        return self.opening_balance + self.accrued - self.utilized - self.encashed

    def to_dict(self) -> dict:
        return {
            "leave_type": self.leave_type,
            "year": self.year,
            "opening_balance": self.opening_balance,
            "accrued": self.accrued,
            "utilized": self.utilized,
            "encashed": self.encashed,
            "closing_balance": self.closing_balance,
        }


@dataclass(frozen=True)
class LeaveAuditEntry:
    action: str
    by: int
    comment: str = ""
    at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "by": self.by,
            "comment": self.comment,
            "at": self.at.isoformat() if self.at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LeaveAuditEntry":
        at = data.get("at")
        return cls(
            action=data.get("action", ""),
            by=int(data.get("by") or 0),
            comment=data.get("comment") or "",
            at=datetime.fromisoformat(at) if isinstance(at, str) else at,
        )


@dataclass(frozen=True)
class LeaveRequest:
    request_id: int
    user_id: int
    company_id: int
    leave_type: str
    start_date: date
    end_date: date
    reason: str
    days_count: float
    status: LeaveStatus = LeaveStatus.PENDING
    is_half_day: bool = False
    half_day_session: Optional[HalfDaySession] = None
    documents: Tuple[str, ...] = ()
    decided_by: Optional[int] = None
    rejection_reason: Optional[str] = None
    audit_log: Tuple[LeaveAuditEntry, ...] = ()

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "user_id": self.user_id,
            "leave_type": self.leave_type,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "is_half_day": self.is_half_day,
            "half_day_session": self.half_day_session.value if self.half_day_session else None,
            "reason": self.reason,
            "documents": list(self.documents),
            "days_count": self.days_count,
            "status": self.status.value,
            "decided_by": self.decided_by,
            "rejection_reason": self.rejection_reason,
            "audit_log": [e.to_dict() for e in self.audit_log],
        }


@dataclass(frozen=True)
class Holiday:
    holiday_id: int
    company_id: int
    name: str
    holiday_date: date
    is_optional: bool = False

    def to_dict(self) -> dict:
        return {
            "holiday_id": self.holiday_id,
            "name": self.name,
            "date": self.holiday_date.isoformat(),
            "is_optional": self.is_optional,
        }


DEFAULT_POLICIES: Tuple[LeavePolicy, ...] = (
    LeavePolicy("CL", "Casual Leave", accrual_type=AccrualType.MONTHLY, accrual_amount=1.0, max_limit_per_year=12.0),
    LeavePolicy("SL", "Sick Leave", accrual_type=AccrualType.YEARLY, accrual_amount=8.0, max_limit_per_year=8.0),
    LeavePolicy(
        "EL",
        "Earned Leave",
        accrual_type=AccrualType.MONTHLY,
        accrual_amount=1.25,
        max_limit_per_year=15.0,
        carry_forward=True,
        max_carry_forward=30.0,
    ),
    LeavePolicy("LOP", "Loss of Pay", accrual_type=AccrualType.NONE, allow_negative_balance=True),
    LeavePolicy("WFH", "Work From Home", accrual_type=AccrualType.POLICY, allow_negative_balance=True),
)
