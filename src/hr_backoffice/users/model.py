from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import FrozenSet, Optional, Tuple

from ..permissions.model import Target


@dataclass(frozen=True)
class User:
    """Domain entity: an employee account.

    ``manager_ids`` holds the reporting managers (many-to-many).
    """

    user_id: int
    company_id: int
    email: str
    password_hash: str
    first_name: str = ""
    last_name: str = ""
    role_ids: Tuple[int, ...] = ()
    manager_ids: FrozenSet[int] = field(default_factory=frozenset)
    is_active: bool = True
    token_version: int = 0
    department: Optional[str] = None
    employee_code: Optional[str] = None
    joining_date: Optional[date] = None

    def as_target(self) -> Target:
        return Target(owner_id=self.user_id, company_id=self.company_id, manager_ids=frozenset(self.manager_ids))

    def to_public_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "company_id": self.company_id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "department": self.department,
            "employee_code": self.employee_code,
            "joining_date": self.joining_date.isoformat() if self.joining_date else None,
            "role_ids": list(self.role_ids),
            "manager_ids": sorted(self.manager_ids),
            "is_active": self.is_active,
        }
