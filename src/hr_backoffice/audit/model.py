from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class AuditEntry:
    """Append-only record of who changed what."""

    action: str
    module: str
    performed_by: int
    company_id: int
    target_user_id: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)
    at: Optional[datetime] = None
    audit_id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "audit_id": self.audit_id,
            "action": self.action,
            "module": self.module,
            "performed_by": self.performed_by,
            "target_user_id": self.target_user_id,
            "details": dict(self.details),
            "at": self.at.isoformat() if self.at else None,
        }
