from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional, Tuple

from ..core.constants import DICT_SECTIONS, LIST_SECTIONS
from ..core.enums import HrisStatus

SECTIONS = DICT_SECTIONS + LIST_SECTIONS


def _iso(value: Any) -> Optional[str]:
    return value.isoformat() if isinstance(value, (date, datetime)) else value


def _parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return value or None


@dataclass(frozen=True)
class HrisState:
    """Approval sub-state of the employee-declared section of a dossier."""

    is_declared: bool = False
    declaration_date: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    last_updated_at: Optional[datetime] = None
    status: HrisStatus = HrisStatus.DRAFT
    rejection_reason: Optional[str] = None
    approved_by: Optional[int] = None
    approval_date: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "is_declared": self.is_declared,
            "declaration_date": _iso(self.declaration_date),
            "submitted_at": _iso(self.submitted_at),
            "last_updated_at": _iso(self.last_updated_at),
            "status": self.status.value,
            "rejection_reason": self.rejection_reason,
            "approved_by": self.approved_by,
            "approval_date": _iso(self.approval_date),
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "HrisState":
        data = data or {}
        return cls(
            is_declared=bool(data.get("is_declared", False)),
            declaration_date=_parse_datetime(data.get("declaration_date")),
            submitted_at=_parse_datetime(data.get("submitted_at")),
            last_updated_at=_parse_datetime(data.get("last_updated_at")),
            status=HrisStatus(data.get("status") or HrisStatus.DRAFT.value),
            rejection_reason=data.get("rejection_reason"),
            approved_by=data.get("approved_by"),
            approval_date=_parse_datetime(data.get("approval_date")),
        )


@dataclass(frozen=True)
class Document:
    doc_id: str
    title: str
    url: str
    category: str = ""
    file_name: str = ""
    expiry_date: Optional[date] = None
    upload_date: Optional[datetime] = None
    verification_status: str = "Pending"

    def to_dict(self) -> dict:
        return {
            "doc_id": self.doc_id,
            "category": self.category,
            "title": self.title,
            "file_name": self.file_name,
            "url": self.url,
            "expiry_date": _iso(self.expiry_date),
            "upload_date": _iso(self.upload_date),
            "verification_status": self.verification_status,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Document":
        expiry = data.get("expiry_date")
        return cls(
            doc_id=str(data["doc_id"]),
            title=data.get("title") or "",
            url=data.get("url") or "",
            category=data.get("category") or "",
            file_name=data.get("file_name") or "",
            expiry_date=date.fromisoformat(expiry) if isinstance(expiry, str) and expiry else None,
            upload_date=_parse_datetime(data.get("upload_date")),
            verification_status=data.get("verification_status") or "Pending",
        )


@dataclass(frozen=True)
class EmployeeProfile:
    """Employee dossier. ``sections`` maps each section name to a dict (or a list
    for education/experience)."""

    profile_id: int
    user_id: int
    company_id: int
    sections: Mapping[str, Any] = field(default_factory=dict)
    documents: Tuple[Document, ...] = ()
    hris: HrisState = field(default_factory=HrisState)

    def section(self, name: str) -> Any:
        value = self.sections.get(name)
        if value is None:
            return [] if name in LIST_SECTIONS else {}
        return value

    def with_hris(self, hris: HrisState) -> "EmployeeProfile":
        return replace(self, hris=hris)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "profile_id": self.profile_id,
            "user_id": self.user_id,
            "company_id": self.company_id,
        }
        for name in SECTIONS:
            out[name] = self.section(name)
        out["documents"] = [d.to_dict() for d in self.documents]
        out["hris"] = self.hris.to_dict()
        return out
