from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import structlog

from ..audit.model import AuditEntry
from ..audit.repository import AuditRepository
from ..common.datetime_utils import now_utc, to_naive_utc
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_HISTORY_LIMIT, LIST_SECTIONS
from ..core.enums import HrisStatus
from ..core.exceptions import NotFoundError, StateConflictError, ValidationError
from ..permissions.gate import AuthorizationGate
from ..permissions.model import Actor
from ..users.model import User
from ..users.repository import UserRepository
from ..users.service import require_user
from .filter import ProfileFieldFilter
from .model import SECTIONS, Document, EmployeeProfile, HrisState
from .repository import DossierRepository
from .storage import FileStore

log = structlog.get_logger(__name__)

AUDIT_MODULE = "EmployeeDossier"
HRIS_LISTED_STATUSES = (HrisStatus.PENDING_APPROVAL, HrisStatus.APPROVED, HrisStatus.REJECTED)


def _clean_value(value: Any) -> Any:
    # Empty form inputs are stored as null.
    return None if value == "" else value


def merge_section(name: str, current: Any, updates: Any) -> Any:
    """Dict sections merge key by key; list sections are replaced."""
    if name in LIST_SECTIONS:
        if not isinstance(updates, list):
            raise ValidationError(f"Section '{name}' expects a list")
        return list(updates)
    if not isinstance(updates, Mapping):
        raise ValidationError(f"Section '{name}' expects an object")
    merged = dict(current or {})
    for key, value in updates.items():
        merged[str(key)] = _clean_value(value)
    return merged


class DossierService:
    """Employee dossier: sections, documents, HRIS declaration and its approval.

    HRIS: Draft -> Pending Approval on every declared submission; Pending Approval ->
    Approved | Rejected by a ``dossier.approve`` holder (reporting managers do not
    qualify).
    """

    def __init__(
        self,
        profiles: DossierRepository,
        users: UserRepository,
        audit: AuditRepository,
        files: FileStore,
        gate: AuthorizationGate,
        *,
        field_filter: Optional[ProfileFieldFilter] = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._profiles = profiles
        self._users = users
        self._audit = audit
        self._files = files
        self._gate = gate
        self._filter = field_filter or ProfileFieldFilter()
        self._clock = clock

    def _now(self) -> datetime:
        return to_naive_utc(self._clock())

    def _record(self, actor: Actor, owner: User, action: str, **details: Any) -> None:
        self._audit.append(
            AuditEntry(
                action=action,
                module=AUDIT_MODULE,
                performed_by=actor.user_id,
                company_id=owner.company_id,
                target_user_id=owner.user_id,
                details=details,
                at=self._now(),
            )
        )

    def _skeleton(self, owner: User) -> Dict[str, Any]:
        return {
            "personal": {"first_name": owner.first_name, "last_name": owner.last_name},
            "contact": {"personal_email": owner.email},
            "employment": self._employment_defaults(owner),
        }

    def _employment_defaults(self, owner: User) -> Dict[str, Any]:
        return {
            "department": owner.department,
            "reporting_manager": min(owner.manager_ids) if owner.manager_ids else None,
            "joining_date": owner.joining_date.isoformat() if owner.joining_date else None,
        }

    def _load(self, owner: User) -> EmployeeProfile:
        profile = self._profiles.get_or_create(
            user_id=owner.user_id, company_id=owner.company_id, skeleton=self._skeleton(owner)
        )

        # Backfill employment facts that were added to the user after the profile.
        employment = dict(profile.section("employment"))
        missing = {k: v for k, v in self._employment_defaults(owner).items() if v is not None and not employment.get(k)}
        if missing:
            employment.update(missing)
            self._profiles.save_sections(user_id=owner.user_id, sections={"employment": employment})
            profile = replace(profile, sections={**profile.sections, "employment": employment})
        return profile

    def _require_profile(self, owner: User) -> EmployeeProfile:
        profile = self._profiles.get_by_user(owner.user_id)
        if not profile:
            raise NotFoundError("Profile not found")
        return profile

    def get_profile(self, actor: Actor, user_id: int) -> Dict[str, Any]:
        owner = require_user(self._users, user_id)
        self._gate.require(actor, "dossier.view", owner.as_target())

        profile = self._load(owner)
        return self._filter.filter(profile.to_dict(), actor, is_self=owner.user_id == actor.user_id)

    def update_section(self, actor: Actor, user_id: int, section: str, updates: Any) -> Any:
        if section not in SECTIONS:
            raise ValidationError(f"Unknown section '{section}'")
        owner = require_user(self._users, user_id)
        self._gate.require(actor, "dossier.edit", owner.as_target(), {"section": section})

        profile = self._load(owner)
        merged = merge_section(section, profile.section(section), updates)
        self._profiles.save_sections(user_id=owner.user_id, sections={section: merged})

        changed = sorted(updates.keys()) if isinstance(updates, Mapping) else [f"{len(merged)} items"]
        self._record(actor, owner, "UPDATE_DOSSIER", section=section, fields=changed)
        log.info("dossier_section_updated", user_id=owner.user_id, section=section, by=actor.user_id)
        return merged

    def submit_hris(self, actor: Actor, user_id: int, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Save a full HRIS form. A declared submission (re)enters Pending Approval."""
        owner = require_user(self._users, user_id)
        self._gate.require(actor, "dossier.submit_hris", owner.as_target())

        submitted = [name for name in SECTIONS if payload.get(name) is not None]
        # Same section rules as a direct section edit.
        for name in submitted:
            self._gate.require(actor, "dossier.edit", owner.as_target(), {"section": name})

        profile = self._load(owner)
        updates = {name: merge_section(name, profile.section(name), payload[name]) for name in submitted}
        if updates:
            self._profiles.save_sections(user_id=owner.user_id, sections=updates)

        hris = profile.hris
        hris_payload = payload.get("hris") or {}
        if hris_payload:
            now = self._now()
            hris = replace(hris, last_updated_at=now)
            if hris_payload.get("is_declared"):
                hris = replace(
                    hris,
                    is_declared=True,
                    submitted_at=hris.submitted_at or now,
                    declaration_date=hris.declaration_date or now,
                    status=HrisStatus.PENDING_APPROVAL,
                )
            self._profiles.save_hris(user_id=owner.user_id, hris=hris)

        self._record(actor, owner, "SUBMIT_HRIS", sections=sorted(updates), declared=bool(hris_payload.get("is_declared")))
        log.info("hris_submitted", user_id=owner.user_id, status=hris.status.value, by=actor.user_id)
        return self._filter.filter(
            self._require_profile(owner).to_dict(), actor, is_self=owner.user_id == actor.user_id
        )

    def _decide_hris(self, actor: Actor, user_id: int, hris_for: Callable[[HrisState], HrisState], action: str, **details: Any) -> HrisState:
        owner = require_user(self._users, user_id)
        self._gate.require(actor, "dossier.approve", owner.as_target())

        profile = self._require_profile(owner)
        if profile.hris.status != HrisStatus.PENDING_APPROVAL:
            raise StateConflictError(f"HRIS is {profile.hris.status.value}; only pending submissions can be decided")

        hris = hris_for(profile.hris)
        if not self._profiles.save_hris(user_id=owner.user_id, hris=hris, expected_status=HrisStatus.PENDING_APPROVAL):
            raise StateConflictError("HRIS was decided concurrently")

        self._record(actor, owner, action, **details)
        log.info("hris_decided", user_id=owner.user_id, status=hris.status.value, by=actor.user_id)
        return hris

    def approve_hris(self, actor: Actor, user_id: int) -> HrisState:
        now = self._now()
        return self._decide_hris(
            actor,
            user_id,
            lambda h: replace(h, status=HrisStatus.APPROVED, approved_by=actor.user_id, approval_date=now, rejection_reason=None),
            "APPROVE_HRIS",
        )

    def reject_hris(self, actor: Actor, user_id: int, *, reason: str) -> HrisState:
        reason = require_non_empty(reason, "Rejection reason")
        return self._decide_hris(
            actor,
            user_id,
            lambda h: replace(h, status=HrisStatus.REJECTED, rejection_reason=reason, approved_by=None, approval_date=None),
            "REJECT_HRIS",
            reason=reason,
        )

    def list_hris_requests(self, actor: Actor) -> List[Dict[str, Any]]:
        """Submitted HRIS forms: the whole company for approvers, reportees for managers."""
        if actor.capabilities.has("dossier.approve"):
            profiles = self._profiles.list_by_hris_status(company_id=actor.company_id, statuses=HRIS_LISTED_STATUSES)
        else:
            profiles = self._profiles.list_by_hris_status(
                company_id=actor.company_id,
                statuses=HRIS_LISTED_STATUSES,
                user_ids=self._users.list_subordinate_ids(actor.user_id),
            )

        out: List[Dict[str, Any]] = []
        for profile in profiles:
            user = self._users.get_by_id(profile.user_id)
            if not user:
                continue
            out.append(
                {
                    "user_id": user.user_id,
                    "first_name": user.first_name,
                    "last_name": user.last_name,
                    "employee_code": user.employee_code,
                    "department": user.department,
                    "hris": {
                        "submitted_at": profile.hris.to_dict()["submitted_at"],
                        "status": profile.hris.status.value,
                    },
                }
            )
        return out

    def add_document(
        self,
        actor: Actor,
        user_id: int,
        *,
        title: str,
        category: str = "",
        filename: Optional[str] = None,
        data: Optional[bytes] = None,
        url: Optional[str] = None,
        expiry_date: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        owner = require_user(self._users, user_id)
        self._gate.require(actor, "dossier.edit", owner.as_target(), {"section": "documents"})
        title = require_non_empty(title, "Title")

        if data is not None:
            url = self._files.store(filename or "document", data)
        if not url:
            raise ValidationError("No file uploaded or URL provided")

        profile = self._load(owner)
        document = Document(
            doc_id=uuid.uuid4().hex,
            title=title,
            url=url,
            category=(category or "").strip(),
            file_name=filename or url.rsplit("/", 1)[-1] or "document",
            expiry_date=expiry_date,
            upload_date=self._now(),
        )
        documents = [*profile.documents, document]
        self._profiles.save_documents(user_id=owner.user_id, documents=documents)

        self._record(actor, owner, "UPLOAD_DOCUMENT", doc_title=title)
        log.info("document_added", user_id=owner.user_id, doc_id=document.doc_id, by=actor.user_id)
        return [d.to_dict() for d in documents]

    def delete_document(self, actor: Actor, user_id: int, doc_id: str) -> List[Dict[str, Any]]:
        """Remove a document. A file-store failure is logged; the record is removed anyway."""
        owner = require_user(self._users, user_id)
        self._gate.require(actor, "dossier.edit", owner.as_target(), {"section": "documents"})

        profile = self._require_profile(owner)
        document = next((d for d in profile.documents if d.doc_id == doc_id), None)
        if not document:
            raise NotFoundError("Document not found")

        if document.url:
            try:
                self._files.delete(document.url)
            except Exception:
                log.exception("document_file_delete_failed", user_id=owner.user_id, doc_id=doc_id, url=document.url)

        documents = [d for d in profile.documents if d.doc_id != doc_id]
        self._profiles.save_documents(user_id=owner.user_id, documents=documents)

        self._record(actor, owner, "DELETE_DOCUMENT", doc_title=document.title)
        log.info("document_deleted", user_id=owner.user_id, doc_id=doc_id, by=actor.user_id)
        return [d.to_dict() for d in documents]

    def history(self, actor: Actor, user_id: int, *, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[AuditEntry]:
        owner = require_user(self._users, user_id)
        self._gate.require(actor, "dossier.view", owner.as_target())
        return self._audit.list_for_target(
            company_id=owner.company_id, target_user_id=owner.user_id, module=AUDIT_MODULE, limit=max(1, int(limit))
        )
