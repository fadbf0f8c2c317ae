from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from hr_backoffice.core.enums import HrisStatus
from hr_backoffice.core.exceptions import AuthorizationError, NotFoundError, StateConflictError, ValidationError
from hr_backoffice.dossier.service import DossierService
from hr_backoffice.permissions.gate import AuthorizationGate

from fakes import FakeAudit, FakeFileStore, FakeProfiles, FakeUsers, FixedClock, make_actor, user

OWNER = make_actor(2)
MANAGER = make_actor(1)
HR = make_actor(9, keys={"dossier.view", "dossier.edit", "dossier.approve", "dossier.view.sensitive"})


def _service(files=None):
    users = FakeUsers(
        [
            user(1),
            user(2, managers=(1,), joining=date(2025, 6, 1), department="Engineering", first_name="Asha"),
            user(9),
        ]
    )
    profiles = FakeProfiles()
    audit = FakeAudit()
    files = files or FakeFileStore()
    clock = FixedClock(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc))
    service = DossierService(profiles, users, audit, files, AuthorizationGate(), clock=clock)
    return service, profiles, audit, files


def test_profile_is_created_lazily_with_user_facts():
    service, profiles, _, _ = _service()
    assert profiles.get_by_user(2) is None

    view = service.get_profile(OWNER, 2)
    assert view["personal"]["first_name"] == "Asha"
    assert view["employment"]["department"] == "Engineering"
    assert view["employment"]["reporting_manager"] == 1
    assert view["employment"]["joining_date"] == "2025-06-01"
    assert view["hris"]["status"] == "Draft"
    assert profiles.get_by_user(2) is not None


def test_manager_without_permission_cannot_view():
    service, _, _, _ = _service()
    with pytest.raises(AuthorizationError):
        service.get_profile(MANAGER, 2)


def test_sensitive_sections_hidden_from_plain_viewers():
    service, _, _, _ = _service()
    service.update_section(HR, 2, "compensation", {"ctc": 100})
    view = service.get_profile(make_actor(3, keys={"dossier.view"}), 2)
    assert "compensation" not in view
    assert service.get_profile(OWNER, 2)["compensation"] == {"ctc": 100}


def test_update_section_merges_and_nulls_empty_strings():
    service, _, audit, _ = _service()
    service.update_section(OWNER, 2, "contact", {"phone": "98450", "city": "Pune"})
    merged = service.update_section(OWNER, 2, "contact", {"city": ""})
    assert merged["phone"] == "98450"
    assert merged["city"] is None
    assert audit.entries[-1].action == "UPDATE_DOSSIER"


def test_list_sections_replace():
    service, _, _, _ = _service()
    service.update_section(OWNER, 2, "education", [{"degree": "BSc"}])
    assert service.update_section(OWNER, 2, "education", [{"degree": "MSc"}]) == [{"degree": "MSc"}]
    with pytest.raises(ValidationError):
        service.update_section(OWNER, 2, "education", {"degree": "PhD"})


def test_owner_cannot_edit_restricted_section():
    service, _, _, _ = _service()
    with pytest.raises(AuthorizationError) as exc:
        service.update_section(OWNER, 2, "compensation", {"ctc": 1})
    assert exc.value.permission == "dossier.edit.sensitive"


def test_hris_form_cannot_change_restricted_sections():
    service, profiles, _, _ = _service()
    with pytest.raises(AuthorizationError) as exc:
        service.submit_hris(
            OWNER, 2, {"compensation": {"ctc": 9999999}, "employment": {"designation": "CEO"}, "hris": {"is_declared": True}}
        )
    assert exc.value.permission == "dossier.edit.sensitive"

    profile = profiles.get_by_user(2)
    assert profile is None or "ctc" not in profile.section("compensation")
    assert profile is None or profile.hris.status == HrisStatus.DRAFT

    sensitive_owner = make_actor(2, keys={"dossier.edit.sensitive"})
    view = service.submit_hris(sensitive_owner, 2, {"compensation": {"ctc": 100}})
    assert view["compensation"] == {"ctc": 100}


def test_unknown_section():
    service, _, _, _ = _service()
    with pytest.raises(ValidationError):
        service.update_section(HR, 2, "hobbies", {})


def test_hris_submission_and_approval():
    service, _, _, _ = _service()
    view = service.submit_hris(OWNER, 2, {"personal": {"blood_group": "O+"}, "hris": {"is_declared": True}})
    assert view["hris"]["status"] == "Pending Approval"
    assert view["personal"]["blood_group"] == "O+"
    submitted_at = view["hris"]["submitted_at"]
    assert submitted_at is not None

    hris = service.approve_hris(HR, 2)
    assert hris.status == HrisStatus.APPROVED
    assert hris.approved_by == 9

    with pytest.raises(StateConflictError):
        service.approve_hris(HR, 2)

    again = service.submit_hris(OWNER, 2, {"hris": {"is_declared": True}})
    assert again["hris"]["status"] == "Pending Approval"
    assert again["hris"]["submitted_at"] == submitted_at


def test_undeclared_save_stays_draft():
    service, _, _, _ = _service()
    view = service.submit_hris(OWNER, 2, {"contact": {"phone": "1"}, "hris": {"is_declared": False}})
    assert view["hris"]["status"] == "Draft"
    with pytest.raises(StateConflictError):
        service.reject_hris(HR, 2, reason="Incomplete")


def test_manager_cannot_approve_hris():
    service, _, _, _ = _service()
    service.submit_hris(OWNER, 2, {"hris": {"is_declared": True}})
    with pytest.raises(AuthorizationError):
        service.approve_hris(MANAGER, 2)


def test_reject_hris_requires_reason():
    service, _, _, _ = _service()
    service.submit_hris(OWNER, 2, {"hris": {"is_declared": True}})
    with pytest.raises(ValidationError):
        service.reject_hris(HR, 2, reason=" ")
    hris = service.reject_hris(HR, 2, reason="Missing PAN")
    assert hris.status == HrisStatus.REJECTED
    assert hris.rejection_reason == "Missing PAN"


def test_hris_request_queue():
    service, _, _, _ = _service()
    service.submit_hris(OWNER, 2, {"hris": {"is_declared": True}})
    service.get_profile(make_actor(9), 9)

    rows = service.list_hris_requests(HR)
    assert [r["user_id"] for r in rows] == [2]
    assert rows[0]["hris"]["status"] == "Pending Approval"
    assert [r["user_id"] for r in service.list_hris_requests(MANAGER)] == [2]
    assert service.list_hris_requests(make_actor(3)) == []


def test_document_upload_and_delete():
    service, _, audit, files = _service()
    docs = service.add_document(OWNER, 2, title="Offer letter", filename="offer.pdf", data=b"%PDF")
    assert len(docs) == 1
    assert docs[0]["url"] in files.files

    remaining = service.delete_document(OWNER, 2, docs[0]["doc_id"])
    assert remaining == []
    assert files.files == {}
    assert [e.action for e in audit.entries] == ["UPLOAD_DOCUMENT", "DELETE_DOCUMENT"]


def test_document_requires_file_or_url():
    service, _, _, _ = _service()
    with pytest.raises(ValidationError):
        service.add_document(OWNER, 2, title="Empty")
    docs = service.add_document(OWNER, 2, title="Passport", url="https://files.example.com/passport.pdf")
    assert docs[0]["file_name"] == "passport.pdf"


def test_delete_survives_file_store_failure():
    service, profiles, _, _ = _service(FakeFileStore(fail_delete=True))
    docs = service.add_document(OWNER, 2, title="Payslip", filename="slip.pdf", data=b"x")
    assert service.delete_document(OWNER, 2, docs[0]["doc_id"]) == []
    assert profiles.get_by_user(2).documents == ()


def test_delete_unknown_document():
    service, _, _, _ = _service()
    service.get_profile(OWNER, 2)
    with pytest.raises(NotFoundError):
        service.delete_document(OWNER, 2, "missing")


def test_history_is_newest_first():
    service, _, _, _ = _service()
    service.update_section(OWNER, 2, "contact", {"phone": "1"})
    service.update_section(OWNER, 2, "skills", {"python": "expert"})
    history = service.history(OWNER, 2, limit=1)
    assert len(history) == 1
    assert history[0].details["section"] == "skills"
