from __future__ import annotations

import pytest

from hr_backoffice.core.exceptions import AuthorizationError
from hr_backoffice.permissions.gate import AuthorizationGate
from hr_backoffice.permissions.model import Target

from fakes import make_actor


@pytest.fixture
def gate() -> AuthorizationGate:
    return AuthorizationGate()


def test_system_admin_allowed_everywhere(gate):
    admin = make_actor(1, 1, system_admin=True)
    assert gate.can_perform(admin, "dossier.approve", Target(owner_id=5, company_id=2)).allowed
    assert gate.can_perform(admin, "unknown.action", Target(owner_id=5, company_id=1)).allowed


def test_unmapped_action_denied(gate):
    actor = make_actor(1, 1, keys={"leave.approve"})
    decision = gate.can_perform(actor, "payroll.run", Target(owner_id=2, company_id=1))
    assert not decision.allowed


def test_cross_tenant_denied_even_with_key(gate):
    actor = make_actor(1, 1, keys={"leave.approve"})
    decision = gate.can_perform(actor, "leave.approve", Target(owner_id=2, company_id=2, manager_ids=frozenset({1})))
    assert not decision.allowed


def test_owner_self_service(gate):
    actor = make_actor(7, 1)
    assert gate.can_perform(actor, "leave.apply", Target(owner_id=7, company_id=1)).allowed
    assert not gate.can_perform(actor, "leave.apply", Target(owner_id=8, company_id=1)).allowed


def test_owner_cannot_self_approve(gate):
    actor = make_actor(7, 1)
    decision = gate.can_perform(actor, "leave.approve", Target(owner_id=7, company_id=1))
    assert not decision.allowed
    assert decision.permission == "leave.approve"


def test_manager_bypass_for_leave_approval(gate):
    manager = make_actor(3, 1)
    target = Target(owner_id=7, company_id=1, manager_ids=frozenset({3}))
    assert gate.can_perform(manager, "leave.approve", target).allowed


def test_no_manager_bypass_for_hris_approval(gate):
    manager = make_actor(3, 1)
    target = Target(owner_id=7, company_id=1, manager_ids=frozenset({3}))
    decision = gate.can_perform(manager, "dossier.approve", target)
    assert not decision.allowed
    assert decision.permission == "dossier.approve"

    hr = make_actor(4, 1, keys={"dossier.approve"})
    assert gate.can_perform(hr, "dossier.approve", target).allowed


def test_key_holder_allowed(gate):
    actor = make_actor(4, 1, keys={"attendance.approve"})
    assert gate.can_perform(actor, "attendance.approve", Target(owner_id=9, company_id=1)).allowed


def test_restricted_section_needs_key_even_for_owner(gate):
    owner = make_actor(7, 1)
    target = Target(owner_id=7, company_id=1)
    assert gate.can_perform(owner, "dossier.edit", target, {"section": "personal"}).allowed

    decision = gate.can_perform(owner, "dossier.edit", target, {"section": "compensation"})
    assert not decision.allowed
    assert decision.permission == "dossier.edit.sensitive"

    privileged = make_actor(7, 1, keys={"dossier.edit.sensitive"})
    assert gate.can_perform(privileged, "dossier.edit", target, {"section": "employment"}).allowed


def test_require_raises_with_permission(gate):
    actor = make_actor(1, 1)
    with pytest.raises(AuthorizationError) as exc:
        gate.require(actor, "timesheet.approve", Target(owner_id=2, company_id=1))
    assert exc.value.permission == "timesheet.approve"
    assert "timesheet.approve" in str(exc.value)


def test_is_privileged_ignores_ownership(gate):
    owner = make_actor(7, 1)
    target = Target(owner_id=7, company_id=1, manager_ids=frozenset({3}))
    assert not gate.is_privileged(owner, "timesheet.approve", target)
    assert gate.is_privileged(make_actor(3, 1), "timesheet.approve", target)
    assert gate.is_privileged(make_actor(5, 1, keys={"timesheet.approve"}), "timesheet.approve", target)
    assert not gate.is_privileged(make_actor(5, 2, keys={"timesheet.approve"}), "timesheet.approve", target)
