from __future__ import annotations

from hr_backoffice.permissions.model import Principal, Role, RoleRef
from hr_backoffice.permissions.resolver import PermissionResolver

CATALOG = ["user.read", "leave.apply", "leave.approve", "*"]


def _resolver() -> PermissionResolver:
    return PermissionResolver(catalog_keys=lambda: CATALOG)


def _principal(*roles: RoleRef) -> Principal:
    return Principal(user_id=1, company_id=1, roles=tuple(roles))


def test_union_of_role_keys():
    caps = _resolver().resolve(
        _principal(
            RoleRef(1, "Employee", frozenset({"leave.apply"})),
            RoleRef(2, "Manager", frozenset({"leave.approve", "leave.apply"})),
        )
    )
    assert not caps.is_system_admin
    assert caps.keys == {"leave.apply", "leave.approve"}


def test_unloaded_permissions_count_as_empty():
    caps = _resolver().resolve(_principal(RoleRef(1, "Ghost", None), RoleRef(2, "Employee", frozenset({"user.read"}))))
    assert caps.keys == {"user.read"}


def test_no_roles_means_no_keys():
    caps = _resolver().resolve(_principal())
    assert caps.keys == frozenset()
    assert not caps.has("user.read")


def test_system_flag_grants_system_admin():
    caps = _resolver().resolve(_principal(RoleRef(1, "Root", frozenset(), is_system=True)))
    assert caps.is_system_admin
    assert caps.has("anything.at.all")


def test_wildcard_role_flag_grants_system_admin():
    caps = _resolver().resolve(_principal(RoleRef(1, "Everything", None, is_wildcard=True)))
    assert caps.is_system_admin


def test_wildcard_key_expands_to_catalog_without_bypass():
    caps = _resolver().resolve(_principal(RoleRef(1, "Admin", frozenset({"*"}))))
    assert not caps.is_system_admin
    assert caps.keys == {"user.read", "leave.apply", "leave.approve"}
    assert not caps.has("dossier.approve")


def test_reserved_name_is_folded_into_flag_at_definition_time():
    role = Role(role_id=9, name="System Admin", company_id=None)
    ref = role.to_ref()
    assert ref.is_system
    assert _resolver().resolve(_principal(ref)).is_system_admin

    # A check-time RoleRef carrying only the name is an ordinary role.
    plain = RoleRef(9, "System Admin", frozenset())
    assert not _resolver().resolve(_principal(plain)).is_system_admin


def test_admin_name_is_not_special():
    caps = _resolver().resolve(_principal(Role(role_id=3, name="Admin", company_id=1, permissions=("user.read",)).to_ref()))
    assert not caps.is_system_admin
    assert caps.keys == {"user.read"}
