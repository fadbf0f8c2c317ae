from __future__ import annotations

import pytest
from werkzeug.security import check_password_hash

from hr_backoffice.core.exceptions import AuthorizationError, ValidationError
from hr_backoffice.permissions.gate import AuthorizationGate
from hr_backoffice.permissions.model import Role
from hr_backoffice.users.service import UserService

from fakes import FakeRoles, FakeUsers, make_actor, user


@pytest.fixture
def env():
    users = FakeUsers([user(1), user(2, managers=(1,)), user(50, company_id=2)])
    roles = FakeRoles(
        users,
        [
            Role(role_id=1, name="System Admin", company_id=None, is_system=True),
            Role(role_id=10, name="Employee", company_id=1, permissions=("leave.apply",)),
            Role(role_id=20, name="Employee", company_id=2),
        ],
    )
    return UserService(users, roles, AuthorizationGate()), users


HR = {"user.create", "user.read", "user.update"}


def test_create_user_hashes_password_and_sets_managers(env):
    service, users = env
    user_id = service.create_user(
        make_actor(1, keys=HR),
        email="New.Hire@Example.com",
        password="secret1",
        first_name="New",
        last_name="Hire",
        manager_ids=[1],
    )
    created = users.users[user_id]
    assert created.email == "new.hire@example.com"
    assert check_password_hash(created.password_hash, "secret1")
    assert created.manager_ids == {1}


@pytest.mark.parametrize(
    "email,password,first_name",
    [("bad-email", "secret1", "A"), ("a@example.com", "123", "A"), ("a@example.com", "secret1", " ")],
)
def test_create_user_validation(env, email, password, first_name):
    service, _ = env
    with pytest.raises(ValidationError):
        service.create_user(make_actor(1, keys=HR), email=email, password=password, first_name=first_name)


def test_create_user_requires_permission(env):
    service, _ = env
    with pytest.raises(AuthorizationError):
        service.create_user(make_actor(1), email="x@example.com", password="secret1", first_name="X")


def test_duplicate_email_rejected(env):
    service, _ = env
    with pytest.raises(ValidationError):
        service.create_user(make_actor(1, keys=HR), email="user2@example.com", password="secret1", first_name="X")


def test_assign_roles_bumps_token_version(env):
    service, users = env
    version = service.assign_roles(make_actor(1, keys=HR), 2, [10])
    assert version == 1
    assert users.users[2].role_ids == (10,)


def test_assign_system_role_needs_system_admin(env):
    service, _ = env
    with pytest.raises(AuthorizationError):
        service.assign_roles(make_actor(1, keys=HR), 2, [1])
    assert service.assign_roles(make_actor(99, system_admin=True), 2, [1]) == 1


def test_assign_other_tenant_role_rejected(env):
    service, _ = env
    with pytest.raises(ValidationError):
        service.assign_roles(make_actor(1, keys=HR), 2, [20])


def test_manager_must_be_same_tenant_and_not_self(env):
    service, _ = env
    actor = make_actor(1, keys=HR)
    with pytest.raises(ValidationError):
        service.set_managers(actor, 2, [50])
    with pytest.raises(ValidationError):
        service.set_managers(actor, 2, [2])


def test_user_can_read_self_but_not_others(env):
    service, _ = env
    assert service.get_user(make_actor(2), 2).user_id == 2
    with pytest.raises(AuthorizationError):
        service.get_user(make_actor(2), 1)
