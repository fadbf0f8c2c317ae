from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from werkzeug.security import generate_password_hash

from hr_backoffice.core.exceptions import AuthenticationError
from hr_backoffice.permissions.model import Role
from hr_backoffice.permissions.resolver import PermissionResolver
from hr_backoffice.users.service import AuthService
from hr_backoffice.users.tokens import TokenService

from fakes import FakeRoles, FakeUsers, user

SECRET = "unit-test-secret"


@pytest.fixture
def env():
    users = FakeUsers(
        [
            user(1, email="alice@example.com", password_hash=generate_password_hash("s3cret!"), role_ids=(10, 11)),
            user(2, email="bob@example.com", password_hash="not-a-hash", role_ids=(12,)),
            user(3, email="gone@example.com", password_hash=generate_password_hash("s3cret!"), is_active=False),
        ]
    )
    roles = FakeRoles(
        users,
        [
            Role(role_id=10, name="Employee", company_id=1, permissions=("leave.apply",)),
            Role(role_id=11, name="Retired", company_id=1, permissions=("leave.approve",), is_active=False),
            Role(role_id=12, name="System Admin", company_id=None),
        ],
    )
    tokens = TokenService(SECRET, ttl_seconds=3600)
    service = AuthService(users, roles, tokens, PermissionResolver(catalog_keys=lambda: []))
    return service, users, tokens


def test_login_issues_token_for_valid_credentials(env):
    service, _, tokens = env
    result = service.login("Alice@Example.com ", "s3cret!")
    assert result.user.user_id == 1
    assert tokens.verify(result.token).user_id == 1


@pytest.mark.parametrize(
    "email,password",
    [("alice@example.com", "wrong"), ("nobody@example.com", "s3cret!"), ("gone@example.com", "s3cret!")],
)
def test_login_rejects_bad_credentials(env, email, password):
    service, _, _ = env
    with pytest.raises(AuthenticationError):
        service.login(email, password)


def test_login_with_corrupted_hash_fails_cleanly(env):
    service, _, _ = env
    with pytest.raises(AuthenticationError):
        service.login("bob@example.com", "anything")


def test_authenticate_resolves_active_roles_only(env):
    service, _, tokens = env
    actor = service.authenticate(tokens.issue(user_id=1, token_version=0))
    assert actor.user_id == 1
    assert actor.capabilities.keys == {"leave.apply"}


def test_reserved_role_name_makes_system_admin(env):
    service, _, tokens = env
    actor = service.authenticate(tokens.issue(user_id=2, token_version=0))
    assert actor.is_system_admin


def test_stale_token_version_rejected(env):
    service, users, tokens = env
    token = tokens.issue(user_id=1, token_version=0)
    users.bump_token_version(1)
    with pytest.raises(AuthenticationError, match="Session expired"):
        service.authenticate(token)


def test_expired_token_rejected(env):
    service, _, tokens = env
    token = tokens.issue(user_id=1, token_version=0, now=datetime.now(tz=timezone.utc) - timedelta(hours=2))
    with pytest.raises(AuthenticationError, match="expired"):
        service.authenticate(token)


def test_token_signed_with_other_secret_rejected(env):
    service, _, _ = env
    forged = jwt.encode({"sub": "1", "tv": 0}, "other-secret", algorithm="HS256")
    with pytest.raises(AuthenticationError, match="token failed"):
        service.authenticate(forged)


def test_token_without_subject_rejected(env):
    service, _, _ = env
    token = jwt.encode({"tv": 0}, SECRET, algorithm="HS256")
    with pytest.raises(AuthenticationError):
        service.authenticate(token)
