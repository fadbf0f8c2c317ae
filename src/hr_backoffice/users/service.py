from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

import structlog
from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import require_email, require_min_length, require_non_empty
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from ..permissions.gate import AuthorizationGate
from ..permissions.model import Actor, Principal, Target
from ..permissions.repository import RoleRepository
from ..permissions.resolver import PermissionResolver
from .model import User
from .repository import UserRepository
from .tokens import TokenService

log = structlog.get_logger(__name__)


def require_user(users: UserRepository, user_id: int) -> User:
    user = users.get_by_id(int(user_id))
    if not user:
        raise NotFoundError("User not found")
    return user


@dataclass(frozen=True)
class LoginResult:
    token: str
    user: User


class AuthService:
    """Use case: log in, and turn a bearer token into an :class:`Actor`."""

    def __init__(
        self,
        users: UserRepository,
        roles: RoleRepository,
        tokens: TokenService,
        resolver: PermissionResolver,
    ):
        self._users = users
        self._roles = roles
        self._tokens = tokens
        self._resolver = resolver

    def login(self, email: str, password: str) -> LoginResult:
        user = self._users.get_by_email((email or "").strip().lower())
        if not user or not user.is_active:
            raise AuthenticationError("Invalid email or password")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # Placeholder or corrupted hashes.
            ok = False

        if not ok:
            log.info("login_failed", user_id=user.user_id)
            raise AuthenticationError("Invalid email or password")

        token = self._tokens.issue(user_id=user.user_id, token_version=user.token_version)
        log.info("login_succeeded", user_id=user.user_id, company_id=user.company_id)
        return LoginResult(token=token, user=user)

    def authenticate_token(self, token: str) -> Principal:
        if not token:
            raise AuthenticationError("Not authorized, no token")

        claims = self._tokens.verify(token)
        user = self._users.get_by_id(claims.user_id)
        if not user or not user.is_active:
            raise AuthenticationError("Not authorized, user not found")

        if claims.token_version != user.token_version:
            raise AuthenticationError("Session expired (roles or permissions changed). Please log in again.")

        roles = self._roles.list_for_user(user.user_id)
        return Principal(
            user_id=user.user_id,
            company_id=user.company_id,
            roles=tuple(r.to_ref() for r in roles if r.is_active),
            token_version=user.token_version,
        )

    def actor_for(self, principal: Principal) -> Actor:
        return Actor(principal=principal, capabilities=self._resolver.resolve(principal))

    def authenticate(self, token: str) -> Actor:
        return self.actor_for(self.authenticate_token(token))


class UserService:
    """Use case: manage user accounts, role assignment and reporting lines."""

    def __init__(self, users: UserRepository, roles: RoleRepository, gate: AuthorizationGate):
        self._users = users
        self._roles = roles
        self._gate = gate

    def get_user(self, actor: Actor, user_id: int) -> User:
        user = require_user(self._users, user_id)
        self._gate.require(actor, "user.read", user.as_target())
        return user

    def create_user(
        self,
        actor: Actor,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str = "",
        department: Optional[str] = None,
        employee_code: Optional[str] = None,
        joining_date: Optional[date] = None,
        manager_ids: Sequence[int] = (),
    ) -> int:
        self._gate.require(actor, "user.create", Target(owner_id=0, company_id=actor.company_id))

        email = require_email(email)
        first_name = require_non_empty(first_name, "First name")
        require_min_length(password, "Password", 6)

        if self._users.get_by_email(email):
            raise ValidationError("Email already exists")

        managers = self._validate_managers(actor.company_id, None, manager_ids)

        user_id = self._users.create_user(
            company_id=actor.company_id,
            email=email,
            password_hash=generate_password_hash(password),
            first_name=first_name,
            last_name=(last_name or "").strip(),
            department=department,
            employee_code=employee_code,
            joining_date=joining_date,
        )
        if managers:
            self._users.set_managers(user_id, managers)

        log.info("user_created", user_id=user_id, company_id=actor.company_id, created_by=actor.user_id)
        return user_id

    def assign_roles(self, actor: Actor, user_id: int, role_ids: Sequence[int]) -> int:
        """Replace the user's roles; returns the new token version."""

        user = require_user(self._users, user_id)
        self._gate.require(actor, "user.update", user.as_target())

        ordered = list(dict.fromkeys(int(r) for r in role_ids))
        for role_id in ordered:
            role = self._roles.get_by_id(role_id)
            if not role or role.company_id not in (None, user.company_id):
                raise ValidationError(f"Role {role_id} does not exist")
            if (role.to_ref().is_system or role.is_wildcard) and not actor.is_system_admin:
                raise AuthorizationError("Only a system admin can assign system roles")

        self._users.set_roles(user.user_id, ordered)
        version = self._users.bump_token_version(user.user_id)
        log.info("roles_assigned", user_id=user.user_id, role_ids=ordered, assigned_by=actor.user_id)
        return version

    def set_managers(self, actor: Actor, user_id: int, manager_ids: Sequence[int]) -> None:
        user = require_user(self._users, user_id)
        self._gate.require(actor, "user.update", user.as_target())

        managers = self._validate_managers(user.company_id, user.user_id, manager_ids)
        self._users.set_managers(user.user_id, managers)
        log.info("managers_set", user_id=user.user_id, manager_ids=managers, updated_by=actor.user_id)

    def _validate_managers(self, company_id: int, user_id: Optional[int], manager_ids: Sequence[int]) -> list[int]:
        out = list(dict.fromkeys(int(m) for m in manager_ids))
        for manager_id in out:
            if manager_id == user_id:
                raise ValidationError("A user cannot report to themselves")
            manager = self._users.get_by_id(manager_id)
            if not manager or manager.company_id != company_id:
                raise ValidationError(f"Manager {manager_id} does not exist")
        return out
