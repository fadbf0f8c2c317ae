from __future__ import annotations

from typing import Dict, List, Sequence

import structlog

from ..common.validators import require_non_empty
from ..core.constants import WILDCARD_PERMISSION
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.repository import UserRepository
from .gate import AuthorizationGate
from .model import Actor, PermissionDef, Role, Target
from .repository import PermissionRepository, RoleRepository

log = structlog.get_logger(__name__)


class RoleService:
    """Use case: list the permission catalog and manage tenant roles.

    Any change to a role's grants bumps the token version of every holder, so stale
    sessions are forced to re-authenticate.
    """

    def __init__(
        self,
        roles: RoleRepository,
        permissions: PermissionRepository,
        users: UserRepository,
        gate: AuthorizationGate,
    ):
        self._roles = roles
        self._permissions = permissions
        self._users = users
        self._gate = gate

    def _company_target(self, actor: Actor) -> Target:
        return Target(owner_id=0, company_id=actor.company_id)

    def list_permissions(self, actor: Actor) -> Dict[str, List[PermissionDef]]:
        """Active permissions grouped by module."""

        self._gate.require(actor, "role.read", self._company_target(actor))
        grouped: Dict[str, List[PermissionDef]] = {}
        for perm in self._permissions.list_all():
            if perm.is_deprecated or perm.key == WILDCARD_PERMISSION:
                continue
            grouped.setdefault(perm.module, []).append(perm)
        return grouped

    def list_roles(self, actor: Actor) -> Sequence[Role]:
        self._gate.require(actor, "role.read", self._company_target(actor))
        return self._roles.list_for_company(actor.company_id)

    def create_role(self, actor: Actor, *, name: str, permissions: Sequence[str]) -> int:
        self._gate.require(actor, "role.create", self._company_target(actor))
        name = require_non_empty(name, "Role name")
        keys = self._validate_keys(actor, permissions)

        if any(r.name == name and r.company_id == actor.company_id for r in self._roles.list_for_company(actor.company_id)):
            raise ValidationError(f"Role '{name}' already exists")

        role_id = self._roles.create(company_id=actor.company_id, name=name, permissions=keys)
        log.info("role_created", role_id=role_id, name=name, company_id=actor.company_id, created_by=actor.user_id)
        return role_id

    def update_role(self, actor: Actor, role_id: int, *, name: str, permissions: Sequence[str]) -> int:
        """Rename/re-grant a role; returns the number of holders whose sessions were invalidated."""

        self._gate.require(actor, "role.update", self._company_target(actor))
        role = self._roles.get_by_id(int(role_id))
        if not role or (role.company_id is not None and role.company_id != actor.company_id):
            raise NotFoundError("Role not found")
        if role.to_ref().is_system or role.is_wildcard or role.company_id is None:
            raise AuthorizationError("System roles cannot be modified")

        name = require_non_empty(name, "Role name")
        keys = self._validate_keys(actor, permissions)

        self._roles.update(role_id=role.role_id, name=name, permissions=keys)
        bumped = self._users.bump_token_version_for_role(role.role_id)
        log.info("role_updated", role_id=role.role_id, name=name, holders_invalidated=bumped, updated_by=actor.user_id)
        return bumped

    def _validate_keys(self, actor: Actor, permissions: Sequence[str]) -> List[str]:
        keys = list(dict.fromkeys(str(p).strip() for p in permissions or () if str(p).strip()))
        active = set(self._permissions.active_keys())
        for key in keys:
            if key == WILDCARD_PERMISSION:
                if not actor.is_system_admin:
                    raise AuthorizationError("Only a system admin can grant the wildcard permission")
                continue
            if key not in active:
                raise ValidationError(f"Permission '{key}' is unknown or deprecated")
        return keys
