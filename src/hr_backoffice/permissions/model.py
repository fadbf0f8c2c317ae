from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple

from ..core.constants import SUPER_ADMIN_ROLE_NAME


@dataclass(frozen=True)
class PermissionDef:
    """A permission key as stored in the catalog."""

    key: str
    module: str
    description: str = ""
    is_deprecated: bool = False


@dataclass(frozen=True)
class Role:
    """Stored role (tenant-scoped; ``company_id`` None for global system roles)."""

    role_id: int
    name: str
    company_id: Optional[int]
    permissions: Tuple[str, ...] = ()
    is_system: bool = False
    is_wildcard: bool = False
    is_active: bool = True

    def to_ref(self) -> "RoleRef":
        # The reserved super-admin name is folded into the flag here, once, so checks
        # never compare display names.
        return RoleRef(
            role_id=self.role_id,
            name=self.name,
            permissions=frozenset(self.permissions),
            is_system=self.is_system or self.name == SUPER_ADMIN_ROLE_NAME,
            is_wildcard=self.is_wildcard,
        )


@dataclass(frozen=True)
class RoleRef:
    """Role as seen by the resolver. ``permissions`` None means "not loaded"."""

    role_id: int
    name: str
    permissions: Optional[FrozenSet[str]] = None
    is_system: bool = False
    is_wildcard: bool = False


@dataclass(frozen=True)
class Principal:
    user_id: int
    company_id: int
    roles: Tuple[RoleRef, ...] = ()
    token_version: int = 0


@dataclass(frozen=True)
class Capabilities:
    """Flat effective permission set, resolved once per request."""

    is_system_admin: bool = False
    keys: FrozenSet[str] = frozenset()

    def has(self, key: str) -> bool:
        return self.is_system_admin or key in self.keys


@dataclass(frozen=True)
class Actor:
    """Authenticated principal together with its resolved capabilities."""

    principal: Principal
    capabilities: Capabilities

    @property
    def user_id(self) -> int:
        return self.principal.user_id

    @property
    def company_id(self) -> int:
        return self.principal.company_id

    @property
    def is_system_admin(self) -> bool:
        return self.capabilities.is_system_admin


@dataclass(frozen=True)
class Target:
    """The entity owner an action is evaluated against."""

    owner_id: int
    company_id: int
    manager_ids: FrozenSet[int] = field(default_factory=frozenset)
