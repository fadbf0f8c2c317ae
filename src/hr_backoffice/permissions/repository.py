from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

from .model import PermissionDef, Role


class PermissionRepository(Protocol):
    def list_all(self) -> Sequence[PermissionDef]:
        raise NotImplementedError

    def active_keys(self) -> Sequence[str]:
        raise NotImplementedError

    def upsert(self, permission: PermissionDef) -> None:
        """Insert or update; always clears ``is_deprecated``."""

        raise NotImplementedError

    def deprecate_missing(self, keep_keys: Iterable[str]) -> int:
        raise NotImplementedError


class RoleRepository(Protocol):
    def get_by_id(self, role_id: int) -> Optional[Role]:
        raise NotImplementedError

    def list_for_company(self, company_id: int) -> Sequence[Role]:
        """Roles of the company plus global system roles."""

        raise NotImplementedError

    def list_by_name(self, name: str) -> Sequence[Role]:
        raise NotImplementedError

    def list_for_user(self, user_id: int) -> Sequence[Role]:
        """Roles assigned to the user, in assignment order, with permissions loaded."""

        raise NotImplementedError

    def create(self, *, company_id: Optional[int], name: str, permissions: Sequence[str], is_system: bool = False) -> int:
        raise NotImplementedError

    def update(self, *, role_id: int, name: str, permissions: Sequence[str]) -> bool:
        raise NotImplementedError

    def set_permissions(self, *, role_id: int, permissions: Sequence[str]) -> None:
        raise NotImplementedError
