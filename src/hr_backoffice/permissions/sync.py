from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import structlog

from ..core.constants import ADMIN_ROLE_NAME, WILDCARD_PERMISSION
from .model import PermissionDef
from .repository import PermissionRepository, RoleRepository

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SyncResult:
    upserted: int
    deprecated: int
    admin_roles_updated: int


class PermissionSync:
    """Reconciles the static catalog into storage.

    Idempotent: run once at process start. New keys are inserted, keys missing from the
    catalog are marked deprecated, and every role named ``Admin`` is set to the full
    active key list.
    """

    def __init__(self, permissions: PermissionRepository, roles: RoleRepository):
        self._permissions = permissions
        self._roles = roles

    def reconcile(self, catalog: Sequence[PermissionDef]) -> SyncResult:
        keys = [p.key for p in catalog]
        for perm in catalog:
            self._permissions.upsert(perm)

        # The wildcard is a stored permission but never part of the config catalog.
        deprecated = self._permissions.deprecate_missing([*keys, WILDCARD_PERMISSION])

        admin_roles = self._roles.list_by_name(ADMIN_ROLE_NAME)
        for role in admin_roles:
            self._roles.set_permissions(role_id=role.role_id, permissions=keys)
        if not admin_roles:
            log.warning("admin_role_missing", role=ADMIN_ROLE_NAME)

        result = SyncResult(upserted=len(keys), deprecated=deprecated, admin_roles_updated=len(admin_roles))
        log.info(
            "permissions_synced",
            upserted=result.upserted,
            deprecated=result.deprecated,
            admin_roles_updated=result.admin_roles_updated,
        )
        return result
