from __future__ import annotations

from typing import Callable, Iterable, Set

from ..core.constants import WILDCARD_PERMISSION
from .model import Capabilities, Principal


class PermissionResolver:
    """Flattens a principal's roles into :class:`Capabilities`.

    ``catalog_keys`` is called at resolution time so wildcard expansion always sees the
    currently registered (non-deprecated) keys.
    """

    def __init__(self, catalog_keys: Callable[[], Iterable[str]]):
        self._catalog_keys = catalog_keys

    def resolve(self, principal: Principal) -> Capabilities:
        roles = principal.roles or ()

        if any(role.is_system or role.is_wildcard for role in roles):
            return Capabilities(is_system_admin=True, keys=frozenset())

        keys: Set[str] = set()
        for role in roles:
            # Roles whose permissions were not loaded contribute nothing.
            keys.update(role.permissions or ())

        if WILDCARD_PERMISSION in keys:
            keys.discard(WILDCARD_PERMISSION)
            keys.update(k for k in self._catalog_keys() if k != WILDCARD_PERMISSION)

        return Capabilities(is_system_admin=False, keys=frozenset(keys))
