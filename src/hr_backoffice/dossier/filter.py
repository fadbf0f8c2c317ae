from __future__ import annotations

from typing import Any, Dict, Mapping

from ..core.constants import SENSITIVE_SECTIONS
from ..permissions.model import Actor


class ProfileFieldFilter:
    """Strips sensitive dossier sections for viewers not entitled to them.

    Sections are removed entirely (the keys are absent, not nulled).
    """

    def __init__(self, sensitive_sections=SENSITIVE_SECTIONS, permission: str = "dossier.view.sensitive"):
        self._sensitive = tuple(sensitive_sections)
        self._permission = permission

    def can_view_sensitive(self, actor: Actor, *, is_self: bool) -> bool:
        return is_self or actor.is_system_admin or actor.capabilities.has(self._permission)

    def filter(self, profile: Mapping[str, Any], actor: Actor, *, is_self: bool) -> Dict[str, Any]:
        out = dict(profile)
        if not self.can_view_sensitive(actor, is_self=is_self):
            for section in self._sensitive:
                out.pop(section, None)
        return out
