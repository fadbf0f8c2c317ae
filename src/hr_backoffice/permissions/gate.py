from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

import structlog

from ..core.constants import SELF_RESTRICTED_SECTIONS
from ..core.exceptions import AuthorizationError
from .model import Actor, Target

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ActionPolicy:
    """How one action family is authorized.

    ``self_service``: the target's owner may act without holding ``permission``.
    ``allow_manager_bypass``: one of the owner's reporting managers may act.
    ``restricted_sections``: sections that still need ``restricted_permission`` when
    the owner acts on their own record.
    """

    permission: str
    self_service: bool = False
    allow_manager_bypass: bool = False
    restricted_sections: frozenset = frozenset()
    restricted_permission: Optional[str] = None


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ""
    permission: Optional[str] = None


ACTION_POLICIES: Mapping[str, ActionPolicy] = {
    # Attendance
    "attendance.clock": ActionPolicy("attendance.clock_in", self_service=True),
    "attendance.view": ActionPolicy("attendance.view", self_service=True, allow_manager_bypass=True),
    "attendance.update_self": ActionPolicy("attendance.update_self"),
    "attendance.update": ActionPolicy("attendance.update", allow_manager_bypass=True),
    "attendance.approve": ActionPolicy("attendance.approve", allow_manager_bypass=True),
    # Timesheets and work logs
    "timesheet.view": ActionPolicy("timesheet.approve", self_service=True, allow_manager_bypass=True),
    "timesheet.submit": ActionPolicy("timesheet.submit", self_service=True),
    "timesheet.approve": ActionPolicy("timesheet.approve", allow_manager_bypass=True),
    "worklog.create": ActionPolicy("task.update", self_service=True),
    "worklog.update": ActionPolicy("task.update", self_service=True, allow_manager_bypass=True),
    "worklog.delete": ActionPolicy("task.update", self_service=True),
    # Leave
    "leave.view": ActionPolicy("leave.approve", self_service=True, allow_manager_bypass=True),
    "leave.apply": ActionPolicy("leave.apply", self_service=True),
    "leave.approve": ActionPolicy("leave.approve", allow_manager_bypass=True),
    "leave.cancel": ActionPolicy("leave.approve", self_service=True),
    "leave.manage": ActionPolicy("leave.manage"),
    # Dossier; HRIS approval has no manager bypass.
    "dossier.view": ActionPolicy("dossier.view", self_service=True),
    "dossier.edit": ActionPolicy(
        "dossier.edit",
        self_service=True,
        restricted_sections=frozenset(SELF_RESTRICTED_SECTIONS),
        restricted_permission="dossier.edit.sensitive",
    ),
    "dossier.submit_hris": ActionPolicy("dossier.edit", self_service=True),
    "dossier.approve": ActionPolicy("dossier.approve", allow_manager_bypass=False),
    # Administration
    "user.create": ActionPolicy("user.create"),
    "user.read": ActionPolicy("user.read", self_service=True),
    "user.update": ActionPolicy("user.update"),
    "role.read": ActionPolicy("role.read"),
    "role.create": ActionPolicy("role.create"),
    "role.update": ActionPolicy("role.update"),
}


class AuthorizationGate:
    """Pure allow/deny decisions; first matching rule wins."""

    def __init__(self, policies: Optional[Mapping[str, ActionPolicy]] = None):
        self._policies = dict(policies if policies is not None else ACTION_POLICIES)

    def can_perform(
        self,
        actor: Actor,
        action: str,
        target: Target,
        context: Optional[Mapping[str, object]] = None,
    ) -> Decision:
        if actor.is_system_admin:
            return Decision(True, "system admin")

        policy = self._policies.get(action)
        if policy is None:
            return Decision(False, f"No permission mapping for action '{action}'")

        if target.company_id != actor.company_id:
            return Decision(False, "Cross-tenant access is not permitted", policy.permission)

        is_self = target.owner_id == actor.user_id
        section = (context or {}).get("section")

        if is_self and policy.self_service:
            if section is None or section not in policy.restricted_sections:
                return Decision(True, "owner")
            restricted = policy.restricted_permission or policy.permission
            if actor.capabilities.has(restricted):
                return Decision(True, "owner with permission")
            return Decision(False, f"Editing '{section}' requires permission '{restricted}'", restricted)

        if policy.allow_manager_bypass and actor.user_id in target.manager_ids:
            return Decision(True, "reporting manager")

        if actor.capabilities.has(policy.permission):
            return Decision(True, "permission")

        return Decision(False, f"Missing permission '{policy.permission}'", policy.permission)

    def require(
        self,
        actor: Actor,
        action: str,
        target: Target,
        context: Optional[Mapping[str, object]] = None,
    ) -> Decision:
        decision = self.can_perform(actor, action, target, context)
        if not decision.allowed:
            log.info(
                "authorization_denied",
                action=action,
                user_id=actor.user_id,
                target_user_id=target.owner_id,
                permission=decision.permission,
                reason=decision.reason,
            )
            if decision.permission:
                raise AuthorizationError(
                    f"Forbidden: you do not have permission '{decision.permission}'",
                    permission=decision.permission,
                )
            raise AuthorizationError(f"Forbidden: {decision.reason}")
        return decision

    def is_privileged(self, actor: Actor, action: str, target: Target) -> bool:
        """True when ``actor`` may act on ``target`` for a reason other than ownership.

        Used by lock guards: managers and permission holders may edit locked months.
        """
        if actor.is_system_admin:
            return True
        policy = self._policies.get(action)
        if policy is None or target.company_id != actor.company_id:
            return False
        if policy.allow_manager_bypass and actor.user_id in target.manager_ids:
            return True
        return actor.capabilities.has(policy.permission)
