from __future__ import annotations

from typing import Protocol, Sequence

from .model import AuditEntry


class AuditRepository(Protocol):
    def append(self, entry: AuditEntry) -> None:
        raise NotImplementedError

    def list_for_target(self, *, company_id: int, target_user_id: int, module: str, limit: int) -> Sequence[AuditEntry]:
        """Newest first."""

        raise NotImplementedError
