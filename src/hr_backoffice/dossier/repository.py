from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Protocol, Sequence

from ..core.enums import HrisStatus
from .model import Document, EmployeeProfile, HrisState


class DossierRepository(Protocol):
    """Employee profiles, one per user."""

    def get_by_user(self, user_id: int) -> Optional[EmployeeProfile]:
        raise NotImplementedError

    def get_or_create(self, *, user_id: int, company_id: int, skeleton: Mapping[str, Any]) -> EmployeeProfile:
        """Insert ``skeleton`` sections when the user has no profile yet; return the stored one."""

        raise NotImplementedError

    def save_sections(self, *, user_id: int, sections: Mapping[str, Any]) -> None:
        """Overwrite only the given sections."""

        raise NotImplementedError

    def save_hris(self, *, user_id: int, hris: HrisState, expected_status: Optional[HrisStatus] = None) -> bool:
        """Store ``hris``; with ``expected_status`` only when the stored status still matches."""

        raise NotImplementedError

    def save_documents(self, *, user_id: int, documents: Sequence[Document]) -> None:
        raise NotImplementedError

    def list_by_hris_status(
        self,
        *,
        company_id: int,
        statuses: Iterable[HrisStatus],
        user_ids: Optional[Iterable[int]] = None,
    ) -> Sequence[EmployeeProfile]:
        raise NotImplementedError
