from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import User


class UserRepository(Protocol):
    """Repository interface for users.

    Note (DIP): services depend on this interface, not on a concrete database.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def list_active(self) -> Sequence[User]:
        raise NotImplementedError

    def list_subordinate_ids(self, manager_id: int) -> Sequence[int]:
        raise NotImplementedError

    def create_company(self, name: str) -> int:
        raise NotImplementedError

    def create_user(
        self,
        *,
        company_id: int,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        department: Optional[str] = None,
        employee_code: Optional[str] = None,
        joining_date: Optional[date] = None,
    ) -> int:
        raise NotImplementedError

    def set_roles(self, user_id: int, role_ids: Sequence[int]) -> None:
        raise NotImplementedError

    def set_managers(self, user_id: int, manager_ids: Sequence[int]) -> None:
        raise NotImplementedError

    def bump_token_version(self, user_id: int) -> int:
        """Increment and return the user's token version."""

        raise NotImplementedError

    def bump_token_version_for_role(self, role_id: int) -> int:
        """Increment the token version of every holder of ``role_id``; returns count."""

        raise NotImplementedError
