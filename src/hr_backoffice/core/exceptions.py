from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class AuthenticationError(DomainError):
    """Raised when a token is missing, invalid, expired or stale."""


class AuthorizationError(DomainError):
    """Raised when a principal lacks the permission or relationship for an action."""

    def __init__(self, message: str, *, permission: Optional[str] = None):
        super().__init__(message)
        self.permission = permission


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class StateConflictError(DomainError):
    """Raised when an entity's current state forbids the requested action."""


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""


class DependencyError(DomainError):
    """Raised when an external collaborator (file store, ...) fails."""


class DuplicateKeyError(Exception):
    """Raised by repositories when an insert hits a unique index."""
