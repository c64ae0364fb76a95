"""Error model shared by the domain components and the HTTP layer."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Categories of domain errors."""

    ValidationError = "validation_error"
    """Missing required field or malformed identifier (400)."""

    NotFoundError = "not_found_error"
    """Referenced asset, incident or admin does not exist (404)."""

    InvalidTransitionError = "invalid_transition_error"
    """Requested status change is not allowed by the state machine (400)."""

    DependencyError = "dependency_error"
    """Database or another dependency failed (500)."""

    UnknownError = "unknown_error"
    """Unknown or unclassified error."""


class AssetDeskError(Exception):
    """Base error raised by AssetDesk components.

    Example:
        ```python
        raise AssetDeskError(
            category=ErrorCategory.NotFoundError,
            message="Incident not found",
            details={"incident_id": "65f0..."},
        )
        ```
    """

    default_category = ErrorCategory.UnknownError

    def __init__(
        self,
        message: str,
        category: ErrorCategory | str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize AssetDeskError.

        Args:
            message: Human-readable error message.
            category: Error category. Defaults to the class category.
            details: Additional error details.
        """
        if category is None:
            category = self.default_category
        self.category = ErrorCategory(category) if isinstance(category, str) else category
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(category={self.category.value}, message={self.message!r})"

    def __str__(self) -> str:
        return self.message


class ValidationError(AssetDeskError):
    """Raised when input validation fails."""

    default_category = ErrorCategory.ValidationError

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message, details={"field": field} if field else None)

    def __str__(self) -> str:
        if self.field:
            return f"Validation error in field '{self.field}': {self.message}"
        return self.message


class NotFoundError(AssetDeskError):
    """Raised when a referenced document does not exist."""

    default_category = ErrorCategory.NotFoundError


class InvalidStateTransitionError(AssetDeskError):
    """Raised when an invalid status transition is attempted."""

    default_category = ErrorCategory.InvalidTransitionError
