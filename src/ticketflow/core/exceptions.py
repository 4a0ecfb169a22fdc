"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries.
"""

from typing import Optional, List


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class InvalidTransitionException(DomainException):
    """Raised when a ticket status change is not in the transition map."""

    def __init__(
        self,
        current_status: str,
        attempted_status: str,
        allowed_transitions: List[str]
    ):
        self.current_status = current_status
        self.attempted_status = attempted_status
        self.allowed_transitions = list(allowed_transitions)
        super().__init__(
            f"Invalid status transition from '{current_status}' to '{attempted_status}'",
            {
                "currentStatus": current_status,
                "attempted": attempted_status,
                "allowedTransitions": self.allowed_transitions,
            }
        )


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""
