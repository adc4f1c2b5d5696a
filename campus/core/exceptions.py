"""
Custom exceptions for the campus management system.
"""

from typing import Optional, Any, Dict


class CampusException(Exception):
    """Base exception for all campus-related errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ValidationError(CampusException):
    """Raised when data validation fails."""
    pass


class InvalidStateError(CampusException):
    """Raised when an operation is not allowed in the entity's current status."""
    pass


class ResourceNotFoundError(CampusException):
    """Raised when a requested resource is not found."""
    pass


class DuplicateEntityError(CampusException):
    """Raised when attempting to create a duplicate entity."""
    pass


class SchedulingError(CampusException):
    """Raised when scheduling operations fail."""
    pass


class PersistenceError(CampusException):
    """Raised when persistence operations fail."""
    pass


class ConfigurationError(CampusException):
    """Raised when configuration is invalid."""
    pass


class ReportGenerationError(CampusException):
    """Raised when a report cannot be generated or exported."""
    pass
