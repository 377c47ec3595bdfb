"""
Custom Exceptions - Classroom Observation Platform
app/core/exceptions.py

Repository exceptions for storage operations and workflow exceptions for
observation editing and lifecycle transitions.
"""

from typing import List, Optional


class RepositoryException(Exception):
    """Base exception for repository operations."""

    pass


class EntityNotFoundException(RepositoryException):
    """Entity not found in database."""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with ID {entity_id} not found")


class DuplicateEntityException(RepositoryException):
    """Duplicate entity violation."""

    def __init__(self, message: str = "Entity already exists"):
        self.message = message
        super().__init__(message)


class DatabaseConnectionException(RepositoryException):
    """Database connection failure."""

    def __init__(self, message: str = "Database connection failed"):
        self.message = message
        super().__init__(message)


class ForeignKeyViolationException(RepositoryException):
    """Foreign key constraint violation."""

    def __init__(self, message: str = "Foreign key constraint violation"):
        self.message = message
        super().__init__(message)


class ConcurrentModificationException(RepositoryException):
    """Row changed between read and conditional write."""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"{entity_type} with ID {entity_id} was modified by another request"
        )


class ObservationError(Exception):
    """Base exception for rejected observation operations."""

    error_code = "OBSERVATION_ERROR"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class AuthorizationError(ObservationError):
    """Actor is not allowed to perform the operation."""

    error_code = "FORBIDDEN"


class InvalidStateError(ObservationError):
    """Operation is not permitted from the observation's current status."""

    error_code = "INVALID_STATE"


class IncompleteObservationError(ObservationError):
    """Observation lacks the data a transition requires."""

    error_code = "INCOMPLETE_OBSERVATION"


class ValidationFailedError(ObservationError):
    """Input failed one or more validation rules."""

    error_code = "VALIDATION_ERROR"

    def __init__(self, errors: List[str], reason: Optional[str] = None):
        self.errors = list(errors)
        super().__init__(reason or "; ".join(self.errors))
