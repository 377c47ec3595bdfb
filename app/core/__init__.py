"""
Core Package - Classroom Observation Platform
app/core/__init__.py

Core infrastructure: exceptions, error handlers, logging setup.
"""

from app.core.exceptions import (
    AuthorizationError,
    ConcurrentModificationException,
    DatabaseConnectionException,
    DuplicateEntityException,
    EntityNotFoundException,
    ForeignKeyViolationException,
    IncompleteObservationError,
    InvalidStateError,
    ObservationError,
    RepositoryException,
    ValidationFailedError,
)

__all__ = [
    # Repository exceptions
    "ConcurrentModificationException",
    "DatabaseConnectionException",
    "DuplicateEntityException",
    "EntityNotFoundException",
    "ForeignKeyViolationException",
    "RepositoryException",
    # Workflow exceptions
    "AuthorizationError",
    "IncompleteObservationError",
    "InvalidStateError",
    "ObservationError",
    "ValidationFailedError",
]
