"""
Repositories Package - Classroom Observation Platform
app/repositories/__init__.py

Data access layer for Snowflake database operations.
"""

from app.repositories.base import BaseRepository
from app.repositories.audit_repository import AuditLogRepository
from app.repositories.observation_repository import ObservationRepository
from app.repositories.rubric_repository import RubricRepository

__all__ = [
    "BaseRepository",
    "AuditLogRepository",
    "ObservationRepository",
    "RubricRepository",
]
