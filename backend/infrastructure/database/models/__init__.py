"""
SQLAlchemy database models.
"""

from .base import Base, TimestampMixin
from .entity import EntityRecord

__all__ = [
    "Base",
    "TimestampMixin",
    "EntityRecord",
]
