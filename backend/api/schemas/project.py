"""
Project API schemas.
"""

from typing import Optional

from .base import CamelModel


class ProjectContactResponse(CamelModel):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None


class ProjectTotalsResponse(CamelModel):
    """Capacity totals across a project's slots."""

    total_slots: int = 0
    total_capacity: int = 0
    total_filled: int = 0
    spots_remaining: int = 0
    has_open_slots: bool = False


class ProjectResponse(CamelModel):
    """A project with its slot totals."""

    id: str
    category: str
    title: Optional[str] = None
    description: Optional[str] = None
    contact: ProjectContactResponse
    totals: ProjectTotalsResponse
