"""
Slot API schemas.
"""

from typing import Any, Optional

from .base import CamelModel


class SlotVolunteer(CamelModel):
    """Legacy single volunteer stored on a slot."""

    email: str = ""
    first_name: str = ""
    last_name: str = ""
    phone: str = ""


class SlotResponse(CamelModel):
    """Canonical slot projection."""

    id: str
    project_id: str
    task: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    status: str
    capacity: int
    filled_count: int
    spots_remaining: int
    volunteer: Optional[SlotVolunteer] = None
    last_volunteer_signup_utc: Optional[str] = None


class SlotCreateRequest(CamelModel):
    """Body for creating a slot. Missing fields are reported as 400 by the service."""

    task: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    capacity: Optional[Any] = 1


class SlotUpdateRequest(CamelModel):
    """
    Body for updating a slot.

    Only fields present in the request are applied; an explicit
    ``"volunteer": null`` clears the legacy volunteer.
    """

    task: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    status: Optional[str] = None
    capacity: Optional[Any] = None
    volunteer: Optional[SlotVolunteer] = None


class SlotCreateResponse(CamelModel):
    message: str = "Slot created successfully!"
    slot_id: str
    slot: SlotResponse


class SlotUpdateResponse(CamelModel):
    message: str = "Slot updated successfully."
    slot: SlotResponse
