"""
Signup and volunteer API schemas.
"""

from typing import List, Optional

from .base import CamelModel
from .slot import SlotResponse


class SignupRequest(CamelModel):
    """Public signup body. Fields are optional here so missing ones yield 400, not 422."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class VolunteerResponse(CamelModel):
    """A volunteer signup record."""

    id: str
    project_id: str
    slot_id: str
    first_name: str
    last_name: str
    email: str
    phone: str = ""
    signed_up_utc: str = ""


class SignupResponse(CamelModel):
    message: str = "Slot signed up successfully!"
    slot: SlotResponse
    volunteer: VolunteerResponse


class VolunteerListResponse(CamelModel):
    volunteers: List[VolunteerResponse]


class WithdrawResponse(CamelModel):
    """Result of removing a volunteer.

    ``slot`` is null and ``countsStale`` true when the record was removed but
    the slot counters could not be updated.
    """

    message: str
    slot: Optional[SlotResponse] = None
    volunteer: VolunteerResponse
    counts_stale: bool = False
