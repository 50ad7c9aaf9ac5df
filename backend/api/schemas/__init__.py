"""
API request and response schemas.
"""

from .project import ProjectResponse
from .signup import (
    SignupRequest,
    SignupResponse,
    VolunteerListResponse,
    VolunteerResponse,
    WithdrawResponse,
)
from .slot import (
    SlotCreateRequest,
    SlotCreateResponse,
    SlotResponse,
    SlotUpdateRequest,
    SlotUpdateResponse,
)

__all__ = [
    "ProjectResponse",
    "SignupRequest",
    "SignupResponse",
    "SlotCreateRequest",
    "SlotCreateResponse",
    "SlotResponse",
    "SlotUpdateRequest",
    "SlotUpdateResponse",
    "VolunteerListResponse",
    "VolunteerResponse",
    "WithdrawResponse",
]
