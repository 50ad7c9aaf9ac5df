# Domain Entities
# Pure business objects with no external dependencies
from .signup import (
    LegacyVolunteer,
    Project,
    ProjectContact,
    ProjectTotals,
    SignupResult,
    Slot,
    SlotMetrics,
    SlotStatus,
    VolunteerInfo,
    VolunteerSignup,
    WithdrawResult,
)

__all__ = [
    "Slot",
    "SlotStatus",
    "SlotMetrics",
    "LegacyVolunteer",
    "VolunteerInfo",
    "VolunteerSignup",
    "SignupResult",
    "WithdrawResult",
    "Project",
    "ProjectContact",
    "ProjectTotals",
]
