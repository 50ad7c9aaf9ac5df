"""Slot and volunteer signup domain entities."""

from dataclasses import dataclass, field
from enum import StrEnum


class SlotStatus(StrEnum):
    """Slot lifecycle status."""

    AVAILABLE = "available"
    FILLED = "filled"
    HELD = "held"  # Administrative lock; signups and withdrawals never change it


@dataclass(frozen=True)
class SlotMetrics:
    """Normalized capacity state of a slot."""

    capacity: int = 1
    filled_count: int = 0


@dataclass
class LegacyVolunteer:
    """Single volunteer stored directly on older slot records."""

    email: str = ""
    first_name: str = ""
    last_name: str = ""
    phone: str = ""


@dataclass
class Slot:
    """Canonical in-memory slot, whatever stored shape it was read from."""

    id: str
    project_id: str
    task: str | None = None
    date: str | None = None
    time: str | None = None
    status: SlotStatus = SlotStatus.AVAILABLE
    capacity: int = 1
    filled_count: int = 0
    volunteer: LegacyVolunteer | None = None
    last_volunteer_signup_utc: str | None = None
    etag: str | None = None

    @property
    def spots_remaining(self) -> int:
        return max(0, self.capacity - self.filled_count)

    @property
    def is_held(self) -> bool:
        return self.status == SlotStatus.HELD


@dataclass
class VolunteerInfo:
    """Volunteer details submitted with a signup."""

    first_name: str
    last_name: str
    email: str
    phone: str = ""

    def __post_init__(self):
        self.first_name = (self.first_name or "").strip()
        self.last_name = (self.last_name or "").strip()
        self.email = (self.email or "").strip()
        self.phone = (self.phone or "").strip()


@dataclass
class VolunteerSignup:
    """One volunteer's signup record for a slot."""

    id: str
    project_id: str
    slot_id: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    signed_up_utc: str = ""
    etag: str | None = None


@dataclass
class SignupResult:
    """Outcome of a successful signup."""

    slot: Slot
    volunteer: VolunteerSignup


@dataclass
class WithdrawResult:
    """Outcome of a withdrawal.

    ``counts_stale`` is set when the volunteer record was removed but the
    slot counters could not be updated afterwards; ``slot`` is then None.
    """

    volunteer: VolunteerSignup
    slot: Slot | None = None
    counts_stale: bool = False


@dataclass
class ProjectContact:
    """Project coordinator contact details."""

    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None


@dataclass
class ProjectTotals:
    """Capacity totals across every slot of a project."""

    total_slots: int = 0
    total_capacity: int = 0
    total_filled: int = 0
    spots_remaining: int = 0
    has_open_slots: bool = False


@dataclass
class Project:
    """A volunteer project and, when aggregated, its slot totals."""

    id: str
    category: str = "General"
    title: str | None = None
    description: str | None = None
    contact: ProjectContact = field(default_factory=ProjectContact)
    totals: ProjectTotals = field(default_factory=ProjectTotals)
