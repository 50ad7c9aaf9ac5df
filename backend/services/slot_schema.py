"""
Mapping between stored entities and domain objects.

Stored property names keep the PascalCase shape of the existing tables
(``Task``, ``FilledCount``, ``SignedUpUtc`` ...). Nothing outside this module
and ``services.slot_metrics`` reads raw properties.
"""

import secrets
import string
from datetime import UTC, datetime

from core.domain.signup import (
    LegacyVolunteer,
    Project,
    ProjectContact,
    Slot,
    SlotStatus,
    VolunteerInfo,
    VolunteerSignup,
)
from core.interfaces.entity_store import Entity
from services.slot_metrics import normalize_slot_metrics, parse_status

DEFAULT_CATEGORY = "General"

_BASE36 = string.digits + string.ascii_lowercase


def volunteer_partition(project_id: str, slot_id: str) -> str:
    """Partition holding every signup record of one slot."""
    return f"{project_id}|{slot_id}"


def new_volunteer_row_key(now: datetime | None = None) -> str:
    """Time-ordered unique row key: epoch milliseconds plus a random suffix.

    Lexicographic order of the keys follows signup order (to the millisecond).
    """
    now = now or datetime.now(UTC)
    millis = int(now.timestamp() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(8))
    return f"{millis:013d}_{suffix}"


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _text(value) -> str | None:
    return None if value is None else str(value)


# ---------------------------------------------------------------------------
# Slots
# ---------------------------------------------------------------------------


def slot_from_entity(entity: Entity) -> Slot:
    """Canonical slot from any stored slot shape."""
    props = entity.properties
    metrics = normalize_slot_metrics(props)

    volunteer = None
    if props.get("VolunteerEmail"):
        volunteer = LegacyVolunteer(
            email=str(props.get("VolunteerEmail") or ""),
            first_name=str(props.get("VolunteerFirstName") or ""),
            last_name=str(props.get("VolunteerLastName") or ""),
            phone=str(props.get("VolunteerPhone") or ""),
        )

    return Slot(
        id=entity.row_key,
        project_id=entity.partition_key,
        task=_text(props.get("Task")),
        date=_text(props.get("Date")),
        time=_text(props.get("Time")),
        status=parse_status(props.get("Status"), metrics),
        capacity=metrics.capacity,
        filled_count=metrics.filled_count,
        volunteer=volunteer,
        last_volunteer_signup_utc=_text(props.get("LastVolunteerSignupUtc")),
        etag=entity.etag,
    )


def new_slot_entity(
    project_id: str,
    slot_id: str,
    task: str,
    date: str,
    time: str,
    capacity: int,
) -> Entity:
    return Entity(
        partition_key=project_id,
        row_key=slot_id,
        properties={
            "Task": task,
            "Date": date,
            "Time": time,
            "Status": SlotStatus.AVAILABLE.value,
            "Capacity": capacity,
            "FilledCount": 0,
        },
    )


def slot_counter_patch(
    slot: Slot,
    filled_count: int,
    status: SlotStatus,
    signed_up_utc: str | None = None,
) -> Entity:
    """Merge patch writing the slot's counters and status."""
    properties = {
        "FilledCount": filled_count,
        "Status": status.value,
    }
    if signed_up_utc:
        properties["LastVolunteerSignupUtc"] = signed_up_utc
    return Entity(partition_key=slot.project_id, row_key=slot.id, properties=properties)


def legacy_volunteer_properties(volunteer: LegacyVolunteer | None) -> dict[str, str]:
    """Stored single-volunteer fields; None clears them."""
    volunteer = volunteer or LegacyVolunteer()
    return {
        "VolunteerEmail": volunteer.email,
        "VolunteerFirstName": volunteer.first_name,
        "VolunteerLastName": volunteer.last_name,
        "VolunteerPhone": volunteer.phone,
    }


# ---------------------------------------------------------------------------
# Volunteer signups
# ---------------------------------------------------------------------------


def new_volunteer_entity(
    project_id: str,
    slot_id: str,
    volunteer: VolunteerInfo,
) -> Entity:
    signed_up = utc_now_iso()
    return Entity(
        partition_key=volunteer_partition(project_id, slot_id),
        row_key=new_volunteer_row_key(),
        properties={
            "ProjectId": project_id,
            "SlotId": slot_id,
            "FirstName": volunteer.first_name,
            "LastName": volunteer.last_name,
            "Email": volunteer.email,
            "Phone": volunteer.phone or "",
            "SignedUpUtc": signed_up,
        },
    )


def volunteer_from_entity(entity: Entity) -> VolunteerSignup:
    props = entity.properties
    project_id, _, slot_id = entity.partition_key.partition("|")
    return VolunteerSignup(
        id=entity.row_key,
        project_id=str(props.get("ProjectId") or project_id),
        slot_id=str(props.get("SlotId") or slot_id),
        first_name=str(props.get("FirstName") or ""),
        last_name=str(props.get("LastName") or ""),
        email=str(props.get("Email") or ""),
        phone=str(props.get("Phone") or ""),
        signed_up_utc=str(props.get("SignedUpUtc") or ""),
        etag=entity.etag,
    )


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


def project_from_entity(entity: Entity) -> Project:
    props = entity.properties
    return Project(
        id=entity.row_key,
        category=entity.partition_key or DEFAULT_CATEGORY,
        title=_text(props.get("Title")),
        description=_text(props.get("Description")),
        contact=ProjectContact(
            email=_text(props.get("ContactEmail")),
            first_name=_text(props.get("ContactFirstName")),
            last_name=_text(props.get("ContactLastName")),
            phone=_text(props.get("ContactPhone")),
        ),
    )
