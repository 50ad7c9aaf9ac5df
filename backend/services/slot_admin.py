"""
Slot administration: create, update and delete slots.
"""

import logging
from collections.abc import Mapping
from typing import Any
from uuid import uuid4

from core.domain.signup import LegacyVolunteer, Slot, SlotStatus
from core.errors import (
    SlotConflictError,
    SlotNotFoundError,
    StorageUnavailableError,
    ValidationError,
)
from core.interfaces.entity_store import (
    Entity,
    EntityNotFoundError,
    EntityStore,
    PreconditionFailedError,
    StoreUnavailableError,
    UpdateMode,
)
from services.slot_metrics import next_status, parse_int
from services.slot_occupancy import count_occupants
from services.slot_schema import (
    legacy_volunteer_properties,
    new_slot_entity,
    slot_from_entity,
    volunteer_partition,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("task", "date", "time", "status", "capacity", "volunteer")

_TEXT_FIELDS = {"task": "Task", "date": "Date", "time": "Time"}


def _positive_capacity(value: Any) -> int:
    capacity = parse_int(value)
    if capacity is None or capacity < 1:
        raise ValidationError("Capacity must be a positive whole number.")
    return capacity


def _parse_legacy_volunteer(value: Any) -> LegacyVolunteer | None:
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ValidationError("Volunteer must be an object or null.")
    return LegacyVolunteer(
        email=str(value.get("email") or ""),
        first_name=str(value.get("firstName") or value.get("first_name") or ""),
        last_name=str(value.get("lastName") or value.get("last_name") or ""),
        phone=str(value.get("phone") or ""),
    )


class SlotAdminService:
    """Administrative slot management."""

    def __init__(
        self,
        store: EntityStore,
        slots_table: str = "Slots",
        volunteers_table: str = "SlotVolunteers",
    ):
        self.store = store
        self.slots_table = slots_table
        self.volunteers_table = volunteers_table

    async def create_slot(
        self,
        project_id: str,
        task: str | None,
        date: str | None,
        time: str | None,
        capacity: Any = 1,
    ) -> Slot:
        """Create an available slot with no signups."""
        task, date, time = ((value or "").strip() for value in (task, date, time))
        if not (task and date and time):
            raise ValidationError("Missing required slot info.")
        capacity = _positive_capacity(1 if capacity is None else capacity)

        entity = new_slot_entity(project_id, str(uuid4()), task, date, time, capacity)
        try:
            entity.etag = await self.store.create(self.slots_table, entity)
        except StoreUnavailableError as e:
            raise StorageUnavailableError() from e

        logger.info("Slot created", extra={"project_id": project_id, "slot_id": entity.row_key})
        return slot_from_entity(entity)

    async def update_slot(
        self,
        project_id: str,
        slot_id: str,
        changes: Mapping[str, Any],
    ) -> Slot:
        """
        Apply field changes to a slot.

        Args:
            project_id: Project owning the slot
            slot_id: Slot to update
            changes: Any of ``task``, ``date``, ``time``, ``status``,
                ``capacity`` and ``volunteer``; a ``volunteer`` of None clears
                the legacy single-volunteer fields

        Raises:
            ValidationError: No recognized field, or an invalid value
            SlotNotFoundError: Slot does not exist
            SlotConflictError: Slot changed since it was read
        """
        payload = {key: changes[key] for key in UPDATABLE_FIELDS if key in changes}
        if not payload:
            raise ValidationError("No recognized fields provided to update.")

        slot = await self._load_slot(project_id, slot_id)
        properties: dict[str, Any] = {}

        for key, column in _TEXT_FIELDS.items():
            if key in payload:
                properties[column] = "" if payload[key] is None else str(payload[key])

        if payload.get("status") is not None:
            try:
                properties["Status"] = SlotStatus(str(payload["status"]).strip().lower()).value
            except ValueError:
                raise ValidationError("Status must be available, filled, or held.")

        has_legacy_volunteer = slot.volunteer is not None
        if "volunteer" in payload:
            volunteer = _parse_legacy_volunteer(payload["volunteer"])
            properties.update(legacy_volunteer_properties(volunteer))
            has_legacy_volunteer = volunteer is not None

        if "capacity" in payload or "volunteer" in payload:
            capacity = slot.capacity
            filled = await self._current_filled(slot, has_legacy_volunteer)
            if "capacity" in payload:
                capacity = _positive_capacity(payload["capacity"])
                if capacity < filled:
                    raise ValidationError(
                        f"Capacity cannot be lower than the {filled} volunteers already signed up."
                    )
                properties["Capacity"] = capacity
            properties["FilledCount"] = filled
            if "Status" not in properties:
                properties["Status"] = next_status(slot.status, filled, capacity).value

        patch = Entity(partition_key=project_id, row_key=slot_id, properties=properties)
        try:
            patch.etag = await self.store.update(
                self.slots_table, patch, etag=slot.etag, mode=UpdateMode.MERGE
            )
        except EntityNotFoundError as e:
            raise SlotNotFoundError() from e
        except PreconditionFailedError as e:
            raise SlotConflictError("Slot was changed by someone else. Please refresh.") from e
        except StoreUnavailableError as e:
            raise StorageUnavailableError() from e

        logger.info(
            "Slot updated (%s)",
            ", ".join(sorted(payload)),
            extra={"project_id": project_id, "slot_id": slot_id},
        )
        return await self._load_slot(project_id, slot_id)

    async def delete_slot(self, project_id: str, slot_id: str) -> None:
        """Delete a slot, then remove its volunteer records on a best-effort basis."""
        slot = await self._load_slot(project_id, slot_id)
        try:
            await self.store.delete(self.slots_table, project_id, slot_id, etag=slot.etag)
        except EntityNotFoundError as e:
            raise SlotNotFoundError() from e
        except PreconditionFailedError as e:
            raise SlotConflictError("Slot was changed by someone else. Please refresh.") from e
        except StoreUnavailableError as e:
            raise StorageUnavailableError() from e

        removed = 0
        partition = volunteer_partition(project_id, slot_id)
        try:
            async for record in self.store.query(self.volunteers_table, partition_key=partition):
                try:
                    await self.store.delete(self.volunteers_table, partition, record.row_key)
                    removed += 1
                except EntityNotFoundError:
                    pass
        except Exception:
            logger.exception(
                "Slot deleted but volunteer records were not all removed",
                extra={"project_id": project_id, "slot_id": slot_id},
            )
        logger.info(
            "Slot deleted with %d volunteer records",
            removed,
            extra={"project_id": project_id, "slot_id": slot_id},
        )

    async def _load_slot(self, project_id: str, slot_id: str) -> Slot:
        try:
            entity = await self.store.get(self.slots_table, project_id, slot_id)
        except EntityNotFoundError as e:
            raise SlotNotFoundError() from e
        except StoreUnavailableError as e:
            raise StorageUnavailableError() from e
        return slot_from_entity(entity)

    async def _current_filled(self, slot: Slot, has_legacy_volunteer: bool) -> int:
        try:
            return await count_occupants(
                self.store,
                self.volunteers_table,
                slot.project_id,
                slot.id,
                has_legacy_volunteer=has_legacy_volunteer,
            )
        except StoreUnavailableError as e:
            raise StorageUnavailableError() from e
