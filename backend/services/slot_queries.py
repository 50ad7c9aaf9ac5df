"""
Read-side queries over projects, slots and volunteer signups.
"""

import asyncio
import dataclasses
import logging

from core.domain.signup import Project, ProjectTotals, Slot, SlotStatus, VolunteerSignup
from core.errors import StorageUnavailableError
from core.interfaces.entity_store import EntityStore, StoreUnavailableError
from services.slot_schema import (
    project_from_entity,
    slot_from_entity,
    volunteer_from_entity,
    volunteer_partition,
)

logger = logging.getLogger(__name__)


def compute_project_totals(slots: list[Slot]) -> ProjectTotals:
    """Aggregate capacity across slots; each slot counts at most its own capacity as filled."""
    totals = ProjectTotals()
    for slot in slots:
        filled = min(slot.filled_count, slot.capacity)
        totals.total_slots += 1
        totals.total_capacity += slot.capacity
        totals.total_filled += filled
        totals.spots_remaining += slot.capacity - filled
        if not slot.is_held and slot.spots_remaining > 0:
            totals.has_open_slots = True
    return totals


class SlotQueryService:
    """Lists slots, open slots, volunteers and projects with capacity totals."""

    def __init__(
        self,
        store: EntityStore,
        projects_table: str = "Projects",
        slots_table: str = "Slots",
        volunteers_table: str = "SlotVolunteers",
    ):
        self.store = store
        self.projects_table = projects_table
        self.slots_table = slots_table
        self.volunteers_table = volunteers_table

    async def list_slots(self, project_id: str) -> list[Slot]:
        """All slots of a project in store order, normalized."""
        try:
            return [
                slot_from_entity(entity)
                async for entity in self.store.query(self.slots_table, partition_key=project_id)
            ]
        except StoreUnavailableError as e:
            raise StorageUnavailableError() from e

    async def list_open_slots(self, project_id: str) -> list[Slot]:
        """Slots stored as available that still have spots remaining."""
        try:
            slots = [
                slot_from_entity(entity)
                async for entity in self.store.query(
                    self.slots_table,
                    partition_key=project_id,
                    filters={"Status": SlotStatus.AVAILABLE.value},
                )
            ]
        except StoreUnavailableError as e:
            raise StorageUnavailableError() from e
        return [slot for slot in slots if slot.spots_remaining > 0]

    async def list_volunteers(self, project_id: str, slot_id: str) -> list[VolunteerSignup]:
        """Volunteers of a slot, oldest signup first; records without a timestamp lead."""
        partition = volunteer_partition(project_id, slot_id)
        try:
            volunteers = [
                volunteer_from_entity(entity)
                async for entity in self.store.query(self.volunteers_table, partition_key=partition)
            ]
        except StoreUnavailableError as e:
            raise StorageUnavailableError() from e
        # sorted() is stable, so equal timestamps keep store order
        return sorted(volunteers, key=lambda v: v.signed_up_utc or "")

    async def list_projects_with_totals(self) -> list[Project]:
        """
        Every project with slot capacity totals.

        A project whose slots cannot be aggregated is listed with zero totals.
        """
        try:
            projects = [
                project_from_entity(entity)
                async for entity in self.store.query(self.projects_table)
            ]
        except StoreUnavailableError as e:
            raise StorageUnavailableError() from e

        totals = await asyncio.gather(*(self._project_totals(p.id) for p in projects))
        return [
            dataclasses.replace(project, totals=project_totals)
            for project, project_totals in zip(projects, totals)
        ]

    async def _project_totals(self, project_id: str) -> ProjectTotals:
        try:
            slots = [
                slot_from_entity(entity)
                async for entity in self.store.query(self.slots_table, partition_key=project_id)
            ]
        except Exception:
            logger.exception(
                "Failed to aggregate slots for project", extra={"project_id": project_id}
            )
            return ProjectTotals()
        return compute_project_totals(slots)
