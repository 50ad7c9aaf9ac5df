"""
Volunteer withdrawal coordinator.

Withdrawal deletes the volunteer record first, then rewrites the slot
counters from the volunteer records that remain, with a write conditioned on
the slot version token. A signup landing in between is therefore counted.
A failure after the delete is not rolled back: the volunteer is gone, and
the caller is told the slot counts may be stale.
"""

import dataclasses
import logging

from core.domain.signup import Slot, WithdrawResult
from core.errors import (
    SlotConflictError,
    StorageUnavailableError,
    VolunteerNotFoundError,
)
from core.interfaces.entity_store import (
    EntityNotFoundError,
    EntityStore,
    EntityStoreError,
    PreconditionFailedError,
    StoreUnavailableError,
    UpdateMode,
)
from services.slot_metrics import next_status
from services.slot_occupancy import count_occupants
from services.slot_schema import (
    slot_counter_patch,
    slot_from_entity,
    volunteer_from_entity,
    volunteer_partition,
)

logger = logging.getLogger(__name__)


class WithdrawalCoordinator:
    """Removes volunteer signups and releases their slot capacity."""

    def __init__(
        self,
        store: EntityStore,
        slots_table: str = "Slots",
        volunteers_table: str = "SlotVolunteers",
        max_attempts: int = 5,
    ):
        self.store = store
        self.slots_table = slots_table
        self.volunteers_table = volunteers_table
        self.max_attempts = max(1, max_attempts)

    async def withdraw(self, project_id: str, slot_id: str, volunteer_id: str) -> WithdrawResult:
        """
        Remove a volunteer from a slot.

        Returns:
            WithdrawResult; ``counts_stale`` is True when the record was removed
            but the slot counters could not be decremented

        Raises:
            VolunteerNotFoundError: No such volunteer record under the slot
            SlotConflictError: The record changed between read and delete
            StorageUnavailableError: Entity store failed before the delete
        """
        partition = volunteer_partition(project_id, slot_id)
        log_extra = {"project_id": project_id, "slot_id": slot_id, "volunteer_id": volunteer_id}

        try:
            entity = await self.store.get(self.volunteers_table, partition, volunteer_id)
        except EntityNotFoundError as e:
            raise VolunteerNotFoundError() from e
        except StoreUnavailableError as e:
            raise StorageUnavailableError() from e
        volunteer = volunteer_from_entity(entity)

        try:
            await self.store.delete(self.volunteers_table, partition, volunteer_id, etag=entity.etag)
        except EntityNotFoundError as e:
            raise VolunteerNotFoundError() from e
        except PreconditionFailedError as e:
            raise SlotConflictError("Volunteer record changed. Please refresh and try again.") from e
        except StoreUnavailableError as e:
            raise StorageUnavailableError() from e

        for attempt in range(1, self.max_attempts + 1):
            try:
                slot = slot_from_entity(await self.store.get(self.slots_table, project_id, slot_id))
                filled = await self._current_filled(slot)
                status = next_status(slot.status, filled, slot.capacity)
                new_etag = await self.store.update(
                    self.slots_table,
                    slot_counter_patch(slot, filled, status),
                    etag=slot.etag,
                    mode=UpdateMode.MERGE,
                )
            except PreconditionFailedError:
                logger.warning(
                    "Slot changed during withdrawal, recounting",
                    extra={**log_extra, "attempt": attempt},
                )
                continue
            except EntityStoreError as e:
                logger.warning(
                    "Volunteer removed but slot counts not updated: %s",
                    type(e).__name__,
                    extra=log_extra,
                )
                return WithdrawResult(volunteer=volunteer, slot=None, counts_stale=True)

            logger.info("Volunteer withdrawn (%d/%d)", filled, slot.capacity, extra=log_extra)
            updated = dataclasses.replace(slot, filled_count=filled, status=status, etag=new_etag)
            return WithdrawResult(volunteer=volunteer, slot=updated)

        logger.warning(
            "Volunteer removed but slot kept changing; counts not updated",
            extra=log_extra,
        )
        return WithdrawResult(volunteer=volunteer, slot=None, counts_stale=True)

    async def _current_filled(self, slot: Slot) -> int:
        try:
            return await count_occupants(
                self.store,
                self.volunteers_table,
                slot.project_id,
                slot.id,
                has_legacy_volunteer=slot.volunteer is not None,
            )
        except StoreUnavailableError:
            logger.warning(
                "Could not count volunteer records, decrementing stored counter",
                extra={"project_id": slot.project_id, "slot_id": slot.id},
            )
            return max(0, slot.filled_count - 1)
