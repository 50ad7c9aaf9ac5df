"""
Signup transaction coordinator.

A signup is two writes against the entity store: the volunteer record is
created first, then the slot counters are advanced with a write conditioned
on the slot's version token. The conditioned write is the only point where
concurrent signups serialize. When it loses, the volunteer record is removed
again (compensation) and the attempt is retried from a fresh read.

The current filled count is taken from the volunteer records themselves
rather than from the slot's stored counter, plus one for a legacy volunteer
stored directly on the slot.
"""

import dataclasses
import logging

from core.domain.signup import SignupResult, Slot, VolunteerInfo
from core.errors import (
    SlotConflictError,
    SlotFullError,
    SlotNotFoundError,
    StorageUnavailableError,
    ValidationError,
)
from core.interfaces.entity_store import (
    Entity,
    EntityExistsError,
    EntityNotFoundError,
    EntityStore,
    PreconditionFailedError,
    StoreUnavailableError,
    UpdateMode,
)
from services.slot_metrics import next_status
from services.slot_occupancy import count_occupants
from services.slot_schema import (
    new_volunteer_entity,
    slot_counter_patch,
    slot_from_entity,
    volunteer_from_entity,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


def validate_volunteer(volunteer: VolunteerInfo) -> None:
    """Raise ValidationError unless first name, last name and email are present."""
    if not (volunteer.first_name and volunteer.last_name and volunteer.email):
        raise ValidationError("First name, last name, and email are required.")
    if "@" not in volunteer.email:
        raise ValidationError("Please provide a valid email address.")


class SignupCoordinator:
    """Accepts or rejects volunteer signups against slot capacity."""

    def __init__(
        self,
        store: EntityStore,
        slots_table: str = "Slots",
        volunteers_table: str = "SlotVolunteers",
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        self.store = store
        self.slots_table = slots_table
        self.volunteers_table = volunteers_table
        self.max_attempts = max(1, max_attempts)

    async def signup(
        self,
        project_id: str,
        slot_id: str,
        volunteer: VolunteerInfo,
    ) -> SignupResult:
        """
        Sign a volunteer up for a slot.

        Args:
            project_id: Project owning the slot
            slot_id: Slot to sign up for
            volunteer: Submitted volunteer details

        Returns:
            SignupResult with the updated slot and the stored volunteer record

        Raises:
            ValidationError: Required volunteer fields missing
            SlotNotFoundError: Slot does not exist (or vanished mid-signup)
            SlotFullError: Slot is held or has no spots remaining
            SlotConflictError: Lost every attempt to concurrent writers
            StorageUnavailableError: Entity store failed
        """
        validate_volunteer(volunteer)

        for attempt in range(1, self.max_attempts + 1):
            slot = await self._load_slot(project_id, slot_id)

            if slot.is_held:
                logger.info(
                    "Signup rejected, slot is held",
                    extra={"project_id": project_id, "slot_id": slot_id},
                )
                raise SlotFullError()

            current = await self._current_filled(slot)
            if current >= slot.capacity:
                logger.info(
                    "Signup rejected, slot full (%d/%d)",
                    current,
                    slot.capacity,
                    extra={"project_id": project_id, "slot_id": slot_id, "attempt": attempt},
                )
                raise SlotFullError()

            record = new_volunteer_entity(project_id, slot_id, volunteer)
            try:
                record.etag = await self.store.create(self.volunteers_table, record)
            except EntityExistsError:
                logger.warning(
                    "Volunteer row key collision, retrying",
                    extra={"project_id": project_id, "slot_id": slot_id, "attempt": attempt},
                )
                continue
            except StoreUnavailableError as e:
                raise StorageUnavailableError() from e

            filled = current + 1
            status = next_status(slot.status, filled, slot.capacity)
            signed_up = record.properties["SignedUpUtc"]
            patch = slot_counter_patch(slot, filled, status, signed_up_utc=signed_up)

            try:
                new_etag = await self.store.update(
                    self.slots_table, patch, etag=slot.etag, mode=UpdateMode.MERGE
                )
            except (PreconditionFailedError, EntityExistsError):
                await self._compensate(record)
                logger.warning(
                    "Slot changed during signup, retrying",
                    extra={"project_id": project_id, "slot_id": slot_id, "attempt": attempt},
                )
                continue
            except EntityNotFoundError as e:
                await self._compensate(record)
                raise SlotNotFoundError() from e
            except StoreUnavailableError as e:
                await self._compensate(record)
                raise StorageUnavailableError() from e
            except Exception:
                await self._compensate(record)
                raise

            updated = dataclasses.replace(
                slot,
                filled_count=filled,
                status=status,
                last_volunteer_signup_utc=signed_up,
                etag=new_etag,
            )
            logger.info(
                "Volunteer signed up (%d/%d)",
                filled,
                slot.capacity,
                extra={
                    "project_id": project_id,
                    "slot_id": slot_id,
                    "volunteer_id": record.row_key,
                    "attempt": attempt,
                },
            )
            return SignupResult(slot=updated, volunteer=volunteer_from_entity(record))

        logger.warning(
            "Signup gave up after %d attempts",
            self.max_attempts,
            extra={"project_id": project_id, "slot_id": slot_id},
        )
        raise SlotConflictError()

    async def _load_slot(self, project_id: str, slot_id: str) -> Slot:
        try:
            entity = await self.store.get(self.slots_table, project_id, slot_id)
        except EntityNotFoundError as e:
            raise SlotNotFoundError() from e
        except StoreUnavailableError as e:
            raise StorageUnavailableError() from e
        return slot_from_entity(entity)

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
                "Could not count volunteer records, using stored counter",
                extra={"project_id": slot.project_id, "slot_id": slot.id},
            )
            return slot.filled_count

    async def _compensate(self, record: Entity) -> None:
        """Remove a volunteer record written by a failed attempt."""
        try:
            await self.store.delete(self.volunteers_table, record.partition_key, record.row_key)
        except EntityNotFoundError:
            pass
        except Exception:
            logger.exception(
                "Compensating delete failed; orphaned volunteer record %s/%s",
                record.partition_key,
                record.row_key,
                extra={"volunteer_id": record.row_key},
            )
